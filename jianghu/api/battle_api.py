from functools import lru_cache
from typing import Optional

from fastapi import FastAPI, HTTPException
from pydantic import BaseModel

from jianghu.combat import BattleConfigurationError, StatisticsCollector, BattleScheduler
from jianghu.factory import UnitFactory
from jianghu.loader import Catalog, DataLoader

app = FastAPI(title="Jianghu Combat API")


class DuelRequest(BaseModel):
    opponent: str
    player_name: Optional[str] = None
    seed: Optional[int] = None
    max_rounds: Optional[int] = None


@lru_cache(maxsize=1)
def get_catalog() -> Catalog:
    return DataLoader().load_all()


@app.get("/health")
def health():
    return {"status": "ok"}


@app.get("/opponents")
def list_opponents():
    catalog = get_catalog()
    return [{"id": t.id, "name": t.name} for t in catalog.templates.values() if t.id != "player"]


@app.post("/battle/duel")
def duel(req: DuelRequest):
    catalog = get_catalog()
    template = catalog.find_template(req.opponent)
    if template is None or template.id == "player":
        raise HTTPException(status_code=404, detail=f"对手不存在: {req.opponent}")

    try:
        factory = UnitFactory(catalog)
        player = factory.create_player(name=req.player_name)
        opponent = factory.create_unit(template, team="B")

        scheduler = BattleScheduler([player], [opponent], seed=req.seed, max_rounds=req.max_rounds)
        collector = StatisticsCollector().attach(scheduler)
        result = scheduler.run()

        data = result.to_dict()
        data["statistics"] = {u.id: collector.stats.summary(u.id) for u in (player, opponent)}
        return data
    except BattleConfigurationError as e:
        raise HTTPException(status_code=400, detail=str(e))


if __name__ == "__main__":
    import uvicorn  # type: ignore
    uvicorn.run(app, host="0.0.0.0", port=8000)
