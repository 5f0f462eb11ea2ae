import argparse
import io
import logging
import sys

# Windows UTF-8 兼容性处理
if sys.platform.startswith('win'):
    sys.stdout = io.TextIOWrapper(sys.stdout.buffer, encoding='utf-8')
    sys.stderr = io.TextIOWrapper(sys.stderr.buffer, encoding='utf-8')

from jianghu import DataLoader, UnitFactory
from jianghu.combat import BattleScheduler, StatisticsCollector


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="江湖回合制战斗模拟")
    parser.add_argument("attacker", nargs="?", default="elite_jinshulei", help="A 方角色模板 (id 或名称)")
    parser.add_argument("defender", nargs="?", default="elite_fengchong", help="B 方角色模板 (id 或名称)")
    parser.add_argument("--seed", type=int, default=None, help="随机种子")
    parser.add_argument("--max-rounds", type=int, default=None, help="最大回合数")
    parser.add_argument("--data-dir", default=None, help="数据目录")
    parser.add_argument("-v", "--verbose", action="store_true", help="输出调试日志")
    return parser.parse_args(argv)


def main(argv=None) -> int:
    """主函数"""
    args = parse_args(argv)
    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.WARNING,
                        format="%(levelname)s %(name)s: %(message)s")

    print("=" * 80)
    print("江湖回合制战斗模拟器")
    print("=" * 80)
    print()

    loader = DataLoader(data_dir=args.data_dir)
    try:
        catalog = loader.load_all()
        factory = UnitFactory(catalog)
        unit_a = factory.create_unit(catalog.get_template(args.attacker), team="A")
        unit_b = factory.create_unit(catalog.get_template(args.defender), team="B")
    except FileNotFoundError as e:
        print(f"❌ 错误: {e}")
        print("请确保数据目录下存在 talents.yaml, sects.yaml, skills.yaml, units.yaml, trial.yaml")
        return 1
    except KeyError as e:
        print(f"❌ 错误: {e}")
        return 1

    scheduler = BattleScheduler([unit_a], [unit_b], seed=args.seed, max_rounds=args.max_rounds)
    collector = StatisticsCollector().attach(scheduler)
    result = scheduler.run()

    for line in result.log:
        print(line)

    print()
    print("=" * 80)
    for unit in (unit_a, unit_b):
        summary = collector.stats.summary(unit.id)
        print(f"{unit.name}: 剩余生命 {unit.hp}/{unit.max_hp}, 造成伤害 {summary['damage_dealt']}, "
              f"暴击 {summary['crits']} 次, 闪避 {summary['dodges']} 次")
    print("=" * 80)
    return 0


if __name__ == "__main__":
    exit_code: int = main()
    sys.exit(exit_code)
