"""KAPOW! AI 对局 - 主入口"""

import argparse
import json
import logging
import random

from kapow.ai.kapow_ai import KapowAI
from kapow.game.controller import GameController
from kapow.game.game_state import DEFAULT_MAX_ROUNDS
from kapow.game.stats import summarize_match
from kapow.ui.renderer import TerminalRenderer


PLAYER_NAMES = ["Kai", "Blaze", "Nova", "Rex"]


def create_players(count: int, rng: random.Random):
    """创建 count 个 AI 座位"""
    names = PLAYER_NAMES[:count]
    strategies = [KapowAI(rng=random.Random(rng.random())) for _ in names]
    return names, strategies


def run_one_game(
    rounds: int = DEFAULT_MAX_ROUNDS,
    players: int = 2,
    delay: float = 0.8,
    seed=None,
) -> dict:
    """运行一场完整对局，返回统计汇总"""
    rng = random.Random(seed)
    renderer = TerminalRenderer(delay=delay)
    names, strategies = create_players(players, rng)

    gc = GameController(player_names=names, strategies=strategies, max_rounds=rounds, rng=rng)
    gc.on_event(renderer.make_event_callback(gc.state))

    renderer.print_header("💥 KAPOW! 对局开始")
    gc.run_game()
    renderer.show_result(gc.state)
    return summarize_match(gc.state)


def main():
    """命令行入口"""
    parser = argparse.ArgumentParser(description="KAPOW! AI 对局")
    parser.add_argument("--games", type=int, default=1, help="对局场数 (默认1)")
    parser.add_argument("--rounds", type=int, default=DEFAULT_MAX_ROUNDS, help="每场回合数 (默认10)")
    parser.add_argument("--players", type=int, default=2, choices=range(2, len(PLAYER_NAMES) + 1),
                        help="玩家数 (默认2)")
    parser.add_argument("--seed", type=int, default=None, help="随机种子 (便于复现)")
    parser.add_argument("--delay", type=float, default=0.8, help="出牌延迟秒数 (默认0.8)")
    parser.add_argument("--fast", action="store_true", help="快速模式 (无延迟)")
    parser.add_argument("--log-level", default="WARNING", help="日志级别 (默认WARNING)")
    args = parser.parse_args()

    logging.basicConfig(
        level=getattr(logging, args.log_level.upper(), logging.WARNING),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    delay = 0.0 if args.fast else args.delay

    for i in range(args.games):
        if args.games > 1:
            print(f"\n{'=' * 60}")
            print(f"  第 {i + 1}/{args.games} 场")
            print(f"{'=' * 60}")
        seed = None if args.seed is None else args.seed + i
        summary = run_one_game(rounds=args.rounds, players=args.players, delay=delay, seed=seed)
        print(json.dumps(summary, ensure_ascii=False, indent=2))


if __name__ == "__main__":
    main()
