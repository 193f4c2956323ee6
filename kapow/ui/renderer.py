"""终端可视化渲染器 - 在终端中展示 KAPOW! 对局过程"""

import time
from typing import List

from kapow.engine.card import Card
from kapow.engine.hand import Hand, Slot, position_value
from kapow.engine.triad_type import CompletionType
from kapow.game.player import Player
from kapow.game.game_state import (
    GameState, GameEvent, DrawSource, RoundStarted, CardRevealed, CardDrawn,
    CardPlaced, CardDiscarded, PowersetCreated, KapowSwapped, KapowValueAssigned,
    TriadCompleted, WentOut, KapowBusted, PenaltyApplied, RoundScored,
)


# 颜色常量 (ANSI)
RED = "\033[91m"
GREEN = "\033[92m"
YELLOW = "\033[93m"
BLUE = "\033[94m"
MAGENTA = "\033[95m"
CYAN = "\033[96m"
BOLD = "\033[1m"
DIM = "\033[2m"
RESET = "\033[0m"

# 完成类型中文名
COMPLETION_NAME = {
    CompletionType.SET: "同值组",
    CompletionType.ASCENDING: "升序连",
    CompletionType.DESCENDING: "降序连",
}

SLOT_NAME = {Slot.TOP: "上", Slot.MIDDLE: "中", Slot.BOTTOM: "下"}

CELL_WIDTH = 14


class TerminalRenderer:
    """终端可视化渲染器"""

    def __init__(self, delay: float = 0.8):
        self.delay = delay  # 每步之间的延迟（秒）

    def pause(self, seconds: float = 0) -> None:
        """暂停"""
        if self.delay > 0:
            time.sleep(seconds or self.delay)

    # ============================================================
    #  牌面渲染
    # ============================================================

    @staticmethod
    def format_card(card: Card) -> str:
        """单张牌着色：KAPOW! 红色，能量牌青色，数值牌原色"""
        if not card.is_revealed:
            return f"{DIM}??{RESET}"
        if card.is_kapow:
            return f"{RED}{BOLD}{card.display}{RESET}"
        if card.is_power:
            return f"{CYAN}{card.display}{RESET}"
        return card.display

    @staticmethod
    def format_stack(stack: List[Card]) -> str:
        """位置牌叠 → 纯文本（用于对齐列宽）"""
        if not stack:
            return "-"
        if not stack[0].is_revealed:
            return "??"
        if len(stack) == 1:
            return stack[0].display
        mods = "".join(f"{c.active_modifier:+d}" for c in stack[1:] if c.active_modifier is not None)
        return f"{stack[0].display}{mods}={position_value(stack)}"

    def format_hand(self, hand: Hand) -> List[str]:
        """手牌 → 三行文本，每个三连一列"""
        rows = []
        for slot in Slot:
            cells = []
            for triad in hand.triads:
                if triad.is_discarded:
                    cells.append(f"{GREEN}{'✓':<{CELL_WIDTH}}{RESET}")
                else:
                    cells.append(f"{self.format_stack(triad[slot]):<{CELL_WIDTH}}")
            rows.append(f"  {SLOT_NAME[slot]} | " + "".join(cells))
        return rows

    @staticmethod
    def format_player_name(player: Player) -> str:
        color = YELLOW if player.is_human else BLUE
        return f"{color}{BOLD}{player.name}{RESET}"

    # ============================================================
    #  分隔线与标题
    # ============================================================

    @staticmethod
    def separator(char: str = "─", width: int = 60) -> str:
        return char * width

    def print_header(self, title: str) -> None:
        """打印带框的标题"""
        print(f"\n{YELLOW}{BOLD}{'═' * 60}{RESET}")
        print(f"{YELLOW}{BOLD}  {title}{RESET}")
        print(f"{YELLOW}{BOLD}{'═' * 60}{RESET}\n")

    # ============================================================
    #  局面展示
    # ============================================================

    def show_table(self, state: GameState) -> None:
        """展示所有玩家的手牌和牌堆"""
        for p in state.players:
            print(f"  {self.format_player_name(p)}  (累计 {p.total_score} 分)")
            if p.hand is not None:
                for line in self.format_hand(p.hand):
                    print(line)
        top = state.discard_top
        top_str = self.format_card(top) if top else "空"
        print(f"\n  {MAGENTA}弃牌堆顶: {top_str}{RESET}  抽牌堆: {len(state.draw_pile)} 张\n")

    def show_round_scores(self, state: GameState, scores: List[int]) -> None:
        """展示回合结算"""
        self.print_header(f"📋 第 {state.round} 回合结算")
        self.show_table(state)
        print(f"  {'玩家':<12} {'本回合':<8} {'累计':<8}")
        print(f"  {self.separator('─', 40)}")
        for p, score in zip(state.players, scores):
            print(f"  {p.name:<10} {score:<8} {p.total_score}")
        print()

    # ============================================================
    #  结算阶段展示
    # ============================================================

    def show_result(self, state: GameState) -> None:
        """展示整场结果"""
        self.print_header("🏆 游戏结束")

        if state.winner is not None:
            winner = state.players[state.winner]
            print(f"  胜者: {self.format_player_name(winner)}  总分 {winner.total_score}")

        print(f"\n  {self.separator('─', 40)}")
        header = "".join(f"R{i + 1:<4}" for i in range(len(state.players[0].round_scores)))
        print(f"  {'玩家':<10} {header} 总分")
        print(f"  {self.separator('─', 40)}")
        for p in state.players:
            rounds = "".join(f"{s:<5}" for s in p.round_scores)
            print(f"  {p.name:<10} {rounds} {p.total_score}")
        print()

    # ============================================================
    #  事件回调（注册到 GameController）
    # ============================================================

    def make_event_callback(self, state: GameState):
        """创建事件回调函数，供 GameController.on_event() 使用"""
        renderer = self

        def callback(event: GameEvent) -> None:
            player = state.players[event.player_id] if event.player_id is not None else None
            name = renderer.format_player_name(player) if player else ""

            if isinstance(event, RoundStarted):
                renderer.print_header(f"🃏 第 {event.round} 回合  庄家: {state.players[event.dealer_index].name}")
            elif isinstance(event, CardRevealed):
                print(f"  {name} 翻开 三连{event.triad_index}{SLOT_NAME[event.slot]}: "
                      f"{renderer.format_card(event.card)}")
            elif isinstance(event, CardDrawn):
                source = "弃牌堆" if event.source == DrawSource.DISCARD else "抽牌堆"
                print(f"  {name} 从{source}抽到 {renderer.format_card(event.card)}")
            elif isinstance(event, CardPlaced):
                print(f"  {name} 放入 三连{event.triad_index}{SLOT_NAME[event.slot]}，"
                      f"换下 {len(event.replaced)} 张")
                renderer.pause()
            elif isinstance(event, CardDiscarded):
                print(f"  {name}: {DIM}弃掉 {event.card.display}{RESET}")
                renderer.pause(0.3)
            elif isinstance(event, PowersetCreated):
                print(f"  {name} 叠放能量牌到 三连{event.triad_index}{SLOT_NAME[event.slot]} "
                      f"({event.modifier:+d})")
                renderer.pause()
            elif isinstance(event, KapowSwapped):
                print(f"  {name} 交换 KAPOW! 牌: 三连{event.from_triad}{SLOT_NAME[event.from_slot]} ↔ "
                      f"三连{event.to_triad}{SLOT_NAME[event.to_slot]}")
            elif isinstance(event, KapowValueAssigned):
                print(f"  {name} 指定 KAPOW! 取值 {event.value}")
            elif isinstance(event, TriadCompleted):
                kind = COMPLETION_NAME.get(event.completion, str(event.completion))
                print(f"  {GREEN}{BOLD}✨ {player.name} 完成三连{event.triad_index} "
                      f"[{kind}] {event.values}{RESET}")
                renderer.pause()
            elif isinstance(event, WentOut):
                print(f"\n  {RED}{BOLD}🚪 {player.name} 宣布出完！{RESET}\n")
                renderer.pause()
            elif isinstance(event, KapowBusted):
                print(f"  {RED}💥 {player.name} 有 {event.count} 张 KAPOW! 未锁定{RESET}")
            elif isinstance(event, PenaltyApplied):
                print(f"  {RED}{player.name} 先出完但非最低分：{event.raw_score} → {event.final_score}{RESET}")
            elif isinstance(event, RoundScored):
                renderer.show_round_scores(state, event.scores)
                renderer.pause()

        return callback
