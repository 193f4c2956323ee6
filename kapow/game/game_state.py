"""游戏状态 - 一场 KAPOW! 对局的可变状态与结构化事件流"""

from enum import Enum
from dataclasses import dataclass, field
from typing import List, Optional

from kapow.engine.card import Card
from kapow.engine.hand import Slot
from kapow.engine.triad_type import CompletionType
from kapow.game.player import Player


DEFAULT_MAX_ROUNDS = 10
FIRST_TURN_REVEALS = 2


class GamePhase(str, Enum):
    """游戏阶段"""
    SETUP = "SETUP"                 # 未开始
    FIRST_TURN = "FIRST_TURN"       # 首轮翻牌
    PLAYING = "PLAYING"             # 正常出牌
    FINAL_TURNS = "FINAL_TURNS"     # 有人出完，其余玩家最后一轮
    SCORING = "SCORING"             # 回合结算
    GAME_OVER = "GAME_OVER"         # 整场结束


class DrawSource(str, Enum):
    """抽牌来源"""
    DECK = "DECK"
    DISCARD = "DISCARD"


# ============================================================
#  结构化事件（供统计/界面消费）
# ============================================================

@dataclass
class GameEvent:
    """事件基类"""
    round: int
    player_id: Optional[int]


@dataclass
class RoundStarted(GameEvent):
    dealer_index: int


@dataclass
class CardRevealed(GameEvent):
    triad_index: int
    slot: Slot
    card: Card


@dataclass
class CardDrawn(GameEvent):
    source: DrawSource
    card: Card


@dataclass
class CardPlaced(GameEvent):
    triad_index: int
    slot: Slot
    card: Card
    replaced: List[Card]


@dataclass
class CardDiscarded(GameEvent):
    card: Card


@dataclass
class PowersetCreated(GameEvent):
    triad_index: int
    slot: Slot
    card: Card
    modifier: int


@dataclass
class KapowSwapped(GameEvent):
    from_triad: int
    from_slot: Slot
    to_triad: int
    to_slot: Slot


@dataclass
class KapowValueAssigned(GameEvent):
    triad_index: int
    slot: Slot
    value: int


@dataclass
class TriadCompleted(GameEvent):
    triad_index: int
    completion: CompletionType
    values: List[int]


@dataclass
class WentOut(GameEvent):
    pass


@dataclass
class KapowBusted(GameEvent):
    count: int                       # 回合结束时仍未冻结的 KAPOW! 张数


@dataclass
class PenaltyApplied(GameEvent):
    raw_score: int
    final_score: int


@dataclass
class RoundScored(GameEvent):
    scores: List[int]
    totals: List[int]


@dataclass
class GameOver(GameEvent):
    totals: List[int]


# ============================================================
#  对局状态
# ============================================================

@dataclass
class GameState:
    """一场对局的完整状态（整场只创建一次，原地修改）"""
    players: List[Player]
    round: int = 1
    max_rounds: int = DEFAULT_MAX_ROUNDS
    dealer_index: int = 0
    current_player: int = 0
    phase: GamePhase = GamePhase.SETUP

    # 牌堆（末尾为堆顶）
    draw_pile: List[Card] = field(default_factory=list)
    discard_pile: List[Card] = field(default_factory=list)
    drawn_card: Optional[Card] = None

    # 回合内临时状态
    first_turn_reveals: int = 0
    first_out_player: Optional[int] = None
    final_turns_remaining: int = 0
    awaiting_reveal_after_discard: bool = False
    turn_count: int = 0

    # 结算
    winner: Optional[int] = None
    message: str = ""

    # 事件日志
    events: List[GameEvent] = field(default_factory=list)

    @property
    def player_count(self) -> int:
        return len(self.players)

    @property
    def discard_top(self) -> Optional[Card]:
        return self.discard_pile[-1] if self.discard_pile else None

    @property
    def acting_player(self) -> Player:
        return self.players[self.current_player]

    def reset_round(self) -> None:
        """重置回合内临时字段"""
        self.drawn_card = None
        self.first_turn_reveals = 0
        self.first_out_player = None
        self.final_turns_remaining = 0
        self.awaiting_reveal_after_discard = False
        self.turn_count = 0


def create_game_state(
    player_names: Optional[List[str]] = None,
    max_rounds: int = DEFAULT_MAX_ROUNDS,
    human_seats: Optional[List[int]] = None,
) -> GameState:
    """创建新对局状态：默认两名玩家，座位0为人类"""
    names = player_names or ["You", "AI"]
    humans = {0} if human_seats is None else set(human_seats)
    players = [
        Player(id=i, name=name, is_human=(i in humans))
        for i, name in enumerate(names)
    ]
    return GameState(players=players, max_rounds=max_rounds)
