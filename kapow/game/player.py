"""玩家模型 - KAPOW! 玩家的数据结构"""

from dataclasses import dataclass, field
from typing import List, Optional

from kapow.engine.hand import Hand


@dataclass
class Player:
    """一个玩家"""
    id: int                          # 座位号
    name: str                        # 显示名
    is_human: bool = False
    hand: Optional[Hand] = None      # 每回合整体替换
    total_score: int = 0             # 累计总分
    round_scores: List[int] = field(default_factory=list)

    def record_round(self, score: int) -> None:
        """记录一回合得分"""
        self.round_scores.append(score)
        self.total_score += score

    def reset_for_new_game(self) -> None:
        """新一场重置"""
        self.hand = None
        self.total_score = 0
        self.round_scores.clear()
