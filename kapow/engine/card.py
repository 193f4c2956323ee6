"""牌的定义 - KAPOW! 的数据模型（数值牌 / 能量牌 / KAPOW! 万能牌）"""

from enum import Enum
from dataclasses import dataclass
from typing import Optional, Tuple


class CardKind(str, Enum):
    """牌种类枚举"""
    FIXED = "FIXED"     # 数值牌 0-12
    POWER = "POWER"     # 能量牌（可叠放修正）
    KAPOW = "KAPOW"     # 万能牌


# 未冻结的 KAPOW! 牌计分值（风险惩罚）
KAPOW_UNFROZEN_VALUE = 25

# KAPOW! 牌可指定的取值范围
KAPOW_MIN_VALUE = 0
KAPOW_MAX_VALUE = 12


@dataclass(eq=False)
class Card:
    """一张牌：身份不可变，展示状态（翻开/冻结/指定值）可变"""
    id: int
    kind: CardKind
    face_value: Optional[int] = None                  # KAPOW! 牌为 None
    modifiers: Optional[Tuple[int, int]] = None       # 能量牌 (-n, +n)
    active_modifier: Optional[int] = None             # 叠放时选定的修正值
    is_revealed: bool = False
    is_frozen: bool = False                           # 仅 KAPOW!：锁定在完成的三连中
    assigned_value: Optional[int] = None              # 仅 KAPOW!：使用时指定的值

    @property
    def is_fixed(self) -> bool:
        return self.kind == CardKind.FIXED

    @property
    def is_power(self) -> bool:
        return self.kind == CardKind.POWER

    @property
    def is_kapow(self) -> bool:
        return self.kind == CardKind.KAPOW

    def select_modifier(self, modifier: int) -> bool:
        """选定能量牌的修正值，必须是声明的修正对之一。返回是否成功。"""
        if not self.is_power or modifier not in self.modifiers:
            return False
        self.active_modifier = modifier
        return True

    @property
    def display(self) -> str:
        if self.is_kapow:
            if self.is_frozen and self.assigned_value is not None:
                return f"K!({self.assigned_value})"
            return "K!"
        if self.is_power:
            lo, hi = self.modifiers
            return f"P{self.face_value}({lo:+d}/{hi:+d})"
        return str(self.face_value)

    def __repr__(self) -> str:
        return f"<{self.display}#{self.id}>"
