"""手牌模型 - 三连(Triad)与位置牌叠(Position)的数据结构及操作"""

from enum import IntEnum
from dataclasses import dataclass, field
from typing import Iterator, List, Optional, Tuple

from .card import Card, KAPOW_UNFROZEN_VALUE, KAPOW_MIN_VALUE, KAPOW_MAX_VALUE


class Slot(IntEnum):
    """三连中的位置"""
    TOP = 0
    MIDDLE = 1
    BOTTOM = 2


@dataclass
class Triad:
    """
    一列三张牌（上/中/下）组成的计分单元。
    每个位置是一个牌叠：stack[0] 为底牌（数值牌或 KAPOW!），之后都是能量牌。
    """
    stacks: List[List[Card]] = field(default_factory=lambda: [[], [], []])
    is_discarded: bool = False

    def __getitem__(self, slot: Slot) -> List[Card]:
        return self.stacks[slot]

    def __setitem__(self, slot: Slot, cards: List[Card]) -> None:
        self.stacks[slot] = cards

    @property
    def top(self) -> List[Card]:
        return self.stacks[Slot.TOP]

    @property
    def middle(self) -> List[Card]:
        return self.stacks[Slot.MIDDLE]

    @property
    def bottom(self) -> List[Card]:
        return self.stacks[Slot.BOTTOM]

    def base_card(self, slot: Slot) -> Optional[Card]:
        stack = self.stacks[slot]
        return stack[0] if stack else None

    def is_revealed(self, slot: Slot) -> bool:
        """该位置底牌是否已翻开"""
        card = self.base_card(slot)
        return card is not None and card.is_revealed


@dataclass
class Hand:
    """一位玩家的手牌：按顺序排列的若干三连"""
    triads: List[Triad] = field(default_factory=list)

    def get_triad(self, triad_index: int) -> Optional[Triad]:
        if triad_index is not None and 0 <= triad_index < len(self.triads):
            return self.triads[triad_index]
        return None

    def positions(self) -> Iterator[Tuple[int, Slot, List[Card]]]:
        """遍历所有未弃掉三连的位置：(三连序号, 位置, 牌叠)"""
        for t, triad in enumerate(self.triads):
            if triad.is_discarded:
                continue
            for slot in Slot:
                yield t, slot, triad[slot]


# ============================================================
#  构建与数值计算
# ============================================================

def initialize_hand(cards: List[Card]) -> Hand:
    """按发牌顺序每3张组成一个三连：12张→4组，9张→3组，余牌舍弃"""
    triads = []
    for t in range(len(cards) // 3):
        triads.append(Triad(stacks=[
            [cards[t * 3]],
            [cards[t * 3 + 1]],
            [cards[t * 3 + 2]],
        ]))
    return Hand(triads=triads)


def position_value(stack: List[Card]) -> int:
    """
    位置有效值 = 底牌值 + 叠放能量牌的修正之和。
    底牌为未冻结 KAPOW! 时记 25，冻结后取指定值。
    """
    if not stack:
        return 0

    base = stack[0]
    if base.is_kapow:
        if base.is_frozen:
            value = base.assigned_value if base.assigned_value is not None else 0
        else:
            value = KAPOW_UNFROZEN_VALUE
    else:
        value = base.face_value

    for card in stack[1:]:
        if card.is_power:
            value += card.active_modifier
    return value


def triad_values(triad: Triad) -> List[int]:
    """返回 [上, 中, 下] 三个位置的有效值"""
    return [position_value(triad[slot]) for slot in Slot]


# ============================================================
#  手牌操作（前置条件不满足时静默不操作）
# ============================================================

def reveal_card(hand: Hand, triad_index: int, slot: Slot) -> Hand:
    """翻开指定位置的底牌"""
    triad = hand.get_triad(triad_index)
    if triad is None or triad.is_discarded:
        return hand
    card = triad.base_card(slot)
    if card is not None:
        card.is_revealed = True
    return hand


def replace_card(hand: Hand, triad_index: int, slot: Slot, new_card: Card) -> List[Card]:
    """
    用新牌替换指定位置：返回被换下的整个牌叠（用于进入弃牌堆），
    新牌单独成叠并自动翻开。能量牌不能作为底牌。
    """
    triad = hand.get_triad(triad_index)
    if triad is None or triad.is_discarded or new_card.is_power:
        return []

    replaced = list(triad[slot])
    new_card.is_revealed = True
    triad[slot] = [new_card]
    return replaced


def add_to_powerset(
    hand: Hand, triad_index: int, slot: Slot, power_card: Card, modifier: int
) -> Hand:
    """把能量牌叠放到已翻开的底牌下方，叠放时必须选定修正值（+n 或 -n）"""
    triad = hand.get_triad(triad_index)
    if triad is None or triad.is_discarded or not power_card.is_power:
        return hand
    if not triad.is_revealed(slot):
        return hand
    if not power_card.select_modifier(modifier):
        return hand

    power_card.is_revealed = True
    triad[slot].append(power_card)
    return hand


def swap_kapow_card(
    hand: Hand, from_triad: int, from_slot: Slot, to_triad: int, to_slot: Slot
) -> Hand:
    """交换两个位置的全部内容：来源位置必须恰好是一张未冻结的 KAPOW! 牌"""
    source_triad = hand.get_triad(from_triad)
    target_triad = hand.get_triad(to_triad)
    if source_triad is None or target_triad is None:
        return hand

    source = source_triad[from_slot]
    if len(source) != 1:
        return hand
    kapow = source[0]
    if not kapow.is_kapow or kapow.is_frozen:
        return hand

    source_triad[from_slot] = target_triad[to_slot]
    target_triad[to_slot] = source
    return hand


def assign_kapow_value(hand: Hand, triad_index: int, slot: Slot, value: int) -> Hand:
    """为已翻开、未冻结的 KAPOW! 底牌指定取值（0-12），三连完成时锁定"""
    triad = hand.get_triad(triad_index)
    if triad is None or triad.is_discarded:
        return hand
    card = triad.base_card(slot)
    if card is None or not card.is_kapow or card.is_frozen or not card.is_revealed:
        return hand
    if not KAPOW_MIN_VALUE <= value <= KAPOW_MAX_VALUE:
        return hand
    card.assigned_value = value
    return hand


# ============================================================
#  统计辅助
# ============================================================

def count_revealed(hand: Hand) -> int:
    """未弃三连中已翻开的位置数"""
    return sum(1 for _, _, stack in hand.positions() if stack and stack[0].is_revealed)


def active_position_count(hand: Hand) -> int:
    """未弃三连的位置总数"""
    return sum(3 for triad in hand.triads if not triad.is_discarded)


def unrevealed_positions(hand: Hand) -> List[Tuple[int, Slot]]:
    """按三连顺序（上、中、下）列出所有未翻开的位置"""
    return [
        (t, slot) for t, slot, stack in hand.positions()
        if stack and not stack[0].is_revealed
    ]


def all_revealed(hand: Hand) -> bool:
    return not unrevealed_positions(hand)
