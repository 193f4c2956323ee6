"""三连检测器 - 判定三连是否完成，并求解 KAPOW! 牌补全所需的取值"""

from typing import List, Optional

from .card import KAPOW_MIN_VALUE, KAPOW_MAX_VALUE
from .hand import Slot, Triad, position_value, triad_values
from .triad_type import CompletionType


def is_set(values: List[int]) -> bool:
    """同值组：三个值全部相等"""
    return values[0] == values[1] == values[2]


def is_ascending_run(values: List[int]) -> bool:
    """升序连：上、中、下依次 +1"""
    return values[1] == values[0] + 1 and values[2] == values[1] + 1


def is_descending_run(values: List[int]) -> bool:
    """降序连：上、中、下依次 -1"""
    return values[1] == values[0] - 1 and values[2] == values[1] - 1


def effective_values(triad: Triad) -> List[int]:
    return triad_values(triad)


def _all_revealed(triad: Triad) -> bool:
    return all(triad.is_revealed(slot) for slot in Slot)


def get_completion_type(triad: Triad) -> Optional[CompletionType]:
    """
    识别三连的完成类型。
    已弃三连或存在空位/未翻开位置时返回 None。
    """
    if triad.is_discarded or not _all_revealed(triad):
        return None

    values = effective_values(triad)
    if is_set(values):
        return CompletionType.SET
    if is_ascending_run(values):
        return CompletionType.ASCENDING
    if is_descending_run(values):
        return CompletionType.DESCENDING
    return None


def is_triad_complete(triad: Triad) -> bool:
    return get_completion_type(triad) is not None


def kapow_value_for_completion(triad: Triad, kapow_slot: Slot) -> Optional[int]:
    """
    求 KAPOW! 牌放在 kapow_slot 时，能使三连完成的取值。
    其余两个位置必须已翻开。候选顺序固定：
    同值组 → 该位置的升序推导 → 该位置的降序推导，
    返回第一个落在 0-12 范围内的候选，没有则返回 None。
    """
    others = [slot for slot in Slot if slot != kapow_slot]
    if not all(triad.is_revealed(slot) for slot in others):
        return None

    a, b = (position_value(triad[slot]) for slot in others)
    candidates = []

    # 同值组
    if a == b:
        candidates.append(a)

    if kapow_slot == Slot.TOP:
        # ? , a , b
        if a + 1 == b:
            candidates.append(a - 1)
        if a - 1 == b:
            candidates.append(a + 1)
    elif kapow_slot == Slot.MIDDLE:
        # a , ? , b
        if b == a + 2:
            candidates.append(a + 1)
        if b == a - 2:
            candidates.append(a - 1)
    else:
        # a , b , ?
        if b == a + 1:
            candidates.append(b + 1)
        if b == a - 1:
            candidates.append(b - 1)

    for value in candidates:
        if KAPOW_MIN_VALUE <= value <= KAPOW_MAX_VALUE:
            return value
    return None
