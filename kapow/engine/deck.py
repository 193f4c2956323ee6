"""牌堆 - 118 张 KAPOW! 牌的构建、洗牌、发牌与抽/弃牌堆管理"""

import itertools
import random
from typing import List, Optional, Tuple

from .card import Card, CardKind


DECK_SIZE = 118
HAND_SIZE = 12

# 数值牌张数：0 ×8, 1 ×4, 2 ×4, 3-12 各 ×8
FIXED_COPIES = {0: 8, 1: 4, 2: 4, **{v: 8 for v in range(3, 13)}}

# 能量牌：(牌面, 修正对, 张数)
POWER_CARDS = [
    (1, (-1, 1), 8),
    (2, (-2, 2), 8),
]

KAPOW_COPIES = 6


def create_deck() -> List[Card]:
    """创建一副118张 KAPOW! 牌，id 每次从 0 开始编号"""
    ids = itertools.count()
    deck: List[Card] = []

    for value, copies in FIXED_COPIES.items():
        for _ in range(copies):
            deck.append(Card(id=next(ids), kind=CardKind.FIXED, face_value=value))

    for face, mods, copies in POWER_CARDS:
        for _ in range(copies):
            deck.append(Card(id=next(ids), kind=CardKind.POWER, face_value=face, modifiers=mods))

    for _ in range(KAPOW_COPIES):
        deck.append(Card(id=next(ids), kind=CardKind.KAPOW))

    assert len(deck) == DECK_SIZE, f"牌数错误: {len(deck)}"
    return deck


def shuffle(cards: List[Card], rng: Optional[random.Random] = None) -> List[Card]:
    """洗牌：返回新列表，不修改输入"""
    shuffled = cards.copy()
    (rng or random).shuffle(shuffled)
    return shuffled


def deal(
    cards: List[Card], player_count: int, per_player: int = HAND_SIZE
) -> Tuple[List[List[Card]], List[Card]]:
    """
    按顺序从牌堆前部给每位玩家发 per_player 张。
    返回 (各玩家手牌, 剩余牌堆)。牌不够时手牌会不足，由调用方保证数量。
    """
    hands = []
    for p in range(player_count):
        hands.append(cards[p * per_player:(p + 1) * per_player])
    remaining = cards[player_count * per_player:]
    return hands, remaining


def draw_from_pile(pile: List[Card]) -> Tuple[Optional[Card], List[Card]]:
    """从牌堆顶（末尾）抽一张：返回 (牌, 新牌堆)，不修改原列表。空堆返回 (None, pile)。"""
    if not pile:
        return None, pile
    return pile[-1], pile[:-1]


def replenish_from_discard(
    discard_pile: List[Card], rng: Optional[random.Random] = None
) -> Tuple[List[Card], List[Card]]:
    """
    抽牌堆用尽时，用弃牌堆补充：保留弃牌堆顶的一张，
    其余牌翻回背面后洗匀作为新抽牌堆。返回 (新抽牌堆, 新弃牌堆)。
    """
    if len(discard_pile) <= 1:
        return [], discard_pile

    top = discard_pile[-1]
    to_shuffle = discard_pile[:-1]
    for card in to_shuffle:
        card.is_revealed = False

    return shuffle(to_shuffle, rng), [top]
