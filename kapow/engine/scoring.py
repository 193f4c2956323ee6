"""计分 - 手牌计分、先出完惩罚与整场胜者判定"""

from typing import List, Optional, Sequence

from .card import Card
from .hand import Hand, Slot, position_value


def score_position(stack: List[Card]) -> int:
    """单个位置得分（底牌 + 能量牌修正）"""
    if not stack:
        return 0
    return position_value(stack)


def score_hand(hand: Hand) -> int:
    """整手得分：只统计未弃掉的三连，已完成的三连记 0 分"""
    total = 0
    for triad in hand.triads:
        if triad.is_discarded:
            continue
        for slot in Slot:
            total += score_position(triad[slot])
    return total


def reveal_all_cards(hand: Hand) -> Hand:
    """回合结束时翻开手中所有牌"""
    for triad in hand.triads:
        if triad.is_discarded:
            continue
        for slot in Slot:
            for card in triad[slot]:
                card.is_revealed = True
    return hand


def apply_first_out_penalty(round_scores: Sequence[int], first_out_index: Optional[int]) -> List[int]:
    """
    先出完惩罚：先宣布出完的玩家若得分为0不受影响；
    否则只要有其他玩家得分严格更低，其得分翻倍（平分不翻倍）。
    """
    scores = list(round_scores)
    if first_out_index is None or len(scores) < 2:
        return scores

    first_out_score = scores[first_out_index]
    if first_out_score == 0:
        return scores

    lowest_other = min(s for i, s in enumerate(scores) if i != first_out_index)
    if lowest_other < first_out_score:
        scores[first_out_index] = first_out_score * 2
    return scores


def calculate_round_scores(players, first_out_index: Optional[int]) -> List[int]:
    """计算本回合所有玩家的最终得分（含先出完惩罚）"""
    raw = [score_hand(p.hand) for p in players]
    return apply_first_out_penalty(raw, first_out_index)


def get_winner(players) -> int:
    """累计总分最低者获胜，平分时座位号靠前者胜"""
    winner = 0
    for i, p in enumerate(players):
        if p.total_score < players[winner].total_score:
            winner = i
    return winner
