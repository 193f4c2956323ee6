"""计分单元测试 - 手牌计分、先出完惩罚与胜者判定"""

import itertools

import pytest

from kapow.engine.card import Card, CardKind
from kapow.engine.hand import Hand, Slot, Triad
from kapow.engine.scoring import (
    score_hand, reveal_all_cards, apply_first_out_penalty, calculate_round_scores, get_winner,
)
from kapow.game.player import Player


_ids = itertools.count(3000)


def c(value: int, revealed: bool = True) -> Card:
    return Card(id=next(_ids), kind=CardKind.FIXED, face_value=value, is_revealed=revealed)


def hand_of(*rows) -> Hand:
    return Hand(triads=[Triad(stacks=[[c(v)] for v in row]) for row in rows])


class TestScoreHand:

    def test_sum(self):
        assert score_hand(hand_of([1, 5, 9], [0, 2, 12])) == 29

    def test_discarded_triads_zero(self):
        hand = hand_of([1, 5, 9], [7, 7, 7])
        hand.triads[1].is_discarded = True
        assert score_hand(hand) == 15

    def test_kapow_penalty(self):
        hand = hand_of([1, 2, 9])
        hand.triads[0][Slot.TOP] = [Card(id=next(_ids), kind=CardKind.KAPOW, is_revealed=True)]
        assert score_hand(hand) == 36

    def test_reveal_all(self):
        hand = Hand(triads=[Triad(stacks=[[c(1, False)], [c(2, False)], [c(3)]])])
        reveal_all_cards(hand)
        assert all(hand.triads[0].is_revealed(slot) for slot in Slot)


class TestFirstOutPenalty:
    """场景C"""

    def test_doubles_when_beaten(self):
        assert apply_first_out_penalty([15, 10], 0) == [30, 10]

    def test_tie_does_not_double(self):
        assert apply_first_out_penalty([10, 10], 0) == [10, 10]

    def test_zero_never_doubles(self):
        assert apply_first_out_penalty([0, 5], 0) == [0, 5]

    def test_lowest_no_change(self):
        assert apply_first_out_penalty([4, 10, 8], 0) == [4, 10, 8]

    def test_any_lower_player(self):
        assert apply_first_out_penalty([12, 20, 3], 1) == [12, 40, 3]

    def test_no_first_out(self):
        assert apply_first_out_penalty([15, 10], None) == [15, 10]

    def test_input_not_mutated(self):
        scores = [15, 10]
        apply_first_out_penalty(scores, 0)
        assert scores == [15, 10]


class TestRoundAndWinner:

    def _players(self, totals):
        players = [Player(id=i, name=f"P{i}") for i in range(len(totals))]
        for p, total in zip(players, totals):
            p.total_score = total
        return players

    def test_calculate_round_scores(self):
        players = self._players([0, 0])
        players[0].hand = hand_of([1, 7, 7])
        players[1].hand = hand_of([0, 1, 9])
        assert calculate_round_scores(players, 0) == [30, 10]
        assert calculate_round_scores(players, 1) == [15, 10]

    def test_lowest_total_wins(self):
        assert get_winner(self._players([40, 12, 30])) == 1

    def test_tie_first_index(self):
        assert get_winner(self._players([20, 20, 30])) == 0
        assert get_winner(self._players([25, 20, 20])) == 1
