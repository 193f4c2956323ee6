"""手牌单元测试 - 三连构建、位置取值与手牌操作"""

import itertools

import pytest

from kapow.engine.card import Card, CardKind, KAPOW_UNFROZEN_VALUE
from kapow.engine.hand import (
    Hand, Slot, Triad, initialize_hand, position_value, reveal_card, replace_card,
    add_to_powerset, swap_kapow_card, assign_kapow_value, unrevealed_positions,
    count_revealed, all_revealed,
)


# ============================================================
#  辅助工具
# ============================================================

_ids = itertools.count(1000)


def fixed(value: int, revealed: bool = True) -> Card:
    return Card(id=next(_ids), kind=CardKind.FIXED, face_value=value, is_revealed=revealed)


def power(face: int = 1, active=None) -> Card:
    return Card(id=next(_ids), kind=CardKind.POWER, face_value=face,
                modifiers=(-face, face), active_modifier=active, is_revealed=True)


def kapow(revealed: bool = True, frozen: bool = False, assigned=None) -> Card:
    return Card(id=next(_ids), kind=CardKind.KAPOW, is_revealed=revealed,
                is_frozen=frozen, assigned_value=assigned)


def triad(*cards: Card) -> Triad:
    return Triad(stacks=[[c] for c in cards])


# ============================================================
#  构建与取值
# ============================================================

class TestInitializeHand:

    def test_twelve_cards_four_triads(self):
        cards = [fixed(v % 13, revealed=False) for v in range(12)]
        hand = initialize_hand(cards)
        assert len(hand.triads) == 4
        assert hand.triads[1][Slot.TOP] == [cards[3]]
        assert hand.triads[1][Slot.MIDDLE] == [cards[4]]
        assert hand.triads[1][Slot.BOTTOM] == [cards[5]]
        assert not any(t.is_discarded for t in hand.triads)

    def test_leftover_dropped(self):
        hand = initialize_hand([fixed(1) for _ in range(7)])
        assert len(hand.triads) == 2


class TestPositionValue:

    @pytest.mark.parametrize("v", range(13))
    def test_fixed(self, v):
        assert position_value([fixed(v)]) == v

    def test_unfrozen_kapow(self):
        assert position_value([kapow()]) == KAPOW_UNFROZEN_VALUE == 25

    def test_unfrozen_kapow_ignores_assignment(self):
        assert position_value([kapow(assigned=3)]) == 25

    def test_frozen_kapow_with_power(self):
        assert position_value([kapow(frozen=True, assigned=7), power(2, active=-2)]) == 5

    def test_frozen_kapow_without_value(self):
        assert position_value([kapow(frozen=True)]) == 0

    def test_unfrozen_kapow_with_power(self):
        assert position_value([kapow(), power(1, active=1)]) == 26

    def test_powerset_sum(self):
        assert position_value([fixed(10), power(2, active=-2), power(1, active=-1)]) == 7

    def test_empty(self):
        assert position_value([]) == 0


# ============================================================
#  手牌操作
# ============================================================

class TestHandOperations:

    def setup_method(self):
        self.hand = Hand(triads=[
            triad(fixed(3, revealed=False), fixed(4), fixed(5)),
            triad(fixed(9), fixed(9), fixed(1, revealed=False)),
        ])

    def test_reveal(self):
        reveal_card(self.hand, 0, Slot.TOP)
        assert self.hand.triads[0].is_revealed(Slot.TOP)

    def test_reveal_discarded_noop(self):
        self.hand.triads[0].is_discarded = True
        reveal_card(self.hand, 0, Slot.TOP)
        assert not self.hand.triads[0].is_revealed(Slot.TOP)

    def test_reveal_bad_index_noop(self):
        reveal_card(self.hand, 7, Slot.TOP)
        assert count_revealed(self.hand) == 4

    def test_replace_returns_full_stack(self):
        self.hand.triads[1][Slot.TOP].append(power(1, active=-1))
        old = list(self.hand.triads[1][Slot.TOP])
        new = fixed(2, revealed=False)
        replaced = replace_card(self.hand, 1, Slot.TOP, new)
        assert replaced == old
        assert self.hand.triads[1][Slot.TOP] == [new]
        assert new.is_revealed

    def test_replace_discarded_noop(self):
        self.hand.triads[0].is_discarded = True
        assert replace_card(self.hand, 0, Slot.TOP, fixed(1)) == []
        assert self.hand.triads[0][Slot.TOP][0].face_value == 3

    def test_power_card_cannot_be_base(self):
        assert replace_card(self.hand, 1, Slot.TOP, power()) == []
        assert self.hand.triads[1][Slot.TOP][0].face_value == 9

    def test_powerset_requires_revealed(self):
        p = power(2)
        add_to_powerset(self.hand, 0, Slot.TOP, p, -2)
        assert len(self.hand.triads[0][Slot.TOP]) == 1
        assert p.active_modifier is None

    def test_powerset_sets_modifier(self):
        p = power(2)
        add_to_powerset(self.hand, 1, Slot.MIDDLE, p, -2)
        assert self.hand.triads[1][Slot.MIDDLE][-1] is p
        assert p.active_modifier == -2
        assert position_value(self.hand.triads[1][Slot.MIDDLE]) == 7

    def test_powerset_rejects_unknown_modifier(self):
        p = power(1)
        add_to_powerset(self.hand, 1, Slot.MIDDLE, p, 2)
        assert len(self.hand.triads[1][Slot.MIDDLE]) == 1

    def test_unrevealed_positions_order(self):
        assert unrevealed_positions(self.hand) == [(0, Slot.TOP), (1, Slot.BOTTOM)]
        self.hand.triads[0].is_discarded = True
        assert unrevealed_positions(self.hand) == [(1, Slot.BOTTOM)]
        assert not all_revealed(self.hand)


class TestKapowOperations:

    def setup_method(self):
        self.k = kapow()
        self.hand = Hand(triads=[
            triad(self.k, fixed(4), fixed(5)),
            triad(fixed(11), fixed(9), fixed(1)),
        ])

    def test_swap(self):
        target = self.hand.triads[1][Slot.TOP]
        swap_kapow_card(self.hand, 0, Slot.TOP, 1, Slot.TOP)
        assert self.hand.triads[1][Slot.TOP] == [self.k]
        assert self.hand.triads[0][Slot.TOP] == target

    def test_swap_frozen_noop(self):
        self.k.is_frozen = True
        swap_kapow_card(self.hand, 0, Slot.TOP, 1, Slot.TOP)
        assert self.hand.triads[0][Slot.TOP] == [self.k]

    def test_swap_with_powerset_noop(self):
        self.hand.triads[0][Slot.TOP].append(power(1, active=1))
        swap_kapow_card(self.hand, 0, Slot.TOP, 1, Slot.TOP)
        assert self.hand.triads[0][Slot.TOP][0] is self.k

    def test_swap_non_kapow_noop(self):
        swap_kapow_card(self.hand, 1, Slot.TOP, 0, Slot.MIDDLE)
        assert self.hand.triads[1][Slot.TOP][0].face_value == 11

    def test_assign_value(self):
        assign_kapow_value(self.hand, 0, Slot.TOP, 3)
        assert self.k.assigned_value == 3
        assert not self.k.is_frozen

    @pytest.mark.parametrize("value", [-1, 13, 25])
    def test_assign_out_of_range(self, value):
        assign_kapow_value(self.hand, 0, Slot.TOP, value)
        assert self.k.assigned_value is None

    def test_assign_frozen_noop(self):
        self.k.is_frozen = True
        assign_kapow_value(self.hand, 0, Slot.TOP, 3)
        assert self.k.assigned_value is None
