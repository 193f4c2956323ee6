"""规则引擎单元测试 - 合法动作查询"""

import itertools
from typing import List

from kapow.engine.card import Card, CardKind
from kapow.engine.hand import Hand, Slot, Triad
from kapow.game.player import Player
from kapow.game.game_state import GameState, GamePhase
from kapow.game.rules import (
    Action, ActionType, can_replace, can_create_powerset, can_swap_kapow,
    can_assign_kapow_value, can_go_out, get_valid_actions,
)


# ============================================================
#  辅助工具
# ============================================================

_ids = itertools.count(4000)


def fixed(value: int, revealed: bool = True) -> Card:
    return Card(id=next(_ids), kind=CardKind.FIXED, face_value=value, is_revealed=revealed)


def power(face: int = 1) -> Card:
    return Card(id=next(_ids), kind=CardKind.POWER, face_value=face, modifiers=(-face, face))


def kapow(revealed: bool = True, frozen: bool = False) -> Card:
    return Card(id=next(_ids), kind=CardKind.KAPOW, is_revealed=revealed, is_frozen=frozen)


def _hand() -> Hand:
    """两个三连：第一个全翻开，第二个只翻开中间"""
    return Hand(triads=[
        Triad(stacks=[[fixed(3)], [fixed(8)], [fixed(10)]]),
        Triad(stacks=[[fixed(1, False)], [fixed(6)], [fixed(2, False)]]),
    ])


def _make_state(phase: GamePhase = GamePhase.PLAYING, **kwargs) -> GameState:
    players = [Player(id=i, name=f"P{i}", hand=_hand()) for i in range(2)]
    s = GameState(players=players, phase=phase)
    s.draw_pile = [fixed(5, False)]
    s.discard_pile = [fixed(7)]
    for k, v in kwargs.items():
        setattr(s, k, v)
    return s


def _types(actions: List[Action]) -> List[ActionType]:
    return [a.type for a in actions]


# ============================================================
#  单项查询
# ============================================================

class TestQueries:

    def setup_method(self):
        self.hand = _hand()

    def test_can_replace(self):
        assert can_replace(self.hand, 1, Slot.TOP)
        self.hand.triads[1].is_discarded = True
        assert not can_replace(self.hand, 1, Slot.TOP)
        assert not can_replace(self.hand, 5, Slot.TOP)

    def test_can_create_powerset(self):
        assert can_create_powerset(self.hand, 0, Slot.TOP, power())
        assert not can_create_powerset(self.hand, 1, Slot.TOP, power())   # 未翻开
        assert not can_create_powerset(self.hand, 0, Slot.TOP, fixed(1))  # 非能量牌
        self.hand.triads[0].is_discarded = True
        assert not can_create_powerset(self.hand, 0, Slot.TOP, power())

    def test_can_swap_kapow(self):
        self.hand.triads[0][Slot.TOP] = [kapow()]
        assert can_swap_kapow(self.hand, 0, Slot.TOP)
        assert not can_swap_kapow(self.hand, 0, Slot.MIDDLE)

    def test_cannot_swap_frozen_or_hidden(self):
        self.hand.triads[0][Slot.TOP] = [kapow(frozen=True)]
        self.hand.triads[0][Slot.MIDDLE] = [kapow(revealed=False)]
        assert not can_swap_kapow(self.hand, 0, Slot.TOP)
        assert not can_swap_kapow(self.hand, 0, Slot.MIDDLE)

    def test_cannot_swap_powerset(self):
        p = power()
        p.active_modifier = 1
        self.hand.triads[0][Slot.TOP] = [kapow(), p]
        assert not can_swap_kapow(self.hand, 0, Slot.TOP)

    def test_can_assign_kapow_value(self):
        self.hand.triads[0][Slot.TOP] = [kapow()]
        assert can_assign_kapow_value(self.hand, 0, Slot.TOP, 0)
        assert can_assign_kapow_value(self.hand, 0, Slot.TOP, 12)
        assert not can_assign_kapow_value(self.hand, 0, Slot.TOP, 13)
        assert not can_assign_kapow_value(self.hand, 0, Slot.MIDDLE, 5)


class TestCanGoOut:

    def test_playing_without_drawn(self):
        assert can_go_out(_make_state(), 0)

    def test_not_with_drawn_card(self):
        assert not can_go_out(_make_state(drawn_card=fixed(4)), 0)

    def test_not_in_final_turns(self):
        assert not can_go_out(_make_state(GamePhase.FINAL_TURNS), 0)

    def test_not_in_first_turn(self):
        assert not can_go_out(_make_state(GamePhase.FIRST_TURN), 0)

    def test_only_acting_player(self):
        assert not can_go_out(_make_state(), 1)

    def test_not_while_reveal_pending(self):
        assert not can_go_out(_make_state(awaiting_reveal_after_discard=True), 0)


# ============================================================
#  合法动作枚举
# ============================================================

class TestGetValidActions:

    def test_first_turn_reveals(self):
        actions = get_valid_actions(_make_state(GamePhase.FIRST_TURN), 0)
        assert _types(actions) == [ActionType.REVEAL] * 2
        assert [(a.triad_index, a.slot) for a in actions] == [(1, Slot.TOP), (1, Slot.BOTTOM)]

    def test_draw_actions(self):
        actions = get_valid_actions(_make_state(), 0)
        assert _types(actions) == [ActionType.DRAW_FROM_DECK, ActionType.DRAW_FROM_DISCARD]

    def test_draw_only_nonempty_piles(self):
        assert _types(get_valid_actions(_make_state(discard_pile=[]), 0)) == [ActionType.DRAW_FROM_DECK]
        assert _types(get_valid_actions(_make_state(draw_pile=[]), 0)) == [ActionType.DRAW_FROM_DISCARD]

    def test_drawn_fixed_card(self):
        actions = get_valid_actions(_make_state(drawn_card=fixed(4)), 0)
        assert actions[0].type == ActionType.DISCARD
        assert _types(actions).count(ActionType.REPLACE) == 6
        assert ActionType.POWERSET not in _types(actions)

    def test_drawn_power_card(self):
        """能量牌：每个已翻开位置 × 两种修正值，不能替换"""
        actions = get_valid_actions(_make_state(drawn_card=power(2)), 0)
        powersets = [a for a in actions if a.type == ActionType.POWERSET]
        assert len(powersets) == 4 * 2
        assert {a.modifier for a in powersets} == {-2, 2}
        assert ActionType.REPLACE not in _types(actions)

    def test_swap_listed(self):
        s = _make_state(drawn_card=fixed(4))
        s.players[0].hand.triads[0][Slot.TOP] = [kapow()]
        swaps = [a for a in get_valid_actions(s, 0) if a.type == ActionType.SWAP_KAPOW]
        assert [(a.triad_index, a.slot) for a in swaps] == [(0, Slot.TOP)]

    def test_discarded_triad_excluded(self):
        s = _make_state(drawn_card=fixed(4))
        s.players[0].hand.triads[0].is_discarded = True
        replaces = [a for a in get_valid_actions(s, 0) if a.type == ActionType.REPLACE]
        assert {a.triad_index for a in replaces} == {1}

    def test_reveal_after_discard(self):
        actions = get_valid_actions(_make_state(awaiting_reveal_after_discard=True), 0)
        assert _types(actions) == [ActionType.REVEAL] * 2

    def test_scoring_phase_empty(self):
        assert get_valid_actions(_make_state(GamePhase.SCORING), 0) == []

    def test_read_only(self):
        s = _make_state(drawn_card=fixed(4))
        before = (len(s.draw_pile), len(s.discard_pile), s.phase)
        get_valid_actions(s, 0)
        assert (len(s.draw_pile), len(s.discard_pile), s.phase) == before
        assert s.drawn_card is not None
