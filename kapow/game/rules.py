"""规则引擎 - 只读的合法动作查询，不修改任何状态"""

from enum import Enum
from dataclasses import dataclass
from typing import List, Optional

from kapow.engine.card import Card, KAPOW_MIN_VALUE, KAPOW_MAX_VALUE
from kapow.engine.hand import Hand, Slot
from kapow.game.game_state import GamePhase, GameState


class ActionType(str, Enum):
    """动作类型"""
    REVEAL = "REVEAL"
    DRAW_FROM_DECK = "DRAW_FROM_DECK"
    DRAW_FROM_DISCARD = "DRAW_FROM_DISCARD"
    DISCARD = "DISCARD"
    REPLACE = "REPLACE"
    POWERSET = "POWERSET"
    SWAP_KAPOW = "SWAP_KAPOW"
    ASSIGN_KAPOW = "ASSIGN_KAPOW"


@dataclass
class Action:
    """一个玩家动作"""
    type: ActionType
    triad_index: Optional[int] = None
    slot: Optional[Slot] = None
    to_triad: Optional[int] = None        # SWAP_KAPOW 目标
    to_slot: Optional[Slot] = None
    modifier: Optional[int] = None        # POWERSET 选定的修正值
    kapow_value: Optional[int] = None     # 放置或指定 KAPOW! 时的取值


def can_draw_from_deck(state: GameState) -> bool:
    return len(state.draw_pile) > 0


def can_draw_from_discard(state: GameState) -> bool:
    return len(state.discard_pile) > 0


def can_replace(hand: Hand, triad_index: int, slot: Slot) -> bool:
    """三连存在且未被弃掉即可替换"""
    triad = hand.get_triad(triad_index)
    return triad is not None and not triad.is_discarded


def can_create_powerset(hand: Hand, triad_index: int, slot: Slot, card: Card) -> bool:
    """能量牌只能叠放到未弃三连中已翻开的底牌下"""
    if not card.is_power:
        return False
    triad = hand.get_triad(triad_index)
    if triad is None or triad.is_discarded:
        return False
    return triad.is_revealed(slot)


def can_swap_kapow(hand: Hand, triad_index: int, slot: Slot) -> bool:
    """该位置恰好只有一张已翻开、未冻结的 KAPOW! 牌"""
    triad = hand.get_triad(triad_index)
    if triad is None or triad.is_discarded:
        return False
    stack = triad[slot]
    if len(stack) != 1:
        return False
    card = stack[0]
    return card.is_kapow and not card.is_frozen and card.is_revealed


def can_assign_kapow_value(hand: Hand, triad_index: int, slot: Slot, value: int) -> bool:
    """为已翻开、未冻结的 KAPOW! 底牌指定 0-12 的取值"""
    triad = hand.get_triad(triad_index)
    if triad is None or triad.is_discarded:
        return False
    card = triad.base_card(slot)
    if card is None or not card.is_kapow or card.is_frozen or not card.is_revealed:
        return False
    return KAPOW_MIN_VALUE <= value <= KAPOW_MAX_VALUE


def can_go_out(state: GameState, player_index: int) -> bool:
    """只有正常出牌阶段、手上没有未放置的抽牌时才能宣布出完"""
    if state.phase != GamePhase.PLAYING:
        return False
    if state.drawn_card is not None or state.awaiting_reveal_after_discard:
        return False
    return player_index == state.current_player


def _reveal_actions(hand: Hand) -> List[Action]:
    return [
        Action(ActionType.REVEAL, triad_index=t, slot=slot)
        for t, slot, stack in hand.positions()
        if stack and not stack[0].is_revealed
    ]


def get_valid_actions(state: GameState, player_index: int) -> List[Action]:
    """按游戏阶段列出该玩家的全部合法动作"""
    hand = state.players[player_index].hand
    if hand is None:
        return []

    if state.phase == GamePhase.FIRST_TURN:
        return _reveal_actions(hand)

    if state.phase not in (GamePhase.PLAYING, GamePhase.FINAL_TURNS):
        return []

    # 弃牌后必须翻开一张
    if state.awaiting_reveal_after_discard:
        return _reveal_actions(hand)

    actions: List[Action] = []
    drawn = state.drawn_card
    if drawn is None:
        if can_draw_from_deck(state):
            actions.append(Action(ActionType.DRAW_FROM_DECK))
        if can_draw_from_discard(state):
            actions.append(Action(ActionType.DRAW_FROM_DISCARD))
        return actions

    actions.append(Action(ActionType.DISCARD))

    for t, slot, _ in hand.positions():
        if not drawn.is_power and can_replace(hand, t, slot):
            actions.append(Action(ActionType.REPLACE, triad_index=t, slot=slot))
        if can_create_powerset(hand, t, slot, drawn):
            for modifier in drawn.modifiers:
                actions.append(Action(ActionType.POWERSET, triad_index=t, slot=slot, modifier=modifier))

    for t, slot, _ in hand.positions():
        if can_swap_kapow(hand, t, slot):
            actions.append(Action(ActionType.SWAP_KAPOW, triad_index=t, slot=slot))

    return actions
