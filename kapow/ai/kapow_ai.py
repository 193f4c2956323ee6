"""规则 AI - 基于固定优先级的启发式对手，不依赖 LLM"""

import random
from dataclasses import replace
from typing import List, Optional, Tuple

from kapow.engine.card import Card
from kapow.engine.hand import Hand, Slot, Triad, position_value, unrevealed_positions
from kapow.engine.triad_detector import is_triad_complete, kapow_value_for_completion
from kapow.game.game_state import GameState, DrawSource
from kapow.game.rules import Action, ActionType, can_swap_kapow


# 估算手牌时未翻开位置的假定值
HIDDEN_CARD_ESTIMATE = 6
GO_OUT_MAX_ESTIMATE = 15
GO_OUT_MAX_HIDDEN = 2

# 各规则阈值
DISCARD_TAKE_MAX_VALUE = 3
REPLACE_TARGET_MIN = 5           # 值大于此的位置才值得替换/叠放
LOW_CARD_MAX = 4
LOW_CARD_MARGIN = 2
KAPOW_TARGET_MIN = 8
GAMBLE_MAX_VALUE = 6


class KapowAI:
    """基于简单规则的 AI 策略：每个决策按优先级依次匹配，第一条命中即返回"""

    def __init__(self, rng: Optional[random.Random] = None):
        self.rng = rng or random.Random()

    # ============================================================
    #  首轮翻牌
    # ============================================================

    def choose_first_reveals(self, state: GameState, player_index: int) -> List[Action]:
        """随机选两个未翻开的位置（此时没有信息可利用）"""
        hidden = unrevealed_positions(state.players[player_index].hand)
        picks = self.rng.sample(hidden, min(2, len(hidden)))
        return [Action(ActionType.REVEAL, triad_index=t, slot=slot) for t, slot in picks]

    # ============================================================
    #  抽牌来源
    # ============================================================

    def decide_draw(self, state: GameState, player_index: int) -> DrawSource:
        """
        弃牌堆顶能直接完成三连 → 拿弃牌；
        弃牌堆顶是 ≤3 的数值牌且手中有 >5 的已翻开位置 → 拿弃牌；
        否则从抽牌堆抽。
        """
        top = state.discard_top
        if top is None:
            return DrawSource.DECK

        hand = state.players[player_index].hand
        if self._completion_action(hand, top) is not None:
            return DrawSource.DISCARD

        if top.is_fixed and top.face_value <= DISCARD_TAKE_MAX_VALUE:
            high = self._highest_revealed(hand)
            if high is not None and high[2] > REPLACE_TARGET_MIN:
                return DrawSource.DISCARD

        return DrawSource.DECK

    # ============================================================
    #  处理抽到的牌
    # ============================================================

    def decide_action(self, state: GameState, player_index: int, card: Card) -> Action:
        """抽到牌后的决策，按优先级依次尝试"""
        hand = state.players[player_index].hand

        # 1. 能直接完成三连
        action = self._completion_action(hand, card)
        if action is not None:
            return action

        # 2. 能量牌：叠到 >5 的已翻开位置上，用负修正降分
        if card.is_power:
            spot = self._best_powerset_spot(hand, card)
            if spot is not None:
                t, slot, modifier = spot
                return Action(ActionType.POWERSET, triad_index=t, slot=slot, modifier=modifier)

        # 3. 小数值牌：替换明显更大的已翻开位置
        if card.is_fixed and card.face_value <= LOW_CARD_MAX:
            high = self._highest_revealed(hand)
            if high is not None and high[2] > card.face_value + LOW_CARD_MARGIN:
                return Action(ActionType.REPLACE, triad_index=high[0], slot=high[1])

        # 4. KAPOW! 牌：替换 ≥8 的已翻开位置
        if card.is_kapow:
            high = self._highest_revealed(hand)
            if high is not None and high[2] >= KAPOW_TARGET_MIN:
                return Action(ActionType.REPLACE, triad_index=high[0], slot=high[1])

        # 5. 不大的数值牌：赌一把替换未翻开的位置
        if card.is_fixed and card.face_value < GAMBLE_MAX_VALUE:
            hidden = unrevealed_positions(hand)
            if hidden:
                t, slot = hidden[0]
                return Action(ActionType.REPLACE, triad_index=t, slot=slot)

        # 6. 弃牌
        return Action(ActionType.DISCARD)

    def decide_reveal_after_discard(self, state: GameState, player_index: int) -> Optional[Action]:
        """按三连顺序翻开第一张未翻开的牌"""
        hidden = unrevealed_positions(state.players[player_index].hand)
        if not hidden:
            return None
        t, slot = hidden[0]
        return Action(ActionType.REVEAL, triad_index=t, slot=slot)

    # ============================================================
    #  出完 / KAPOW! 牌
    # ============================================================

    def should_go_out(self, state: GameState, player_index: int) -> bool:
        """估算手牌分值（未翻开按6计），足够低且几乎全部翻开时出完"""
        estimate, hidden = self.estimate_hand(state.players[player_index].hand)
        return estimate <= GO_OUT_MAX_ESTIMATE and hidden <= GO_OUT_MAX_HIDDEN

    @staticmethod
    def estimate_hand(hand: Hand) -> Tuple[int, int]:
        """返回 (估算分值, 未翻开张数)"""
        estimate = 0
        hidden = 0
        for _, _, stack in hand.positions():
            if not stack:
                continue
            if stack[0].is_revealed:
                estimate += position_value(stack)
            else:
                hidden += 1
                estimate += HIDDEN_CARD_ESTIMATE
        return estimate, hidden

    def consider_kapow_swap(self, state: GameState, player_index: int) -> Optional[Action]:
        """找到第一张可交换的 KAPOW! 牌，与手中其他位置里 ≥8 的最大值交换"""
        hand = state.players[player_index].hand
        for t, slot, _ in hand.positions():
            if not can_swap_kapow(hand, t, slot):
                continue
            target = self._best_swap_target(hand, t, slot)
            if target is not None:
                return Action(
                    ActionType.SWAP_KAPOW, triad_index=t, slot=slot,
                    to_triad=target[0], to_slot=target[1],
                )
        return None

    def consider_kapow_assignment(self, state: GameState, player_index: int) -> Optional[Action]:
        """手中未冻结的 KAPOW! 牌若能补全所在三连，指定对应取值"""
        hand = state.players[player_index].hand
        for t, slot, stack in hand.positions():
            if not stack or not stack[0].is_kapow or stack[0].is_frozen or not stack[0].is_revealed:
                continue
            value = kapow_value_for_completion(hand.triads[t], slot)
            if value is not None and stack[0].assigned_value != value:
                return Action(ActionType.ASSIGN_KAPOW, triad_index=t, slot=slot, kapow_value=value)
        return None

    # ============================================================
    #  辅助方法
    # ============================================================

    @staticmethod
    def _completion_action(hand: Hand, card: Card) -> Optional[Action]:
        """
        找到能让某个三连完成的放法：
        数值牌/KAPOW! 牌尝试替换每个位置，能量牌尝试叠到每个已翻开位置。
        """
        for t, triad in enumerate(hand.triads):
            if triad.is_discarded:
                continue
            for slot in Slot:
                if card.is_kapow:
                    value = kapow_value_for_completion(triad, slot)
                    if value is not None:
                        return Action(ActionType.REPLACE, triad_index=t, slot=slot, kapow_value=value)
                elif card.is_power:
                    if not triad.is_revealed(slot):
                        continue
                    for modifier in card.modifiers:
                        probe = replace(card, active_modifier=modifier, is_revealed=True)
                        if is_triad_complete(_with_stack(triad, slot, triad[slot] + [probe])):
                            return Action(ActionType.POWERSET, triad_index=t, slot=slot, modifier=modifier)
                else:
                    probe = replace(card, is_revealed=True)
                    if is_triad_complete(_with_stack(triad, slot, [probe])):
                        return Action(ActionType.REPLACE, triad_index=t, slot=slot)
        return None

    @staticmethod
    def _highest_revealed(hand: Hand) -> Optional[Tuple[int, Slot, int]]:
        """已翻开位置中有效值最大的 (三连, 位置, 值)，并列取先找到的"""
        best = None
        for t, slot, stack in hand.positions():
            if stack and stack[0].is_revealed:
                value = position_value(stack)
                if best is None or value > best[2]:
                    best = (t, slot, value)
        return best

    @staticmethod
    def _best_powerset_spot(hand: Hand, card: Card) -> Optional[Tuple[int, Slot, int]]:
        """找一个 >5 的已翻开位置叠放能量牌，取修正幅度最大者（并列取先找到的）"""
        negative = min(card.modifiers)
        best = None
        best_reduction = 0
        for t, slot, stack in hand.positions():
            if not stack or not stack[0].is_revealed:
                continue
            if position_value(stack) > REPLACE_TARGET_MIN and abs(negative) > best_reduction:
                best = (t, slot, negative)
                best_reduction = abs(negative)
        return best

    @staticmethod
    def _best_swap_target(hand: Hand, kapow_triad: int, kapow_slot: Slot) -> Optional[Tuple[int, Slot]]:
        best = None
        best_value = 0
        for t, slot, stack in hand.positions():
            if (t, slot) == (kapow_triad, kapow_slot):
                continue
            if not stack or not stack[0].is_revealed:
                continue
            if stack[0].is_kapow and not stack[0].is_frozen:
                continue
            value = position_value(stack)
            if value >= KAPOW_TARGET_MIN and value > best_value:
                best = (t, slot)
                best_value = value
        return best


def _with_stack(triad: Triad, slot: Slot, stack: List[Card]) -> Triad:
    """构造替换了某个位置牌叠的三连副本（不修改原三连）"""
    stacks = [list(s) for s in triad.stacks]
    stacks[slot] = stack
    return Triad(stacks=stacks, is_discarded=triad.is_discarded)
