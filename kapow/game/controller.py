"""游戏控制器 - 驱动 KAPOW! 对局的状态机（首轮翻牌 → 出牌 → 最后一轮 → 结算）"""

import logging
import random
from typing import Callable, List, Optional, Protocol

from kapow.engine.card import Card
from kapow.engine.deck import DECK_SIZE, HAND_SIZE, create_deck, shuffle, deal, draw_from_pile, replenish_from_discard
from kapow.engine.hand import (
    Slot, initialize_hand, reveal_card, replace_card, add_to_powerset,
    swap_kapow_card, assign_kapow_value, triad_values, unrevealed_positions,
)
from kapow.engine.triad_detector import get_completion_type
from kapow.engine.scoring import score_hand, reveal_all_cards, apply_first_out_penalty, get_winner
from kapow.game.game_state import (
    GameState, GamePhase, GameEvent, DrawSource, FIRST_TURN_REVEALS, DEFAULT_MAX_ROUNDS,
    create_game_state, RoundStarted, CardRevealed, CardDrawn, CardPlaced, CardDiscarded,
    PowersetCreated, KapowSwapped, KapowValueAssigned, TriadCompleted, WentOut,
    KapowBusted, PenaltyApplied, RoundScored, GameOver,
)
from kapow.game.rules import (
    Action, ActionType, can_replace, can_create_powerset, can_swap_kapow,
    can_assign_kapow_value, can_go_out,
)

logger = logging.getLogger(__name__)

# 单回合最多轮次，超过后强制当前玩家出完，保证回合能结束
DEFAULT_MAX_TURNS_PER_ROUND = 400


class AIStrategy(Protocol):
    """AI 决策接口（策略模式）"""

    def choose_first_reveals(self, state: GameState, player_index: int) -> List[Action]:
        """首轮选择要翻开的两张牌"""
        ...

    def decide_draw(self, state: GameState, player_index: int) -> DrawSource:
        """决定从抽牌堆还是弃牌堆抽牌"""
        ...

    def decide_action(self, state: GameState, player_index: int, card: Card) -> Action:
        """决定抽到的牌如何处理：替换 / 叠放 / 弃掉"""
        ...

    def decide_reveal_after_discard(self, state: GameState, player_index: int) -> Optional[Action]:
        """弃牌后选择翻开哪张牌"""
        ...

    def should_go_out(self, state: GameState, player_index: int) -> bool:
        """是否宣布出完"""
        ...

    def consider_kapow_swap(self, state: GameState, player_index: int) -> Optional[Action]:
        """抽牌前是否交换 KAPOW! 牌"""
        ...

    def consider_kapow_assignment(self, state: GameState, player_index: int) -> Optional[Action]:
        """抽牌前是否为手中的 KAPOW! 牌指定取值"""
        ...


class GameController:
    """游戏控制器：持有唯一的 GameState，所有动作都原地修改它"""

    def __init__(
        self,
        player_names: Optional[List[str]] = None,
        strategies: Optional[List[Optional[AIStrategy]]] = None,
        max_rounds: int = DEFAULT_MAX_ROUNDS,
        rng: Optional[random.Random] = None,
        max_turns_per_round: int = DEFAULT_MAX_TURNS_PER_ROUND,
    ):
        names = player_names or ["玩家", "AI"]
        assert 2 <= len(names) and len(names) * HAND_SIZE < DECK_SIZE, f"玩家数错误: {len(names)}"
        # 未提供策略的座位视为人类玩家
        self.strategies: List[Optional[AIStrategy]] = list(strategies) if strategies else [None] * len(names)
        assert len(self.strategies) == len(names)

        humans = [i for i, s in enumerate(self.strategies) if s is None]
        self.state = create_game_state(names, max_rounds=max_rounds, human_seats=humans)
        self.rng = rng
        self.max_turns_per_round = max_turns_per_round
        self._callbacks: List[Callable[[GameEvent], None]] = []

    @property
    def players(self):
        return self.state.players

    def on_event(self, callback: Callable[[GameEvent], None]) -> None:
        """注册事件回调"""
        self._callbacks.append(callback)

    def _emit(self, event: GameEvent) -> None:
        """记录事件并通知回调"""
        self.state.events.append(event)
        logger.debug("事件: %s", event)
        for cb in self._callbacks:
            cb(event)

    # ============================================================
    #  开局
    # ============================================================

    def start_round(self) -> GameState:
        """洗一副新牌，每人发12张，翻开一张作为弃牌堆起始，进入首轮翻牌"""
        s = self.state
        deck = shuffle(create_deck(), self.rng)
        hands, remaining = deal(deck, s.player_count, HAND_SIZE)

        for player, cards in zip(s.players, hands):
            player.hand = initialize_hand(cards)

        first_discard, s.draw_pile = draw_from_pile(remaining)
        first_discard.is_revealed = True
        s.discard_pile = [first_discard]

        s.reset_round()
        s.phase = GamePhase.FIRST_TURN
        s.current_player = self._first_seat()
        s.message = f"第 {s.round} 回合：请翻开两张牌"

        logger.info("第 %d 回合开始，庄家: %s", s.round, s.players[s.dealer_index].name)
        self._emit(RoundStarted(s.round, None, s.dealer_index))
        return s

    def _first_seat(self) -> int:
        """庄家左手边先行动"""
        return (self.state.dealer_index + 1) % self.state.player_count

    # ============================================================
    #  首轮翻牌
    # ============================================================

    def handle_first_turn_reveal(self, triad_index: int, slot: Slot) -> GameState:
        """首轮每人翻开两张，全部玩家翻完后进入出牌阶段"""
        s = self.state
        if s.phase != GamePhase.FIRST_TURN:
            return s
        pid = s.current_player
        if not self._is_face_down(pid, triad_index, slot):
            return s

        hand = s.players[pid].hand
        reveal_card(hand, triad_index, slot)
        self._emit(CardRevealed(s.round, pid, triad_index, slot, hand.triads[triad_index][slot][0]))
        s.first_turn_reveals += 1

        if s.first_turn_reveals < FIRST_TURN_REVEALS:
            s.message = "再翻开一张牌"
            return s

        s.first_turn_reveals = 0
        next_seat = (pid + 1) % s.player_count
        if next_seat == self._first_seat():
            s.phase = GamePhase.PLAYING
            s.current_player = next_seat
            s.message = f"轮到 {s.acting_player.name}，请抽牌"
        else:
            s.current_player = next_seat
            s.message = f"{s.acting_player.name}：请翻开两张牌"
        return s

    def _is_face_down(self, pid: int, triad_index: int, slot: Slot) -> bool:
        return (triad_index, slot) in unrevealed_positions(self.state.players[pid].hand)

    # ============================================================
    #  抽牌
    # ============================================================

    def _can_draw(self) -> bool:
        s = self.state
        return (
            s.phase in (GamePhase.PLAYING, GamePhase.FINAL_TURNS)
            and s.drawn_card is None
            and not s.awaiting_reveal_after_discard
        )

    def handle_draw_from_deck(self) -> GameState:
        """从抽牌堆抽牌，抽牌堆空时先用弃牌堆补充"""
        s = self.state
        if not self._can_draw():
            return s

        if not s.draw_pile:
            s.draw_pile, s.discard_pile = replenish_from_discard(s.discard_pile, self.rng)
            logger.info("抽牌堆用尽，从弃牌堆补充 %d 张", len(s.draw_pile))

        card, s.draw_pile = draw_from_pile(s.draw_pile)
        if card is not None:
            card.is_revealed = True
            s.drawn_card = card
            s.message = f"抽到 {card.display}，放置或弃掉"
            self._emit(CardDrawn(s.round, s.current_player, DrawSource.DECK, card))
        return s

    def handle_draw_from_discard(self) -> GameState:
        """拿走弃牌堆顶的牌"""
        s = self.state
        if not self._can_draw():
            return s

        card, s.discard_pile = draw_from_pile(s.discard_pile)
        if card is not None:
            s.drawn_card = card
            s.message = f"从弃牌堆拿走 {card.display}，请放入手牌"
            self._emit(CardDrawn(s.round, s.current_player, DrawSource.DISCARD, card))
        return s

    # ============================================================
    #  处理抽到的牌
    # ============================================================

    def handle_place_card(self, triad_index: int, slot: Slot, kapow_value: Optional[int] = None) -> GameState:
        """
        用抽到的牌替换手牌中的一个位置，被换下的牌叠进入弃牌堆。
        放置 KAPOW! 牌时可同时指定取值，三连完成时锁定。
        """
        s = self.state
        card = s.drawn_card
        if card is None or card.is_power:
            return s
        pid = s.current_player
        hand = s.players[pid].hand
        if not can_replace(hand, triad_index, slot):
            return s

        replaced = replace_card(hand, triad_index, slot, card)
        if card.is_kapow:
            card.assigned_value = None
            if kapow_value is not None:
                assign_kapow_value(hand, triad_index, slot, kapow_value)

        for old in replaced:
            self._to_discard(old)
        s.drawn_card = None
        self._emit(CardPlaced(s.round, pid, triad_index, slot, card, replaced))

        self._check_and_discard_triads(pid)
        self._end_turn()
        return s

    def handle_add_powerset(self, triad_index: int, slot: Slot, modifier: int) -> GameState:
        """把抽到的能量牌叠放到已翻开的牌下，选定 +n 或 -n"""
        s = self.state
        card = s.drawn_card
        if card is None or not card.is_power or modifier not in card.modifiers:
            return s
        pid = s.current_player
        hand = s.players[pid].hand
        if not can_create_powerset(hand, triad_index, slot, card):
            return s

        add_to_powerset(hand, triad_index, slot, card, modifier)
        s.drawn_card = None
        self._emit(PowersetCreated(s.round, pid, triad_index, slot, card, modifier))

        self._check_and_discard_triads(pid)
        self._end_turn()
        return s

    def handle_discard(self) -> GameState:
        """直接弃掉抽到的牌，随后必须翻开一张背面朝上的牌"""
        s = self.state
        card = s.drawn_card
        if card is None:
            return s
        pid = s.current_player

        self._to_discard(card)
        s.drawn_card = None
        self._emit(CardDiscarded(s.round, pid, card))

        if unrevealed_positions(s.players[pid].hand):
            s.awaiting_reveal_after_discard = True
            s.message = "已弃牌，请翻开一张牌"
            return s

        # 没有可翻的牌，直接结束本轮
        self._check_and_discard_triads(pid)
        self._end_turn()
        return s

    def handle_reveal_after_discard(self, triad_index: int, slot: Slot) -> GameState:
        """弃牌后的强制翻牌"""
        s = self.state
        if not s.awaiting_reveal_after_discard:
            return s
        pid = s.current_player
        if not self._is_face_down(pid, triad_index, slot):
            return s

        hand = s.players[pid].hand
        reveal_card(hand, triad_index, slot)
        s.awaiting_reveal_after_discard = False
        self._emit(CardRevealed(s.round, pid, triad_index, slot, hand.triads[triad_index][slot][0]))

        self._check_and_discard_triads(pid)
        self._end_turn()
        return s

    def _to_discard(self, card: Card) -> None:
        card.is_revealed = True
        card.active_modifier = None
        if card.is_kapow:
            card.assigned_value = None
        self.state.discard_pile.append(card)

    # ============================================================
    #  KAPOW! 牌操作（不结束本轮）
    # ============================================================

    def handle_kapow_swap(self, from_triad: int, from_slot: Slot, to_triad: int, to_slot: Slot) -> GameState:
        """把一张自由的 KAPOW! 牌与手牌中另一位置整体交换"""
        s = self.state
        if s.phase not in (GamePhase.PLAYING, GamePhase.FINAL_TURNS) or to_triad is None:
            return s
        pid = s.current_player
        hand = s.players[pid].hand
        if not can_swap_kapow(hand, from_triad, from_slot):
            return s
        if not can_replace(hand, to_triad, to_slot) or (from_triad, from_slot) == (to_triad, to_slot):
            return s

        swap_kapow_card(hand, from_triad, from_slot, to_triad, to_slot)
        s.message = "KAPOW! 牌已交换"
        self._emit(KapowSwapped(s.round, pid, from_triad, from_slot, to_triad, to_slot))
        return s

    def handle_assign_kapow_value(self, triad_index: int, slot: Slot, value: int) -> GameState:
        """为手中未冻结的 KAPOW! 牌指定取值，本轮结束时参与三连判定"""
        s = self.state
        if s.phase not in (GamePhase.PLAYING, GamePhase.FINAL_TURNS):
            return s
        pid = s.current_player
        hand = s.players[pid].hand
        if value is None or not can_assign_kapow_value(hand, triad_index, slot, value):
            return s

        assign_kapow_value(hand, triad_index, slot, value)
        self._emit(KapowValueAssigned(s.round, pid, triad_index, slot, value))
        return s

    def handle_skip_turn(self) -> GameState:
        """两个牌堆都抽不到牌时，当前玩家跳过本轮"""
        s = self.state
        if not self._can_draw() or s.draw_pile or s.discard_pile:
            return s
        self._end_turn()
        return s

    # ============================================================
    #  出完
    # ============================================================

    def handle_go_out(self) -> GameState:
        """当前玩家宣布出完：其余每位玩家再行动一轮"""
        s = self.state
        pid = s.current_player
        if not can_go_out(s, pid):
            return s

        s.first_out_player = pid
        s.phase = GamePhase.FINAL_TURNS
        s.final_turns_remaining = s.player_count - 1
        s.message = f"{s.players[pid].name} 宣布出完！其余玩家各有最后一轮"
        logger.info("%s 宣布出完", s.players[pid].name)
        self._emit(WentOut(s.round, pid))

        self._advance_to_next_player()
        return s

    # ============================================================
    #  三连判定与回合推进
    # ============================================================

    def _check_and_discard_triads(self, pid: int) -> None:
        """检查所有三连，完成的三连永久弃掉并冻结其中的 KAPOW! 牌"""
        s = self.state
        hand = s.players[pid].hand

        for t, triad in enumerate(hand.triads):
            if triad.is_discarded:
                continue

            # 已指定取值的 KAPOW! 牌按指定值参与判定
            locked = [
                triad.base_card(slot) for slot in Slot
                if triad.base_card(slot) is not None
                and triad.base_card(slot).is_kapow
                and not triad.base_card(slot).is_frozen
                and triad.base_card(slot).assigned_value is not None
            ]
            for card in locked:
                card.is_frozen = True

            completion = get_completion_type(triad)
            if completion is None:
                for card in locked:
                    card.is_frozen = False
                continue

            values = triad_values(triad)
            triad.is_discarded = True
            for slot in Slot:
                for card in triad[slot]:
                    if card.is_kapow:
                        card.is_frozen = True
            logger.debug("%s 完成三连 #%d: %s %s", s.players[pid].name, t, completion.value, values)
            self._emit(TriadCompleted(s.round, pid, t, completion, values))

    def _end_turn(self) -> None:
        """结束当前玩家的一轮"""
        s = self.state
        s.turn_count += 1
        if s.phase == GamePhase.FINAL_TURNS:
            s.final_turns_remaining -= 1
            if s.final_turns_remaining <= 0:
                self._end_round()
                return
        self._advance_to_next_player()

    def _advance_to_next_player(self) -> None:
        """轮到下一位，最后一轮中跳过已出完的玩家"""
        s = self.state
        s.current_player = (s.current_player + 1) % s.player_count
        if s.phase == GamePhase.FINAL_TURNS and s.current_player == s.first_out_player:
            s.current_player = (s.current_player + 1) % s.player_count
        s.message = f"轮到 {s.acting_player.name}"

    # ============================================================
    #  结算
    # ============================================================

    def _end_round(self) -> None:
        """翻开所有牌，计分并施加先出完惩罚"""
        s = self.state
        for p in s.players:
            reveal_all_cards(p.hand)

        raw = [score_hand(p.hand) for p in s.players]
        for p in s.players:
            busted = sum(
                1 for _, _, stack in p.hand.positions()
                if stack and stack[0].is_kapow and not stack[0].is_frozen
            )
            if busted:
                self._emit(KapowBusted(s.round, p.id, busted))

        scores = apply_first_out_penalty(raw, s.first_out_player)
        if s.first_out_player is not None and scores[s.first_out_player] != raw[s.first_out_player]:
            fo = s.first_out_player
            self._emit(PenaltyApplied(s.round, fo, raw[fo], scores[fo]))

        for p, score in zip(s.players, scores):
            p.record_round(score)

        s.phase = GamePhase.SCORING
        s.message = "本回合结束！"
        logger.info("第 %d 回合结算: %s", s.round, scores)
        self._emit(RoundScored(s.round, None, scores, [p.total_score for p in s.players]))

    def advance_round(self) -> GameState:
        """进入下一回合，或在最后一回合后结束整场"""
        s = self.state
        if s.phase != GamePhase.SCORING:
            return s

        if s.round >= s.max_rounds:
            s.phase = GamePhase.GAME_OVER
            s.winner = get_winner(s.players)
            s.message = f"游戏结束！{s.players[s.winner].name} 获胜！"
            logger.info("游戏结束，胜者: %s", s.players[s.winner].name)
            self._emit(GameOver(s.round, s.winner, [p.total_score for p in s.players]))
            return s

        s.round += 1
        s.dealer_index = (s.dealer_index + 1) % s.player_count
        return self.start_round()

    # ============================================================
    #  动作分发（AI / 外部驱动共用）
    # ============================================================

    def apply_action(self, action: Action) -> GameState:
        """把一个 Action 分发到对应的处理函数"""
        s = self.state
        t, slot = action.triad_index, action.slot
        if action.type == ActionType.REVEAL:
            if s.phase == GamePhase.FIRST_TURN:
                return self.handle_first_turn_reveal(t, slot)
            return self.handle_reveal_after_discard(t, slot)
        if action.type == ActionType.DRAW_FROM_DECK:
            return self.handle_draw_from_deck()
        if action.type == ActionType.DRAW_FROM_DISCARD:
            return self.handle_draw_from_discard()
        if action.type == ActionType.DISCARD:
            return self.handle_discard()
        if action.type == ActionType.REPLACE:
            return self.handle_place_card(t, slot, action.kapow_value)
        if action.type == ActionType.POWERSET:
            return self.handle_add_powerset(t, slot, action.modifier)
        if action.type == ActionType.SWAP_KAPOW:
            return self.handle_kapow_swap(t, slot, action.to_triad, action.to_slot)
        if action.type == ActionType.ASSIGN_KAPOW:
            return self.handle_assign_kapow_value(t, slot, action.kapow_value)
        return s

    # ============================================================
    #  AI 回合
    # ============================================================

    def play_ai_turn(self) -> bool:
        """
        让当前座位的 AI 行动一步（首轮翻两张，或完整的一轮出牌）。
        当前座位是人类玩家时返回 False。
        """
        s = self.state
        pid = s.current_player
        strategy = self.strategies[pid]
        if strategy is None:
            return False

        if s.phase == GamePhase.FIRST_TURN:
            for action in strategy.choose_first_reveals(s, pid):
                self.apply_action(action)
            # 选择无效时按顺序补足翻牌
            while s.phase == GamePhase.FIRST_TURN and s.current_player == pid:
                t, slot = unrevealed_positions(s.players[pid].hand)[0]
                self.handle_first_turn_reveal(t, slot)
            return True

        if s.phase not in (GamePhase.PLAYING, GamePhase.FINAL_TURNS):
            return False

        if s.phase == GamePhase.PLAYING and strategy.should_go_out(s, pid):
            self.handle_go_out()
            return True

        prep = strategy.consider_kapow_assignment(s, pid) or strategy.consider_kapow_swap(s, pid)
        if prep is not None:
            self.apply_action(prep)

        self.draw_for(strategy.decide_draw(s, pid))
        if s.drawn_card is None:
            logger.warning("%s 无牌可抽，跳过本轮", s.players[pid].name)
            self.handle_skip_turn()
            return True

        self.resolve_drawn_card(strategy.decide_action(s, pid, s.drawn_card), strategy)
        return True

    def draw_for(self, source: DrawSource) -> None:
        """按来源抽牌，首选来源为空时改用另一个牌堆"""
        if source == DrawSource.DISCARD:
            self.handle_draw_from_discard()
            if self.state.drawn_card is None:
                self.handle_draw_from_deck()
        else:
            self.handle_draw_from_deck()
            if self.state.drawn_card is None:
                self.handle_draw_from_discard()

    def resolve_drawn_card(self, action: Action, strategy: AIStrategy) -> None:
        """执行对抽到的牌的处理；非法动作时强制弃牌"""
        s = self.state
        pid = s.current_player
        self.apply_action(action)

        if s.drawn_card is not None:
            logger.debug("%s 的动作 %s 无效，改为弃牌", s.players[pid].name, action.type.value)
            self.handle_discard()

        if s.awaiting_reveal_after_discard:
            reveal = strategy.decide_reveal_after_discard(s, pid)
            if reveal is not None:
                self.handle_reveal_after_discard(reveal.triad_index, reveal.slot)
            if s.awaiting_reveal_after_discard:
                t, slot = unrevealed_positions(s.players[pid].hand)[0]
                self.handle_reveal_after_discard(t, slot)

    # ============================================================
    #  完整对局入口
    # ============================================================

    def run_round(self) -> GameState:
        """运行一个回合直到结算（遇到人类座位时停下）"""
        s = self.state
        while s.phase in (GamePhase.FIRST_TURN, GamePhase.PLAYING, GamePhase.FINAL_TURNS):
            if s.phase == GamePhase.PLAYING and s.turn_count >= self.max_turns_per_round:
                logger.warning("第 %d 回合超过 %d 轮，%s 强制出完",
                               s.round, self.max_turns_per_round, s.acting_player.name)
                self.handle_go_out()
                continue
            if not self.play_ai_turn():
                break
        return s

    def run_game(self) -> GameState:
        """运行完整一场（全部座位为 AI）"""
        s = self.state
        if s.phase == GamePhase.SETUP:
            self.start_round()
        while s.phase != GamePhase.GAME_OVER:
            self.run_round()
            if s.phase != GamePhase.SCORING:
                break
            self.advance_round()
        return s
