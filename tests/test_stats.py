"""对局统计单元测试 - 从事件流汇总玩家数据"""

import random

from kapow.engine.card import Card, CardKind
from kapow.engine.hand import Slot
from kapow.engine.triad_type import CompletionType
from kapow.game.game_state import (
    DrawSource, CardDrawn, PowersetCreated, TriadCompleted, WentOut,
    KapowBusted, PenaltyApplied, GamePhase,
)
from kapow.game.controller import GameController
from kapow.game.stats import PlayerStats, summarize_player, summarize_match
from kapow.ai.kapow_ai import KapowAI


def _card(kind: CardKind = CardKind.FIXED) -> Card:
    if kind == CardKind.KAPOW:
        return Card(id=0, kind=kind, is_revealed=True)
    if kind == CardKind.POWER:
        return Card(id=0, kind=kind, face_value=1, modifiers=(-1, 1), is_revealed=True)
    return Card(id=0, kind=kind, face_value=4, is_revealed=True)


class TestSummarizePlayer:

    def setup_method(self):
        self.events = [
            CardDrawn(1, 0, DrawSource.DECK, _card(CardKind.KAPOW)),
            CardDrawn(1, 0, DrawSource.DISCARD, _card()),
            CardDrawn(1, 0, DrawSource.DECK, _card(CardKind.POWER)),
            PowersetCreated(1, 0, 0, Slot.TOP, _card(CardKind.POWER), -1),
            TriadCompleted(1, 0, 0, CompletionType.SET, [4, 4, 4]),
            WentOut(1, 0),
            KapowBusted(1, 0, 2),
            PenaltyApplied(1, 0, 15, 30),
            CardDrawn(1, 1, DrawSource.DISCARD, _card()),
        ]

    def test_counters(self):
        stats = summarize_player(self.events, 0)
        assert stats.kapow_grabs == 1
        assert stats.kapow_busts == 2
        assert stats.triads_completed == 1
        assert stats.power_stacks == 1
        assert stats.went_out_first == 1
        assert stats.penalties_taken == 1
        assert stats.action_count == 8
        assert stats.total_draws == 3

    def test_discard_draw_pct(self):
        assert summarize_player(self.events, 0).discard_draw_pct == 33
        assert summarize_player(self.events, 1).discard_draw_pct == 100

    def test_no_draws(self):
        assert PlayerStats().discard_draw_pct == 0

    def test_to_dict(self):
        data = summarize_player(self.events, 0).to_dict()
        assert data["discard_draw_pct"] == 33
        assert data["kapow_grabs"] == 1


class TestSummarizeMatch:

    def test_completed_match(self):
        gc = GameController(
            player_names=["A", "B"],
            strategies=[KapowAI(rng=random.Random(1)), KapowAI(rng=random.Random(2))],
            max_rounds=2,
            rng=random.Random(3),
        )
        s = gc.run_game()
        summary = summarize_match(s)
        assert summary["status"] == "completed"
        assert summary["rounds_played"] == 2
        assert summary["winner"] == s.players[s.winner].name
        assert summary["event_count"] == len(s.events)
        for p, data in zip(s.players, summary["players"]):
            assert data["total_score"] == p.total_score
            assert len(data["round_scores"]) == 2
            assert data["total_draws"] > 0

    def test_abandoned_match(self):
        gc = GameController(player_names=["A", "B"])
        gc.start_round()
        summary = summarize_match(gc.state)
        assert summary["status"] == "abandoned"
        assert summary["winner"] == ""
        assert summary["phase"] == GamePhase.FIRST_TURN.value
