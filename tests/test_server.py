"""WebSocket 服务序列化测试"""

import json

from kapow.engine.card import Card, CardKind
from kapow.engine.hand import Hand, Slot, Triad
from kapow.engine.triad_type import CompletionType
from kapow.game.game_state import CardRevealed, TriadCompleted, create_game_state
from kapow.web.server import card_to_dict, hand_to_dict, event_to_dict, state_to_dict


def _card(value: int, revealed: bool = True) -> Card:
    return Card(id=value, kind=CardKind.FIXED, face_value=value, is_revealed=revealed)


class TestSerialization:

    def test_hidden_card(self):
        assert card_to_dict(_card(7, revealed=False)) == {"id": 7, "revealed": False}

    def test_revealed_card(self):
        data = card_to_dict(_card(7))
        assert data["display"] == "7"
        assert data["kind"] == "FIXED"

    def test_hand(self):
        hand = Hand(triads=[Triad(stacks=[[_card(1)], [_card(2, False)], [_card(3)]])])
        data = hand_to_dict(hand)
        assert data[0]["stacks"][0]["value"] == 1
        assert data[0]["stacks"][1]["value"] is None

    def test_event(self):
        data = event_to_dict(CardRevealed(2, 1, 0, Slot.MIDDLE, _card(4)))
        assert data["event"] == "CardRevealed"
        assert data["slot"] == "middle"
        assert data["card"]["face_value"] == 4
        json.dumps(data)

    def test_completion_event(self):
        data = event_to_dict(TriadCompleted(1, 0, 2, CompletionType.ASCENDING, [3, 4, 5]))
        assert data["completion"] == "ASCENDING"
        assert data["values"] == [3, 4, 5]

    def test_state_json(self):
        s = create_game_state(["A", "B"])
        data = state_to_dict(s)
        assert data["phase"] == "SETUP"
        assert [p["name"] for p in data["players"]] == ["A", "B"]
        json.dumps(data, ensure_ascii=False)
