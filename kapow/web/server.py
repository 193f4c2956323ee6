"""WebSocket 后端服务 - 驱动 AI 对局并实时推送事件到前端"""

import asyncio
import json
import logging
import random
from dataclasses import fields
from enum import Enum
from typing import List, Optional, Set
from pathlib import Path

from fastapi import FastAPI, WebSocket, WebSocketDisconnect
from fastapi.staticfiles import StaticFiles
from fastapi.responses import FileResponse

from kapow.engine.card import Card
from kapow.engine.hand import Hand, Slot, position_value
from kapow.game.player import Player
from kapow.game.game_state import GameState, GamePhase, GameEvent
from kapow.game.controller import GameController
from kapow.game.stats import summarize_match
from kapow.ai.llm_ai import LlmAI, create_llm_players

logger = logging.getLogger(__name__)

DEFAULT_NAMES = ["Kai", "Blaze"]
DEFAULT_ROUNDS = 3


# ============================================================
#  序列化工具
# ============================================================

def card_to_dict(c: Card) -> dict:
    """将 Card 序列化为前端可用的 dict（未翻开的牌不暴露牌面）"""
    if not c.is_revealed:
        return {"id": c.id, "revealed": False}
    return {
        "id": c.id,
        "kind": c.kind.value,
        "display": c.display,
        "face_value": c.face_value,
        "active_modifier": c.active_modifier,
        "frozen": c.is_frozen,
        "assigned_value": c.assigned_value,
        "revealed": True,
    }


def stack_to_dict(stack: List[Card]) -> dict:
    revealed = bool(stack) and stack[0].is_revealed
    return {
        "cards": [card_to_dict(c) for c in stack],
        "value": position_value(stack) if revealed else None,
    }


def hand_to_dict(hand: Optional[Hand]) -> list:
    if hand is None:
        return []
    return [
        {
            "discarded": triad.is_discarded,
            "stacks": [stack_to_dict(triad[slot]) for slot in Slot],
        }
        for triad in hand.triads
    ]


def player_to_dict(p: Player) -> dict:
    """将 Player 序列化"""
    return {
        "id": p.id,
        "name": p.name,
        "total_score": p.total_score,
        "round_scores": list(p.round_scores),
        "hand": hand_to_dict(p.hand),
    }


def state_to_dict(s: GameState) -> dict:
    top = s.discard_top
    return {
        "round": s.round,
        "max_rounds": s.max_rounds,
        "phase": s.phase.value,
        "current_player": s.current_player,
        "draw_pile": len(s.draw_pile),
        "discard_top": card_to_dict(top) if top else None,
        "message": s.message,
        "players": [player_to_dict(p) for p in s.players],
    }


def _to_json_value(value):
    if isinstance(value, Card):
        return card_to_dict(value)
    if isinstance(value, Enum):
        return value.value if not isinstance(value, Slot) else value.name.lower()
    if isinstance(value, list):
        return [_to_json_value(v) for v in value]
    return value


def event_to_dict(event: GameEvent) -> dict:
    """将结构化事件序列化：type 为事件类名，其余字段原样展开"""
    data = {"type": "event", "event": type(event).__name__}
    for f in fields(event):
        data[f.name] = _to_json_value(getattr(event, f.name))
    return data


# ============================================================
#  FastAPI 应用
# ============================================================

STATIC_DIR = Path(__file__).parent / "static"

app = FastAPI(title="KAPOW! AI 对局")
app.mount("/static", StaticFiles(directory=str(STATIC_DIR)), name="static")

# WebSocket 连接池
connections: Set[WebSocket] = set()


async def broadcast(msg: dict) -> None:
    """向所有连接的客户端广播消息"""
    data = json.dumps(msg, ensure_ascii=False)
    dead = set()
    for ws in connections:
        try:
            await ws.send_text(data)
        except Exception:
            dead.add(ws)
    connections.difference_update(dead)


async def broadcast_thinking(player_id: int, seconds: float) -> None:
    """广播 AI 思考提示"""
    await broadcast({"type": "thinking", "player_id": player_id, "total": seconds})
    await asyncio.sleep(seconds)


@app.get("/")
async def index():
    """返回前端页面"""
    return FileResponse(str(STATIC_DIR / "index.html"))


@app.websocket("/ws")
async def websocket_endpoint(ws: WebSocket):
    """WebSocket 端点：客户端连接后等待 start 指令"""
    await ws.accept()
    connections.add(ws)
    try:
        while True:
            data = await ws.receive_text()
            msg = json.loads(data)
            if msg.get("action") == "start":
                rounds = int(msg.get("rounds", DEFAULT_ROUNDS))
                await run_game_async(max_rounds=rounds)
    except (WebSocketDisconnect, RuntimeError):
        pass
    finally:
        connections.discard(ws)


# ============================================================
#  异步对局驱动
# ============================================================

class EventBuffer:
    """收集控制器同步发出的事件，在 await 点统一推送"""

    def __init__(self):
        self.pending: List[GameEvent] = []

    def __call__(self, event: GameEvent) -> None:
        self.pending.append(event)

    async def flush(self, state: GameState) -> None:
        events, self.pending = self.pending, []
        for event in events:
            await broadcast(event_to_dict(event))
        await broadcast({"type": "state", "state": state_to_dict(state)})


async def run_game_async(
    names: Optional[List[str]] = None,
    max_rounds: int = DEFAULT_ROUNDS,
    think_seconds: float = 0.6,
) -> GameState:
    """异步驱动一场完整对局，每步实时推送事件与局面"""
    names = names or DEFAULT_NAMES
    strategies = create_llm_players(names)
    gc = GameController(player_names=names, strategies=strategies, max_rounds=max_rounds)
    buffer = EventBuffer()
    gc.on_event(buffer)

    s = gc.state
    gc.start_round()
    await buffer.flush(s)

    while s.phase != GamePhase.GAME_OVER:
        while s.phase in (GamePhase.FIRST_TURN, GamePhase.PLAYING, GamePhase.FINAL_TURNS):
            pid = s.current_player
            await broadcast_thinking(pid, think_seconds * random.uniform(0.5, 1.5))

            if s.phase == GamePhase.PLAYING and s.turn_count >= gc.max_turns_per_round:
                logger.warning("第 %d 回合超过 %d 轮，强制出完", s.round, gc.max_turns_per_round)
                gc.handle_go_out()
            else:
                strategy = strategies[pid]
                if s.phase != GamePhase.FIRST_TURN and strategy.enabled:
                    await play_llm_turn(gc, strategy)
                else:
                    gc.play_ai_turn()
            await buffer.flush(s)

        gc.advance_round()
        await buffer.flush(s)

    await send_result(gc)
    return s


async def play_llm_turn(gc: GameController, strategy: LlmAI) -> None:
    """LLM 玩家的一轮：出完判断和 KAPOW! 操作走规则，抽牌与处理走 LLM"""
    s = gc.state
    pid = s.current_player

    if s.phase == GamePhase.PLAYING and strategy.should_go_out(s, pid):
        gc.handle_go_out()
        return

    prep = strategy.consider_kapow_assignment(s, pid) or strategy.consider_kapow_swap(s, pid)
    if prep is not None:
        gc.apply_action(prep)

    source, draw_text = await strategy.async_decide_draw(s, pid)
    gc.draw_for(source)
    if s.drawn_card is None:
        logger.warning("%s 无牌可抽，跳过本轮", s.players[pid].name)
        gc.handle_skip_turn()
        return

    action, action_text = await strategy.async_decide_action(s, pid, s.drawn_card)
    text = action_text or draw_text
    if text:
        await broadcast({"type": "strategy", "player_id": pid, "text": text})
    gc.resolve_drawn_card(action, strategy)


async def send_result(gc: GameController) -> None:
    """推送结算信息"""
    await broadcast({"type": "result", "summary": summarize_match(gc.state)})


if __name__ == "__main__":
    import os
    import uvicorn

    logging.basicConfig(level=logging.INFO)
    uvicorn.run(app, host=os.getenv("KAPOW_HOST", "127.0.0.1"), port=int(os.getenv("KAPOW_PORT", "8000")))
