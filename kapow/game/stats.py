"""对局统计 - 从结构化事件流汇总每位玩家的数据（只读，不修改状态）"""

from dataclasses import dataclass, asdict
from typing import Dict, List

from kapow.game.game_state import (
    GameState, GamePhase, GameEvent, DrawSource, CardDrawn, PowersetCreated,
    TriadCompleted, WentOut, KapowBusted, PenaltyApplied,
)


@dataclass
class PlayerStats:
    """单个玩家的对局统计"""
    kapow_grabs: int = 0          # 抽到 KAPOW! 牌次数
    kapow_busts: int = 0          # 回合结束时 KAPOW! 牌未冻结（记25分）的张数
    triads_completed: int = 0
    power_stacks: int = 0
    discard_draws: int = 0
    total_draws: int = 0
    went_out_first: int = 0
    penalties_taken: int = 0
    action_count: int = 0

    @property
    def discard_draw_pct(self) -> int:
        """从弃牌堆抽牌的百分比（四舍五入）"""
        if self.total_draws == 0:
            return 0
        return round(self.discard_draws * 100 / self.total_draws)

    def to_dict(self) -> dict:
        data = asdict(self)
        data["discard_draw_pct"] = self.discard_draw_pct
        return data


def summarize_player(events: List[GameEvent], player_id: int) -> PlayerStats:
    """按事件类型统计指定玩家的数据"""
    stats = PlayerStats()
    for event in events:
        if event.player_id != player_id:
            continue
        stats.action_count += 1

        if isinstance(event, CardDrawn):
            stats.total_draws += 1
            if event.source == DrawSource.DISCARD:
                stats.discard_draws += 1
            if event.card.is_kapow:
                stats.kapow_grabs += 1
        elif isinstance(event, PowersetCreated):
            stats.power_stacks += 1
        elif isinstance(event, TriadCompleted):
            stats.triads_completed += 1
        elif isinstance(event, WentOut):
            stats.went_out_first += 1
        elif isinstance(event, KapowBusted):
            stats.kapow_busts += event.count
        elif isinstance(event, PenaltyApplied):
            stats.penalties_taken += 1
    return stats


def summarize_match(state: GameState) -> Dict:
    """汇总整场对局：每位玩家的得分与统计"""
    finished = state.phase == GamePhase.GAME_OVER
    return {
        "rounds_played": state.round,
        "phase": state.phase.value,
        "status": "completed" if finished else "abandoned",
        "winner": state.players[state.winner].name if finished and state.winner is not None else "",
        "players": [
            {
                "name": p.name,
                "is_human": p.is_human,
                "total_score": p.total_score,
                "round_scores": list(p.round_scores),
                **summarize_player(state.events, p.id).to_dict(),
            }
            for p in state.players
        ],
        "event_count": len(state.events),
    }
