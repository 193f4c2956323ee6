"""LLM AI - 基于大语言模型的 KAPOW! 出牌策略，失败时回退到规则 AI"""

import asyncio
import json
import logging
import os
from typing import List, Optional, Tuple

from openai import AsyncOpenAI

from kapow.engine.card import Card
from kapow.engine.hand import Hand, Slot, position_value
from kapow.game.game_state import GameState, DrawSource
from kapow.game.rules import Action, ActionType, get_valid_actions
from kapow.ai.kapow_ai import KapowAI

logger = logging.getLogger(__name__)

# 超时上限（秒）
LLM_TIMEOUT = 10

DEFAULT_BASE_URL = "https://api.deepseek.com/v1"
DEFAULT_MODEL = "deepseek-chat"

# 角色性格 prompt 片段
CHARACTER_PROMPTS = {
    "Kai": (
        "你是「Kai」，性格冷静、精于计算。"
        "你喜欢尽早完成三连，低分牌优先，不轻易冒险拿 KAPOW! 牌。"
    ),
    "Blaze": (
        "你是「Blaze」，性格激进、爱冒险。"
        "你喜欢囤 KAPOW! 牌博大招，手牌一低就抢先出完。"
    ),
}

# 默认性格（兜底）
DEFAULT_CHARACTER_PROMPT = (
    "你是一个 KAPOW! 卡牌游戏 AI 玩家，风格均衡。"
)

SLOT_NAMES = {Slot.TOP: "top", Slot.MIDDLE: "middle", Slot.BOTTOM: "bottom"}
_SLOT_BY_NAME = {v: k for k, v in SLOT_NAMES.items()}


# ============================================================
#  序列化辅助
# ============================================================

def _stack_str(stack: List[Card]) -> str:
    """牌叠 → 文本（未翻开显示为 ?）"""
    if not stack:
        return "-"
    if not stack[0].is_revealed:
        return "?"
    cards = " ".join(c.display for c in stack)
    return f"{cards}={position_value(stack)}"


def _hand_str(hand: Hand) -> str:
    """手牌 → 每个三连一行"""
    lines = []
    for t, triad in enumerate(hand.triads):
        if triad.is_discarded:
            lines.append(f"三连{t}: 已完成")
            continue
        cells = ", ".join(f"{SLOT_NAMES[slot]}[{_stack_str(triad[slot])}]" for slot in Slot)
        lines.append(f"三连{t}: {cells}")
    return "\n".join(lines)


# ============================================================
#  Prompt 构建
# ============================================================

def _build_game_context(state: GameState, player_index: int) -> str:
    """构建游戏状态上下文文本"""
    me = state.players[player_index]
    lines = [
        f"第 {state.round}/{state.max_rounds} 回合，阶段: {state.phase.value}",
        f"你的手牌:\n{_hand_str(me.hand)}",
    ]
    for p in state.players:
        if p.id != player_index:
            lines.append(f"对手 {p.name} 的手牌:\n{_hand_str(p.hand)}")

    top = state.discard_top
    lines.append(f"弃牌堆顶: {top.display if top else '空'}，抽牌堆剩余: {len(state.draw_pile)} 张")
    if state.first_out_player is not None:
        lines.append(f"{state.players[state.first_out_player].name} 已宣布出完，这是你的最后一轮")
    return "\n".join(lines)


_RULES_TEXT = (
    "规则要点：每列三张牌(top/middle/bottom)组成三连，三值相同或上下依次±1即完成，完成的三连记0分。"
    "能量牌只能叠在已翻开的牌下，选 +n 或 -n 修正。KAPOW! 牌未锁定时记25分，可指定0-12的取值来完成三连。"
    "回合结束时总分越低越好。"
)


def _build_draw_prompt(state: GameState, player_index: int, character: str) -> str:
    """构建抽牌来源决策 prompt"""
    char_prompt = CHARACTER_PROMPTS.get(character, DEFAULT_CHARACTER_PROMPT)
    context = _build_game_context(state, player_index)

    return f"""{char_prompt}

你正在玩 KAPOW!。请决定从抽牌堆(deck)还是弃牌堆(discard)抽牌。

【当前局面】
{context}

{_RULES_TEXT}

【输出格式】严格返回 JSON，不要输出其他内容：
{{
  "source": "deck" 或 "discard",
  "strategy": "一句话解说你的策略（15字以内，符合你的性格）"
}}"""


def _build_action_prompt(state: GameState, player_index: int, card: Card, character: str) -> str:
    """构建抽到牌后的处理决策 prompt"""
    char_prompt = CHARACTER_PROMPTS.get(character, DEFAULT_CHARACTER_PROMPT)
    context = _build_game_context(state, player_index)

    return f"""{char_prompt}

你正在玩 KAPOW!。你刚抽到 {card.display}，请决定如何处理。

【当前局面】
{context}

{_RULES_TEXT}

【可选动作】
- replace：替换某个位置（能量牌不可）
- powerset：能量牌叠到已翻开的位置，modifier 取 {list(card.modifiers) if card.is_power else '[]'}
- discard：弃掉，随后必须翻开一张背面朝上的牌

【输出格式】严格返回 JSON，不要输出其他内容：
{{
  "action": "replace" / "powerset" / "discard",
  "triad": 三连序号(整数),
  "slot": "top" / "middle" / "bottom",
  "modifier": 能量牌修正值(整数，仅 powerset),
  "kapow_value": KAPOW! 取值(0-12，仅放置 KAPOW! 牌时可选),
  "strategy": "一句话解说你的策略（15字以内，符合你的性格）"
}}"""


# ============================================================
#  JSON 响应解析
# ============================================================

def _extract_json(text: str) -> Optional[dict]:
    """从 LLM 返回文本中提取 JSON 对象（兼容 markdown 代码块包裹）"""
    text = text.strip()
    if text.startswith("```"):
        lines = [l for l in text.split("\n") if not l.strip().startswith("```")]
        text = "\n".join(lines).strip()
    try:
        data = json.loads(text)
    except json.JSONDecodeError:
        start = text.find("{")
        end = text.rfind("}")
        if start == -1 or end <= start:
            return None
        try:
            data = json.loads(text[start:end + 1])
        except json.JSONDecodeError:
            return None
    return data if isinstance(data, dict) else None


def parse_action(data: dict) -> Optional[Action]:
    """把 LLM 返回的 JSON 转为 Action（只做格式转换，不校验合法性）"""
    kind = str(data.get("action", "")).lower()
    if kind == "discard":
        return Action(ActionType.DISCARD)
    if kind not in ("replace", "powerset"):
        return None

    triad = data.get("triad")
    slot = _SLOT_BY_NAME.get(str(data.get("slot", "")).lower())
    if not isinstance(triad, int) or slot is None:
        return None

    if kind == "powerset":
        modifier = data.get("modifier")
        if not isinstance(modifier, int):
            return None
        return Action(ActionType.POWERSET, triad_index=triad, slot=slot, modifier=modifier)

    kapow_value = data.get("kapow_value")
    if not isinstance(kapow_value, int):
        kapow_value = None
    return Action(ActionType.REPLACE, triad_index=triad, slot=slot, kapow_value=kapow_value)


def is_legal(action: Action, state: GameState, player_index: int) -> bool:
    """校验动作是否在当前合法动作列表中"""
    for legal in get_valid_actions(state, player_index):
        if legal.type != action.type:
            continue
        if action.type == ActionType.DISCARD:
            return True
        if (legal.triad_index, legal.slot) != (action.triad_index, action.slot):
            continue
        if action.type == ActionType.POWERSET and legal.modifier != action.modifier:
            continue
        return True
    return False


# ============================================================
#  LlmAI 类
# ============================================================

class LlmAI:
    """基于 LLM 的 KAPOW! AI 策略。

    提供两套接口：
    - 同步方法：满足 AIStrategy Protocol，全部委托 KapowAI
    - async_decide_draw / async_decide_action：异步方法，供 server.py 层 await 调用
    """

    def __init__(
        self,
        character: str,
        api_key: str = "",
        base_url: str = DEFAULT_BASE_URL,
        model: str = DEFAULT_MODEL,
    ):
        self.character = character
        self.model = model
        self._fallback = KapowAI()

        # 若未配置 API key，仅使用 fallback
        self._enabled = bool(api_key)
        if self._enabled:
            self._client = AsyncOpenAI(api_key=api_key, base_url=base_url)
        else:
            self._client = None
            logger.warning("LlmAI(%s): 未配置 API key，将使用 KapowAI fallback", character)

    @property
    def enabled(self) -> bool:
        return self._enabled

    # ----------------------------------------------------------
    #  同步接口（AIStrategy Protocol 兼容，fallback 到 KapowAI）
    # ----------------------------------------------------------

    def choose_first_reveals(self, state: GameState, player_index: int) -> List[Action]:
        return self._fallback.choose_first_reveals(state, player_index)

    def decide_draw(self, state: GameState, player_index: int) -> DrawSource:
        return self._fallback.decide_draw(state, player_index)

    def decide_action(self, state: GameState, player_index: int, card: Card) -> Action:
        return self._fallback.decide_action(state, player_index, card)

    def decide_reveal_after_discard(self, state: GameState, player_index: int) -> Optional[Action]:
        return self._fallback.decide_reveal_after_discard(state, player_index)

    def should_go_out(self, state: GameState, player_index: int) -> bool:
        return self._fallback.should_go_out(state, player_index)

    def consider_kapow_swap(self, state: GameState, player_index: int) -> Optional[Action]:
        return self._fallback.consider_kapow_swap(state, player_index)

    def consider_kapow_assignment(self, state: GameState, player_index: int) -> Optional[Action]:
        return self._fallback.consider_kapow_assignment(state, player_index)

    # ----------------------------------------------------------
    #  LLM 通用调用（带超时 + 错误处理）
    # ----------------------------------------------------------

    async def _call_llm(self, prompt: str) -> Optional[str]:
        """调用 LLM API，返回文本响应。超时或异常返回 None。"""
        if not self._enabled or self._client is None:
            return None
        try:
            resp = await asyncio.wait_for(
                self._client.chat.completions.create(
                    model=self.model,
                    messages=[{"role": "user", "content": prompt}],
                    temperature=0.7,
                    max_tokens=256,
                ),
                timeout=LLM_TIMEOUT,
            )
            content = resp.choices[0].message.content or ""
            logger.info("LlmAI(%s) 响应: %s", self.character, content[:200])
            return content
        except asyncio.TimeoutError:
            logger.warning("LlmAI(%s): LLM 调用超时(%ds)", self.character, LLM_TIMEOUT)
            return None
        except Exception as e:
            logger.warning("LlmAI(%s): LLM 调用异常: %s", self.character, e)
            return None

    # ----------------------------------------------------------
    #  异步抽牌
    # ----------------------------------------------------------

    async def async_decide_draw(self, state: GameState, player_index: int) -> Tuple[DrawSource, str]:
        """异步决定抽牌来源，返回 (来源, 策略说明)。失败时 fallback 到 KapowAI。"""
        raw = await self._call_llm(_build_draw_prompt(state, player_index, self.character))

        if raw is not None:
            data = _extract_json(raw)
            if data is not None:
                source = str(data.get("source", "")).lower()
                strategy = data.get("strategy", "")
                if source == "discard" and state.discard_pile:
                    return DrawSource.DISCARD, strategy
                if source == "deck":
                    return DrawSource.DECK, strategy
                logger.warning("LlmAI(%s): 抽牌来源非法 source=%s", self.character, source)
            else:
                logger.warning("LlmAI(%s): JSON 解析失败", self.character)

        return self._fallback.decide_draw(state, player_index), ""

    # ----------------------------------------------------------
    #  异步处理抽到的牌
    # ----------------------------------------------------------

    async def async_decide_action(
        self, state: GameState, player_index: int, card: Card
    ) -> Tuple[Action, str]:
        """异步决定如何处理抽到的牌，返回 (动作, 策略说明)。失败时 fallback 到 KapowAI。"""
        raw = await self._call_llm(_build_action_prompt(state, player_index, card, self.character))

        if raw is not None:
            result = self._parse_action_response(raw, state, player_index)
            if result is not None:
                return result

        return self._fallback.decide_action(state, player_index, card), ""

    def _parse_action_response(
        self, raw: str, state: GameState, player_index: int
    ) -> Optional[Tuple[Action, str]]:
        """解析并校验 LLM 的动作响应。返回 None 表示需要 fallback。"""
        data = _extract_json(raw)
        if data is None:
            logger.warning("LlmAI(%s): JSON 解析失败", self.character)
            return None

        action = parse_action(data)
        if action is None:
            logger.warning("LlmAI(%s): 无法识别的动作 %s", self.character, data.get("action"))
            return None

        if not is_legal(action, state, player_index):
            logger.warning("LlmAI(%s): 动作不合法 %s", self.character, action)
            return None

        return action, data.get("strategy", "")


# ============================================================
#  工厂函数：从环境变量创建 LLM AI 实例
# ============================================================

def create_llm_players(names: List[str]) -> List[LlmAI]:
    """根据环境变量为每个座位创建 LlmAI 实例。

    环境变量命名规则：
      KAPOW_PLAYER{i}_API_KEY / KAPOW_PLAYER{i}_BASE_URL / KAPOW_PLAYER{i}_MODEL
    未配置 API key 的座位自动 fallback 到 KapowAI。
    """
    players: List[LlmAI] = []
    for i, name in enumerate(names):
        idx = i + 1  # 环境变量从 1 开始
        players.append(LlmAI(
            character=name,
            api_key=os.getenv(f"KAPOW_PLAYER{idx}_API_KEY", ""),
            base_url=os.getenv(f"KAPOW_PLAYER{idx}_BASE_URL", DEFAULT_BASE_URL),
            model=os.getenv(f"KAPOW_PLAYER{idx}_MODEL", DEFAULT_MODEL),
        ))
    return players
