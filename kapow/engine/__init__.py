# 游戏引擎模块
from .card import Card, CardKind, KAPOW_UNFROZEN_VALUE
from .deck import create_deck, shuffle, deal, draw_from_pile, replenish_from_discard
from .hand import Hand, Triad, Slot, initialize_hand, position_value
from .triad_type import CompletionType
from .triad_detector import is_triad_complete, get_completion_type, kapow_value_for_completion
from .scoring import score_hand, apply_first_out_penalty, get_winner
