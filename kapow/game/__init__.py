# 游戏流程控制模块
from .player import Player
from .game_state import GameState, GamePhase, GameEvent, DrawSource, create_game_state
from .rules import Action, ActionType, get_valid_actions
from .controller import GameController, AIStrategy
