"""
Riichi Mahjong Rule Engine
Four-player Japanese Mahjong: tiles, hand evaluation, scoring and match flow
"""

from .tiles import Tile, TileSuit, Wind, Dragon, TileSet, tiles_from_string, tiles_to_string
from .meld import Meld, MeldType, MeldSource, QuadKind
from .wall import Wall
from .hand import Hand
from .decomposer import (
    WinningHand, Decomposition, Group, WinType, WaitType, HandShape,
    waiting_tiles, is_tenpai,
)
from .yaku import YakuDetector, YakuKind, YakuMatch, WinContext, YAKU_DEFINITIONS
from .scoring import ScoringService, ScoreResult, Payment
from .rules import GameRules, GameLength, STANDARD_RULES, TENHOU_RULES, TONPUUSEN_RULES, STRICT_RULES
from .round import Round, RoundManager, RoundStatus, DrawType
from .player import Player, Discard, RiichiStatus
from .events import EventBus, EventType, GameEvent
from .game import (
    Game, GameStatus, GamePhase, Action, ActionType, CommandResult, Reason,
    SNAPSHOT_VERSION, create_match,
)

__version__ = "0.1.0"
__all__ = [
    "Tile",
    "TileSuit",
    "Wind",
    "Dragon",
    "TileSet",
    "tiles_from_string",
    "tiles_to_string",
    "Meld",
    "MeldType",
    "MeldSource",
    "QuadKind",
    "Wall",
    "Hand",
    "WinningHand",
    "Decomposition",
    "Group",
    "WinType",
    "WaitType",
    "HandShape",
    "waiting_tiles",
    "is_tenpai",
    "YakuDetector",
    "YakuKind",
    "YakuMatch",
    "WinContext",
    "YAKU_DEFINITIONS",
    "ScoringService",
    "ScoreResult",
    "Payment",
    "GameRules",
    "GameLength",
    "STANDARD_RULES",
    "TENHOU_RULES",
    "TONPUUSEN_RULES",
    "STRICT_RULES",
    "Round",
    "RoundManager",
    "RoundStatus",
    "DrawType",
    "Player",
    "Discard",
    "RiichiStatus",
    "EventBus",
    "EventType",
    "GameEvent",
    "Game",
    "GameStatus",
    "GamePhase",
    "Action",
    "ActionType",
    "CommandResult",
    "Reason",
    "SNAPSHOT_VERSION",
    "create_match",
]
