"""
Riichi Mahjong Rule Sets

Defines rule configurations for common Riichi Mahjong variants:
- Standard (hanchan with red fives)
- Tenhou (Japanese online platform)
- Tonpuusen (East round only)
- Strict (no red fives, no open tanyao, no double yakuman)
"""

from enum import IntEnum
from dataclasses import dataclass, asdict, fields
from typing import Dict


class GameLength(IntEnum):
    """Number of wind cycles played"""
    TONPUU = 1   # East only
    HANCHAN = 2  # East-South
    FULL = 4     # East-South-West-North


@dataclass(frozen=True)
class GameRules:
    """
    Rule configuration for a Riichi Mahjong match.

    Different organizations and platforms use slightly different rules.
    This class encapsulates those differences. It is immutable for the
    lifetime of a match.
    """

    name: str = "Standard"

    game_length: GameLength = GameLength.HANCHAN
    starting_points: int = 25000

    # Red dora (akadora): one red five per number suit
    red_fives: bool = True

    # Kuitan (open tanyao)
    open_tanyao: bool = True

    # Ura-dora for riichi wins, and ura-dora under kan indicators
    hidden_dora: bool = True
    kan_hidden_dora: bool = True

    ippatsu: bool = True

    # Kyuushu kyuuhai (nine terminals abortive draw)
    abortive_draw: bool = True

    # Tenhou / chiihou
    first_turn_yakuman: bool = True

    # Limit hands
    kazoe_yakuman: bool = True        # 13+ han counts as yakuman
    double_yakuman: bool = True       # double yakuman hands count twice
    multiple_yakuman: bool = True     # several yakuman in one hand stack
    kiriage: bool = False             # 4 han 30 fu / 3 han 60 fu round up to mangan

    # Fu for a pair of a wind that is both round and seat wind
    double_wind_pair_fu: int = 4

    min_riichi_points: int = 1000
    riichi_stick_value: int = 1000
    honba_value: int = 300
    noten_payment: int = 3000

    # Match ends when a player drops below zero
    tobi: bool = True

    # Dealer repeat in the final round continues the match
    dealer_continuation_in_last: bool = True

    def __post_init__(self):
        if not isinstance(self.game_length, GameLength):
            object.__setattr__(self, "game_length", GameLength(self.game_length))
        if self.starting_points <= 0:
            raise ValueError(f"Starting points must be positive, got {self.starting_points}")
        if self.double_wind_pair_fu not in (2, 4):
            raise ValueError(f"Double wind pair fu must be 2 or 4, got {self.double_wind_pair_fu}")
        if self.min_riichi_points < 0 or self.riichi_stick_value < 0:
            raise ValueError("Riichi costs cannot be negative")
        if self.honba_value % 3 != 0:
            raise ValueError(f"Honba value must split between three payers, got {self.honba_value}")

    def to_dict(self) -> Dict:
        data = asdict(self)
        data["game_length"] = int(self.game_length)
        return data

    @classmethod
    def from_dict(cls, data: Dict) -> 'GameRules':
        known = {f.name for f in fields(cls)}
        unknown = set(data) - known
        if unknown:
            raise ValueError(f"Unknown rule options: {sorted(unknown)}")
        return cls(**data)

    def __repr__(self) -> str:
        return f"GameRules({self.name})"


STANDARD_RULES = GameRules()


# Tenhou Rules (Japanese online platform)
TENHOU_RULES = GameRules(
    name="Tenhou",
    game_length=GameLength.HANCHAN,
    starting_points=25000,
    red_fives=True,
    open_tanyao=True,
    kazoe_yakuman=True,
    double_yakuman=False,
    multiple_yakuman=True,
    kiriage=False,
    double_wind_pair_fu=4,
    tobi=True,
    dealer_continuation_in_last=True,
)


# Tonpuusen (East only) variant
TONPUUSEN_RULES = GameRules(
    name="Tonpuusen",
    game_length=GameLength.TONPUU,
    starting_points=25000,
    red_fives=True,
    open_tanyao=True,
)


# Competition-style rules
STRICT_RULES = GameRules(
    name="Strict",
    game_length=GameLength.HANCHAN,
    starting_points=30000,
    red_fives=False,
    open_tanyao=False,
    kan_hidden_dora=True,
    kazoe_yakuman=False,
    double_yakuman=False,
    multiple_yakuman=False,
    kiriage=True,
    double_wind_pair_fu=2,
    tobi=False,
    dealer_continuation_in_last=False,
)
