"""
Riichi Mahjong Player Module

Handles player state including riichi declaration and furiten tracking.
Score persists across rounds; everything else is reset each round.
"""

from enum import IntEnum
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence

from .tiles import Tile, Wind
from .hand import Hand


class RiichiStatus(IntEnum):
    NORMAL = 0
    RIICHI = 1
    DOUBLE_RIICHI = 2  # declared on the first uninterrupted turn


@dataclass
class Discard:
    """A tile in a player's discard pile"""
    tile: Tile
    is_riichi: bool = False      # the tile turned sideways for riichi
    is_tsumogiri: bool = False   # discarded straight after drawing it
    is_claimed: bool = False     # taken by another player

    def to_dict(self) -> Dict:
        return {
            "tile": self.tile.to_dict(),
            "is_riichi": self.is_riichi,
            "is_tsumogiri": self.is_tsumogiri,
            "is_claimed": self.is_claimed,
        }

    @classmethod
    def from_dict(cls, data: Dict) -> 'Discard':
        return cls(Tile.from_dict(data["tile"]), data["is_riichi"], data["is_tsumogiri"], data["is_claimed"])


@dataclass
class Player:
    """
    A seated player.

    Furiten prevents winning by claim in these cases:
    1. Permanent: one of the player's waits is in their own discards
    2. Temporary: passed on a winning claim since their last draw
    3. Riichi: passed on a winning claim while in riichi (rest of the round)
    """
    id: str
    name: str
    seat: int
    score: int
    hand: Hand = field(default_factory=Hand)
    discards: List[Discard] = field(default_factory=list)
    status: RiichiStatus = RiichiStatus.NORMAL
    riichi_turn: Optional[int] = None
    ippatsu: bool = False
    temporary_furiten: bool = False
    riichi_furiten: bool = False

    @property
    def is_riichi(self) -> bool:
        return self.status != RiichiStatus.NORMAL

    def seat_wind(self, dealer_seat: int) -> Wind:
        return Wind((self.seat - dealer_seat) % 4 + 1)

    def reset_for_round(self) -> None:
        self.hand = Hand()
        self.discards = []
        self.status = RiichiStatus.NORMAL
        self.riichi_turn = None
        self.ippatsu = False
        self.temporary_furiten = False
        self.riichi_furiten = False

    def declare_riichi(self, turn: int, double: bool, cost: int) -> None:
        self.status = RiichiStatus.DOUBLE_RIICHI if double else RiichiStatus.RIICHI
        self.riichi_turn = turn
        self.ippatsu = True
        self.score -= cost

    def is_furiten(self, waits: Sequence[Tile]) -> bool:
        if self.temporary_furiten or self.riichi_furiten:
            return True
        discarded = {d.tile.tile_index for d in self.discards}
        return any(w.tile_index in discarded for w in waits)

    def public_info(self) -> Dict:
        """What every other player can see"""
        return {
            "id": self.id,
            "name": self.name,
            "seat": self.seat,
            "score": self.score,
            "status": self.status.name,
            "is_riichi": self.is_riichi,
            "concealed_count": len(self.hand),
            "melds": [m.to_dict() for m in self.hand.melds],
            "discards": [d.to_dict() for d in self.discards],
        }

    def to_dict(self) -> Dict:
        return {
            "id": self.id,
            "name": self.name,
            "seat": self.seat,
            "score": self.score,
            "hand": self.hand.to_dict(),
            "discards": [d.to_dict() for d in self.discards],
            "status": int(self.status),
            "riichi_turn": self.riichi_turn,
            "ippatsu": self.ippatsu,
            "temporary_furiten": self.temporary_furiten,
            "riichi_furiten": self.riichi_furiten,
        }

    @classmethod
    def from_dict(cls, data: Dict) -> 'Player':
        return cls(
            id=data["id"],
            name=data["name"],
            seat=data["seat"],
            score=data["score"],
            hand=Hand.from_dict(data["hand"]),
            discards=[Discard.from_dict(d) for d in data["discards"]],
            status=RiichiStatus(data["status"]),
            riichi_turn=data["riichi_turn"],
            ippatsu=data["ippatsu"],
            temporary_furiten=data["temporary_furiten"],
            riichi_furiten=data["riichi_furiten"],
        )

    def __repr__(self) -> str:
        riichi = " riichi" if self.is_riichi else ""
        return f"Player({self.id}, seat={self.seat}, score={self.score}{riichi})"
