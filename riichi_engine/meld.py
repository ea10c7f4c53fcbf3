"""
Riichi Mahjong Melds

A meld is a declared group of tiles: a run (chi), a triplet (pon) or a
quad (kan). Melds are immutable; upgrading a triplet to a quad returns a
new meld.
"""

from enum import IntEnum
from dataclasses import dataclass
from typing import Dict, Optional, Sequence, Tuple

from .tiles import Tile, TileSuit


class MeldType(IntEnum):
    """Types of melds a player can declare"""
    RUN = 0      # チー - 3 consecutive tiles in one number suit
    TRIPLET = 1  # ポン - 3 identical tiles
    QUAD = 2     # カン - 4 identical tiles


class QuadKind(IntEnum):
    """How a quad was formed"""
    OPEN = 0       # 大明槓 - claimed from a discard
    CONCEALED = 1  # 暗槓 - four tiles held in hand
    UPGRADED = 2   # 加槓 - fourth tile added to a claimed triplet


class MeldSource(IntEnum):
    """
    Relative seat a tile was claimed from.

    Values equal (discarder_seat - claimer_seat) % 4, so LEFT is the
    previous player in turn order.
    """
    SELF = 0
    RIGHT = 1   # 下家 (shimocha)
    ACROSS = 2  # 対面 (toimen)
    LEFT = 3    # 上家 (kamicha)

    @classmethod
    def relative(cls, claimer_seat: int, discarder_seat: int) -> 'MeldSource':
        return cls((discarder_seat - claimer_seat) % 4)


@dataclass(frozen=True)
class Meld:
    """
    Represents a declared meld.

    Attributes:
        meld_type: Run, triplet or quad
        tiles: Tiles in the meld, sorted
        called_tile: The claimed tile (None for concealed quads)
        source: Relative seat the called tile came from
        quad_kind: Sub-kind for quads, None otherwise
    """
    meld_type: MeldType
    tiles: Tuple[Tile, ...]
    called_tile: Optional[Tile] = None
    source: MeldSource = MeldSource.SELF
    quad_kind: Optional[QuadKind] = None

    def __post_init__(self):
        """Validate meld"""
        tiles = tuple(sorted(self.tiles))
        object.__setattr__(self, "tiles", tiles)

        if self.meld_type == MeldType.RUN:
            if len(tiles) != 3:
                raise ValueError("Run must have exactly 3 tiles")
            if tiles[0].suit == TileSuit.HONOR or any(t.suit != tiles[0].suit for t in tiles):
                raise ValueError("Run tiles must share one number suit")
            if tiles[1].value != tiles[0].value + 1 or tiles[2].value != tiles[1].value + 1:
                raise ValueError(f"Run values must be consecutive, got {[t.value for t in tiles]}")
        elif self.meld_type == MeldType.TRIPLET:
            if len(tiles) != 3:
                raise ValueError("Triplet must have exactly 3 tiles")
            if any(t != tiles[0] for t in tiles):
                raise ValueError("Triplet tiles must be identical")
        elif self.meld_type == MeldType.QUAD:
            if len(tiles) != 4:
                raise ValueError("Quad must have exactly 4 tiles")
            if any(t != tiles[0] for t in tiles):
                raise ValueError("Quad tiles must be identical")
        else:
            raise ValueError(f"Unknown meld type {self.meld_type}")

        if (self.quad_kind is None) != (self.meld_type != MeldType.QUAD):
            raise ValueError("quad_kind is required for quads and only for quads")

        if self.quad_kind == QuadKind.CONCEALED:
            if self.source != MeldSource.SELF or self.called_tile is not None:
                raise ValueError("Concealed quad has no called tile")
        else:
            if self.source == MeldSource.SELF or self.called_tile is None:
                raise ValueError(f"{self.meld_type.name} must be claimed from another seat")
            if not any(t.is_same(self.called_tile) for t in tiles):
                raise ValueError("Called tile must be one of the meld tiles")

    # Factories

    @classmethod
    def run(cls, tiles: Sequence[Tile], called_tile: Tile, source: MeldSource) -> 'Meld':
        return cls(MeldType.RUN, tuple(tiles), called_tile, source)

    @classmethod
    def triplet(cls, tiles: Sequence[Tile], called_tile: Tile, source: MeldSource) -> 'Meld':
        return cls(MeldType.TRIPLET, tuple(tiles), called_tile, source)

    @classmethod
    def open_quad(cls, tiles: Sequence[Tile], called_tile: Tile, source: MeldSource) -> 'Meld':
        return cls(MeldType.QUAD, tuple(tiles), called_tile, source, QuadKind.OPEN)

    @classmethod
    def concealed_quad(cls, tiles: Sequence[Tile]) -> 'Meld':
        return cls(MeldType.QUAD, tuple(tiles), None, MeldSource.SELF, QuadKind.CONCEALED)

    def upgrade(self, tile: Tile) -> 'Meld':
        """Return the quad formed by adding a fourth tile to this triplet."""
        if self.meld_type != MeldType.TRIPLET:
            raise ValueError("Only a triplet can be upgraded")
        if tile != self.tiles[0]:
            raise ValueError(f"{tile} does not match triplet of {self.tiles[0]}")
        return Meld(
            MeldType.QUAD,
            self.tiles + (tile,),
            self.called_tile,
            self.source,
            QuadKind.UPGRADED,
        )

    # Properties

    @property
    def is_open(self) -> bool:
        """Open if claimed from someone, or an open quad"""
        return self.source != MeldSource.SELF or self.quad_kind == QuadKind.OPEN

    @property
    def is_concealed(self) -> bool:
        return not self.is_open

    @property
    def base_tile(self) -> Tile:
        """Lowest tile of a run, or the repeated tile"""
        return self.tiles[0]

    @property
    def is_quad(self) -> bool:
        return self.meld_type == MeldType.QUAD

    def to_dict(self) -> Dict:
        return {
            "meld_type": int(self.meld_type),
            "tiles": [t.to_dict() for t in self.tiles],
            "called_tile": self.called_tile.to_dict() if self.called_tile else None,
            "source": int(self.source),
            "quad_kind": int(self.quad_kind) if self.quad_kind is not None else None,
        }

    @classmethod
    def from_dict(cls, data: Dict) -> 'Meld':
        return cls(
            MeldType(data["meld_type"]),
            tuple(Tile.from_dict(t) for t in data["tiles"]),
            Tile.from_dict(data["called_tile"]) if data.get("called_tile") else None,
            MeldSource(data["source"]),
            QuadKind(data["quad_kind"]) if data.get("quad_kind") is not None else None,
        )

    def __str__(self) -> str:
        return f"{self.meld_type.name}[{' '.join(str(t) for t in self.tiles)}]"
