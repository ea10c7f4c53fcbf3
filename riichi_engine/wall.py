"""
Riichi Mahjong Wall

Handles the shuffled tile supply for one round:
- Live wall (122 tiles) drawn in order
- Dead wall (14 tiles): 4 replacement draws, 5 dora and 5 ura-dora indicators
- Dora (bonus tile) derivation from indicators
"""

import logging
import random
from typing import Dict, List, Optional, Sequence, Union

import numpy as np

from .tiles import Tile, TileSet, TileSuit, count_tiles, NUM_TILES, COPIES_PER_TYPE

logger = logging.getLogger(__name__)


class Wall:
    """
    Represents the wall for one round.

    The first 122 tiles form the live wall, the last 14 the dead wall.
    Within the dead wall, offsets 0-3 are replacement draws after a quad,
    4-8 are dora indicators and 9-13 the matching ura-dora indicators.

    Attributes:
        tiles: All 136 tiles in wall order
        draw_index: Number of live tiles drawn so far
        replacement_index: Number of replacement tiles drawn so far
    """

    LIVE_SIZE = 122
    DEAD_SIZE = 14
    MAX_REPLACEMENTS = 4
    DORA_OFFSET = 4
    URA_DORA_OFFSET = 9
    MAX_INDICATORS = 5

    def __init__(self, tiles: Sequence[Tile], draw_index: int = 0, replacement_index: int = 0):
        tiles = list(tiles)
        if len(tiles) != NUM_TILES:
            raise ValueError(f"Wall must have {NUM_TILES} tiles, got {len(tiles)}")
        if np.any(count_tiles(tiles) != COPIES_PER_TYPE):
            raise ValueError("Wall must contain exactly four copies of every tile")
        if len({t.id for t in tiles}) != NUM_TILES or any(t.id < 0 for t in tiles):
            raise ValueError("Wall tiles must carry distinct ids 0-135")
        canonical = TileSet.create_full_set(any(t.is_red for t in tiles)).tiles
        expected = {t.id: (t.tile_index, t.is_red) for t in canonical}
        if any(expected[t.id] != (t.tile_index, t.is_red) for t in tiles):
            raise ValueError("Wall tiles do not match the canonical 136-tile set")
        if not 0 <= draw_index <= self.LIVE_SIZE:
            raise ValueError(f"Invalid draw index {draw_index}")
        if not 0 <= replacement_index <= self.MAX_REPLACEMENTS:
            raise ValueError(f"Invalid replacement index {replacement_index}")
        self.tiles: List[Tile] = tiles
        self.draw_index = draw_index
        self.replacement_index = replacement_index

    @classmethod
    def shuffled(cls, seed: Optional[Union[int, str]] = None, red_fives: bool = True) -> 'Wall':
        """Create and shuffle a new wall"""
        tiles = list(TileSet.create_full_set(red_fives).tiles)
        random.Random(seed).shuffle(tiles)
        logger.debug(f"Shuffled new wall (seed={seed}, red_fives={red_fives})")
        return cls(tiles)

    @classmethod
    def from_tiles(cls, tiles: Sequence[Tile]) -> 'Wall':
        """Build a wall in a fixed order, e.g. a stacked wall for a scripted round."""
        return cls(tiles)

    @property
    def live_tiles(self) -> List[Tile]:
        return list(self.tiles[:self.LIVE_SIZE])

    @property
    def dead_wall(self) -> List[Tile]:
        return list(self.tiles[self.LIVE_SIZE:])

    @property
    def remaining(self) -> int:
        """Number of tiles remaining in the live wall"""
        return self.LIVE_SIZE - self.draw_index

    @property
    def is_exhausted(self) -> bool:
        return self.draw_index >= self.LIVE_SIZE

    @property
    def replacements_remaining(self) -> int:
        return self.MAX_REPLACEMENTS - self.replacement_index

    def draw(self) -> Optional[Tile]:
        """
        Draw the next live tile.
        Returns None once the live wall is exhausted (repeatable).
        """
        if self.is_exhausted:
            return None
        tile = self.tiles[self.draw_index]
        self.draw_index += 1
        return tile

    def draw_replacement(self) -> Optional[Tile]:
        """
        Draw a replacement tile from the dead wall after a quad.
        Returns None after four replacements.
        """
        if self.replacement_index >= self.MAX_REPLACEMENTS:
            return None
        tile = self.tiles[self.LIVE_SIZE + self.replacement_index]
        self.replacement_index += 1
        return tile

    def deal_initial_hands(self, dealer: int) -> List[List[Tile]]:
        """
        Deal 13 tiles to each seat, in seat order starting from the dealer.

        Returns:
            Hands indexed by seat
        """
        hands: List[List[Tile]] = [[] for _ in range(4)]
        for offset in range(4):
            seat = (dealer + offset) % 4
            for _ in range(13):
                hands[seat].append(self.draw())
        return hands

    def active_dora_indicators(self, kan_count: int = 0) -> List[Tile]:
        """The face-up dora indicators: one plus one per quad, at most five"""
        start = self.LIVE_SIZE + self.DORA_OFFSET
        return list(self.tiles[start:start + self._indicator_count(kan_count)])

    def hidden_dora_indicators(self, kan_count: int = 0) -> List[Tile]:
        """Ura-dora indicators under the active dora indicators"""
        start = self.LIVE_SIZE + self.URA_DORA_OFFSET
        return list(self.tiles[start:start + self._indicator_count(kan_count)])

    def _indicator_count(self, kan_count: int) -> int:
        return min(1 + max(kan_count, 0), self.MAX_INDICATORS)

    @staticmethod
    def dora_from_indicator(indicator: Tile) -> Tile:
        """
        Get the dora face from an indicator.

        The dora is the next tile in sequence:
        - Numbers: 1->2->...->9->1
        - Winds: E->S->W->N->E
        - Dragons: White->Green->Red->White
        """
        if indicator.suit != TileSuit.HONOR:
            return Tile(indicator.suit, indicator.value % 9 + 1)
        if indicator.is_wind:
            return Tile(TileSuit.HONOR, indicator.value % 4 + 1)
        return Tile(TileSuit.HONOR, (indicator.value - 5 + 1) % 3 + 5)

    @staticmethod
    def count_dora(tiles: Sequence[Tile], indicators: Sequence[Tile]) -> int:
        """
        Count indicator dora in a collection of tiles.
        A tile counts once for every indicator pointing at it.
        """
        dora_tiles = [Wall.dora_from_indicator(ind) for ind in indicators]
        return sum(1 for tile in tiles for dora in dora_tiles if tile == dora)

    @staticmethod
    def count_red_fives(tiles: Sequence[Tile]) -> int:
        """Red fives always count as dora, independent of indicators"""
        return sum(1 for tile in tiles if tile.is_red)

    def to_dict(self) -> Dict:
        return {
            "tiles": [t.to_dict() for t in self.tiles],
            "draw_index": self.draw_index,
            "replacement_index": self.replacement_index,
        }

    @classmethod
    def from_dict(cls, data: Dict) -> 'Wall':
        return cls(
            [Tile.from_dict(t) for t in data["tiles"]],
            data["draw_index"],
            data["replacement_index"],
        )

    def copy(self) -> 'Wall':
        return Wall(self.tiles, self.draw_index, self.replacement_index)

    def __len__(self) -> int:
        return self.remaining

    def __repr__(self) -> str:
        return f"Wall({self.remaining} tiles remaining, {self.replacements_remaining} replacements)"
