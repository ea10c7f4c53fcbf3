"""
Riichi Mahjong Hand

A player's concealed tiles plus declared melds, with the call-eligibility
queries used to build legal actions. Queries never mutate the hand, and
accessors return copies.
"""

from typing import Dict, List, Optional, Sequence, Tuple
import numpy as np

from .tiles import Tile, TileSuit, count_tiles, TERMINAL_HONOR_INDICES
from .meld import Meld, MeldType


class Hand:
    """
    Concealed tiles, declared melds and the tile just drawn (if any).

    The just-drawn tile is also part of the concealed tiles; drawn_tile only
    remembers which one it was.
    """

    def __init__(
        self,
        tiles: Optional[Sequence[Tile]] = None,
        melds: Optional[Sequence[Meld]] = None,
        drawn_tile: Optional[Tile] = None,
    ):
        self._tiles: List[Tile] = sorted(tiles) if tiles else []
        self._melds: List[Meld] = list(melds) if melds else []
        self.drawn_tile = drawn_tile

    @property
    def tiles(self) -> List[Tile]:
        """Concealed tiles (copy)"""
        return list(self._tiles)

    @property
    def melds(self) -> List[Meld]:
        """Declared melds (copy)"""
        return list(self._melds)

    @property
    def is_concealed(self) -> bool:
        """A hand stays concealed as long as no meld is open"""
        return not any(m.is_open for m in self._melds)

    @property
    def tile_count(self) -> int:
        """Concealed tiles plus three per meld (quads count as three)"""
        return len(self._tiles) + 3 * len(self._melds)

    def all_tiles(self) -> List[Tile]:
        """Every tile the player owns, meld tiles included"""
        tiles = list(self._tiles)
        for meld in self._melds:
            tiles.extend(meld.tiles)
        return tiles

    def count(self, tile: Tile) -> int:
        """Concealed copies of a face"""
        return sum(1 for t in self._tiles if t == tile)

    def to_count_array(self) -> np.ndarray:
        return count_tiles(self._tiles)

    def find_tile(self, tile_id: int) -> Optional[Tile]:
        for t in self._tiles:
            if t.id == tile_id:
                return t
        return None

    def find_tiles(self, tile_ids: Sequence[int]) -> Optional[List[Tile]]:
        """Resolve distinct tile ids to held tiles, or None if any is missing."""
        if len(set(tile_ids)) != len(tile_ids):
            return None
        found = [self.find_tile(tile_id) for tile_id in tile_ids]
        if any(t is None for t in found):
            return None
        return found

    def matching_tiles(self, face: Tile, n: int) -> List[Tile]:
        """Up to n concealed tiles with the given face"""
        return [t for t in self._tiles if t == face][:n]

    # Mutation (used by the game after validation)

    def add_tile(self, tile: Tile, drawn: bool = True) -> None:
        self._tiles.append(tile)
        self._tiles.sort()
        if drawn:
            self.drawn_tile = tile

    def remove_tile(self, tile_id: int) -> Tile:
        for i, t in enumerate(self._tiles):
            if t.id == tile_id:
                self._tiles.pop(i)
                if self.drawn_tile is not None and self.drawn_tile.id == tile_id:
                    self.drawn_tile = None
                return t
        raise ValueError(f"Tile {tile_id} not in hand")

    def add_meld(self, meld: Meld) -> None:
        self._melds.append(meld)

    def replace_meld(self, index: int, meld: Meld) -> None:
        self._melds[index] = meld

    def clear_drawn(self) -> None:
        self.drawn_tile = None

    # Call eligibility

    def run_candidates(self, discard: Tile) -> List[Tuple[Tile, Tile]]:
        """
        Pairs of concealed tiles that form a run with the discarded tile.

        Checks the discard as the low, middle and high tile of a run.
        Honors never form runs.
        """
        if discard.suit == TileSuit.HONOR:
            return []
        candidates = []
        for low, high in ((1, 2), (-1, 1), (-2, -1)):
            values = (discard.value + low, discard.value + high)
            if not all(1 <= v <= 9 for v in values):
                continue
            first = self.matching_tiles(Tile(discard.suit, values[0]), 1)
            second = self.matching_tiles(Tile(discard.suit, values[1]), 1)
            if first and second:
                candidates.append((first[0], second[0]))
        return candidates

    def can_claim_triplet(self, discard: Tile) -> bool:
        return self.count(discard) >= 2

    def can_claim_quad(self, discard: Tile) -> bool:
        return self.count(discard) >= 3

    def self_quad_candidates(self) -> List[Tile]:
        """Faces held exactly four times among the concealed tiles"""
        counts = self.to_count_array()
        return [Tile.from_index(int(i)) for i in np.where(counts == 4)[0]]

    def upgrade_candidates(self) -> List[Tuple[int, Tile]]:
        """(meld index, concealed tile) for every triplet that can become a quad"""
        result = []
        for index, meld in enumerate(self._melds):
            if meld.meld_type != MeldType.TRIPLET:
                continue
            match = self.matching_tiles(meld.base_tile, 1)
            if match:
                result.append((index, match[0]))
        return result

    def nine_terminal_types(self) -> int:
        """Number of distinct terminal and honor faces held"""
        counts = self.to_count_array()
        return sum(1 for i in TERMINAL_HONOR_INDICES if counts[i] > 0)

    def copy(self) -> 'Hand':
        return Hand(self._tiles, self._melds, self.drawn_tile)

    def to_dict(self) -> Dict:
        return {
            "tiles": [t.to_dict() for t in self._tiles],
            "melds": [m.to_dict() for m in self._melds],
            "drawn_tile": self.drawn_tile.to_dict() if self.drawn_tile else None,
        }

    @classmethod
    def from_dict(cls, data: Dict) -> 'Hand':
        return cls(
            [Tile.from_dict(t) for t in data["tiles"]],
            [Meld.from_dict(m) for m in data["melds"]],
            Tile.from_dict(data["drawn_tile"]) if data.get("drawn_tile") else None,
        )

    def __len__(self) -> int:
        return len(self._tiles)

    def __repr__(self) -> str:
        tiles = " ".join(str(t) for t in self._tiles)
        melds = " ".join(str(m) for m in self._melds)
        return f"Hand({tiles}{' | ' + melds if melds else ''})"
