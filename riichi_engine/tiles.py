"""
Riichi Mahjong Tiles

Defines the 136 physical tiles used in Japanese Mahjong:
- 9 Man (萬) x4 = 36
- 9 Pin (筒) x4 = 36
- 9 Sou (索) x4 = 36
- 4 Winds (東南西北) x4 = 16
- 3 Dragons (白發中) x4 = 12
Total: 136 tiles, optionally with one red five per number suit.
"""

from enum import IntEnum
from dataclasses import dataclass
from typing import Dict, List, Optional, Iterable
import numpy as np


class TileSuit(IntEnum):
    """Tile suits in Riichi Mahjong"""
    MAN = 0     # 萬子 - Numbers 1-9
    PIN = 1     # 筒子 - Numbers 1-9
    SOU = 2     # 索子 - Numbers 1-9
    HONOR = 3   # 字牌 - Winds 1-4, Dragons 5-7


class Wind(IntEnum):
    """Honor values of the wind tiles"""
    EAST = 1
    SOUTH = 2
    WEST = 3
    NORTH = 4


class Dragon(IntEnum):
    """Honor values of the dragon tiles"""
    WHITE = 5  # 白 (Haku)
    GREEN = 6  # 發 (Hatsu)
    RED = 7    # 中 (Chun)


NUMBER_SUITS = (TileSuit.MAN, TileSuit.PIN, TileSuit.SOU)
NUM_TILE_TYPES = 34
NUM_TILES = 136
COPIES_PER_TYPE = 4

# 1m 9m 1p 9p 1s 9s E S W N Wh Gr Rd
TERMINAL_HONOR_INDICES = (0, 8, 9, 17, 18, 26, 27, 28, 29, 30, 31, 32, 33)

_SUIT_CHARS = {TileSuit.MAN: "m", TileSuit.PIN: "p", TileSuit.SOU: "s", TileSuit.HONOR: "z"}
_CHAR_SUITS = {c: s for s, c in _SUIT_CHARS.items()}


@dataclass(frozen=True)
class Tile:
    """
    Represents a single Riichi Mahjong tile.

    Attributes:
        suit: The suit of the tile
        value: 1-9 for number suits, 1-7 for honors (winds then dragons)
        is_red: Red five flag (number-suit fives only)
        id: Identity of the physical tile (0-135), -1 for a bare face
    """
    suit: TileSuit
    value: int
    is_red: bool = False
    id: int = -1

    def __post_init__(self):
        """Validate tile values"""
        if self.suit in NUMBER_SUITS:
            if not 1 <= self.value <= 9:
                raise ValueError(f"Number suits must have value 1-9, got {self.value}")
            if self.is_red and self.value != 5:
                raise ValueError(f"Only fives can be red, got {self.value}")
        elif self.suit == TileSuit.HONOR:
            if not 1 <= self.value <= 7:
                raise ValueError(f"Honor tiles must have value 1-7, got {self.value}")
            if self.is_red:
                raise ValueError("Honor tiles cannot be red")
        else:
            raise ValueError(f"Unknown suit {self.suit}")
        if not -1 <= self.id < NUM_TILES:
            raise ValueError(f"Tile id must be in 0-135, got {self.id}")

    @property
    def is_honor(self) -> bool:
        return self.suit == TileSuit.HONOR

    @property
    def is_wind(self) -> bool:
        return self.suit == TileSuit.HONOR and self.value <= Wind.NORTH

    @property
    def is_dragon(self) -> bool:
        return self.suit == TileSuit.HONOR and self.value >= Dragon.WHITE

    @property
    def is_terminal(self) -> bool:
        """Check if tile is a terminal (1 or 9 of a number suit)"""
        return self.suit != TileSuit.HONOR and self.value in (1, 9)

    @property
    def is_terminal_or_honor(self) -> bool:
        return self.is_terminal or self.is_honor

    @property
    def is_simple(self) -> bool:
        """Check if tile is a simple (2-8 of a number suit)"""
        return self.suit != TileSuit.HONOR and 2 <= self.value <= 8

    @property
    def is_green(self) -> bool:
        """Check if tile is a green tile (for All Green)"""
        if self.suit == TileSuit.SOU:
            return self.value in (2, 3, 4, 6, 8)
        return self.suit == TileSuit.HONOR and self.value == Dragon.GREEN

    @property
    def tile_index(self) -> int:
        """
        Get unique index for this tile face (0-33).
        Man 0-8, Pin 9-17, Sou 18-26, Winds 27-30, Dragons 31-33.
        """
        return int(self.suit) * 9 + self.value - 1

    def next_in_suit(self) -> Optional['Tile']:
        """The face one rank higher in the same number suit, or None."""
        if self.suit == TileSuit.HONOR or self.value == 9:
            return None
        return Tile(self.suit, self.value + 1)

    def is_same(self, other: 'Tile') -> bool:
        """Identity comparison (same physical tile), unlike == which compares faces."""
        return isinstance(other, Tile) and self.id == other.id and self == other and self.is_red == other.is_red

    def __eq__(self, other) -> bool:
        """Two tiles are equal if they have the same face (red flag and id ignored)"""
        if not isinstance(other, Tile):
            return False
        return self.suit == other.suit and self.value == other.value

    def __hash__(self) -> int:
        return hash((self.suit, self.value))

    def __lt__(self, other) -> bool:
        """Comparison for sorting"""
        if not isinstance(other, Tile):
            return NotImplemented
        return (self.suit, self.value, self.id) < (other.suit, other.value, other.id)

    def __repr__(self) -> str:
        red = ", red" if self.is_red else ""
        return f"Tile({self.suit.name}, {self.value}{red})"

    def __str__(self) -> str:
        value = 0 if self.is_red else self.value
        return f"{value}{_SUIT_CHARS[self.suit]}"

    def to_dict(self) -> Dict:
        return {"suit": int(self.suit), "value": self.value, "is_red": self.is_red, "id": self.id}

    @classmethod
    def from_dict(cls, data: Dict) -> 'Tile':
        return cls(TileSuit(data["suit"]), data["value"], data.get("is_red", False), data.get("id", -1))

    @classmethod
    def from_index(cls, tile_index: int, tile_id: int = -1, is_red: bool = False) -> 'Tile':
        """
        Create a tile from its face index (0-33).

        Args:
            tile_index: Tile face index (0-33)
            tile_id: Physical identity, -1 for a bare face
            is_red: Red five flag
        """
        if not 0 <= tile_index < NUM_TILE_TYPES:
            raise ValueError(f"Tile index must be in 0-33, got {tile_index}")
        return cls(TileSuit(tile_index // 9), tile_index % 9 + 1, is_red, tile_id)

    @classmethod
    def from_string(cls, s: str, tile_id: int = -1) -> 'Tile':
        """
        Create a tile from its short notation, e.g. "5m", "0p" (red five), "7z".
        """
        s = s.strip()
        if len(s) != 2 or not s[0].isdigit() or s[1] not in _CHAR_SUITS:
            raise ValueError(f"Cannot parse tile string: {s}")
        suit = _CHAR_SUITS[s[1]]
        value = int(s[0])
        if value == 0:
            return cls(suit, 5, True, tile_id)
        return cls(suit, value, False, tile_id)


class TileSet:
    """
    A collection of tiles with utility methods.
    Used to represent hands, discards and the wall.
    """

    def __init__(self, tiles: Optional[Iterable[Tile]] = None):
        self.tiles: List[Tile] = list(tiles) if tiles else []

    def add(self, tile: Tile) -> None:
        self.tiles.append(tile)

    def remove(self, tile: Tile) -> bool:
        """
        Remove a tile from the set. Tiles with an id are matched by identity,
        bare faces by face. Returns True if removed, False if not found.
        """
        for i, t in enumerate(self.tiles):
            if (tile.id >= 0 and t.is_same(tile)) or (tile.id < 0 and t == tile):
                self.tiles.pop(i)
                return True
        return False

    def count(self, tile: Tile) -> int:
        """Count occurrences of a tile face"""
        return sum(1 for t in self.tiles if t == tile)

    def find_by_id(self, tile_id: int) -> Optional[Tile]:
        for t in self.tiles:
            if t.id == tile_id:
                return t
        return None

    def sort(self) -> None:
        self.tiles.sort()

    def to_count_array(self) -> np.ndarray:
        """
        Convert to a 34-element array counting each tile face.
        """
        return count_tiles(self.tiles)

    @classmethod
    def create_full_set(cls, red_fives: bool = True) -> 'TileSet':
        """
        Create a complete set of 136 tiles with ids 0-135.
        When red fives are enabled the first copy of each number-suit five is red.
        """
        tiles = []
        for tile_index in range(NUM_TILE_TYPES):
            for copy in range(COPIES_PER_TYPE):
                face = Tile.from_index(tile_index)
                is_red = red_fives and face.value == 5 and face.suit != TileSuit.HONOR and copy == 0
                tiles.append(Tile(face.suit, face.value, is_red, tile_index * COPIES_PER_TYPE + copy))
        return cls(tiles)

    def copy(self) -> 'TileSet':
        return TileSet(self.tiles)

    def __len__(self) -> int:
        return len(self.tiles)

    def __iter__(self):
        return iter(self.tiles)

    def __getitem__(self, index):
        return self.tiles[index]

    def __repr__(self) -> str:
        return f"TileSet({len(self.tiles)} tiles)"

    def __str__(self) -> str:
        return tiles_to_string(self.tiles)


def count_tiles(tiles: Iterable[Tile]) -> np.ndarray:
    """34-element face count array for any iterable of tiles."""
    counts = np.zeros(NUM_TILE_TYPES, dtype=np.int8)
    for tile in tiles:
        counts[tile.tile_index] += 1
    return counts


def tiles_from_string(notation: str, red_fives: bool = True) -> List[Tile]:
    """
    Parse compact hand notation such as "123m456p789s11z" or "0m55m" into tiles.

    Each tile gets a distinct id from the canonical 136-tile layout so the result
    can be used wherever physical identity matters. A "0" is a red five.

    Raises:
        ValueError: On malformed notation or more copies than physically exist
    """
    tiles = []
    pending: List[int] = []
    for ch in notation.replace(" ", ""):
        if ch.isdigit():
            pending.append(int(ch))
        elif ch in _CHAR_SUITS:
            if not pending:
                raise ValueError(f"Suit '{ch}' without values in {notation!r}")
            tiles.extend(Tile.from_string(f"{v}{ch}") for v in pending)
            pending = []
        else:
            raise ValueError(f"Unexpected character {ch!r} in {notation!r}")
    if pending:
        raise ValueError(f"Trailing values without suit in {notation!r}")

    used: Dict[int, int] = {}
    result = []
    for face in tiles:
        idx = face.tile_index
        if face.is_red:
            copy = 0
            if used.get(idx, 0) & 1:
                raise ValueError(f"Red five {face} used twice in {notation!r}")
        else:
            # Copy 0 of a five is reserved for the red tile
            first = 1 if (face.value == 5 and not face.is_honor and red_fives) else 0
            copy = next((c for c in range(first, COPIES_PER_TYPE) if not used.get(idx, 0) & (1 << c)), None)
            if copy is None:
                raise ValueError(f"Too many copies of {face} in {notation!r}")
        used[idx] = used.get(idx, 0) | (1 << copy)
        result.append(Tile(face.suit, face.value, face.is_red, idx * COPIES_PER_TYPE + copy))
    return result


def tiles_to_string(tiles: Iterable[Tile]) -> str:
    """Inverse of tiles_from_string (ids are not preserved)."""
    ordered = sorted(tiles)
    out = []
    for suit in TileSuit:
        values = [str(t)[0] for t in ordered if t.suit == suit]
        if values:
            out.append("".join(values) + _SUIT_CHARS[suit])
    return "".join(out)


# Convenience functions for creating bare tile faces
def man(value: int) -> Tile:
    return Tile(TileSuit.MAN, value)


def pin(value: int) -> Tile:
    return Tile(TileSuit.PIN, value)


def sou(value: int) -> Tile:
    return Tile(TileSuit.SOU, value)


def wind(wind_type: Wind) -> Tile:
    return Tile(TileSuit.HONOR, int(wind_type))


def dragon(dragon_type: Dragon) -> Tile:
    return Tile(TileSuit.HONOR, int(dragon_type))


# Named honor tiles
EAST = wind(Wind.EAST)
SOUTH = wind(Wind.SOUTH)
WEST = wind(Wind.WEST)
NORTH = wind(Wind.NORTH)

WHITE_DRAGON = dragon(Dragon.WHITE)
GREEN_DRAGON = dragon(Dragon.GREEN)
RED_DRAGON = dragon(Dragon.RED)
