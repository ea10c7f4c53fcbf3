"""
Winning Hand Decomposition

Splits a completed hand into four groups plus a pair, or recognises the
seven-pairs and thirteen-orphans shapes. Every valid partition is kept,
once per possible role of the winning tile, so that scoring can pick the
highest-value reading.
"""

from enum import IntEnum
from dataclasses import dataclass, field
from typing import List, Optional, Sequence, Set, Tuple
import numpy as np

from .tiles import Tile, count_tiles, NUM_TILE_TYPES, TERMINAL_HONOR_INDICES
from .meld import Meld, MeldType


class WinType(IntEnum):
    """How the winning tile was obtained"""
    SELF_DRAW = 0  # ツモ
    CLAIM = 1      # ロン


class HandShape(IntEnum):
    STANDARD = 0
    SEVEN_PAIRS = 1
    THIRTEEN_ORPHANS = 2


class WaitType(IntEnum):
    """Shape the hand was waiting on before the winning tile"""
    RYANMEN = 0         # two-sided run wait
    KANCHAN = 1         # closed (middle) run wait
    PENCHAN = 2         # edge wait (12 waiting on 3, 89 waiting on 7)
    TANKI = 3           # single wait on the pair
    SHANPON = 4         # dual pair wait, completed as a triplet
    THIRTEEN_SIDED = 5  # thirteen orphans waiting on any of 13 faces


@dataclass(frozen=True)
class Group:
    """
    One group of a decomposition.

    Attributes:
        kind: RUN, TRIPLET or QUAD
        index: Face index of the lowest tile
        is_open: Counts as open for fu and concealed-triplet purposes
        declared: Came from a declared meld rather than the concealed tiles
    """
    kind: MeldType
    index: int
    is_open: bool = False
    declared: bool = False

    @property
    def tile(self) -> Tile:
        return Tile.from_index(self.index)

    @property
    def is_run(self) -> bool:
        return self.kind == MeldType.RUN

    @property
    def is_triplet(self) -> bool:
        """Triplets and quads"""
        return self.kind != MeldType.RUN

    @property
    def is_quad(self) -> bool:
        return self.kind == MeldType.QUAD

    @property
    def indices(self) -> List[int]:
        if self.is_run:
            return [self.index, self.index + 1, self.index + 2]
        return [self.index] * (4 if self.is_quad else 3)

    @property
    def has_terminal_or_honor(self) -> bool:
        return any(i in TERMINAL_HONOR_INDICES for i in self.indices)


@dataclass
class Decomposition:
    """One reading of a winning hand"""
    shape: HandShape
    winning_tile: Tile
    win_type: WinType
    wait: WaitType
    is_concealed: bool
    groups: List[Group] = field(default_factory=list)
    pair: Optional[int] = None
    pairs: List[int] = field(default_factory=list)
    counts: np.ndarray = field(default_factory=lambda: np.zeros(NUM_TILE_TYPES, dtype=np.int8))

    @property
    def pair_tile(self) -> Optional[Tile]:
        return Tile.from_index(self.pair) if self.pair is not None else None

    @property
    def indices(self) -> List[int]:
        """Every face in the hand, quads counted four times"""
        if self.shape == HandShape.STANDARD:
            result = [self.pair, self.pair]
            for group in self.groups:
                result.extend(group.indices)
            return result
        return [i for i in range(NUM_TILE_TYPES) for _ in range(int(self.counts[i]))]

    @property
    def runs(self) -> List[Group]:
        return [g for g in self.groups if g.is_run]

    @property
    def triplets(self) -> List[Group]:
        return [g for g in self.groups if g.is_triplet]

    @property
    def concealed_triplet_count(self) -> int:
        return sum(1 for g in self.triplets if not g.is_open)

    def key(self) -> Tuple:
        groups = tuple(sorted((int(g.kind), g.index, g.is_open, g.declared) for g in self.groups))
        return (int(self.shape), groups, self.pair, tuple(self.pairs), int(self.wait))

    def __repr__(self) -> str:
        if self.shape != HandShape.STANDARD:
            return f"Decomposition({self.shape.name}, wait={self.wait.name})"
        groups = " ".join(f"{g.kind.name}({g.tile})" for g in self.groups)
        return f"Decomposition({groups} PAIR({self.pair_tile}), wait={self.wait.name})"


def _search(
    counts: np.ndarray,
    sets_needed: int,
    pair: Optional[int],
    groups: List[Tuple[MeldType, int]],
    out: Set[Tuple],
) -> None:
    """
    Exhaustive backtracking over the lowest remaining face: try it as the
    pair, as a triplet and as the base of a run. Every complete partition
    is collected into out.
    """
    first_idx = -1
    for i in range(NUM_TILE_TYPES):
        if counts[i] > 0:
            first_idx = i
            break

    if first_idx == -1:
        if pair is not None and len(groups) == sets_needed:
            out.add((pair, tuple(sorted(groups))))
        return

    if pair is None and counts[first_idx] >= 2:
        counts[first_idx] -= 2
        _search(counts, sets_needed, first_idx, groups, out)
        counts[first_idx] += 2

    if len(groups) >= sets_needed:
        return

    if counts[first_idx] >= 3:
        counts[first_idx] -= 3
        groups.append((MeldType.TRIPLET, first_idx))
        _search(counts, sets_needed, pair, groups, out)
        groups.pop()
        counts[first_idx] += 3

    if first_idx < 27 and first_idx % 9 <= 6:
        if counts[first_idx + 1] >= 1 and counts[first_idx + 2] >= 1:
            for i in range(first_idx, first_idx + 3):
                counts[i] -= 1
            groups.append((MeldType.RUN, first_idx))
            _search(counts, sets_needed, pair, groups, out)
            groups.pop()
            for i in range(first_idx, first_idx + 3):
                counts[i] += 1


def find_partitions(counts: np.ndarray, sets_needed: int) -> List[Tuple[int, Tuple[Tuple[MeldType, int], ...]]]:
    """
    All (pair, groups) partitions of a count array into sets_needed groups
    plus one pair.
    """
    if int(counts.sum()) != sets_needed * 3 + 2:
        return []
    out: Set[Tuple] = set()
    _search(counts.copy(), sets_needed, None, [], out)
    return sorted(out)


def is_seven_pairs(counts: np.ndarray) -> bool:
    """Seven distinct faces held exactly twice (four of a kind is not two pairs)"""
    return int(np.sum(counts == 2)) == 7 and int(counts.sum()) == 14


def is_thirteen_orphans(counts: np.ndarray) -> bool:
    """All 13 terminal and honor faces with one of them doubled"""
    if int(counts.sum()) != 14:
        return False
    if any(counts[i] > 0 for i in range(NUM_TILE_TYPES) if i not in TERMINAL_HONOR_INDICES):
        return False
    return all(counts[i] >= 1 for i in TERMINAL_HONOR_INDICES)


def _run_wait(run_index: int, win_index: int) -> WaitType:
    position = win_index - run_index
    if position == 1:
        return WaitType.KANCHAN
    if position == 0:
        return WaitType.PENCHAN if run_index % 9 == 6 else WaitType.RYANMEN
    return WaitType.PENCHAN if run_index % 9 == 0 else WaitType.RYANMEN


class WinningHand:
    """
    A completed hand: concealed tiles including the winning tile, declared
    melds, the winning tile and how it was won.

    Attributes:
        concealed_tiles: Concealed tiles including the winning tile
        melds: Declared melds
        winning_tile: The tile that completed the hand
        win_type: SELF_DRAW or CLAIM
        decompositions: Every valid reading (empty if not a winning hand)
    """

    def __init__(
        self,
        concealed_tiles: Sequence[Tile],
        melds: Sequence[Meld],
        winning_tile: Tile,
        win_type: WinType,
    ):
        self.concealed_tiles = list(concealed_tiles)
        self.melds = list(melds)
        self.winning_tile = winning_tile
        self.win_type = win_type
        if len(self.concealed_tiles) + 3 * len(self.melds) != 14:
            raise ValueError(
                f"A winning hand needs 14 tiles, got {len(self.concealed_tiles)} "
                f"concealed and {len(self.melds)} melds"
            )
        if winning_tile not in self.concealed_tiles:
            raise ValueError(f"Winning tile {winning_tile} is not among the concealed tiles")
        self.decompositions = self._decompose()

    @property
    def is_winning(self) -> bool:
        return len(self.decompositions) > 0

    @property
    def is_concealed(self) -> bool:
        return not any(m.is_open for m in self.melds)

    @property
    def all_tiles(self) -> List[Tile]:
        tiles = list(self.concealed_tiles)
        for meld in self.melds:
            tiles.extend(meld.tiles)
        return tiles

    def _decompose(self) -> List[Decomposition]:
        counts = count_tiles(self.concealed_tiles)
        all_counts = count_tiles(self.all_tiles)
        win_idx = self.winning_tile.tile_index
        concealed = self.is_concealed
        results: List[Decomposition] = []

        declared = [
            Group(m.meld_type, m.base_tile.tile_index, m.is_open, True) for m in self.melds
        ]
        for pair, found in find_partitions(counts, 4 - len(self.melds)):
            results.extend(self._place_winning_tile(pair, found, declared, win_idx, all_counts, concealed))

        if not self.melds:
            if is_seven_pairs(counts):
                results.append(Decomposition(
                    HandShape.SEVEN_PAIRS, self.winning_tile, self.win_type, WaitType.TANKI, True,
                    pairs=[int(i) for i in np.where(counts == 2)[0]], counts=all_counts,
                ))
            if is_thirteen_orphans(counts):
                before = counts.copy()
                before[win_idx] -= 1
                thirteen_sided = all(before[i] == 1 for i in TERMINAL_HONOR_INDICES)
                results.append(Decomposition(
                    HandShape.THIRTEEN_ORPHANS, self.winning_tile, self.win_type,
                    WaitType.THIRTEEN_SIDED if thirteen_sided else WaitType.TANKI, True,
                    counts=all_counts,
                ))

        unique = {}
        for d in results:
            unique.setdefault(d.key(), d)
        return list(unique.values())

    def _place_winning_tile(
        self,
        pair: int,
        found: Tuple[Tuple[MeldType, int], ...],
        declared: List[Group],
        win_idx: int,
        all_counts: np.ndarray,
        concealed: bool,
    ) -> List[Decomposition]:
        """One decomposition per distinct role the winning tile can play"""
        base = [Group(kind, idx) for kind, idx in found]
        out = []

        def build(groups: List[Group], wait: WaitType) -> Decomposition:
            return Decomposition(
                HandShape.STANDARD, self.winning_tile, self.win_type, wait, concealed,
                groups=groups + declared, pair=pair, counts=all_counts,
            )

        if pair == win_idx:
            out.append(build(list(base), WaitType.TANKI))

        seen: Set[Tuple[MeldType, int]] = set()
        for i, group in enumerate(base):
            if (group.kind, group.index) in seen:
                continue
            seen.add((group.kind, group.index))
            if group.is_triplet and group.index == win_idx:
                groups = list(base)
                # A triplet finished with a claimed tile is treated as open
                groups[i] = Group(group.kind, group.index, self.win_type == WinType.CLAIM)
                out.append(build(groups, WaitType.SHANPON))
            elif group.is_run and group.index <= win_idx <= group.index + 2:
                out.append(build(list(base), _run_wait(group.index, win_idx)))
        return out


def _is_complete(counts: np.ndarray, meld_count: int) -> bool:
    if find_partitions(counts, 4 - meld_count):
        return True
    if meld_count == 0:
        return is_seven_pairs(counts) or is_thirteen_orphans(counts)
    return False


def waiting_tiles(concealed_tiles: Sequence[Tile], melds: Sequence[Meld] = ()) -> List[Tile]:
    """
    Faces that would complete a hand of concealed tiles plus melds.

    Faces the player already holds all four copies of are excluded, since
    they cannot be drawn or claimed.
    """
    counts = count_tiles(concealed_tiles)
    if int(counts.sum()) + 3 * len(melds) != 13:
        return []
    waits = []
    for idx in range(NUM_TILE_TYPES):
        if counts[idx] >= 4:
            continue
        counts[idx] += 1
        if _is_complete(counts, len(melds)):
            waits.append(Tile.from_index(idx))
        counts[idx] -= 1
    return waits


def is_tenpai(concealed_tiles: Sequence[Tile], melds: Sequence[Meld] = ()) -> bool:
    """One tile away from a complete hand"""
    return len(waiting_tiles(concealed_tiles, melds)) > 0
