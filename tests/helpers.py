"""
Helpers for scripted rounds: stacked walls and play-out loops.
"""

from typing import List, Optional, Sequence, Tuple

import numpy as np

from riichi_engine.tiles import Tile, TileSet, tiles_from_string, NUM_TILE_TYPES
from riichi_engine.meld import MeldType
from riichi_engine.wall import Wall
from riichi_engine.rules import GameRules
from riichi_engine.game import Game, GamePhase, GameStatus


PLAYERS = ["alice", "bob", "carol", "dave"]

# Noten hands for seats 1-3 that share no pair or run shape with each other
QUIET_HANDS = [
    "147m258p369s1234z",
    "258m369p147s1235z",
    "369m147p258s1256z",
]

# Seat 0 discards 4s on its first turn; seat 1 waits on 1s-4s with pinfu
DEALER_DISCARDS_4S = "147m258p369s347z4s"
PINFU_WAIT = "123m456m789p55p23s"
RON_HANDS = [DEALER_DISCARDS_4S, PINFU_WAIT, QUIET_HANDS[1], QUIET_HANDS[2]]


def build_wall(
    hands: Sequence[str],
    draws: str = "",
    dead: str = "",
    dora: Optional[str] = None,
    dealer: int = 0,
) -> Wall:
    """
    Stack a wall so that each seat is dealt the given hand.

    Args:
        hands: 13-tile notation per seat, indexed by seat
        draws: Live-wall tiles drawn after the deal, in order
        dead: Dead-wall tiles from the first replacement onwards
        dora: First dora indicator (dead-wall offset 4)
        dealer: Seat that is dealt first

    Unspecified positions are filled with the remaining tiles in
    canonical order.
    """
    pool: List[Tile] = list(TileSet.create_full_set(red_fives=False).tiles)

    def take(notation: str) -> List[Tile]:
        taken = []
        if not notation:
            return taken
        for face in tiles_from_string(notation, red_fives=False):
            for i, tile in enumerate(pool):
                if tile == face:
                    taken.append(pool.pop(i))
                    break
            else:
                raise ValueError(f"No copy of {face} left for {notation!r}")
        return taken

    live: List[Tile] = []
    for offset in range(4):
        seat_tiles = take(hands[(dealer + offset) % 4])
        assert len(seat_tiles) == 13, f"seat {(dealer + offset) % 4} needs 13 tiles"
        live.extend(seat_tiles)
    live.extend(take(draws))
    dead_tiles = take(dead)
    dora_tile = take(dora) if dora else []

    fill = Wall.LIVE_SIZE - len(live)
    live.extend(pool[:fill])
    pool = pool[fill:]
    if dora_tile:
        assert len(dead_tiles) <= Wall.DORA_OFFSET
        while len(dead_tiles) < Wall.DORA_OFFSET:
            dead_tiles.append(pool.pop())
        dead_tiles.extend(dora_tile)
    while len(dead_tiles) < Wall.DEAD_SIZE:
        dead_tiles.append(pool.pop())
    return Wall.from_tiles(live + dead_tiles)


def make_game(hands: Sequence[str], rules: Optional[GameRules] = None, **wall_kwargs) -> Game:
    """A started game whose first round uses a stacked wall"""
    wall = build_wall(hands, **wall_kwargs)
    game = Game(PLAYERS, rules or GameRules(red_fives=False), seed=7, walls=[wall])
    result = game.start()
    assert result.success
    return game


def hand_ids(game: Game, player_id: str, notation: str) -> List[int]:
    """Ids of held tiles matching the notation, one held tile per face listed"""
    hand = game.own_hand(player_id)["tiles"]
    ids = []
    for face in tiles_from_string(notation, red_fives=False):
        for tile in hand:
            if tile == face and tile.id not in ids:
                ids.append(tile.id)
                break
        else:
            raise AssertionError(f"{player_id} holds no {face}")
    return ids


def play_out_round(game: Game) -> None:
    """Draw and discard the drawn tile, passing every call, until the round ends"""
    rounds = len(game.history)
    while len(game.history) == rounds and game.status == GameStatus.IN_PROGRESS:
        player_id = game.current_player_id
        if game.phase == GamePhase.CALL_WAIT:
            result = game.pass_on_call(player_id)
        elif game.phase in (GamePhase.DRAW, GamePhase.AFTER_QUAD):
            result = game.draw(player_id)
        else:
            drawn = game.own_hand(player_id)["drawn_tile"]
            result = game.discard(player_id, drawn.id)
        assert result.success, result.reason


def random_partition(rng: np.random.Generator) -> Tuple[np.ndarray, Tuple]:
    """
    Four random groups and a pair that fit in one tile set.

    Returns:
        The count array and the partition in find_partitions form
    """
    while True:
        counts = np.zeros(NUM_TILE_TYPES, dtype=np.int8)
        groups = []
        for _ in range(4):
            if rng.random() < 0.5:
                start = int(rng.integers(3)) * 9 + int(rng.integers(7))
                groups.append((MeldType.RUN, start))
                counts[start:start + 3] += 1
            else:
                index = int(rng.integers(NUM_TILE_TYPES))
                groups.append((MeldType.TRIPLET, index))
                counts[index] += 3
        pair = int(rng.integers(NUM_TILE_TYPES))
        counts[pair] += 2
        if counts.max() <= 4:
            return counts, (pair, tuple(sorted(groups)))


def tiles_from_counts(counts: np.ndarray) -> List[Tile]:
    return [Tile.from_index(i) for i in range(NUM_TILE_TYPES) for _ in range(int(counts[i]))]
