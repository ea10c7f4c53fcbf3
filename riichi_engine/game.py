"""
Riichi Mahjong Game Engine

Match-level state machine for four-player Riichi Mahjong: dealing, turn
order, calls, riichi, wins, draws, settlement and round progression.

Every command validates before it mutates anything. A rejected command
returns a failed CommandResult with a Reason and leaves the game untouched.
"""

import copy
import logging
import random
from enum import IntEnum
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence, Tuple

from .tiles import Tile
from .meld import Meld, MeldSource, MeldType
from .wall import Wall
from .hand import Hand
from .decomposer import WinningHand, WinType, waiting_tiles, is_tenpai
from .yaku import WinContext
from .scoring import ScoringService, ScoreResult
from .rules import GameRules, STANDARD_RULES
from .round import Round, RoundManager, RoundStatus, DrawType
from .player import Player, Discard, RiichiStatus
from .events import EventBus, EventType, GameEvent, Subscriber

logger = logging.getLogger(__name__)

SNAPSHOT_VERSION = 1


class GameStatus(IntEnum):
    NOT_STARTED = 0
    IN_PROGRESS = 1
    FINISHED = 2


class GamePhase(IntEnum):
    """Phases of a round"""
    DEAL = 0
    DRAW = 1             # current player draws
    DISCARD = 2          # current player must discard (or declare)
    CALL_WAIT = 3        # other players may claim the last tile
    AFTER_QUAD = 4       # current player draws a replacement tile
    WIN = 5
    EXHAUSTIVE_DRAW = 6


class ActionType(IntEnum):
    DRAW = 0
    DISCARD = 1
    RIICHI = 2
    CLAIM_RUN = 3
    CLAIM_TRIPLET = 4
    CLAIM_QUAD = 5
    SELF_QUAD = 6
    UPGRADE_QUAD = 7
    WIN_BY_DRAW = 8
    WIN_BY_CLAIM = 9
    PASS = 10
    ABORT = 11


class Reason(IntEnum):
    """Why a command was rejected"""
    INVALID_PLAYERS = 0
    GAME_NOT_STARTED = 1
    GAME_ALREADY_STARTED = 2
    GAME_FINISHED = 3
    UNKNOWN_PLAYER = 4
    NOT_YOUR_TURN = 5
    WRONG_PHASE = 6
    TILE_NOT_IN_HAND = 7
    INVALID_MELD = 8
    NOT_ENOUGH_TILES = 9
    NO_SUCH_MELD = 10
    QUAD_LIMIT = 11
    ALREADY_RIICHI = 12
    HAND_IS_OPEN = 13
    INSUFFICIENT_POINTS = 14
    NOT_TENPAI = 15
    WALL_TOO_SHORT = 16
    MUST_DISCARD_DRAWN_TILE = 17
    NOT_A_WINNING_HAND = 18
    NO_YAKU = 19
    FURITEN = 20
    ABORT_NOT_ALLOWED = 21
    CALL_NOT_AVAILABLE = 22
    UNKNOWN_ACTION = 23


@dataclass
class Action:
    """
    A player action, as listed by legal_actions and accepted by step.
    """
    action_type: ActionType
    player_id: str
    tile_id: Optional[int] = None
    tile_ids: Optional[List[int]] = None
    meld_index: Optional[int] = None

    def __repr__(self) -> str:
        extra = ""
        if self.tile_id is not None:
            extra += f", tile={self.tile_id}"
        if self.tile_ids:
            extra += f", tiles={self.tile_ids}"
        if self.meld_index is not None:
            extra += f", meld={self.meld_index}"
        return f"Action({self.action_type.name}, {self.player_id}{extra})"


@dataclass
class CommandResult:
    """Outcome of a command: success flag, reason on failure, payload and accepted events"""
    success: bool
    reason: Optional[Reason] = None
    data: Dict[str, Any] = field(default_factory=dict)
    events: List[GameEvent] = field(default_factory=list)

    @classmethod
    def fail(cls, reason: Reason, message: str = "") -> 'CommandResult':
        return cls(False, reason, {"message": message} if message else {})

    def __bool__(self) -> bool:
        return self.success


@dataclass
class CallWindow:
    """
    Players who may claim a tile, in priority order (win, then
    triplet/quad, then run). Only the first responder may act.
    """
    discarder: int
    tile: Tile
    responders: List[Tuple[int, List[ActionType]]]
    robbing: bool = False

    @property
    def current(self) -> Optional[Tuple[int, List[ActionType]]]:
        return self.responders[0] if self.responders else None

    def to_dict(self) -> Dict:
        return {
            "discarder": self.discarder,
            "tile": self.tile.to_dict(),
            "responders": [[idx, [int(a) for a in options]] for idx, options in self.responders],
            "robbing": self.robbing,
        }

    @classmethod
    def from_dict(cls, data: Dict) -> 'CallWindow':
        return cls(
            data["discarder"],
            Tile.from_dict(data["tile"]),
            [(idx, [ActionType(a) for a in options]) for idx, options in data["responders"]],
            data["robbing"],
        )


class Game:
    """
    Riichi Mahjong match.

    Players sit in the order given (seat 0-3); seat 0 deals East 1.
    Commands return a CommandResult; queries return copies and never
    mutate state.
    """

    def __init__(
        self,
        player_ids: Sequence[str],
        rules: Optional[GameRules] = None,
        seed: Optional[int] = None,
        names: Optional[Sequence[str]] = None,
        subscribers: Optional[Iterable[Subscriber]] = None,
        walls: Optional[Sequence[Wall]] = None,
    ):
        """
        Create a match.

        Args:
            player_ids: Exactly four distinct player ids, in seat order
            rules: Rule configuration (STANDARD_RULES by default)
            seed: Base seed for per-round wall shuffles
            names: Display names, defaulting to the ids
            subscribers: Event callbacks for this game
            walls: Pre-built walls used for the first rounds, in order
        """
        player_ids = list(player_ids)
        if len(player_ids) != 4 or len(set(player_ids)) != 4:
            raise ValueError(f"A match needs four distinct players, got {player_ids}")
        names = list(names) if names else list(player_ids)
        if len(names) != 4:
            raise ValueError("One name per player is required")

        self.rules = rules or STANDARD_RULES
        self.seed = seed if seed is not None else random.randrange(2 ** 32)
        self.players = [
            Player(pid, name, seat, self.rules.starting_points)
            for seat, (pid, name) in enumerate(zip(player_ids, names))
        ]
        self.status = GameStatus.NOT_STARTED
        self.phase = GamePhase.DEAL
        self.round = RoundManager.first_round()
        self.wall: Optional[Wall] = None
        self.current_player = 0
        self.round_serial = 0
        self.kan_count = 0
        self.calls_made = False
        self.after_replacement = False
        self.call_window: Optional[CallWindow] = None
        self.history: List[Dict] = []
        self._queued_walls: List[Wall] = [w.copy() for w in walls] if walls else []
        self._event_sequence = 0
        self._pending_events: List[GameEvent] = []
        self.events = EventBus(subscribers)
        self.scorer = ScoringService(self.rules)

    @classmethod
    def create(cls, player_ids: Sequence[str], rules: Optional[GameRules] = None, **kwargs) -> 'Game':
        return cls(player_ids, rules, **kwargs)

    def subscribe(self, subscriber: Subscriber) -> None:
        self.events.subscribe(subscriber)

    # Helpers

    def _index_of(self, player_id: str) -> Optional[int]:
        for player in self.players:
            if player.id == player_id:
                return player.seat
        return None

    @property
    def current_player_id(self) -> Optional[str]:
        if self.status != GameStatus.IN_PROGRESS:
            return None
        return self.players[self.current_player].id

    def _emit(self, event_type: EventType, **data) -> None:
        self._event_sequence += 1
        self._pending_events.append(GameEvent(self._event_sequence, event_type, data))

    def _commit(self, **data) -> CommandResult:
        events, self._pending_events = self._pending_events, []
        self.events.publish(events)
        return CommandResult(True, None, data, events)

    def _check_turn(self, player_id: str, phases: Tuple[GamePhase, ...]) -> Tuple[Optional[int], Optional[CommandResult]]:
        """Common validation: game running, known player, their turn, allowed phase"""
        if self.status == GameStatus.NOT_STARTED:
            return None, CommandResult.fail(Reason.GAME_NOT_STARTED)
        if self.status == GameStatus.FINISHED:
            return None, CommandResult.fail(Reason.GAME_FINISHED)
        idx = self._index_of(player_id)
        if idx is None:
            return None, CommandResult.fail(Reason.UNKNOWN_PLAYER, player_id)
        if idx != self.current_player:
            return None, CommandResult.fail(Reason.NOT_YOUR_TURN)
        if self.phase not in phases:
            return None, CommandResult.fail(Reason.WRONG_PHASE, self.phase.name)
        return idx, None

    def _reject(self, result: CommandResult, command: str, player_id: str = "") -> CommandResult:
        logger.warning(f"Rejected {command} from {player_id or '-'}: {result.reason.name}")
        return result

    def _dora_indicators(self) -> List[Tile]:
        return self.wall.active_dora_indicators(self.kan_count)

    def _hidden_dora_indicators(self) -> List[Tile]:
        kans = self.kan_count if self.rules.kan_hidden_dora else 0
        return self.wall.hidden_dora_indicators(kans)

    def _win_context(self, idx: int, win_type: WinType, robbing: bool = False) -> WinContext:
        player = self.players[idx]
        self_draw = win_type == WinType.SELF_DRAW
        return WinContext(
            win_type=win_type,
            prevalent_wind=self.round.wind,
            seat_wind=self.round.seat_wind(player.seat),
            is_riichi=player.is_riichi,
            is_double_riichi=player.status == RiichiStatus.DOUBLE_RIICHI,
            is_ippatsu=player.ippatsu,
            is_first_turn=self_draw and not self.calls_made and not player.discards,
            is_last_tile=self.wall.is_exhausted and not robbing and not (self_draw and self.after_replacement),
            is_replacement_tile=self_draw and self.after_replacement,
            is_robbing_quad=robbing,
        )

    def _score_win(self, idx: int, tiles: List[Tile], winning_tile: Tile, win_type: WinType,
                   robbing: bool = False) -> Tuple[Optional[WinningHand], Optional[ScoreResult]]:
        hand = WinningHand(tiles, self.players[idx].hand.melds, winning_tile, win_type)
        if not hand.is_winning:
            return hand, None
        result = self.scorer.score(
            hand,
            self._win_context(idx, win_type, robbing),
            self._dora_indicators(),
            self._hidden_dora_indicators(),
            self.round.honba,
        )
        return hand, result

    def _claim_win(self, idx: int, tile: Tile, robbing: bool) -> Tuple[Optional[Reason], Optional[ScoreResult]]:
        """Score for winning on another player's tile, or the reason it is not allowed"""
        player = self.players[idx]
        if len(player.hand) + 3 * len(player.hand.melds) != 13:
            return Reason.NOT_A_WINNING_HAND, None
        waits = waiting_tiles(player.hand.tiles, player.hand.melds)
        if tile not in waits:
            return Reason.NOT_A_WINNING_HAND, None
        if player.is_furiten(waits):
            return Reason.FURITEN, None
        _, result = self._score_win(idx, player.hand.tiles + [tile], tile, WinType.CLAIM, robbing)
        if result is None:
            return Reason.NO_YAKU, None
        return None, result

    # Match lifecycle

    def start(self) -> CommandResult:
        """Start the match and deal East 1"""
        if self.status == GameStatus.IN_PROGRESS:
            return self._reject(CommandResult.fail(Reason.GAME_ALREADY_STARTED), "start")
        if self.status == GameStatus.FINISHED:
            return self._reject(CommandResult.fail(Reason.GAME_FINISHED), "start")
        self.status = GameStatus.IN_PROGRESS
        logger.info(f"Match started: {[p.id for p in self.players]} ({self.rules.name} rules)")
        self._emit(
            EventType.MATCH_STARTED,
            players=[p.id for p in self.players],
            rules=self.rules.name,
            starting_points=self.rules.starting_points,
        )
        self._start_round()
        return self._commit(round=self.round.to_dict())

    def _next_wall(self) -> Wall:
        if self._queued_walls:
            return self._queued_walls.pop(0)
        return Wall.shuffled(f"{self.seed}:{self.round_serial}", self.rules.red_fives)

    def _start_round(self) -> None:
        self.round_serial += 1
        self.wall = self._next_wall()
        for player in self.players:
            player.reset_for_round()
        for seat, tiles in enumerate(self.wall.deal_initial_hands(self.round.dealer_seat)):
            self.players[seat].hand = Hand(tiles)

        self.round.status = RoundStatus.IN_PROGRESS
        self.round.turn_count = 0
        self.round.draw_type = None
        self.kan_count = 0
        self.calls_made = False
        self.after_replacement = False
        self.call_window = None
        self.current_player = self.round.dealer_seat
        self.phase = GamePhase.DRAW

        logger.info(f"Round started: {self.round!r}")
        self._emit(
            EventType.ROUND_STARTED,
            round=self.round.to_dict(),
            dealer=self.players[self.round.dealer_seat].id,
            dora_indicators=[t.to_dict() for t in self._dora_indicators()],
            scores={p.id: p.score for p in self.players},
        )

    def end_match(self) -> CommandResult:
        """Finish the match immediately with the current scores"""
        if self.status == GameStatus.NOT_STARTED:
            return self._reject(CommandResult.fail(Reason.GAME_NOT_STARTED), "end_match")
        if self.status == GameStatus.FINISHED:
            return self._reject(CommandResult.fail(Reason.GAME_FINISHED), "end_match")
        self._finish_match()
        return self._commit(standings=self.standings())

    def standings(self) -> List[Dict]:
        """Players ranked by score, ties broken by seat"""
        ranked = sorted(self.players, key=lambda p: (-p.score, p.seat))
        return [{"id": p.id, "score": p.score, "rank": i + 1} for i, p in enumerate(ranked)]

    def _finish_match(self) -> None:
        self.status = GameStatus.FINISHED
        self.round.status = RoundStatus.FINISHED
        self.call_window = None
        logger.info(f"Match finished after {len(self.history)} rounds: {self.standings()}")
        self._emit(EventType.MATCH_FINISHED, standings=self.standings())

    # Turn commands

    def draw(self, player_id: str) -> CommandResult:
        """Draw from the live wall, or from the dead wall after a quad"""
        idx, error = self._check_turn(player_id, (GamePhase.DRAW, GamePhase.AFTER_QUAD))
        if error:
            return self._reject(error, "draw", player_id)

        player = self.players[idx]
        replacement = self.phase == GamePhase.AFTER_QUAD
        tile = self.wall.draw_replacement() if replacement else self.wall.draw()
        assert tile is not None, "quads are only allowed while replacements remain"

        player.hand.add_tile(tile)
        player.temporary_furiten = False
        self.after_replacement = replacement
        self.round.turn_count += 1
        self.phase = GamePhase.DISCARD

        logger.debug(f"{player.id} drew {tile}{' (replacement)' if replacement else ''}")
        self._emit(
            EventType.TILE_DRAWN,
            player=player.id,
            is_replacement=replacement,
            remaining=self.wall.remaining,
        )
        return self._commit(tile=tile, remaining=self.wall.remaining)

    def discard(self, player_id: str, tile_id: int) -> CommandResult:
        """Discard a tile and open the call window"""
        idx, error = self._check_turn(player_id, (GamePhase.DISCARD,))
        if error:
            return self._reject(error, "discard", player_id)
        player = self.players[idx]
        tile = player.hand.find_tile(tile_id)
        if tile is None:
            return self._reject(CommandResult.fail(Reason.TILE_NOT_IN_HAND), "discard", player_id)
        if player.is_riichi and (player.hand.drawn_tile is None or player.hand.drawn_tile.id != tile_id):
            return self._reject(CommandResult.fail(Reason.MUST_DISCARD_DRAWN_TILE), "discard", player_id)

        self._discard(idx, tile, is_riichi=False)
        return self._commit(tile=tile)

    def _discard(self, idx: int, tile: Tile, is_riichi: bool) -> None:
        player = self.players[idx]
        tsumogiri = player.hand.drawn_tile is not None and player.hand.drawn_tile.id == tile.id
        player.hand.remove_tile(tile.id)
        player.hand.clear_drawn()
        player.discards.append(Discard(tile, is_riichi, tsumogiri))
        if not is_riichi:
            player.ippatsu = False
        self.after_replacement = False
        assert player.hand.tile_count == 13

        logger.debug(f"{player.id} discarded {tile}")
        self._emit(
            EventType.TILE_DISCARDED,
            player=player.id,
            tile=tile.to_dict(),
            is_riichi=is_riichi,
            is_tsumogiri=tsumogiri,
        )
        self._open_call_window(idx, tile, robbing=False)

    def declare_riichi(self, player_id: str, discard_tile_id: int) -> CommandResult:
        """Declare riichi together with the discard that leaves the hand ready"""
        idx, error = self._check_turn(player_id, (GamePhase.DISCARD,))
        if error:
            return self._reject(error, "riichi", player_id)
        player = self.players[idx]
        reason = self._riichi_problem(player, discard_tile_id)
        if reason is not None:
            return self._reject(CommandResult.fail(reason), "riichi", player_id)

        tile = player.hand.find_tile(discard_tile_id)
        double = not self.calls_made and not player.discards
        player.declare_riichi(self.round.turn_count, double, self.rules.riichi_stick_value)
        self.round.riichi_sticks += 1

        logger.info(f"{player.id} declared {'double ' if double else ''}riichi")
        self._emit(EventType.RIICHI_DECLARED, player=player.id, is_double=double, score=player.score)
        self._discard(idx, tile, is_riichi=True)
        return self._commit(tile=tile, is_double=double)

    def _riichi_problem(self, player: Player, discard_tile_id: int) -> Optional[Reason]:
        if player.is_riichi:
            return Reason.ALREADY_RIICHI
        if not player.hand.is_concealed:
            return Reason.HAND_IS_OPEN
        if player.score < self.rules.min_riichi_points:
            return Reason.INSUFFICIENT_POINTS
        if self.wall.remaining < 4:
            return Reason.WALL_TOO_SHORT
        tile = player.hand.find_tile(discard_tile_id)
        if tile is None:
            return Reason.TILE_NOT_IN_HAND
        remaining = [t for t in player.hand.tiles if t.id != discard_tile_id]
        if not is_tenpai(remaining, player.hand.melds):
            return Reason.NOT_TENPAI
        return None

    # Call window

    def _call_options(self, idx: int, discarder: int, tile: Tile, robbing: bool) -> List[ActionType]:
        player = self.players[idx]
        options = []
        if self._claim_win(idx, tile, robbing)[0] is None:
            options.append(ActionType.WIN_BY_CLAIM)
        if robbing or player.is_riichi or self.wall.is_exhausted:
            return options
        hand = player.hand
        if hand.can_claim_quad(tile) and self.wall.replacements_remaining > 0:
            options.append(ActionType.CLAIM_QUAD)
        if hand.can_claim_triplet(tile):
            options.append(ActionType.CLAIM_TRIPLET)
        if idx == (discarder + 1) % 4 and hand.run_candidates(tile):
            options.append(ActionType.CLAIM_RUN)
        return options

    def _open_call_window(self, discarder: int, tile: Tile, robbing: bool) -> None:
        wins, melds, runs = [], [], []
        for offset in range(1, 4):
            idx = (discarder + offset) % 4
            options = self._call_options(idx, discarder, tile, robbing)
            if ActionType.WIN_BY_CLAIM in options:
                wins.append((idx, options))
            elif ActionType.CLAIM_TRIPLET in options or ActionType.CLAIM_QUAD in options:
                melds.append((idx, options))
            elif options:
                runs.append((idx, options))

        responders = wins + melds + runs
        if not responders:
            self._close_call_window(discarder, robbing)
            return
        self.call_window = CallWindow(discarder, tile, responders, robbing)
        self.phase = GamePhase.CALL_WAIT
        self.current_player = responders[0][0]

    def _close_call_window(self, discarder: int, robbing: bool) -> None:
        """Nobody claimed: the quad declarer draws, or play passes on"""
        self.call_window = None
        if robbing:
            self.current_player = discarder
            self.phase = GamePhase.AFTER_QUAD
        elif self.wall.is_exhausted:
            self._exhaustive_draw()
        else:
            self.current_player = (discarder + 1) % 4
            self.phase = GamePhase.DRAW

    def _check_call(self, player_id: str, action: ActionType) -> Tuple[Optional[int], Optional[CommandResult]]:
        idx, error = self._check_turn(player_id, (GamePhase.CALL_WAIT,))
        if error:
            return None, error
        if action not in self.call_window.current[1]:
            return None, CommandResult.fail(Reason.CALL_NOT_AVAILABLE, action.name)
        return idx, None

    def _take_discard(self, idx: int) -> Tuple[Tile, MeldSource]:
        """Mark the discard in the call window as claimed by idx"""
        window = self.call_window
        self.players[window.discarder].discards[-1].is_claimed = True
        self.call_window = None
        return window.tile, MeldSource.relative(idx, window.discarder)

    def _after_call(self, idx: int, meld: Meld, phase: GamePhase) -> None:
        self.calls_made = True
        for p in self.players:
            p.ippatsu = False
        self.current_player = idx
        self.phase = phase
        self._emit(EventType.MELD_DECLARED, player=self.players[idx].id, kind=self._meld_kind(meld),
                   meld=meld.to_dict())

    @staticmethod
    def _meld_kind(meld: Meld) -> str:
        if meld.meld_type == MeldType.QUAD:
            return f"{meld.quad_kind.name.lower()}_quad"
        return meld.meld_type.name.lower()

    def claim_run(self, player_id: str, tile_ids: Sequence[int]) -> CommandResult:
        """Claim the discard from the left to complete a run with two held tiles"""
        return self._claim(player_id, tile_ids, ActionType.CLAIM_RUN, 2, Meld.run, GamePhase.DISCARD)

    def claim_triplet(self, player_id: str, tile_ids: Sequence[int]) -> CommandResult:
        """Claim the discard to complete a triplet with two held tiles"""
        return self._claim(player_id, tile_ids, ActionType.CLAIM_TRIPLET, 2, Meld.triplet, GamePhase.DISCARD)

    def claim_quad(self, player_id: str, tile_ids: Sequence[int]) -> CommandResult:
        """Claim the discard to complete a quad with three held tiles"""
        return self._claim(player_id, tile_ids, ActionType.CLAIM_QUAD, 3, Meld.open_quad, GamePhase.AFTER_QUAD)

    def _claim(
        self,
        player_id: str,
        tile_ids: Sequence[int],
        action: ActionType,
        needed: int,
        factory: Callable[..., Meld],
        next_phase: GamePhase,
    ) -> CommandResult:
        command = action.name.lower()
        idx, error = self._check_call(player_id, action)
        if error:
            return self._reject(error, command, player_id)
        tile_ids = list(tile_ids)
        if len(tile_ids) != needed:
            return self._reject(CommandResult.fail(Reason.NOT_ENOUGH_TILES), command, player_id)
        player = self.players[idx]
        tiles = player.hand.find_tiles(tile_ids)
        if tiles is None:
            return self._reject(CommandResult.fail(Reason.TILE_NOT_IN_HAND), command, player_id)
        window = self.call_window
        try:
            meld = factory(tiles + [window.tile], window.tile, MeldSource.relative(idx, window.discarder))
        except ValueError as e:
            return self._reject(CommandResult.fail(Reason.INVALID_MELD, str(e)), command, player_id)

        self._take_discard(idx)
        for tile_id in tile_ids:
            player.hand.remove_tile(tile_id)
        player.hand.add_meld(meld)
        if meld.is_quad:
            self.kan_count += 1
        logger.debug(f"{player.id} claimed {meld}")
        self._after_call(idx, meld, next_phase)
        return self._commit(meld=meld)

    def declare_self_quad(self, player_id: str, tile_ids: Sequence[int]) -> CommandResult:
        """Declare a concealed quad from four held tiles"""
        idx, error = self._check_turn(player_id, (GamePhase.DISCARD,))
        if error:
            return self._reject(error, "self_quad", player_id)
        player = self.players[idx]
        if player.hand.drawn_tile is None:
            return self._reject(CommandResult.fail(Reason.WRONG_PHASE, "quads follow a draw"), "self_quad", player_id)
        tile_ids = list(tile_ids)
        if len(tile_ids) != 4:
            return self._reject(CommandResult.fail(Reason.NOT_ENOUGH_TILES), "self_quad", player_id)
        tiles = player.hand.find_tiles(tile_ids)
        if tiles is None:
            return self._reject(CommandResult.fail(Reason.TILE_NOT_IN_HAND), "self_quad", player_id)
        reason = self._quad_problem()
        if reason is not None:
            return self._reject(CommandResult.fail(reason), "self_quad", player_id)
        try:
            meld = Meld.concealed_quad(tiles)
        except ValueError as e:
            return self._reject(CommandResult.fail(Reason.INVALID_MELD, str(e)), "self_quad", player_id)
        if player.is_riichi and not self._riichi_quad_allowed(player, meld):
            return self._reject(CommandResult.fail(Reason.INVALID_MELD, "changes riichi wait"), "self_quad", player_id)

        for tile_id in tile_ids:
            player.hand.remove_tile(tile_id)
        player.hand.add_meld(meld)
        player.hand.clear_drawn()
        self.kan_count += 1
        logger.debug(f"{player.id} declared {meld}")
        self._after_call(idx, meld, GamePhase.AFTER_QUAD)
        return self._commit(meld=meld, dora_indicators=self._dora_indicators())

    def _quad_problem(self) -> Optional[Reason]:
        if self.wall.replacements_remaining <= 0:
            return Reason.QUAD_LIMIT
        if self.wall.is_exhausted:
            return Reason.WALL_TOO_SHORT
        return None

    def _riichi_quad_allowed(self, player: Player, meld: Meld) -> bool:
        """In riichi a concealed quad may only use the drawn tile and must keep the same waits"""
        drawn = player.hand.drawn_tile
        if drawn is None or drawn != meld.base_tile:
            return False
        before = [t for t in player.hand.tiles if t.id != drawn.id]
        after = [t for t in player.hand.tiles if not any(t.is_same(m) for m in meld.tiles)]
        waits_before = waiting_tiles(before, player.hand.melds)
        waits_after = waiting_tiles(after, player.hand.melds + [meld])
        return bool(waits_before) and waits_before == waits_after

    def upgrade_triplet_to_quad(self, player_id: str, meld_index: int, tile_id: int) -> CommandResult:
        """Add the fourth tile to a claimed triplet; others may rob it"""
        idx, error = self._check_turn(player_id, (GamePhase.DISCARD,))
        if error:
            return self._reject(error, "upgrade_quad", player_id)
        player = self.players[idx]
        if player.hand.drawn_tile is None:
            return self._reject(CommandResult.fail(Reason.WRONG_PHASE, "quads follow a draw"), "upgrade_quad", player_id)
        melds = player.hand.melds
        if not isinstance(meld_index, int) or not 0 <= meld_index < len(melds):
            return self._reject(CommandResult.fail(Reason.NO_SUCH_MELD), "upgrade_quad", player_id)
        if melds[meld_index].meld_type != MeldType.TRIPLET:
            return self._reject(CommandResult.fail(Reason.NO_SUCH_MELD), "upgrade_quad", player_id)
        tile = player.hand.find_tile(tile_id)
        if tile is None:
            return self._reject(CommandResult.fail(Reason.TILE_NOT_IN_HAND), "upgrade_quad", player_id)
        if tile != melds[meld_index].base_tile:
            return self._reject(CommandResult.fail(Reason.INVALID_MELD), "upgrade_quad", player_id)
        reason = self._quad_problem()
        if reason is not None:
            return self._reject(CommandResult.fail(reason), "upgrade_quad", player_id)

        meld = melds[meld_index].upgrade(tile)
        player.hand.remove_tile(tile_id)
        player.hand.clear_drawn()
        player.hand.replace_meld(meld_index, meld)
        self.kan_count += 1
        logger.debug(f"{player.id} upgraded to {meld}")
        self._after_call(idx, meld, GamePhase.AFTER_QUAD)
        self._open_call_window(idx, tile, robbing=True)
        return self._commit(meld=meld, dora_indicators=self._dora_indicators())

    def pass_on_call(self, player_id: str) -> CommandResult:
        """Decline to claim the tile in the call window"""
        idx, error = self._check_turn(player_id, (GamePhase.CALL_WAIT,))
        if error:
            return self._reject(error, "pass", player_id)
        window = self.call_window
        _, options = window.responders.pop(0)
        player = self.players[idx]
        if ActionType.WIN_BY_CLAIM in options:
            player.temporary_furiten = True
            if player.is_riichi:
                player.riichi_furiten = True

        if window.responders:
            self.current_player = window.responders[0][0]
        else:
            self._close_call_window(window.discarder, window.robbing)
        return self._commit()

    # Wins and draws

    def declare_win_by_draw(self, player_id: str) -> CommandResult:
        """Tsumo: win on the tile just drawn"""
        idx, error = self._check_turn(player_id, (GamePhase.DISCARD,))
        if error:
            return self._reject(error, "tsumo", player_id)
        player = self.players[idx]
        drawn = player.hand.drawn_tile
        if drawn is None:
            return self._reject(CommandResult.fail(Reason.NOT_A_WINNING_HAND), "tsumo", player_id)
        hand, result = self._score_win(idx, player.hand.tiles, drawn, WinType.SELF_DRAW)
        if not hand.is_winning:
            return self._reject(CommandResult.fail(Reason.NOT_A_WINNING_HAND), "tsumo", player_id)
        if result is None:
            return self._reject(CommandResult.fail(Reason.NO_YAKU), "tsumo", player_id)

        deltas = self._settle_win(idx, result, None)
        return self._commit(score=result.to_dict(), deltas=deltas)

    def declare_win_by_claim(self, player_id: str) -> CommandResult:
        """Ron: win on the tile in the call window"""
        idx, error = self._check_turn(player_id, (GamePhase.CALL_WAIT,))
        if error:
            return self._reject(error, "ron", player_id)
        window = self.call_window
        reason, result = self._claim_win(idx, window.tile, window.robbing)
        if reason is not None:
            return self._reject(CommandResult.fail(reason), "ron", player_id)

        discarder = window.discarder
        if window.robbing:
            self.call_window = None
        else:
            self._take_discard(idx)
            self._return_riichi_stick(discarder)
        deltas = self._settle_win(idx, result, discarder)
        return self._commit(score=result.to_dict(), deltas=deltas)

    def _return_riichi_stick(self, discarder: int) -> None:
        """A riichi whose declaration tile is won on never takes effect"""
        player = self.players[discarder]
        if not player.discards or not player.discards[-1].is_riichi:
            return
        player.score += self.rules.riichi_stick_value
        player.status = RiichiStatus.NORMAL
        player.ippatsu = False
        self.round.riichi_sticks -= 1
        logger.debug(f"Riichi stick returned to {player.id}")

    def _settle_win(self, winner: int, result: ScoreResult, discarder: Optional[int]) -> Dict[str, int]:
        deltas = [0, 0, 0, 0]
        payment = result.payment
        if discarder is not None:
            deltas[discarder] -= payment.from_discarder
            deltas[winner] += payment.from_discarder
        else:
            for p in self.players:
                if p.seat == winner:
                    continue
                owed = payment.from_dealer if p.seat == self.round.dealer_seat else payment.from_each_non_dealer
                deltas[p.seat] -= owed
                deltas[winner] += owed
        deltas[winner] += self.round.riichi_sticks * self.rules.riichi_stick_value
        self.round.riichi_sticks = 0
        for p in self.players:
            p.score += deltas[p.seat]

        winner_id = self.players[winner].id
        win_type = "claim" if discarder is not None else "draw"
        logger.info(f"{winner_id} won by {win_type}: {result!r}")
        self._emit(
            EventType.WIN_BY_CLAIM if discarder is not None else EventType.WIN_BY_DRAW,
            player=winner_id,
            discarder=self.players[discarder].id if discarder is not None else None,
            hand=[t.to_dict() for t in self.players[winner].hand.tiles],
            score=result.to_dict(),
            hidden_dora_indicators=[t.to_dict() for t in self._hidden_dora_indicators()]
            if self.players[winner].is_riichi else [],
        )
        named = {p.id: deltas[p.seat] for p in self.players}
        self._emit(EventType.SCORE_TRANSFERRED, deltas=named, scores={p.id: p.score for p in self.players})

        self.round.status = RoundStatus.WON
        self.phase = GamePhase.WIN
        self._record_round("win", named, winner=winner_id,
                           discarder=self.players[discarder].id if discarder is not None else None,
                           score=result.to_dict())
        self._end_round(dealer_won=winner == self.round.dealer_seat, is_draw=False, dealer_tenpai=True)
        return named

    def _exhaustive_draw(self) -> None:
        tenpai = [p.seat for p in self.players if is_tenpai(p.hand.tiles, p.hand.melds)]
        noten = [p.seat for p in self.players if p.seat not in tenpai]
        deltas = [0, 0, 0, 0]
        if tenpai and noten:
            for seat in noten:
                deltas[seat] -= self.rules.noten_payment // len(noten)
            for seat in tenpai:
                deltas[seat] += self.rules.noten_payment // len(tenpai)
        for p in self.players:
            p.score += deltas[p.seat]

        self.round.status = RoundStatus.DRAWN
        self.round.draw_type = DrawType.EXHAUSTIVE
        self.phase = GamePhase.EXHAUSTIVE_DRAW
        named = {p.id: deltas[p.seat] for p in self.players}
        tenpai_ids = [self.players[s].id for s in tenpai]
        logger.info(f"Exhaustive draw, tenpai: {tenpai_ids}")
        self._emit(EventType.ROUND_DRAWN, draw_type=DrawType.EXHAUSTIVE.name, tenpai=tenpai_ids)
        self._emit(EventType.SCORE_TRANSFERRED, deltas=named, scores={p.id: p.score for p in self.players})
        self._record_round("draw", named, draw_type=DrawType.EXHAUSTIVE.name, tenpai=tenpai_ids)
        self._end_round(dealer_won=False, is_draw=True, dealer_tenpai=self.round.dealer_seat in tenpai)

    def declare_abort(self, player_id: str) -> CommandResult:
        """Abort the round with nine or more distinct terminals and honors on the first draw"""
        idx, error = self._check_turn(player_id, (GamePhase.DISCARD,))
        if error:
            return self._reject(error, "abort", player_id)
        player = self.players[idx]
        if not self._can_abort(player):
            return self._reject(CommandResult.fail(Reason.ABORT_NOT_ALLOWED), "abort", player_id)

        self.round.status = RoundStatus.DRAWN
        self.round.draw_type = DrawType.NINE_TERMINALS
        self.phase = GamePhase.EXHAUSTIVE_DRAW
        logger.info(f"{player.id} aborted the round with nine terminals")
        self._emit(EventType.ROUND_DRAWN, draw_type=DrawType.NINE_TERMINALS.name, player=player.id)
        self._record_round("draw", {p.id: 0 for p in self.players}, draw_type=DrawType.NINE_TERMINALS.name)
        self._end_round(dealer_won=False, is_draw=True, dealer_tenpai=False)
        return self._commit()

    def _can_abort(self, player: Player) -> bool:
        return (
            self.rules.abortive_draw
            and not self.calls_made
            and not player.discards
            and player.hand.drawn_tile is not None
            and player.hand.nine_terminal_types() >= 9
        )

    def _record_round(self, outcome: str, deltas: Dict[str, int], **details) -> None:
        record = {
            "round": self.round.name,
            "honba": self.round.honba,
            "dealer": self.players[self.round.dealer_seat].id,
            "outcome": outcome,
            "deltas": dict(deltas),
            "scores": {p.id: p.score for p in self.players},
        }
        record.update(details)
        self.history.append(record)

    def _end_round(self, dealer_won: bool, is_draw: bool, dealer_tenpai: bool) -> None:
        """Move to the next round or finish the match"""
        if self.rules.tobi and any(p.score < 0 for p in self.players):
            self._finish_match()
            return

        next_round = RoundManager.next_round(self.round, dealer_won, is_draw)
        if next_round is None:
            self._finish_match()
            return
        if RoundManager.is_match_finished(self.round, self.rules.game_length):
            dealer_repeats = dealer_won or (is_draw and dealer_tenpai)
            if not (dealer_repeats and self.rules.dealer_continuation_in_last):
                self._finish_match()
                return

        self.round = next_round
        self._start_round()

    # Action dispatch

    def step(self, action: Action) -> CommandResult:
        """
        Execute an action from legal_actions (or any well-formed action).

        Returns:
            The CommandResult of the underlying command
        """
        handlers = {
            ActionType.DRAW: lambda a: self.draw(a.player_id),
            ActionType.DISCARD: lambda a: self.discard(a.player_id, a.tile_id),
            ActionType.RIICHI: lambda a: self.declare_riichi(a.player_id, a.tile_id),
            ActionType.CLAIM_RUN: lambda a: self.claim_run(a.player_id, a.tile_ids or []),
            ActionType.CLAIM_TRIPLET: lambda a: self.claim_triplet(a.player_id, a.tile_ids or []),
            ActionType.CLAIM_QUAD: lambda a: self.claim_quad(a.player_id, a.tile_ids or []),
            ActionType.SELF_QUAD: lambda a: self.declare_self_quad(a.player_id, a.tile_ids or []),
            ActionType.UPGRADE_QUAD: lambda a: self.upgrade_triplet_to_quad(a.player_id, a.meld_index, a.tile_id),
            ActionType.WIN_BY_DRAW: lambda a: self.declare_win_by_draw(a.player_id),
            ActionType.WIN_BY_CLAIM: lambda a: self.declare_win_by_claim(a.player_id),
            ActionType.PASS: lambda a: self.pass_on_call(a.player_id),
            ActionType.ABORT: lambda a: self.declare_abort(a.player_id),
        }
        handler = handlers.get(action.action_type)
        if handler is None:
            return CommandResult.fail(Reason.UNKNOWN_ACTION)
        return handler(action)

    def legal_actions(self, player_id: str) -> List[Action]:
        """Every action the player may take right now (empty when it is not their turn)"""
        idx = self._index_of(player_id)
        if self.status != GameStatus.IN_PROGRESS or idx is None or idx != self.current_player:
            return []
        if self.phase in (GamePhase.DRAW, GamePhase.AFTER_QUAD):
            return [Action(ActionType.DRAW, player_id)]
        if self.phase == GamePhase.CALL_WAIT:
            return self._call_actions(idx, player_id)
        if self.phase == GamePhase.DISCARD:
            return self._turn_actions(idx, player_id)
        return []

    def _call_actions(self, idx: int, player_id: str) -> List[Action]:
        window = self.call_window
        hand = self.players[idx].hand
        actions = []
        for option in window.current[1]:
            if option == ActionType.WIN_BY_CLAIM:
                actions.append(Action(option, player_id))
            elif option == ActionType.CLAIM_QUAD:
                actions.append(Action(option, player_id, tile_ids=[t.id for t in hand.matching_tiles(window.tile, 3)]))
            elif option == ActionType.CLAIM_TRIPLET:
                actions.append(Action(option, player_id, tile_ids=[t.id for t in hand.matching_tiles(window.tile, 2)]))
            elif option == ActionType.CLAIM_RUN:
                for first, second in hand.run_candidates(window.tile):
                    actions.append(Action(option, player_id, tile_ids=[first.id, second.id]))
        actions.append(Action(ActionType.PASS, player_id))
        return actions

    def _turn_actions(self, idx: int, player_id: str) -> List[Action]:
        player = self.players[idx]
        hand = player.hand
        actions = []

        if hand.drawn_tile is not None:
            _, result = self._score_win(idx, hand.tiles, hand.drawn_tile, WinType.SELF_DRAW)
            if result is not None:
                actions.append(Action(ActionType.WIN_BY_DRAW, player_id))
            if self._can_abort(player):
                actions.append(Action(ActionType.ABORT, player_id))

        if hand.drawn_tile is not None and self._quad_problem() is None:
            for face in hand.self_quad_candidates():
                meld = Meld.concealed_quad(hand.matching_tiles(face, 4))
                if not player.is_riichi or self._riichi_quad_allowed(player, meld):
                    actions.append(Action(ActionType.SELF_QUAD, player_id, tile_ids=[t.id for t in meld.tiles]))
            for meld_index, tile in hand.upgrade_candidates():
                actions.append(Action(ActionType.UPGRADE_QUAD, player_id, tile_id=tile.id, meld_index=meld_index))

        if player.is_riichi:
            actions.append(Action(ActionType.DISCARD, player_id, tile_id=hand.drawn_tile.id))
            return actions

        riichi_faces: Dict[int, bool] = {}
        for tile in hand.tiles:
            if tile.tile_index not in riichi_faces:
                riichi_faces[tile.tile_index] = self._riichi_problem(player, tile.id) is None
            if riichi_faces[tile.tile_index]:
                actions.append(Action(ActionType.RIICHI, player_id, tile_id=tile.id))
        for tile in hand.tiles:
            actions.append(Action(ActionType.DISCARD, player_id, tile_id=tile.id))
        return actions

    # Queries

    def match_state(self) -> Dict:
        """Public overview of the match"""
        window = self.call_window
        return {
            "status": self.status.name,
            "phase": self.phase.name,
            "round": self.round.to_dict(),
            "round_name": self.round.name,
            "current_player": self.current_player_id,
            "scores": {p.id: p.score for p in self.players},
            "wall_remaining": self.wall.remaining if self.wall is not None else None,
            "kan_count": self.kan_count,
            "dora_indicators": [t.to_dict() for t in self.dora_indicators()],
            "call_tile": window.tile.to_dict() if window else None,
        }

    def player_public_info(self, player_id: str) -> Optional[Dict]:
        idx = self._index_of(player_id)
        if idx is None:
            return None
        return self.players[idx].public_info()

    def own_hand(self, player_id: str) -> Optional[Dict]:
        """Concealed tiles and melds, for the owning player only"""
        idx = self._index_of(player_id)
        if idx is None:
            return None
        hand = self.players[idx].hand
        return {"tiles": hand.tiles, "melds": hand.melds, "drawn_tile": hand.drawn_tile}

    def discard_piles(self) -> Dict[str, List[Dict]]:
        return {p.id: [d.to_dict() for d in p.discards] for p in self.players}

    def dora_indicators(self) -> List[Tile]:
        if self.wall is None:
            return []
        return self._dora_indicators()

    def match_history(self) -> List[Dict]:
        return copy.deepcopy(self.history)

    def waiting_tiles(self, player_id: str) -> List[Tile]:
        """Faces that would complete the player's 13-tile hand"""
        idx = self._index_of(player_id)
        if idx is None:
            return []
        hand = self.players[idx].hand
        return waiting_tiles(hand.tiles, hand.melds)

    # Snapshot

    def to_dict(self) -> Dict:
        return {
            "version": SNAPSHOT_VERSION,
            "rules": self.rules.to_dict(),
            "seed": self.seed,
            "status": int(self.status),
            "phase": int(self.phase),
            "round": self.round.to_dict(),
            "wall": self.wall.to_dict() if self.wall is not None else None,
            "players": [p.to_dict() for p in self.players],
            "current_player": self.current_player,
            "round_serial": self.round_serial,
            "kan_count": self.kan_count,
            "calls_made": self.calls_made,
            "after_replacement": self.after_replacement,
            "call_window": self.call_window.to_dict() if self.call_window else None,
            "history": copy.deepcopy(self.history),
            "queued_walls": [w.to_dict() for w in self._queued_walls],
            "event_sequence": self._event_sequence,
        }

    @classmethod
    def from_dict(cls, data: Dict, subscribers: Optional[Iterable[Subscriber]] = None) -> 'Game':
        """
        Rebuild a game from to_dict output. The restored game continues
        exactly as the original would have.

        Raises:
            ValueError: If the snapshot version is not supported
        """
        if data.get("version") != SNAPSHOT_VERSION:
            raise ValueError(f"Unsupported snapshot version: {data.get('version')}")
        players = [Player.from_dict(p) for p in data["players"]]
        game = cls(
            [p.id for p in players],
            GameRules.from_dict(data["rules"]),
            seed=data["seed"],
            names=[p.name for p in players],
            subscribers=subscribers,
            walls=[Wall.from_dict(w) for w in data["queued_walls"]],
        )
        game.players = players
        game.status = GameStatus(data["status"])
        game.phase = GamePhase(data["phase"])
        game.round = Round.from_dict(data["round"])
        game.wall = Wall.from_dict(data["wall"]) if data["wall"] else None
        game.current_player = data["current_player"]
        game.round_serial = data["round_serial"]
        game.kan_count = data["kan_count"]
        game.calls_made = data["calls_made"]
        game.after_replacement = data["after_replacement"]
        game.call_window = CallWindow.from_dict(data["call_window"]) if data["call_window"] else None
        game.history = copy.deepcopy(data["history"])
        game._event_sequence = data["event_sequence"]
        return game

    def __repr__(self) -> str:
        return (
            f"Game({self.status.name}, {self.round.name}, phase={self.phase.name}, "
            f"current={self.current_player_id})"
        )


def create_match(
    player_ids: Sequence[str],
    rules: Optional[GameRules] = None,
    **kwargs,
) -> CommandResult:
    """
    Command form of match creation.

    Returns:
        A successful CommandResult with the game in data["game"], or a
        failure with Reason.INVALID_PLAYERS
    """
    try:
        game = Game(player_ids, rules, **kwargs)
    except ValueError as e:
        logger.warning(f"Rejected create_match: {e}")
        return CommandResult.fail(Reason.INVALID_PLAYERS, str(e))
    return CommandResult(True, None, {"game": game})
