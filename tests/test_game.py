"""
Tests for the match engine: lifecycle, turns, calls, wins and draws
"""

import pytest

from riichi_engine.tiles import man, sou, NORTH
from riichi_engine.meld import MeldSource
from riichi_engine.rules import GameRules
from riichi_engine.round import RoundStatus
from riichi_engine.player import RiichiStatus
from riichi_engine.events import EventType
from riichi_engine.game import (
    Game, GameStatus, GamePhase, Action, ActionType, Reason, create_match,
)

from helpers import (
    PLAYERS, QUIET_HANDS, DEALER_DISCARDS_4S, PINFU_WAIT, RON_HANDS,
    make_game, hand_ids, play_out_round,
)

# Ready on the deal, waiting on 4s-7s
READY_HAND = "123m456m789m11p56s"
RIICHI_HANDS = [READY_HAND] + QUIET_HANDS


def ron_game():
    game = make_game(RON_HANDS, draws="6z", dora="8m")
    assert game.draw("alice").success
    return game


def tsumogiri(game, player_id):
    assert game.draw(player_id).success
    drawn = game.own_hand(player_id)["drawn_tile"]
    assert game.discard(player_id, drawn.id).success


def types(events):
    return [e.event_type for e in events]


class TestLifecycle:
    """Match creation, start and end"""

    def test_needs_four_distinct_players(self):
        """Constructor rejects bad player lists"""
        with pytest.raises(ValueError):
            Game(PLAYERS[:3])
        with pytest.raises(ValueError):
            Game(["a", "a", "b", "c"])

    def test_create_match_command(self):
        """create_match reports failures as a reason"""
        result = create_match(["a", "a", "b", "c"])
        assert not result
        assert result.reason == Reason.INVALID_PLAYERS
        result = create_match(PLAYERS, seed=1)
        assert result.success
        assert result.data["game"].status == GameStatus.NOT_STARTED

    def test_start(self):
        """Starting deals thirteen tiles each and hands the turn to the dealer"""
        game = Game(PLAYERS, seed=1)
        assert game.draw("alice").reason == Reason.GAME_NOT_STARTED
        assert game.start().success
        assert game.status == GameStatus.IN_PROGRESS
        assert game.phase == GamePhase.DRAW
        assert game.current_player_id == "alice"
        assert game.round.status == RoundStatus.IN_PROGRESS
        assert all(len(p.hand) == 13 for p in game.players)
        assert game.wall.remaining == 70
        assert game.start().reason == Reason.GAME_ALREADY_STARTED

    def test_seeded_deals_repeat(self):
        """Same seed, same deal"""
        a = Game(PLAYERS, seed=99)
        b = Game(PLAYERS, seed=99)
        a.start()
        b.start()
        assert a.to_dict() == b.to_dict()

    def test_end_match(self):
        """Ending early ranks players and blocks further commands"""
        game = Game(PLAYERS, seed=1)
        assert game.end_match().reason == Reason.GAME_NOT_STARTED
        game.start()
        result = game.end_match()
        assert result.success
        assert [s["id"] for s in result.data["standings"]] == PLAYERS
        assert [s["rank"] for s in result.data["standings"]] == [1, 2, 3, 4]
        assert game.status == GameStatus.FINISHED
        assert game.draw("alice").reason == Reason.GAME_FINISHED
        assert game.start().reason == Reason.GAME_FINISHED
        assert game.legal_actions("alice") == []
        assert game.current_player_id is None


class TestEvents:
    """Event delivery"""

    def test_events_published_in_order(self):
        """Subscribers see accepted events in sequence"""
        seen = []
        game = Game(PLAYERS, seed=3, subscribers=[seen.append])
        result = game.start()
        assert types(seen) == [EventType.MATCH_STARTED, EventType.ROUND_STARTED]
        assert [e.sequence for e in seen] == [1, 2]
        assert result.events == seen

    def test_rejected_command_publishes_nothing(self):
        """A failed command emits no events"""
        seen = []
        game = Game(PLAYERS, seed=3)
        game.start()
        game.subscribe(seen.append)
        result = game.draw("bob")
        assert result.reason == Reason.NOT_YOUR_TURN
        assert result.events == []
        assert seen == []

    def test_broken_subscriber_is_isolated(self):
        """A raising subscriber does not stop the game or other subscribers"""
        def broken(event):
            raise RuntimeError("boom")

        seen = []
        game = Game(PLAYERS, seed=3, subscribers=[broken, seen.append])
        assert game.start().success
        assert len(seen) == 2


class TestTurns:
    """Drawing and discarding"""

    def test_draw_and_discard(self):
        """A discard nobody can claim passes the turn"""
        game = make_game(RIICHI_HANDS, draws="7z")
        result = game.draw("alice")
        assert result.success
        assert result.data["tile"].is_same(game.own_hand("alice")["drawn_tile"])
        assert game.phase == GamePhase.DISCARD
        result = game.discard("alice", hand_ids(game, "alice", "7z")[0])
        assert result.success
        assert types(result.events) == [EventType.TILE_DISCARDED]
        assert game.current_player_id == "bob"
        assert game.phase == GamePhase.DRAW
        assert game.discard_piles()["alice"][0]["is_tsumogiri"]

    def test_rejections_leave_state_untouched(self):
        """Wrong player, wrong phase, unknown player and unknown tile"""
        game = make_game(RIICHI_HANDS)
        before = game.to_dict()
        assert game.draw("bob").reason == Reason.NOT_YOUR_TURN
        assert game.draw("zoe").reason == Reason.UNKNOWN_PLAYER
        assert game.discard("alice", 0).reason == Reason.WRONG_PHASE
        assert game.to_dict() == before
        game.draw("alice")
        held = {t.id for t in game.own_hand("alice")["tiles"]}
        missing = next(i for i in range(136) if i not in held)
        before = game.to_dict()
        assert game.discard("alice", missing).reason == Reason.TILE_NOT_IN_HAND
        assert game.to_dict() == before

    def test_queries(self):
        """Public views and the owner's hand"""
        game = make_game(RON_HANDS, dora="8m")
        state = game.match_state()
        assert state["status"] == "IN_PROGRESS"
        assert state["current_player"] == "alice"
        assert state["wall_remaining"] == 70
        assert game.dora_indicators() == [man(8)]
        info = game.player_public_info("bob")
        assert info["concealed_count"] == 13
        assert "tiles" not in info
        assert game.own_hand("zoe") is None
        assert game.waiting_tiles("bob") == [sou(1), sou(4)]
        assert game.waiting_tiles("carol") == []

    def test_history_is_a_copy(self):
        """match_history cannot be used to edit the game"""
        game = make_game(RON_HANDS, draws="6z", dora="8m")
        game.draw("alice")
        game.discard("alice", hand_ids(game, "alice", "4s")[0])
        game.declare_win_by_claim("bob")
        history = game.match_history()
        history[0]["outcome"] = "edited"
        assert game.history[0]["outcome"] == "win"


class TestCalls:
    """Claiming discards"""

    def test_call_window_opens(self):
        """The player who can win or chi gets the window"""
        game = ron_game()
        game.discard("alice", hand_ids(game, "alice", "4s")[0])
        assert game.phase == GamePhase.CALL_WAIT
        assert game.current_player_id == "bob"
        assert game.match_state()["call_tile"]["value"] == 4
        kinds = {a.action_type for a in game.legal_actions("bob")}
        assert kinds == {ActionType.WIN_BY_CLAIM, ActionType.CLAIM_RUN, ActionType.PASS}

    def test_claim_run(self):
        """Chi from the left; the hand is then open"""
        game = ron_game()
        game.discard("alice", hand_ids(game, "alice", "4s")[0])
        result = game.claim_run("bob", hand_ids(game, "bob", "23s"))
        assert result.success
        assert result.data["meld"].source == MeldSource.LEFT
        assert game.phase == GamePhase.DISCARD
        assert game.current_player_id == "bob"
        assert game.discard_piles()["alice"][0]["is_claimed"]
        assert types(result.events) == [EventType.MELD_DECLARED]
        assert game.declare_riichi("bob", hand_ids(game, "bob", "5p")[0]).reason == Reason.HAND_IS_OPEN

    def test_invalid_run(self):
        """Tiles that do not form a run are rejected"""
        game = ron_game()
        game.discard("alice", hand_ids(game, "alice", "4s")[0])
        before = game.to_dict()
        result = game.claim_run("bob", hand_ids(game, "bob", "2s5p"))
        assert result.reason == Reason.INVALID_MELD
        assert game.claim_run("bob", hand_ids(game, "bob", "2s")).reason == Reason.NOT_ENOUGH_TILES
        assert game.claim_triplet("bob", hand_ids(game, "bob", "55p")).reason == Reason.CALL_NOT_AVAILABLE
        assert game.to_dict() == before

    def test_claim_triplet_across(self):
        """Pon from the opposite seat skips the player in between"""
        hands = [DEALER_DISCARDS_4S, PINFU_WAIT, "258m369p147s1155z", QUIET_HANDS[2]]
        game = make_game(hands, draws="5z", dora="8m")
        game.draw("alice")
        game.discard("alice", game.own_hand("alice")["drawn_tile"].id)
        assert game.current_player_id == "carol"
        assert game.draw("alice").reason == Reason.NOT_YOUR_TURN
        result = game.claim_triplet("carol", hand_ids(game, "carol", "55z"))
        assert result.success
        assert result.data["meld"].source == MeldSource.ACROSS
        assert game.calls_made

    def test_pass_sets_temporary_furiten(self):
        """Passing on a win blocks claims until the next draw"""
        game = ron_game()
        game.discard("alice", hand_ids(game, "alice", "4s")[0])
        assert game.pass_on_call("bob").success
        assert game.players[1].temporary_furiten
        assert game.current_player_id == "bob"
        assert game.phase == GamePhase.DRAW
        game.draw("bob")
        assert not game.players[1].temporary_furiten

    def test_furiten_blocks_ron(self):
        """A furiten player is not offered the win and cannot take it"""
        game = ron_game()
        game.players[1].temporary_furiten = True
        game.discard("alice", hand_ids(game, "alice", "4s")[0])
        kinds = {a.action_type for a in game.legal_actions("bob")}
        assert ActionType.WIN_BY_CLAIM not in kinds
        assert game.declare_win_by_claim("bob").reason == Reason.FURITEN


class TestWins:
    """Winning by claim and by self-draw"""

    def test_ron(self):
        """Pinfu ron pays 1000 and the deal passes on"""
        game = ron_game()
        game.discard("alice", hand_ids(game, "alice", "4s")[0])
        result = game.declare_win_by_claim("bob")
        assert result.success
        assert result.data["deltas"] == {"alice": -1000, "bob": 1000, "carol": 0, "dave": 0}
        assert result.data["score"]["han"] == 1
        assert result.data["score"]["fu"] == 30
        assert types(result.events)[:2] == [EventType.WIN_BY_CLAIM, EventType.SCORE_TRANSFERRED]
        record = game.history[0]
        assert (record["winner"], record["discarder"], record["outcome"]) == ("bob", "alice", "win")
        assert game.round.name == "East 2"
        assert game.round.dealer_seat == 1
        assert game.current_player_id == "bob"

    def test_yakuhai_ron(self):
        """Open white dragons, two-sided wait: 1 han 30 fu pays 1000"""
        hands = [DEALER_DISCARDS_4S, "1239m45699p23s55z", QUIET_HANDS[1], QUIET_HANDS[2]]
        game = make_game(hands, draws="5z7z6z8p", dora="8m")
        tsumogiri(game, "alice")
        assert game.current_player_id == "bob"
        assert game.claim_triplet("bob", hand_ids(game, "bob", "55z")).success
        assert game.discard("bob", hand_ids(game, "bob", "9m")[0]).success
        tsumogiri(game, "carol")
        tsumogiri(game, "dave")
        game.draw("alice")
        game.discard("alice", hand_ids(game, "alice", "4s")[0])
        assert game.current_player_id == "bob"

        result = game.declare_win_by_claim("bob")
        assert result.success
        assert [y["kind"] for y in result.data["score"]["yaku"]] == ["YAKUHAI_WHITE"]
        assert (result.data["score"]["han"], result.data["score"]["fu"]) == (1, 30)
        assert result.data["deltas"] == {"alice": -1000, "bob": 1000, "carol": 0, "dave": 0}

    def test_tenhou(self):
        """Dealer winning on the first draw is a yakuman"""
        game = make_game(["123m456m789m11p23s"] + QUIET_HANDS, draws="4s")
        game.draw("alice")
        kinds = {a.action_type for a in game.legal_actions("alice")}
        assert ActionType.WIN_BY_DRAW in kinds
        result = game.declare_win_by_draw("alice")
        assert result.success
        assert result.data["score"]["yaku"][0]["kind"] == "TENHOU"
        assert [p.score for p in game.players] == [73000, 9000, 9000, 9000]
        assert game.round.name == "East 1"
        assert game.round.honba == 1

    def test_tsumo_needs_winning_hand(self):
        """A hand that is not complete cannot declare tsumo"""
        game = make_game(RIICHI_HANDS, draws="7z")
        game.draw("alice")
        assert game.declare_win_by_draw("alice").reason == Reason.NOT_A_WINNING_HAND

    def test_ron_needs_the_call_window(self):
        """Ron outside a call window is a phase error"""
        game = make_game(RON_HANDS)
        assert game.declare_win_by_claim("alice").reason == Reason.WRONG_PHASE


class TestRiichi:
    """Riichi declaration and its restrictions"""

    def test_double_riichi(self):
        """Riichi on the very first discard is double riichi"""
        game = make_game(RIICHI_HANDS, draws="7z")
        game.draw("alice")
        riichi = [a for a in game.legal_actions("alice") if a.action_type == ActionType.RIICHI]
        assert [a.tile_id for a in riichi] == hand_ids(game, "alice", "7z")
        result = game.declare_riichi("alice", hand_ids(game, "alice", "7z")[0])
        assert result.success
        assert result.data["is_double"]
        assert types(result.events) == [EventType.RIICHI_DECLARED, EventType.TILE_DISCARDED]
        assert game.players[0].status == RiichiStatus.DOUBLE_RIICHI
        assert game.players[0].score == 24000
        assert game.round.riichi_sticks == 1
        assert game.discard_piles()["alice"][0]["is_riichi"]

    def test_ron_on_riichi_tile_returns_stick(self):
        """Riichi does not stand when its declaration tile is won on"""
        hands = [READY_HAND, PINFU_WAIT, QUIET_HANDS[1], QUIET_HANDS[2]]
        game = make_game(hands, draws="4s", dora="8m")
        game.draw("alice")
        assert game.declare_riichi("alice", hand_ids(game, "alice", "4s")[0]).success
        assert game.players[0].score == 24000
        assert game.current_player_id == "bob"

        result = game.declare_win_by_claim("bob")
        assert result.success
        assert result.data["deltas"]["bob"] == 1000
        assert [p.score for p in game.players] == [24000, 26000, 25000, 25000]
        assert game.round.riichi_sticks == 0

    def test_riichi_needs_tenpai(self):
        """The discard must leave the hand ready"""
        game = make_game(RIICHI_HANDS, draws="7z")
        game.draw("alice")
        result = game.declare_riichi("alice", hand_ids(game, "alice", "1p")[0])
        assert result.reason == Reason.NOT_TENPAI
        assert game.players[0].score == 25000

    def test_riichi_locks_hand(self):
        """After riichi only the drawn tile may be discarded"""
        game = make_game(RIICHI_HANDS, draws="7z7z7z6z9s")
        game.draw("alice")
        assert game.declare_abort("alice").reason == Reason.ABORT_NOT_ALLOWED
        game.declare_riichi("alice", hand_ids(game, "alice", "7z")[0])
        for player_id in ("bob", "carol", "dave"):
            tsumogiri(game, player_id)
        game.draw("alice")
        drawn = game.own_hand("alice")["drawn_tile"]
        assert drawn == sou(9)
        assert game.declare_riichi("alice", drawn.id).reason == Reason.ALREADY_RIICHI
        result = game.discard("alice", hand_ids(game, "alice", "1m")[0])
        assert result.reason == Reason.MUST_DISCARD_DRAWN_TILE
        assert game.legal_actions("alice") == [Action(ActionType.DISCARD, "alice", tile_id=drawn.id)]
        assert game.discard("alice", drawn.id).success
        assert not game.players[0].ippatsu


class TestQuads:
    """Concealed and added quads"""

    # Seat 2 pons 3m from seat 0 and later adds the fourth; seat 1 waits on 3m
    ROB_HANDS = [
        "147m258p369s1234z",
        "24m456p789p234s99s",
        "33m369p147s12567z",
        "169m147p258s1256z",
    ]

    def test_self_quad(self):
        """A concealed quad reveals a dora indicator and draws a replacement"""
        game = make_game(["7777z123m456p789s"] + QUIET_HANDS, draws="9p", dead="4z")
        game.draw("alice")
        quads = [a for a in game.legal_actions("alice") if a.action_type == ActionType.SELF_QUAD]
        assert len(quads) == 1
        result = game.declare_self_quad("alice", quads[0].tile_ids)
        assert result.success
        assert len(result.data["dora_indicators"]) == 2
        assert result.events[0].data["kind"] == "concealed_quad"
        assert game.phase == GamePhase.AFTER_QUAD
        assert game.kan_count == 1
        assert game.players[0].hand.is_concealed
        result = game.draw("alice")
        assert result.data["tile"] == NORTH
        assert game.after_replacement
        assert game.wall.replacements_remaining == 3

    def test_self_quad_needs_four(self):
        """Three matching tiles are not a quad"""
        game = make_game(["7777z123m456p789s"] + QUIET_HANDS, draws="9p")
        game.draw("alice")
        ids = hand_ids(game, "alice", "777z")
        assert game.declare_self_quad("alice", ids).reason == Reason.NOT_ENOUGH_TILES
        ids = hand_ids(game, "alice", "777z1m")
        assert game.declare_self_quad("alice", ids).reason == Reason.INVALID_MELD

    def test_no_quad_straight_after_a_claim(self):
        """A quad needs a drawn tile, so it cannot follow a pon directly"""
        hands = ["258m369p147s1234z", "1111m77z258p369s4s", QUIET_HANDS[1], QUIET_HANDS[2]]
        game = make_game(hands, draws="7z")
        tsumogiri(game, "alice")
        assert game.current_player_id == "bob"
        assert game.claim_triplet("bob", hand_ids(game, "bob", "77z")).success
        kinds = {a.action_type for a in game.legal_actions("bob")}
        assert kinds == {ActionType.DISCARD}
        before = game.to_dict()
        result = game.declare_self_quad("bob", hand_ids(game, "bob", "1111m"))
        assert result.reason == Reason.WRONG_PHASE
        assert game.to_dict() == before
        assert game.phase == GamePhase.DISCARD

    def test_upgrade_without_meld_index(self):
        """A missing meld index is a rejected command, not a crash"""
        game = make_game(RIICHI_HANDS, draws="7z")
        game.draw("alice")
        drawn = game.own_hand("alice")["drawn_tile"]
        result = game.step(Action(ActionType.UPGRADE_QUAD, "alice", tile_id=drawn.id))
        assert result.reason == Reason.NO_SUCH_MELD
        assert game.phase == GamePhase.DISCARD

    def _upgrade_game(self):
        game = make_game(self.ROB_HANDS, draws="3m8m8m8m3m", dead="5m5m5m6m7s5s")
        tsumogiri(game, "alice")
        assert game.current_player_id == "carol"
        assert game.claim_triplet("carol", hand_ids(game, "carol", "33m")).success
        assert game.discard("carol", hand_ids(game, "carol", "7z")[0]).success
        for player_id in ("dave", "alice", "bob"):
            tsumogiri(game, player_id)
        game.draw("carol")
        drawn = game.own_hand("carol")["drawn_tile"]
        assert drawn == man(3)
        result = game.upgrade_triplet_to_quad("carol", 0, drawn.id)
        assert result.success
        return game

    def test_pass_priority(self):
        """Pon outranks chi; chi is offered after a pass"""
        game = make_game(self.ROB_HANDS, draws="3m")
        tsumogiri(game, "alice")
        assert game.current_player_id == "carol"
        assert game.pass_on_call("carol").success
        assert game.current_player_id == "bob"
        kinds = {a.action_type for a in game.legal_actions("bob")}
        assert kinds == {ActionType.CLAIM_RUN, ActionType.PASS}

    def test_robbing_the_quad(self):
        """An added tile can be claimed for the win"""
        game = self._upgrade_game()
        assert game.phase == GamePhase.CALL_WAIT
        assert game.current_player_id == "bob"
        result = game.declare_win_by_claim("bob")
        assert result.success
        assert "CHANKAN" in [y["kind"] for y in result.data["score"]["yaku"]]
        assert result.data["deltas"]["carol"] == -1300
        assert result.data["deltas"]["bob"] == 1300

    def test_unrobbed_quad_draws_replacement(self):
        """If nobody robs, the quad's owner draws from the dead wall"""
        game = self._upgrade_game()
        assert game.pass_on_call("bob").success
        assert game.current_player_id == "carol"
        assert game.phase == GamePhase.AFTER_QUAD
        assert game.draw("carol").data["tile"] == man(5)
        assert game.players[2].hand.melds[0].is_quad


class TestDraws:
    """Rounds that end without a winner"""

    def test_nine_terminals(self):
        """Abort on the first draw repeats the dealer"""
        game = make_game(["15569m19p19s1234z"] + QUIET_HANDS, draws="2m", dora="8m")
        game.draw("alice")
        assert ActionType.ABORT in {a.action_type for a in game.legal_actions("alice")}
        result = game.declare_abort("alice")
        assert result.success
        assert game.history[-1]["draw_type"] == "NINE_TERMINALS"
        assert game.round.name == "East 1"
        assert game.round.honba == 1
        assert [p.score for p in game.players] == [25000] * 4

    def test_exhaustive_draw(self):
        """Noten players pay the tenpai player"""
        game = make_game(RIICHI_HANDS)
        play_out_round(game)
        record = game.history[-1]
        assert record["draw_type"] == "EXHAUSTIVE"
        assert record["tenpai"] == ["alice"]
        assert [p.score for p in game.players] == [28000, 24000, 24000, 24000]
        assert (game.round.dealer_seat, game.round.honba) == (0, 1)

    def test_riichi_stick_carries_over(self):
        """Unclaimed riichi deposits stay on the table"""
        game = make_game(RIICHI_HANDS, draws="7z")
        game.draw("alice")
        game.declare_riichi("alice", hand_ids(game, "alice", "7z")[0])
        play_out_round(game)
        assert [p.score for p in game.players] == [27000, 24000, 24000, 24000]
        assert game.round.riichi_sticks == 1
        assert sum(p.score for p in game.players) + 1000 == 100000


class TestActions:
    """legal_actions and step"""

    def test_legal_actions_per_phase(self):
        """Only the current player has actions"""
        game = Game(PLAYERS, GameRules(red_fives=False), seed=5)
        game.start()
        assert game.legal_actions("alice") == [Action(ActionType.DRAW, "alice")]
        assert game.legal_actions("bob") == []
        game.step(Action(ActionType.DRAW, "alice"))
        discards = [a for a in game.legal_actions("alice") if a.action_type == ActionType.DISCARD]
        assert len(discards) == 14

    def test_step_dispatches(self):
        """step runs the matching command"""
        game = make_game(RIICHI_HANDS, draws="7z")
        assert game.step(Action(ActionType.DRAW, "alice")).success
        tile_id = hand_ids(game, "alice", "7z")[0]
        result = game.step(Action(ActionType.RIICHI, "alice", tile_id=tile_id))
        assert result.success
        assert game.players[0].is_riichi

    def test_step_unknown_action(self):
        """Unknown action types are rejected"""
        game = make_game(RIICHI_HANDS)
        assert game.step(Action(99, "alice")).reason == Reason.UNKNOWN_ACTION
