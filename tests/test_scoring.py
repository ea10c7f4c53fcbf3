"""
Tests for fu, han and payments
"""

import numpy as np
import pytest

from riichi_engine.tiles import Wind, tiles_from_string
from riichi_engine.meld import Meld, MeldSource
from riichi_engine.decomposer import WinningHand, WinType, HandShape
from riichi_engine.yaku import WinContext, YakuKind
from riichi_engine.scoring import ScoringService, round_up_100
from riichi_engine.rules import GameRules

from helpers import random_partition, tiles_from_counts


def tiles(notation, red_fives=False):
    return tiles_from_string(notation, red_fives=red_fives)


def score(notation, winning, win_type=WinType.CLAIM, melds=(), rules=None,
          dora=(), hidden=(), honba=0, red_fives=False, **ctx):
    hand = WinningHand(tiles(notation, red_fives), list(melds), tiles(winning)[0], win_type)
    scorer = ScoringService(rules)
    return scorer.score(
        hand,
        WinContext(win_type, **ctx),
        [tiles(t)[0] for t in dora],
        [tiles(t)[0] for t in hidden],
        honba,
    )


TANYAO_PINFU = "234m567p234s678s55p"


class TestPoints:
    """Points for common hands"""

    def test_one_han_thirty_fu_ron(self):
        """Non-dealer pinfu ron is 1000"""
        result = score("123m456m789p55p234s", "4s", seat_wind=Wind.SOUTH)
        assert [m.kind for m in result.yaku] == [YakuKind.PINFU]
        assert result.han == 1
        assert result.fu == 30
        assert result.total == 1000
        assert result.payment.from_discarder == 1000

    def test_yakuhai_ron(self):
        """Open white dragon pon with a two-sided wait: 1 han 30 fu, 1000"""
        t = tiles("555z")
        haku = Meld.triplet(t, t[0], MeldSource.LEFT)
        result = score("123m456p99p234s", "4s", melds=[haku], seat_wind=Wind.SOUTH)
        assert [m.kind for m in result.yaku] == [YakuKind.YAKUHAI_WHITE]
        assert ("triplet 5z", 4) in result.fu_breakdown
        assert (result.han, result.fu, result.total) == (1, 30, 1000)

    def test_mangan_ron(self):
        """Riichi, tanyao, pinfu and two dora make a mangan"""
        result = score(TANYAO_PINFU, "2m", dora=["1m", "3s"], is_riichi=True, seat_wind=Wind.SOUTH)
        assert result.dora == 2
        assert result.han == 5
        assert result.base_points == 2000
        assert result.total == 8000
        assert result.limit_name == "mangan"

    def test_dealer_tsumo_all(self):
        """Dealer 3 han 30 fu self-draw is 2000 from each player"""
        result = score(TANYAO_PINFU, "3m", WinType.SELF_DRAW, is_riichi=True)
        assert result.han == 3
        assert result.fu == 30
        assert result.payment.from_each_non_dealer == 2000
        assert result.total == 6000

    def test_pinfu_tsumo_is_twenty_fu(self):
        """Pinfu by self-draw is a flat 20 fu"""
        result = score(TANYAO_PINFU, "2m", WinType.SELF_DRAW, is_riichi=True, seat_wind=Wind.SOUTH)
        assert result.fu == 20
        assert result.han == 4
        assert result.payment.from_dealer == 2600
        assert result.payment.from_each_non_dealer == 1300
        assert result.total == 5200

    def test_seven_pairs_fu(self):
        """Seven pairs is 25 fu, unrounded"""
        result = score("1155m2288p3399s11z", "1z", seat_wind=Wind.SOUTH)
        assert result.decomposition.shape == HandShape.SEVEN_PAIRS
        assert result.fu == 25
        assert result.total == 1600

    def test_open_hand_minimum_fu(self):
        """An open hand with no fu still scores 30"""
        t = tiles("234s")
        chi = Meld.run(t, t[0], MeldSource.LEFT)
        result = score("234m567p678s55p", "2m", melds=[chi], seat_wind=Wind.SOUTH)
        assert result.fu == 30
        assert result.total == 1000

    def test_concealed_quad_fu(self):
        """Concealed honor quad is 32 fu"""
        quad = Meld.concealed_quad(tiles("1111z"))
        result = score("234m567p678s55p", "2m", melds=[quad])
        assert ("quad 1z", 32) in result.fu_breakdown
        assert result.fu == 70
        assert result.han == 2
        assert result.total == 6800

    def test_kiriage(self):
        """4 han 30 fu rounds up to mangan only with kiriage"""
        plain = score(TANYAO_PINFU, "2m", dora=["1m"], is_riichi=True, seat_wind=Wind.SOUTH)
        assert (plain.han, plain.fu, plain.total) == (4, 30, 7700)
        rounded = score(TANYAO_PINFU, "2m", rules=GameRules(kiriage=True), dora=["1m"],
                        is_riichi=True, seat_wind=Wind.SOUTH)
        assert rounded.total == 8000

    def test_best_reading_wins(self):
        """Ryanpeikou scores more than seven pairs"""
        result = score("112233m445566p77s", "7s", seat_wind=Wind.SOUTH)
        assert result.decomposition.shape == HandShape.STANDARD
        assert result.han == 3
        assert result.fu == 40
        assert result.total == 5200

    def test_no_yaku(self):
        """A hand without yaku scores nothing"""
        t = tiles("345s")
        chi = Meld.run(t, t[0], MeldSource.LEFT)
        assert score("123m456p789s11m", "9s", melds=[chi]) is None


class TestDora:
    """Dora, red fives and hidden dora"""

    def test_hidden_dora_needs_riichi(self):
        """Ura-dora only count for riichi wins"""
        result = score(TANYAO_PINFU, "2m", hidden=["1m"], is_riichi=True, seat_wind=Wind.SOUTH)
        assert result.hidden_dora == 1
        result = score(TANYAO_PINFU, "2m", hidden=["1m"], seat_wind=Wind.SOUTH)
        assert result.hidden_dora == 0

    def test_red_fives(self):
        """Red fives add a han each"""
        result = score("234m067p234s678s55p", "2m", red_fives=True, seat_wind=Wind.SOUTH)
        assert result.red_dora == 1
        assert result.han == 3

    def test_dora_ignored_for_yakuman(self):
        """Yakuman do not add dora"""
        result = score("555z666z777z123m44p", "3m", dora=["6z"], seat_wind=Wind.SOUTH)
        assert result.dora == 0
        assert result.total == 32000


class TestYakumanPoints:
    """Limit hand payments"""

    def test_single_yakuman(self):
        """32000 for a non-dealer, 48000 for the dealer"""
        assert score("555z666z777z123m44p", "3m", seat_wind=Wind.SOUTH).total == 32000
        assert score("555z666z777z123m44p", "3m").total == 48000

    def test_double_yakuman(self):
        """13-sided kokushi counts twice"""
        result = score("19m19p19s12345677z", "7z", seat_wind=Wind.SOUTH)
        assert result.yakuman_multiple == 2
        assert result.total == 64000
        assert result.limit_name == "2x yakuman"


class TestPayments:
    """Base points and payment splits"""

    def test_round_up(self):
        """Payments round up to the next 100"""
        assert round_up_100(960) == 1000
        assert round_up_100(1000) == 1000
        assert round_up_100(1) == 100

    @pytest.mark.parametrize("han,fu,expected", [
        (1, 30, 240),
        (3, 70, 2000),
        (4, 40, 2000),
        (5, 30, 2000),
        (6, 30, 3000),
        (8, 30, 4000),
        (11, 30, 6000),
        (13, 30, 8000),
    ])
    def test_base_points(self, han, fu, expected):
        """Base points from han and fu"""
        assert ScoringService().base_points(han, fu) == expected

    def test_kazoe_rule(self):
        """13 han is sanbaiman without counted yakuman"""
        assert ScoringService(GameRules(kazoe_yakuman=False)).base_points(13, 30) == 6000

    def test_honba_on_claim(self):
        """The discarder pays all honba"""
        result = score("123m456m789p55p234s", "4s", seat_wind=Wind.SOUTH, honba=2)
        assert result.total == 1600

    def test_honba_on_self_draw(self):
        """Each payer adds a third of the honba value"""
        payment = ScoringService().calculate_payment(960, True, WinType.SELF_DRAW, honba=1)
        assert payment.from_each_non_dealer == 2100
        assert payment.total == 6300

    def test_non_dealer_self_draw_split(self):
        """Dealer pays double"""
        payment = ScoringService().calculate_payment(2000, False, WinType.SELF_DRAW)
        assert payment.from_dealer == 4000
        assert payment.from_each_non_dealer == 2000
        assert payment.total == 8000

    def test_dealer_claim(self):
        """Dealer ron is six times base"""
        payment = ScoringService().calculate_payment(2000, True, WinType.CLAIM)
        assert payment.from_discarder == 12000


class TestFuRounding:
    """Fu over generated hands"""

    @pytest.mark.parametrize("seed", range(3))
    def test_fu_is_a_multiple_of_ten(self, seed):
        """Every reading rounds to tens, except seven pairs at 25"""
        rng = np.random.default_rng(seed)
        scorer = ScoringService()
        for _ in range(100):
            counts, _ = random_partition(rng)
            concealed = tiles_from_counts(counts)
            winning = concealed[int(rng.integers(len(concealed)))]
            for win_type in (WinType.CLAIM, WinType.SELF_DRAW):
                ctx = WinContext(win_type, seat_wind=Wind(int(rng.integers(1, 5))))
                for d in WinningHand(concealed, [], winning, win_type).decompositions:
                    fu = scorer.calculate_fu(d, ctx)
                    if d.shape == HandShape.SEVEN_PAIRS:
                        assert fu == 25
                    else:
                        assert fu % 10 == 0
                        assert 20 <= fu <= 110
