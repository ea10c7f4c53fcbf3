"""
Riichi Mahjong Scoring

Fu and han calculation, base points, and the payment split between players.
Every decomposition of a winning hand is scored and the highest-paying one
is kept.
"""

import logging
from dataclasses import dataclass, field
from typing import List, Optional, Sequence, Tuple

from .tiles import Tile, TERMINAL_HONOR_INDICES
from .decomposer import Decomposition, HandShape, WaitType, WinType, WinningHand
from .yaku import YakuDetector, YakuMatch, WinContext, YakuKind
from .rules import GameRules, STANDARD_RULES
from .wall import Wall

logger = logging.getLogger(__name__)

_WIND_BASE = 27
_DRAGON_INDICES = (31, 32, 33)


def round_up_100(points: int) -> int:
    return -(-points // 100) * 100


@dataclass
class Payment:
    """
    Points owed to the winner.

    For a claimed win only from_discarder is set. For a self-draw win the
    dealer pays from_dealer (non-dealer winner) and every non-dealer pays
    from_each_non_dealer.
    """
    win_type: WinType
    is_dealer: bool
    from_discarder: int = 0
    from_dealer: int = 0
    from_each_non_dealer: int = 0

    @property
    def total(self) -> int:
        if self.win_type == WinType.CLAIM:
            return self.from_discarder
        if self.is_dealer:
            return 3 * self.from_each_non_dealer
        return self.from_dealer + 2 * self.from_each_non_dealer


@dataclass
class ScoreResult:
    """Result of scoring one winning hand"""
    decomposition: Decomposition
    yaku: List[YakuMatch]
    han: int
    fu: int
    base_points: int
    payment: Payment
    dora: int = 0
    red_dora: int = 0
    hidden_dora: int = 0
    yakuman_multiple: int = 0
    fu_breakdown: List[Tuple[str, int]] = field(default_factory=list)

    @property
    def total(self) -> int:
        return self.payment.total

    @property
    def is_yakuman(self) -> bool:
        return self.yakuman_multiple > 0

    @property
    def limit_name(self) -> Optional[str]:
        if self.is_yakuman:
            return "yakuman" if self.yakuman_multiple == 1 else f"{self.yakuman_multiple}x yakuman"
        names = {8000: "kazoe yakuman", 6000: "sanbaiman", 4000: "baiman", 3000: "haneman", 2000: "mangan"}
        return names.get(self.base_points)

    def to_dict(self) -> dict:
        return {
            "yaku": [{"kind": m.kind.name, "name": m.name, "han": m.han, "multiple": m.multiple} for m in self.yaku],
            "han": self.han,
            "fu": self.fu,
            "dora": self.dora,
            "red_dora": self.red_dora,
            "hidden_dora": self.hidden_dora,
            "base_points": self.base_points,
            "yakuman_multiple": self.yakuman_multiple,
            "total": self.total,
            "limit": self.limit_name,
        }

    def __repr__(self) -> str:
        names = ", ".join(m.name for m in self.yaku)
        return f"ScoreResult({self.han} han {self.fu} fu, {self.total} points: {names})"


class ScoringService:
    """
    Riichi Mahjong Scorer

    Calculates han, fu, and final payment for winning hands.
    """

    def __init__(self, rules: Optional[GameRules] = None):
        self.rules = rules or STANDARD_RULES
        self.detector = YakuDetector(self.rules)

    def score(
        self,
        hand: WinningHand,
        ctx: WinContext,
        dora_indicators: Sequence[Tile] = (),
        hidden_dora_indicators: Sequence[Tile] = (),
        honba: int = 0,
    ) -> Optional[ScoreResult]:
        """
        Score a winning hand, choosing the best decomposition.

        Args:
            hand: The completed hand
            ctx: Win situation
            dora_indicators: Face-up indicators
            hidden_dora_indicators: Ura-dora indicators (used only for riichi wins)
            honba: Repeat counters on the table

        Returns:
            The highest-paying ScoreResult, or None if the hand is not
            complete or has no yaku
        """
        tiles = hand.all_tiles
        dora = Wall.count_dora(tiles, dora_indicators)
        red = Wall.count_red_fives(tiles)
        hidden = 0
        if self.rules.hidden_dora and (ctx.is_riichi or ctx.is_double_riichi):
            hidden = Wall.count_dora(tiles, hidden_dora_indicators)

        best: Optional[ScoreResult] = None
        for d in hand.decompositions:
            result = self.score_decomposition(d, ctx, dora, red, hidden, honba)
            if result is None:
                continue
            if best is None or (result.total, result.han, result.fu) > (best.total, best.han, best.fu):
                best = result

        if best is not None:
            logger.debug(f"Best reading of {len(hand.decompositions)}: {best}")
        return best

    def score_decomposition(
        self,
        d: Decomposition,
        ctx: WinContext,
        dora: int = 0,
        red_dora: int = 0,
        hidden_dora: int = 0,
        honba: int = 0,
    ) -> Optional[ScoreResult]:
        """Score a single reading; None when it carries no yaku"""
        yaku = self.detector.detect(d, ctx)
        if not yaku:
            return None

        multiple = sum(m.multiple for m in yaku)
        breakdown = self.fu_breakdown(d, ctx, yaku)
        fu = self._round_fu(d, breakdown)
        if multiple:
            han = sum(m.han for m in yaku)
            dora = red_dora = hidden_dora = 0
        else:
            han = sum(m.han for m in yaku) + dora + red_dora + hidden_dora

        base = self.base_points(han, fu, multiple)
        payment = self.calculate_payment(base, ctx.is_dealer, ctx.win_type, honba)
        return ScoreResult(
            decomposition=d,
            yaku=yaku,
            han=han,
            fu=fu,
            base_points=base,
            payment=payment,
            dora=dora,
            red_dora=red_dora,
            hidden_dora=hidden_dora,
            yakuman_multiple=multiple,
            fu_breakdown=breakdown,
        )

    def calculate_fu(self, d: Decomposition, ctx: WinContext) -> int:
        return self._round_fu(d, self.fu_breakdown(d, ctx))

    def fu_breakdown(
        self,
        d: Decomposition,
        ctx: WinContext,
        yaku: Optional[List[YakuMatch]] = None,
    ) -> List[Tuple[str, int]]:
        """
        Itemised fu before rounding.

        Seven pairs is a fixed 25, pinfu by self-draw a fixed 20.
        """
        if yaku is None:
            yaku = self.detector.detect(d, ctx)
        if d.shape == HandShape.SEVEN_PAIRS:
            return [("chiitoitsu", 25)]
        is_pinfu = any(m.kind == YakuKind.PINFU for m in yaku)
        if is_pinfu and ctx.win_type == WinType.SELF_DRAW:
            return [("pinfu tsumo", 20)]

        items = [("base", 20)]
        if d.is_concealed and ctx.win_type == WinType.CLAIM:
            items.append(("closed ron", 10))
        if ctx.win_type == WinType.SELF_DRAW:
            items.append(("tsumo", 2))

        for group in d.triplets:
            fu = 2
            if group.index in TERMINAL_HONOR_INDICES:
                fu *= 2
            if not group.is_open:
                fu *= 2
            if group.is_quad:
                fu *= 4
            items.append((f"{'quad' if group.is_quad else 'triplet'} {group.tile}", fu))

        pair_fu = self._pair_fu(d.pair, ctx) if d.pair is not None else 0
        if pair_fu:
            items.append((f"pair {Tile.from_index(d.pair)}", pair_fu))

        if d.wait in (WaitType.TANKI, WaitType.KANCHAN, WaitType.PENCHAN):
            items.append((f"{d.wait.name.lower()} wait", 2))
        return items

    def _pair_fu(self, pair: int, ctx: WinContext) -> int:
        if pair in _DRAGON_INDICES:
            return 2
        is_round = pair == _WIND_BASE + ctx.prevalent_wind - 1
        is_seat = pair == _WIND_BASE + ctx.seat_wind - 1
        if is_round and is_seat:
            return self.rules.double_wind_pair_fu
        return 2 if (is_round or is_seat) else 0

    @staticmethod
    def _round_fu(d: Decomposition, breakdown: List[Tuple[str, int]]) -> int:
        raw = sum(fu for _, fu in breakdown)
        if d.shape == HandShape.SEVEN_PAIRS:
            return raw
        fu = ((raw + 9) // 10) * 10
        # Open hand with no fu sources still scores 30
        if fu == 20 and not d.is_concealed:
            fu = 30
        return fu

    def base_points(self, han: int, fu: int, yakuman_multiple: int = 0) -> int:
        """Base points from han and fu, or from yakuman multiples"""
        if yakuman_multiple:
            return 8000 * yakuman_multiple
        if han >= 13:
            return 8000 if self.rules.kazoe_yakuman else 6000
        if han >= 11:
            return 6000  # Sanbaiman
        if han >= 8:
            return 4000  # Baiman
        if han >= 6:
            return 3000  # Haneman
        if han >= 5:
            return 2000  # Mangan
        if self.rules.kiriage and (han, fu) in ((4, 30), (3, 60)):
            return 2000
        return min(fu * 2 ** (han + 2), 2000)

    def calculate_payment(self, base: int, is_dealer: bool, win_type: WinType, honba: int = 0) -> Payment:
        """
        Split base points between the payers.

        Honba add honba_value in total: all of it from the discarder on a
        claim, a third from each payer on a self-draw.
        """
        if win_type == WinType.CLAIM:
            points = round_up_100((6 if is_dealer else 4) * base)
            return Payment(win_type, is_dealer, from_discarder=points + honba * self.rules.honba_value)

        per_payer = honba * self.rules.honba_value // 3
        if is_dealer:
            return Payment(
                win_type, is_dealer,
                from_each_non_dealer=round_up_100(2 * base) + per_payer,
            )
        return Payment(
            win_type, is_dealer,
            from_dealer=round_up_100(2 * base) + per_payer,
            from_each_non_dealer=round_up_100(base) + per_payer,
        )
