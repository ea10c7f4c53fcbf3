"""
Riichi Mahjong Yaku

The yaku catalog (winning patterns with their han values) and the detector
that evaluates one decomposition of a winning hand against the situation
it was won in.
"""

from collections import Counter
from enum import IntEnum
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Tuple

from .tiles import Wind, Dragon, TERMINAL_HONOR_INDICES
from .decomposer import Decomposition, HandShape, WaitType, WinType
from .rules import GameRules, STANDARD_RULES


class YakuKind(IntEnum):
    # 1 han
    RIICHI = 0
    IPPATSU = 1
    MENZEN_TSUMO = 2
    TANYAO = 3
    PINFU = 4
    IIPEIKOU = 5
    HAITEI = 6
    HOUTEI = 7
    RINSHAN = 8
    CHANKAN = 9
    YAKUHAI_ROUND_WIND = 10
    YAKUHAI_SEAT_WIND = 11
    YAKUHAI_WHITE = 12
    YAKUHAI_GREEN = 13
    YAKUHAI_RED = 14
    # 2 han
    DOUBLE_RIICHI = 20
    SANSHOKU_DOUJUN = 21
    ITTSU = 22
    CHANTA = 23
    TOITOI = 24
    SANANKOU = 25
    SANSHOKU_DOUKOU = 26
    SANKANTSU = 27
    CHIITOITSU = 28
    HONROUTOU = 29
    SHOUSANGEN = 30
    # 3+ han
    RYANPEIKOU = 40
    JUNCHAN = 41
    HONITSU = 42
    CHINITSU = 43
    # Yakuman
    KOKUSHI = 60
    KOKUSHI_13_WAIT = 61
    SUUANKOU = 62
    SUUANKOU_TANKI = 63
    DAISANGEN = 64
    SHOUSUUSHII = 65
    DAISUUSHII = 66
    TSUUIISOU = 67
    CHINROUTOU = 68
    RYUUIISOU = 69
    CHUUREN = 70
    JUNSEI_CHUUREN = 71
    SUUKANTSU = 72
    TENHOU = 73
    CHIIHOU = 74


@dataclass(frozen=True)
class YakuDefinition:
    """
    Catalog entry for one yaku.

    Attributes:
        han: Han when concealed (13 for yakuman)
        is_yakuman: Limit hand
        is_double: Worth two yakuman (when the rules allow)
        requires_concealed: Not available with an open hand
        open_penalty: Han lost when the hand is open
    """
    kind: YakuKind
    name: str
    japanese_name: str
    han: int
    is_yakuman: bool = False
    is_double: bool = False
    requires_concealed: bool = False
    open_penalty: int = 0


def _yaku(kind, name, japanese_name, han, concealed=False, penalty=0):
    return YakuDefinition(kind, name, japanese_name, han, requires_concealed=concealed, open_penalty=penalty)


def _yakuman(kind, name, japanese_name, concealed=False, double=False):
    return YakuDefinition(kind, name, japanese_name, 13, True, double, concealed)


YAKU_DEFINITIONS: Dict[YakuKind, YakuDefinition] = {d.kind: d for d in [
    _yaku(YakuKind.RIICHI, "Riichi", "立直", 1, concealed=True),
    _yaku(YakuKind.IPPATSU, "Ippatsu", "一発", 1, concealed=True),
    _yaku(YakuKind.MENZEN_TSUMO, "Menzen Tsumo", "門前清自摸和", 1, concealed=True),
    _yaku(YakuKind.TANYAO, "Tanyao", "断幺九", 1),
    _yaku(YakuKind.PINFU, "Pinfu", "平和", 1, concealed=True),
    _yaku(YakuKind.IIPEIKOU, "Iipeikou", "一盃口", 1, concealed=True),
    _yaku(YakuKind.HAITEI, "Haitei", "海底摸月", 1),
    _yaku(YakuKind.HOUTEI, "Houtei", "河底撈魚", 1),
    _yaku(YakuKind.RINSHAN, "Rinshan Kaihou", "嶺上開花", 1),
    _yaku(YakuKind.CHANKAN, "Chankan", "槍槓", 1),
    _yaku(YakuKind.YAKUHAI_ROUND_WIND, "Yakuhai (Round Wind)", "役牌 場風", 1),
    _yaku(YakuKind.YAKUHAI_SEAT_WIND, "Yakuhai (Seat Wind)", "役牌 自風", 1),
    _yaku(YakuKind.YAKUHAI_WHITE, "Yakuhai (Haku)", "役牌 白", 1),
    _yaku(YakuKind.YAKUHAI_GREEN, "Yakuhai (Hatsu)", "役牌 發", 1),
    _yaku(YakuKind.YAKUHAI_RED, "Yakuhai (Chun)", "役牌 中", 1),
    _yaku(YakuKind.DOUBLE_RIICHI, "Double Riichi", "両立直", 2, concealed=True),
    _yaku(YakuKind.SANSHOKU_DOUJUN, "Sanshoku Doujun", "三色同順", 2, penalty=1),
    _yaku(YakuKind.ITTSU, "Ittsu", "一気通貫", 2, penalty=1),
    _yaku(YakuKind.CHANTA, "Chanta", "混全帯幺九", 2, penalty=1),
    _yaku(YakuKind.TOITOI, "Toitoi", "対々和", 2),
    _yaku(YakuKind.SANANKOU, "Sanankou", "三暗刻", 2),
    _yaku(YakuKind.SANSHOKU_DOUKOU, "Sanshoku Doukou", "三色同刻", 2),
    _yaku(YakuKind.SANKANTSU, "Sankantsu", "三槓子", 2),
    _yaku(YakuKind.CHIITOITSU, "Chiitoitsu", "七対子", 2, concealed=True),
    _yaku(YakuKind.HONROUTOU, "Honroutou", "混老頭", 2),
    _yaku(YakuKind.SHOUSANGEN, "Shousangen", "小三元", 2),
    _yaku(YakuKind.RYANPEIKOU, "Ryanpeikou", "二盃口", 3, concealed=True),
    _yaku(YakuKind.JUNCHAN, "Junchan", "純全帯幺九", 3, penalty=1),
    _yaku(YakuKind.HONITSU, "Honitsu", "混一色", 3, penalty=1),
    _yaku(YakuKind.CHINITSU, "Chinitsu", "清一色", 6, penalty=1),
    _yakuman(YakuKind.KOKUSHI, "Kokushi Musou", "国士無双", concealed=True),
    _yakuman(YakuKind.KOKUSHI_13_WAIT, "Kokushi Musou 13-sided", "国士無双十三面", concealed=True, double=True),
    _yakuman(YakuKind.SUUANKOU, "Suuankou", "四暗刻", concealed=True),
    _yakuman(YakuKind.SUUANKOU_TANKI, "Suuankou Tanki", "四暗刻単騎", concealed=True, double=True),
    _yakuman(YakuKind.DAISANGEN, "Daisangen", "大三元"),
    _yakuman(YakuKind.SHOUSUUSHII, "Shousuushii", "小四喜"),
    _yakuman(YakuKind.DAISUUSHII, "Daisuushii", "大四喜", double=True),
    _yakuman(YakuKind.TSUUIISOU, "Tsuuiisou", "字一色"),
    _yakuman(YakuKind.CHINROUTOU, "Chinroutou", "清老頭"),
    _yakuman(YakuKind.RYUUIISOU, "Ryuuiisou", "緑一色"),
    _yakuman(YakuKind.CHUUREN, "Chuuren Poutou", "九蓮宝燈", concealed=True),
    _yakuman(YakuKind.JUNSEI_CHUUREN, "Junsei Chuuren Poutou", "純正九蓮宝燈", concealed=True, double=True),
    _yakuman(YakuKind.SUUKANTSU, "Suukantsu", "四槓子"),
    _yakuman(YakuKind.TENHOU, "Tenhou", "天和", concealed=True),
    _yakuman(YakuKind.CHIIHOU, "Chiihou", "地和", concealed=True),
]}


# Weaker yaku dropped when the stronger one is present
_SUPERSEDED = {
    YakuKind.RYANPEIKOU: (YakuKind.IIPEIKOU,),
    YakuKind.JUNCHAN: (YakuKind.CHANTA,),
    YakuKind.CHINITSU: (YakuKind.HONITSU,),
    YakuKind.HONROUTOU: (YakuKind.CHANTA, YakuKind.JUNCHAN),
}

_WIND_BASE = 27
_DRAGON_INDICES = (31, 32, 33)
_GREEN_INDICES = (19, 20, 21, 23, 25, 32)


@dataclass
class WinContext:
    """
    Situation a hand was won in.

    Winds use the honor values 1-4 (East-North).
    """
    win_type: WinType
    prevalent_wind: int = Wind.EAST
    seat_wind: int = Wind.EAST
    is_riichi: bool = False
    is_double_riichi: bool = False
    is_ippatsu: bool = False
    is_first_turn: bool = False       # first uninterrupted draw, no calls yet
    is_last_tile: bool = False        # last live tile drawn or discarded
    is_replacement_tile: bool = False  # won on a quad replacement draw
    is_robbing_quad: bool = False     # won on a tile added to a quad

    @property
    def is_dealer(self) -> bool:
        return self.seat_wind == Wind.EAST

    @property
    def is_self_draw(self) -> bool:
        return self.win_type == WinType.SELF_DRAW


@dataclass(frozen=True)
class YakuMatch:
    """A yaku found in a hand, with its effective han"""
    kind: YakuKind
    han: int
    multiple: int = 0  # yakuman multiple, 0 for regular yaku

    @property
    def definition(self) -> YakuDefinition:
        return YAKU_DEFINITIONS[self.kind]

    @property
    def name(self) -> str:
        return self.definition.name

    @property
    def is_yakuman(self) -> bool:
        return self.multiple > 0

    def __repr__(self) -> str:
        if self.is_yakuman:
            return f"YakuMatch({self.name}, x{self.multiple} yakuman)"
        return f"YakuMatch({self.name}, {self.han} han)"


class YakuDetector:
    """
    Evaluates one decomposition against a win context.

    If any yakuman is present only yakuman are returned, stacking by their
    multiples. Otherwise regular yaku are returned with han reduced for an
    open hand where applicable.
    """

    def __init__(self, rules: Optional[GameRules] = None):
        self.rules = rules or STANDARD_RULES
        self.yaku_checks = self._create_yaku_checks()
        self.yakuman_checks = self._create_yakuman_checks()

    def detect(self, d: Decomposition, ctx: WinContext) -> List[YakuMatch]:
        yakuman = self._check_yakuman(d, ctx)
        if yakuman:
            return yakuman

        found: List[YakuMatch] = []
        for kind, check in self.yaku_checks:
            definition = YAKU_DEFINITIONS[kind]
            if definition.requires_concealed and not d.is_concealed:
                continue
            if not check(d, ctx):
                continue
            han = definition.han
            if not d.is_concealed:
                han -= definition.open_penalty
            found.append(YakuMatch(kind, han))

        kinds = {m.kind for m in found}
        dropped = set()
        for stronger, weaker in _SUPERSEDED.items():
            if stronger in kinds:
                dropped.update(weaker)
        return [m for m in found if m.kind not in dropped]

    def _check_yakuman(self, d: Decomposition, ctx: WinContext) -> List[YakuMatch]:
        matches = []
        for kind, check in self.yakuman_checks:
            definition = YAKU_DEFINITIONS[kind]
            if definition.requires_concealed and not d.is_concealed:
                continue
            if check(d, ctx):
                multiple = 2 if definition.is_double and self.rules.double_yakuman else 1
                matches.append(YakuMatch(kind, 13 * multiple, multiple))
        if matches and not self.rules.multiple_yakuman:
            matches = [max(matches, key=lambda m: m.multiple)]
        return matches

    def _create_yaku_checks(self) -> List[Tuple[YakuKind, Callable[[Decomposition, WinContext], bool]]]:
        """Create list of yaku with their check functions"""
        return [
            (YakuKind.RIICHI, lambda d, c: c.is_riichi and not c.is_double_riichi),
            (YakuKind.IPPATSU, lambda d, c: self.rules.ippatsu and c.is_ippatsu and (c.is_riichi or c.is_double_riichi)),
            (YakuKind.MENZEN_TSUMO, lambda d, c: c.is_self_draw),
            (YakuKind.TANYAO, self._check_tanyao),
            (YakuKind.PINFU, self._check_pinfu),
            (YakuKind.IIPEIKOU, lambda d, c: self._identical_run_pairs(d) == 1),
            (YakuKind.HAITEI, lambda d, c: c.is_last_tile and c.is_self_draw),
            (YakuKind.HOUTEI, lambda d, c: c.is_last_tile and not c.is_self_draw),
            (YakuKind.RINSHAN, lambda d, c: c.is_replacement_tile and c.is_self_draw),
            (YakuKind.CHANKAN, lambda d, c: c.is_robbing_quad and not c.is_self_draw),
            (YakuKind.YAKUHAI_ROUND_WIND, lambda d, c: self._has_triplet(d, _WIND_BASE + c.prevalent_wind - 1)),
            (YakuKind.YAKUHAI_SEAT_WIND, lambda d, c: self._has_triplet(d, _WIND_BASE + c.seat_wind - 1)),
            (YakuKind.YAKUHAI_WHITE, lambda d, c: self._has_triplet(d, 31)),
            (YakuKind.YAKUHAI_GREEN, lambda d, c: self._has_triplet(d, 32)),
            (YakuKind.YAKUHAI_RED, lambda d, c: self._has_triplet(d, 33)),
            (YakuKind.DOUBLE_RIICHI, lambda d, c: c.is_double_riichi),
            (YakuKind.SANSHOKU_DOUJUN, self._check_sanshoku_doujun),
            (YakuKind.ITTSU, self._check_ittsu),
            (YakuKind.CHANTA, self._check_chanta),
            (YakuKind.TOITOI, lambda d, c: d.shape == HandShape.STANDARD and len(d.triplets) == 4),
            (YakuKind.SANANKOU, lambda d, c: d.shape == HandShape.STANDARD and d.concealed_triplet_count >= 3),
            (YakuKind.SANSHOKU_DOUKOU, self._check_sanshoku_doukou),
            (YakuKind.SANKANTSU, lambda d, c: sum(1 for g in d.groups if g.is_quad) == 3),
            (YakuKind.CHIITOITSU, lambda d, c: d.shape == HandShape.SEVEN_PAIRS),
            (YakuKind.HONROUTOU, lambda d, c: all(i in TERMINAL_HONOR_INDICES for i in d.indices)),
            (YakuKind.SHOUSANGEN, self._check_shousangen),
            (YakuKind.RYANPEIKOU, lambda d, c: self._identical_run_pairs(d) == 2),
            (YakuKind.JUNCHAN, self._check_junchan),
            (YakuKind.HONITSU, self._check_honitsu),
            (YakuKind.CHINITSU, self._check_chinitsu),
        ]

    def _create_yakuman_checks(self) -> List[Tuple[YakuKind, Callable[[Decomposition, WinContext], bool]]]:
        return [
            (YakuKind.KOKUSHI, lambda d, c: d.shape == HandShape.THIRTEEN_ORPHANS and d.wait != WaitType.THIRTEEN_SIDED),
            (YakuKind.KOKUSHI_13_WAIT, lambda d, c: d.shape == HandShape.THIRTEEN_ORPHANS and d.wait == WaitType.THIRTEEN_SIDED),
            (YakuKind.SUUANKOU, lambda d, c: self._is_four_concealed(d) and d.wait != WaitType.TANKI),
            (YakuKind.SUUANKOU_TANKI, lambda d, c: self._is_four_concealed(d) and d.wait == WaitType.TANKI),
            (YakuKind.DAISANGEN, lambda d, c: all(self._has_triplet(d, i) for i in _DRAGON_INDICES)),
            (YakuKind.SHOUSUUSHII, self._check_shousuushii),
            (YakuKind.DAISUUSHII, lambda d, c: all(self._has_triplet(d, _WIND_BASE + w) for w in range(4))),
            (YakuKind.TSUUIISOU, lambda d, c: all(i >= _WIND_BASE for i in d.indices)),
            (YakuKind.CHINROUTOU, lambda d, c: all(i in TERMINAL_HONOR_INDICES and i < _WIND_BASE for i in d.indices)),
            (YakuKind.RYUUIISOU, lambda d, c: all(i in _GREEN_INDICES for i in d.indices)),
            (YakuKind.CHUUREN, lambda d, c: self._chuuren(d) == 1),
            (YakuKind.JUNSEI_CHUUREN, lambda d, c: self._chuuren(d) == 2),
            (YakuKind.SUUKANTSU, lambda d, c: sum(1 for g in d.groups if g.is_quad) == 4),
            (YakuKind.TENHOU, lambda d, c: self._first_turn_win(c) and c.is_dealer),
            (YakuKind.CHIIHOU, lambda d, c: self._first_turn_win(c) and not c.is_dealer),
        ]

    # Helpers

    @staticmethod
    def _has_triplet(d: Decomposition, index: int) -> bool:
        return any(g.index == index for g in d.triplets)

    @staticmethod
    def _identical_run_pairs(d: Decomposition) -> int:
        if d.shape != HandShape.STANDARD:
            return 0
        runs = Counter(g.index for g in d.runs)
        return sum(n // 2 for n in runs.values())

    @staticmethod
    def _suits(d: Decomposition) -> Tuple[set, bool]:
        """Number suits present and whether any honor is present"""
        indices = d.indices
        return {i // 9 for i in indices if i < _WIND_BASE}, any(i >= _WIND_BASE for i in indices)

    def _is_value_pair(self, d: Decomposition, ctx: WinContext) -> bool:
        if d.pair is None:
            return False
        return d.pair in _DRAGON_INDICES or d.pair in (
            _WIND_BASE + ctx.prevalent_wind - 1, _WIND_BASE + ctx.seat_wind - 1,
        )

    def _first_turn_win(self, ctx: WinContext) -> bool:
        return self.rules.first_turn_yakuman and ctx.is_first_turn and ctx.is_self_draw

    # Regular yaku

    def _check_tanyao(self, d: Decomposition, ctx: WinContext) -> bool:
        """All simples"""
        if not d.is_concealed and not self.rules.open_tanyao:
            return False
        return all(i not in TERMINAL_HONOR_INDICES for i in d.indices)

    def _check_pinfu(self, d: Decomposition, ctx: WinContext) -> bool:
        """All runs, non-value pair, two-sided wait"""
        if d.shape != HandShape.STANDARD or len(d.runs) != 4:
            return False
        return not self._is_value_pair(d, ctx) and d.wait == WaitType.RYANMEN

    def _check_sanshoku_doujun(self, d: Decomposition, ctx: WinContext) -> bool:
        runs = {g.index for g in d.runs}
        return any(v in runs and v + 9 in runs and v + 18 in runs for v in range(7))

    def _check_ittsu(self, d: Decomposition, ctx: WinContext) -> bool:
        runs = {g.index for g in d.runs}
        return any(all(s * 9 + v in runs for v in (0, 3, 6)) for s in range(3))

    def _check_sanshoku_doukou(self, d: Decomposition, ctx: WinContext) -> bool:
        triplets = {g.index for g in d.triplets}
        return any(v in triplets and v + 9 in triplets and v + 18 in triplets for v in range(9))

    def _all_groups_outside(self, d: Decomposition) -> bool:
        """Every group and the pair contain a terminal or honor"""
        if d.shape != HandShape.STANDARD or not d.runs:
            return False
        return d.pair in TERMINAL_HONOR_INDICES and all(g.has_terminal_or_honor for g in d.groups)

    def _check_chanta(self, d: Decomposition, ctx: WinContext) -> bool:
        return self._all_groups_outside(d) and self._suits(d)[1]

    def _check_junchan(self, d: Decomposition, ctx: WinContext) -> bool:
        return self._all_groups_outside(d) and not self._suits(d)[1]

    def _check_shousangen(self, d: Decomposition, ctx: WinContext) -> bool:
        if d.pair not in _DRAGON_INDICES:
            return False
        return sum(1 for i in _DRAGON_INDICES if self._has_triplet(d, i)) == 2

    def _check_honitsu(self, d: Decomposition, ctx: WinContext) -> bool:
        suits, has_honor = self._suits(d)
        return len(suits) == 1 and has_honor

    def _check_chinitsu(self, d: Decomposition, ctx: WinContext) -> bool:
        suits, has_honor = self._suits(d)
        return len(suits) == 1 and not has_honor

    # Yakuman

    def _is_four_concealed(self, d: Decomposition) -> bool:
        return d.shape == HandShape.STANDARD and d.concealed_triplet_count == 4

    def _check_shousuushii(self, d: Decomposition, ctx: WinContext) -> bool:
        if d.pair is None or not _WIND_BASE <= d.pair < _WIND_BASE + 4:
            return False
        return sum(1 for w in range(4) if self._has_triplet(d, _WIND_BASE + w)) == 3

    def _chuuren(self, d: Decomposition) -> int:
        """
        Nine gates: 1112345678999 plus any tile of the same suit, concealed
        and without quads. Returns 0 (no), 1 (nine gates) or 2 (pure nine
        gates, i.e. the hand waited on all nine faces).
        """
        if d.shape != HandShape.STANDARD or any(g.declared for g in d.groups):
            return 0
        suits, has_honor = self._suits(d)
        if len(suits) != 1 or has_honor:
            return 0
        start = suits.pop() * 9
        counts = [int(d.counts[start + v]) for v in range(9)]
        required = [3, 1, 1, 1, 1, 1, 1, 1, 3]
        if sum(counts) != 14 or any(c < r for c, r in zip(counts, required)):
            return 0
        counts[d.winning_tile.tile_index - start] -= 1
        return 2 if counts == required else 1
