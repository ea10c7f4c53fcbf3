"""
Riichi Mahjong Round Progression

A round is one hand of play (e.g. East 2, 1 honba). RoundManager holds the
rules for moving from one round to the next.
"""

from enum import IntEnum
from dataclasses import dataclass
from typing import Dict, Optional

from .tiles import Wind
from .rules import GameLength


class RoundStatus(IntEnum):
    NOT_STARTED = 0
    IN_PROGRESS = 1
    WON = 2
    DRAWN = 3
    FINISHED = 4


class DrawType(IntEnum):
    """Ways a round can end without a winner"""
    EXHAUSTIVE = 0      # 流局 - live wall ran out
    NINE_TERMINALS = 1  # 九種九牌


@dataclass
class Round:
    """
    Round state.

    Attributes:
        wind: Prevalent wind of the round
        number: Round number within the wind (1-4)
        dealer_seat: Seat of the dealer (0-3)
        honba: Repeat counter
        riichi_sticks: Riichi deposits waiting for a winner
        status: Lifecycle status
        turn_count: Draws made so far this round
        draw_type: How the round was drawn, if it was
    """
    wind: Wind = Wind.EAST
    number: int = 1
    dealer_seat: int = 0
    honba: int = 0
    riichi_sticks: int = 0
    status: RoundStatus = RoundStatus.NOT_STARTED
    turn_count: int = 0
    draw_type: Optional[DrawType] = None

    def __post_init__(self):
        self.wind = Wind(self.wind)
        if not 1 <= self.number <= 4:
            raise ValueError(f"Round number must be 1-4, got {self.number}")
        if not 0 <= self.dealer_seat <= 3:
            raise ValueError(f"Dealer seat must be 0-3, got {self.dealer_seat}")
        if self.honba < 0 or self.riichi_sticks < 0:
            raise ValueError("Honba and riichi sticks cannot be negative")

    @property
    def name(self) -> str:
        return f"{self.wind.name.capitalize()} {self.number}"

    def seat_wind(self, seat: int) -> Wind:
        """Seat wind relative to the dealer (dealer is East)"""
        return Wind((seat - self.dealer_seat) % 4 + 1)

    def to_dict(self) -> Dict:
        return {
            "wind": int(self.wind),
            "number": self.number,
            "dealer_seat": self.dealer_seat,
            "honba": self.honba,
            "riichi_sticks": self.riichi_sticks,
            "status": int(self.status),
            "turn_count": self.turn_count,
            "draw_type": int(self.draw_type) if self.draw_type is not None else None,
        }

    @classmethod
    def from_dict(cls, data: Dict) -> 'Round':
        return cls(
            wind=Wind(data["wind"]),
            number=data["number"],
            dealer_seat=data["dealer_seat"],
            honba=data["honba"],
            riichi_sticks=data["riichi_sticks"],
            status=RoundStatus(data["status"]),
            turn_count=data["turn_count"],
            draw_type=DrawType(data["draw_type"]) if data.get("draw_type") is not None else None,
        )

    def __repr__(self) -> str:
        return f"Round({self.name}, dealer={self.dealer_seat}, honba={self.honba}, sticks={self.riichi_sticks})"


class RoundManager:
    """Transitions between rounds"""

    @staticmethod
    def first_round() -> Round:
        return Round(Wind.EAST, 1, 0)

    @staticmethod
    def next_round(current: Round, dealer_won: bool, is_draw: bool) -> Optional[Round]:
        """
        The round that follows current.

        A dealer win or any draw repeats the dealer with one more honba.
        Otherwise the dealer passes to the next seat, honba resets, and
        after the fourth round the wind advances. Riichi sticks carry over.

        Returns:
            The next round, or None once North 4 has been passed
        """
        if dealer_won or is_draw:
            return Round(
                current.wind, current.number, current.dealer_seat,
                current.honba + 1, current.riichi_sticks,
            )

        number = current.number + 1
        wind = current.wind
        if number > 4:
            if wind == Wind.NORTH:
                return None
            wind = Wind(wind + 1)
            number = 1
        return Round(wind, number, (current.dealer_seat + 1) % 4, 0, current.riichi_sticks)

    @staticmethod
    def is_match_finished(current: Round, game_length: GameLength) -> bool:
        """True once the final round of the configured length has been reached"""
        final_wind = Wind(int(game_length))
        return (current.wind, current.number) >= (final_wind, 4)
