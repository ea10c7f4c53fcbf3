"""
Random Agent for Riichi Mahjong

Simple baseline agents that choose among the legal actions reported by the
engine.
"""

import numpy as np
from typing import List, Optional

from riichi_engine.game import Action, ActionType


class RandomAgent:
    """
    Random agent that selects uniformly from legal actions.

    This serves as a baseline and as a driver for match simulations.
    """

    def __init__(self, seed: int = None):
        """
        Initialize the random agent.

        Args:
            seed: Random seed for reproducibility
        """
        self.rng = np.random.default_rng(seed)

    def act(self, actions: List[Action], hand: Optional[np.ndarray] = None) -> Optional[Action]:
        """
        Select an action.

        Args:
            actions: Legal actions for the acting player
            hand: Concealed tile counts (unused)

        Returns:
            The chosen action, or None if there is nothing to do
        """
        if not actions:
            return None
        return actions[int(self.rng.integers(len(actions)))]

    def reset(self):
        """Reset the agent state (no-op for random agent)."""
        pass

    def __repr__(self) -> str:
        return "RandomAgent()"


class GreedyAgent:
    """
    Greedy agent that prioritizes winning and claiming.

    Priority: win > quad > triplet > run (50%) > draw > discard (smart) > pass
    """

    _CLAIM_PRIORITY = (
        ActionType.CLAIM_QUAD,
        ActionType.SELF_QUAD,
        ActionType.UPGRADE_QUAD,
        ActionType.CLAIM_TRIPLET,
    )

    def __init__(self, seed: int = None):
        self.rng = np.random.default_rng(seed)

    def act(self, actions: List[Action], hand: Optional[np.ndarray] = None) -> Optional[Action]:
        if not actions:
            return None
        by_type = {}
        for action in actions:
            by_type.setdefault(action.action_type, []).append(action)

        for win in (ActionType.WIN_BY_DRAW, ActionType.WIN_BY_CLAIM):
            if win in by_type:
                return by_type[win][0]

        for claim in self._CLAIM_PRIORITY:
            if claim in by_type:
                return self._choose(by_type[claim])

        if ActionType.CLAIM_RUN in by_type and self.rng.random() < 0.5:
            return self._choose(by_type[ActionType.CLAIM_RUN])

        if ActionType.DRAW in by_type:
            return by_type[ActionType.DRAW][0]

        if ActionType.RIICHI in by_type and hand is not None:
            return self._smart_discard(hand, by_type[ActionType.RIICHI])

        if ActionType.DISCARD in by_type:
            if hand is None:
                return self._choose(by_type[ActionType.DISCARD])
            return self._smart_discard(hand, by_type[ActionType.DISCARD])

        if ActionType.PASS in by_type:
            return by_type[ActionType.PASS][0]

        return self._choose(actions)

    def _choose(self, actions: List[Action]) -> Action:
        return actions[int(self.rng.integers(len(actions)))]

    def _smart_discard(self, hand: np.ndarray, discards: List[Action]) -> Action:
        """
        Choose which tile to discard using simple heuristics.

        Prefer discarding:
        1. Isolated honor tiles
        2. Isolated terminal tiles
        3. Tiles that don't contribute to runs
        """
        scores = []
        for action in discards:
            tile_idx = action.tile_id // 4
            scores.append((action, self._tile_value(hand, tile_idx)))

        scores.sort(key=lambda x: x[1])
        lowest = scores[0][1]
        worst = [a for a, score in scores if score == lowest]
        return self._choose(worst)

    def _tile_value(self, hand: np.ndarray, tile_idx: int) -> float:
        """
        Calculate value of keeping a tile.
        Higher value = better to keep.
        """
        count = hand[tile_idx]
        value = count * 2.0

        # Honor tiles (indices 27-33)
        if tile_idx >= 27:
            if count >= 2:
                value += 3.0
            else:
                value -= 1.0
            return value

        suit_start = (tile_idx // 9) * 9
        num = tile_idx % 9

        if num == 0 or num == 8:
            value -= 0.5

        if num > 0 and hand[suit_start + num - 1] > 0:
            value += 1.5
        if num < 8 and hand[suit_start + num + 1] > 0:
            value += 1.5

        # Two-gap neighbors (for potential runs)
        if num > 1 and hand[suit_start + num - 2] > 0:
            value += 0.5
        if num < 7 and hand[suit_start + num + 2] > 0:
            value += 0.5

        return value

    def reset(self):
        pass

    def __repr__(self) -> str:
        return "GreedyAgent()"
