"""
Match runner: drives a Game to completion with one agent per player.
"""

import logging
from typing import Dict, Optional

from riichi_engine.game import Game, GameStatus

logger = logging.getLogger(__name__)


def run_match(game: Game, agents: Dict[str, object], max_steps: Optional[int] = 100000) -> Dict:
    """
    Play a match by repeatedly asking the acting player's agent for an action.

    Args:
        game: A created game (started here if it has not been)
        agents: Agent per player id; each needs act(actions, hand)
        max_steps: Safety limit on the number of actions applied

    Returns:
        Summary with final standings, rounds played and steps taken
    """
    if game.status == GameStatus.NOT_STARTED:
        game.start()
    for agent in agents.values():
        agent.reset()

    steps = 0
    while game.status == GameStatus.IN_PROGRESS:
        if max_steps is not None and steps >= max_steps:
            logger.warning(f"Stopping match after {steps} steps")
            break
        player_id = game.current_player_id
        actions = game.legal_actions(player_id)
        hand = game.players[game.current_player].hand.to_count_array()
        action = agents[player_id].act(actions, hand)
        if action is None:
            raise RuntimeError(f"{agents[player_id]!r} returned no action for {player_id}")
        result = game.step(action)
        if not result.success:
            raise RuntimeError(f"Agent action {action!r} rejected: {result.reason.name}")
        steps += 1

    logger.info(f"Match ended after {steps} steps, {len(game.history)} rounds")
    return {
        "standings": game.standings(),
        "rounds": len(game.history),
        "steps": steps,
        "finished": game.status == GameStatus.FINISHED,
    }
