#!/usr/bin/env python3
"""
Benchmark for the baseline agents

Plays a series of seeded matches between agents and reports average rank
and final score per seat. Useful as a smoke test of the engine: every
match must finish without an illegal action and with points conserved.

Usage:
    python -m agents.benchmark --matches 20 --agents greedy random random random
    python -m agents.benchmark --rules tonpuusen --seed 7 --verbose
"""

import argparse
import logging
import sys
from typing import Dict, List, Sequence

import numpy as np

from riichi_engine.game import Game
from riichi_engine.rules import GameRules, STANDARD_RULES, TENHOU_RULES, TONPUUSEN_RULES, STRICT_RULES

from .random_agent import RandomAgent, GreedyAgent
from .runner import run_match

logger = logging.getLogger(__name__)

RULE_PRESETS = {
    "standard": STANDARD_RULES,
    "tenhou": TENHOU_RULES,
    "tonpuusen": TONPUUSEN_RULES,
    "strict": STRICT_RULES,
}

AGENT_TYPES = {
    "random": RandomAgent,
    "greedy": GreedyAgent,
}

SEATS = ["east", "south", "west", "north"]


def play_matches(
    agent_types: Sequence[str],
    matches: int,
    rules: GameRules = STANDARD_RULES,
    seed: int = 0,
    max_steps: int = 20000,
) -> Dict[str, Dict]:
    """
    Play seeded matches and collect per-seat results.

    Args:
        agent_types: One AGENT_TYPES key per seat
        matches: Number of matches to play
        rules: Rule configuration for every match
        seed: Base seed; match i uses seed + i for walls and agents
        max_steps: Step limit per match

    Returns:
        Per-seat ranks and scores, plus the number of unfinished matches
    """
    if len(agent_types) != 4:
        raise ValueError(f"Need four agents, got {len(agent_types)}")

    ranks: Dict[str, List[int]] = {s: [] for s in SEATS}
    scores: Dict[str, List[int]] = {s: [] for s in SEATS}
    unfinished = 0

    for i in range(matches):
        game = Game(SEATS, rules, seed=seed + i)
        agents = {
            seat: AGENT_TYPES[kind](seed=(seed + i) * 4 + n)
            for n, (seat, kind) in enumerate(zip(SEATS, agent_types))
        }
        summary = run_match(game, agents, max_steps=max_steps)
        if not summary["finished"]:
            unfinished += 1
        for entry in summary["standings"]:
            ranks[entry["id"]].append(entry["rank"])
            scores[entry["id"]].append(entry["score"])
        logger.debug(f"Match {i + 1}: {summary['rounds']} rounds, {summary['steps']} steps")

    return {
        "seats": {
            seat: {
                "agent": kind,
                "avg_rank": float(np.mean(ranks[seat])) if ranks[seat] else 0.0,
                "avg_score": float(np.mean(scores[seat])) if scores[seat] else 0.0,
                "first_places": ranks[seat].count(1),
            }
            for seat, kind in zip(SEATS, agent_types)
        },
        "matches": matches,
        "unfinished": unfinished,
    }


def print_report(report: Dict) -> None:
    print("\n" + "=" * 60)
    print("RIICHI ENGINE AGENT BENCHMARK")
    print("=" * 60)
    print(f"Matches: {report['matches']}  (unfinished: {report['unfinished']})\n")
    print(f"{'Seat':<8}{'Agent':<10}{'Avg rank':>10}{'Avg score':>12}{'1st':>6}")
    for seat, stats in report["seats"].items():
        print(
            f"{seat:<8}{stats['agent']:<10}{stats['avg_rank']:>10.2f}"
            f"{stats['avg_score']:>12.0f}{stats['first_places']:>6}"
        )
    print("=" * 60)


def main():
    parser = argparse.ArgumentParser(description="Benchmark baseline Riichi Mahjong agents")
    parser.add_argument("--matches", type=int, default=10,
                        help="Number of matches to play")
    parser.add_argument("--agents", nargs=4, default=["greedy", "random", "random", "random"],
                        choices=sorted(AGENT_TYPES), metavar="AGENT",
                        help="Agent per seat: random or greedy")
    parser.add_argument("--rules", type=str, default="standard", choices=sorted(RULE_PRESETS),
                        help="Rule preset")
    parser.add_argument("--seed", type=int, default=0,
                        help="Base seed for walls and agents")
    parser.add_argument("--max-steps", type=int, default=20000,
                        help="Step limit per match")
    parser.add_argument("--verbose", action="store_true")

    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

    report = play_matches(args.agents, args.matches, RULE_PRESETS[args.rules], args.seed, args.max_steps)
    print_report(report)

    # Unfinished matches mean the step limit was hit
    sys.exit(1 if report["unfinished"] else 0)


if __name__ == "__main__":
    main()
