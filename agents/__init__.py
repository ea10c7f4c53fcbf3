"""
Riichi Mahjong Agents
"""

from .random_agent import RandomAgent, GreedyAgent
from .runner import run_match

__all__ = [
    "RandomAgent",
    "GreedyAgent",
    "run_match",
]
