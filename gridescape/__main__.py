#!/usr/bin/env python3
"""
Headless simulator for the grid escape agent.

Plays repeated episodes against a random or algorithmic placer. The experience
table is kept between episodes so the agent's record can be watched over time.
"""

import sys
import argparse
from typing import Optional

from .domain.types import EngineConfig, GameMode, TurnResult
from .app.engine import EscapeEngine
from .utils.grid_factory import random_open_cell
from .utils.rng import SeededRNG


def place_obstacle(engine: EscapeEngine, placer: str, rng: SeededRNG) -> Optional[tuple]:
    """Block one cell using the chosen placer strategy."""
    if placer == "algo":
        return engine.place_suggested_obstacle()

    cell = random_open_cell(engine.grid, rng, exclude=[engine.agent_position])
    if cell is not None:
        engine.add_obstacle(*cell)
    return cell


def play_episode(engine: EscapeEngine, placer: str, rng: SeededRNG, max_turns: int) -> TurnResult:
    """Alternate placements and agent turns until the episode ends."""
    engine.reset_grid()
    for _ in range(max_turns):
        place_obstacle(engine, placer, rng)
        result = engine.run_turn()
        while result == TurnResult.PENDING:
            result = engine.resume(engine.config.move_duration)
        if result.is_terminal:
            return result
    return TurnResult.CONTINUE


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Simulate grid escape episodes")
    parser.add_argument("--episodes", type=int, default=100, help="Number of episodes to play")
    parser.add_argument("--size", type=int, default=9, help="Board width and height")
    parser.add_argument("--seed", type=int, default=None, help="Random seed for reproducibility")
    parser.add_argument("--mode", choices=["classic", "algo"], default="classic",
                        help="Game mode (user mode needs a person to rate moves)")
    parser.add_argument("--placer", choices=["random", "algo"], default=None,
                        help="Obstacle placer (defaults to algo in algo mode)")
    parser.add_argument("--max-turns", type=int, default=200, help="Turn limit per episode")
    parser.add_argument("--passive", action="store_true", help="Enable the passive twin log")
    parser.add_argument("--corrected-similarity", action="store_true",
                        help="Anchor position similarity on the agent instead of the origin")
    parser.add_argument("--verbose", action="store_true", help="Print every turn")

    args = parser.parse_args(argv)

    try:
        config = EngineConfig(
            grid_size=args.size,
            mode=GameMode(args.mode),
            passive_learning=args.passive,
            corrected_position_similarity=args.corrected_similarity,
            verbose=args.verbose,
        )
    except ValueError as e:
        print(f"Invalid configuration: {e}")
        return 2

    placer = args.placer or ("algo" if config.mode == GameMode.ALGO else "random")
    engine = EscapeEngine(config, rng=SeededRNG(args.seed))
    placer_rng = SeededRNG(None if args.seed is None else args.seed + 1)

    print("🧱 Grid Escape Simulation")
    print("=" * 50)
    print(f"Board: {args.size}x{args.size}, mode: {config.mode.value}, placer: {placer}")

    unfinished = 0
    for episode in range(1, args.episodes + 1):
        result = play_episode(engine, placer, placer_rng, args.max_turns)
        if result == TurnResult.CONTINUE:
            unfinished += 1

        if episode % 10 == 0 or episode == args.episodes:
            print(f"Episode {episode}: {engine.scoreboard}, data points: {engine.data_points}")

    total = engine.scoreboard.player + engine.scoreboard.ai
    escape_rate = engine.scoreboard.ai / total if total else 0.0
    print("=" * 50)
    print(f"Agent escaped {engine.scoreboard.ai} of {total} finished episodes ({escape_rate:.1%})")
    if unfinished:
        print(f"{unfinished} episodes hit the {args.max_turns}-turn limit")
    if config.passive_learning:
        print(f"Passive records: {len(engine.passive.table)}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
