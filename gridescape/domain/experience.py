"""Experience table and the weighted-random policy that stands in for Q-learning."""

import math
from typing import List, Iterator, Tuple

from .types import (
    Coord, Direction, Decision, ExperienceRecord, EngineConfig, LegalMask,
    Signature, NoLegalMoveError
)
from ..utils.rng import SeededRNG

# Anchor used by the position term of the similarity score
ORIGIN: Coord = (0, 0)


def get_weight(outcome: float) -> float:
    """Scale a recorded outcome into a candidate weight; bad outcomes stay negative."""
    if outcome >= 0.5:
        return outcome * 3
    if -0.5 < outcome < 0.5:
        return outcome * 1.5
    return outcome


def shared_quadrants(a: Signature, b: Signature) -> int:
    """Count of quadrants present in both signatures."""
    return len(a & b)


def similarity_score(signature: Signature, record: ExperienceRecord,
                     position_weight: float = 0.25,
                     anchor: Coord = ORIGIN) -> float:
    """
    Similarity between the current signature and a past record.

    Signature overlap counts a quarter per shared quadrant. The position term
    measures the record's stored position against `anchor`. The anchor
    defaults to the origin rather than the current agent position, which
    keeps the term nearly constant. Pass the agent position to get the
    corrected behaviour.
    """
    overlap = shared_quadrants(signature, record.signature) / 4.0
    rx, rz = record.position
    proximity = 1.0 / (1.0 + math.hypot(rx - anchor[0], rz - anchor[1]))
    return overlap + position_weight * proximity


class ExperienceTable:
    """Append-only log of past decisions and how they turned out."""

    def __init__(self):
        self._records: List[ExperienceRecord] = []

    def record_outcome(self, record: ExperienceRecord):
        """Append a record. Earlier records are never touched."""
        self._records.append(record)

    def clear(self):
        """Forget every record."""
        self._records.clear()

    @property
    def records(self) -> Tuple[ExperienceRecord, ...]:
        return tuple(self._records)

    def __len__(self) -> int:
        return len(self._records)

    def __iter__(self) -> Iterator[ExperienceRecord]:
        return iter(self._records)


class ExperiencePolicy:
    """
    Chooses moves from the experience table.

    Past actions taken in the same signature are favoured in proportion to
    how well they scored. Actions from similar signatures count at a reduced
    weight. With no usable history the policy explores uniformly.
    """

    def __init__(self, table: ExperienceTable, config: EngineConfig, rng: SeededRNG):
        self.table = table
        self.config = config
        self.rng = rng

    def _anchor(self, position: Coord) -> Coord:
        if self.config.corrected_position_similarity:
            return position
        return ORIGIN

    def candidate_pool(self, signature: Signature, position: Coord,
                       legal_mask: LegalMask) -> List[Direction]:
        """Legal past actions, repeated by their weight."""
        pool: List[Direction] = []
        anchor = self._anchor(position)

        exact = []
        similar = []
        for record in self.table:
            if record.signature == signature:
                exact.append(record)
            elif similarity_score(signature, record,
                                  self.config.position_similarity_weight,
                                  anchor) >= self.config.similarity_threshold:
                similar.append(record)

        for record in exact:
            if legal_mask[record.chosen_action]:
                repeats = math.ceil(get_weight(record.outcome))
                pool.extend([record.chosen_action] * max(repeats, 0))

        for record in similar:
            if legal_mask[record.chosen_action]:
                repeats = math.ceil(get_weight(record.outcome) * self.config.similar_weight_scale)
                pool.extend([record.chosen_action] * max(repeats, 0))

        return pool

    def decide_action(self, signature: Signature, position: Coord,
                      legal_mask: LegalMask) -> Decision:
        """
        Pick the next move.

        Raises:
            NoLegalMoveError: If no direction is legal
        """
        legal = [direction for direction in Direction if legal_mask[direction]]
        if not legal:
            raise NoLegalMoveError(f"No legal move from {position}")

        pool = self.candidate_pool(signature, position, legal_mask)
        if pool:
            return Decision(direction=self.rng.choice(pool), exploratory=False,
                            candidate_pool_size=len(pool))

        return Decision(direction=self.rng.choice(legal), exploratory=True)


def make_record(signature: Signature, position: Coord, legal_mask: LegalMask,
                decision: Decision, outcome: float) -> ExperienceRecord:
    """Build the record logged at the end of a turn; outcome is clamped to [-1, 1]."""
    return ExperienceRecord(
        signature=frozenset(signature),
        position=position,
        legal_actions=tuple(legal_mask),
        chosen_action=decision.direction,
        outcome=max(-1.0, min(1.0, float(outcome))),
    )

