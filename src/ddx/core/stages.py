"""
Copyright (c) 2025 initumX (initum.x@gmail.com)
Licensed under the MIT License

core/stages.py
Matching stages run on every comparable extension group.

CLASS HIERARCHY
---------------
GroupState          : Per-group working state (name-ordered lists + consumed flags)
ComparingStageBase  : Shared oracle invocation and error wrapping
ExactMatchStage     : Phase 1, greedy first-fit pairing of content-identical images
OrderPairingStage   : Phase 2, pairs leftovers by position and keeps their diff images
PresenceStage       : Phase 3, whatever is still unpaired exists on one side only

STAGE CONTRACTS
---------------
Each stage implements `process(state, result)` which:
  • Reads only images not yet consumed by an earlier stage
  • Marks every image it decides on as consumed
  • Appends its decisions to the shared ReconciliationResult in name order
After the three stages every image of the group is consumed exactly once.

ORDERING
--------
Lists are sorted by name before the stages run. Phase 1 scans the second list in
that order and accepts the first identical candidate (not a global optimum).
Phase 2 pairs the k-th leftover of each side. Both rules make the result a pure
function of the two filename sets and the oracle answers.
"""

import logging
from dataclasses import dataclass, field
from typing import List, Dict

from ddx.core.models import ImageRef, ComparisonOutcome, MatchedPair, DifferentPair, ReconciliationResult
from ddx.core.interfaces import Comparator, MatchStage
from ddx.core.errors import OracleInvocationError, ReconciliationError
from ddx.core.naming import artifact_path, relocate_artifact

logger = logging.getLogger(__name__)


#=============================
# Group State
#=============================
@dataclass
class GroupState:
    """
    Working state of one extension group.
    `sources` overrides the path handed to the comparator (rasterized copies).
    """
    extension: str
    list1: List[ImageRef]
    list2: List[ImageRef]
    scratch_dir: str
    output_dir: str
    artifact_suffix: str = ""
    sources: Dict[ImageRef, str] = field(default_factory=dict)
    consumed1: List[bool] = field(init=False)
    consumed2: List[bool] = field(init=False)

    def __post_init__(self):
        self.consumed1 = [False] * len(self.list1)
        self.consumed2 = [False] * len(self.list2)

    def source(self, ref: ImageRef) -> str:
        return self.sources.get(ref, ref.path)

    def unconsumed_first(self) -> List[int]:
        return [i for i, done in enumerate(self.consumed1) if not done]

    def unconsumed_second(self) -> List[int]:
        return [j for j, done in enumerate(self.consumed2) if not done]

    def is_complete(self) -> bool:
        return all(self.consumed1) and all(self.consumed2)

    def __repr__(self):
        return f"<GroupState ext={self.extension!r}, n1={len(self.list1)}, n2={len(self.list2)}>"


# =============================
# Base Class
# =============================
class ComparingStageBase(MatchStage):
    """
    Base class for stages that consult the comparator.
    A fatal oracle failure is re-raised with the pair and group that caused it.
    """

    def __init__(self, comparator: Comparator):
        self.comparator = comparator

    def get_stage_name(self) -> str:
        raise NotImplementedError

    def _compare(self, state: GroupState, ref1: ImageRef, ref2: ImageRef, output_dir: str) -> ComparisonOutcome:
        try:
            outcome = self.comparator.compare(state.source(ref1), state.source(ref2), output_dir)
        except OracleInvocationError as e:
            logger.error(f"{self.get_stage_name()}: comparing {ref1.name} vs {ref2.name} failed: {e}")
            raise ReconciliationError(state.extension, ref1.name, ref2.name, e) from e

        logger.debug(
            f"{self.get_stage_name()}: {ref1.name} vs {ref2.name} -> "
            f"different={outcome.different}, score={outcome.score}"
        )
        return outcome


# =============================
# Individual Stages
# =============================
class ExactMatchStage(ComparingStageBase):
    """Phase 1: pair every first-side image with the first identical unconsumed second-side image."""

    def get_stage_name(self) -> str:
        return "Exact match"

    def process(self, state: GroupState, result: ReconciliationResult) -> None:
        for i, ref1 in enumerate(state.list1):
            for j, ref2 in enumerate(state.list2):
                if state.consumed2[j]:
                    continue
                outcome = self._compare(state, ref1, ref2, state.scratch_dir)
                if not outcome.different:
                    state.consumed1[i] = True
                    state.consumed2[j] = True
                    result.matched.append(MatchedPair(image1=ref1, image2=ref2))
                    break


class OrderPairingStage(ComparingStageBase):
    """
    Phase 2: the k-th leftover of the first side is paired with the k-th leftover
    of the second side. Pairs are recorded as different even if the oracle now
    calls them identical; only phase 1 produces matches.
    """

    def get_stage_name(self) -> str:
        return "Order pairing"

    def process(self, state: GroupState, result: ReconciliationResult) -> None:
        leftovers1 = state.unconsumed_first()
        leftovers2 = state.unconsumed_second()

        for i, j in zip(leftovers1, leftovers2):
            ref1 = state.list1[i]
            ref2 = state.list2[j]
            outcome = self._compare(state, ref1, ref2, state.output_dir)

            diff_path = ""
            if outcome.different and outcome.artifact_path:
                final_path = artifact_path(ref1.name, ref2.name, state.output_dir, state.artifact_suffix)
                diff_path = relocate_artifact(outcome.artifact_path, final_path)

            state.consumed1[i] = True
            state.consumed2[j] = True
            result.different.append(
                DifferentPair(image1=ref1, image2=ref2, score=outcome.score, diff_path=diff_path)
            )


class PresenceStage(MatchStage):
    """Phase 3: anything still unconsumed has no counterpart."""

    def get_stage_name(self) -> str:
        return "Presence"

    def process(self, state: GroupState, result: ReconciliationResult) -> None:
        for i in state.unconsumed_first():
            state.consumed1[i] = True
            result.only_in_first.append(state.list1[i])
        for j in state.unconsumed_second():
            state.consumed2[j] = True
            result.only_in_second.append(state.list2[j])

        logger.debug(f"Group {state.extension!r} complete")
