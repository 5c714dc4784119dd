#!/usr/bin/env python3
"""
Convergence loop for conflating the incoming collection into main.

Each iteration fetches fresh candidates and resolves them main line by main
line. The run ends:
- QUIESCENT when no candidates remain
- LIVELOCKED when an iteration with candidates changed nothing (or the
  optional iteration cap is reached)

Every examined main id is marked processed, so each iteration either settles
at least one new main id or ends the run.
"""

import logging
from collections import Counter
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Dict, List, Optional

from .classifier import ConflictClassifier, Rule
from .context import RunContext
from .executor import ResolutionExecutor
from .finder import IntersectionCandidate, IntersectionFinder

logger = logging.getLogger(__name__)


class LoopState(str, Enum):
    """Convergence loop states."""
    RUNNING = "running"
    QUIESCENT = "quiescent"
    LIVELOCKED = "livelocked"


@dataclass(frozen=True)
class ResolutionEvent:
    """One classified candidate, reported to the observer hook."""
    iteration: int
    main_id: int
    incoming_id: int
    rule: Rule
    mutated: bool


@dataclass
class RunResult:
    """Outcome of one convergence run."""
    state: LoopState
    iterations: int = 0
    mutations: int = 0
    rule_counts: Dict[str, int] = field(default_factory=dict)
    context: RunContext = field(default_factory=RunContext)


class ConvergenceLoop:
    """
    Drives finder, classifier and executor until the collections settle.

    Args:
        revisit_mutated: examine a main id again in the next iteration when its
            candidates caused a mutation, instead of settling it for the run
        max_iterations: optional hard cap, reaching it counts as livelock
        observer: optional callable receiving a ResolutionEvent per decision
    """

    def __init__(
        self,
        finder: IntersectionFinder,
        classifier: ConflictClassifier,
        executor: ResolutionExecutor,
        revisit_mutated: bool = False,
        max_iterations: Optional[int] = None,
        observer: Optional[Callable[[ResolutionEvent], None]] = None
    ):
        self.finder = finder
        self.classifier = classifier
        self.executor = executor
        self.revisit_mutated = revisit_mutated
        self.max_iterations = max_iterations
        self.observer = observer

    def _emit(self, event: ResolutionEvent) -> None:
        if self.observer is not None:
            self.observer(event)

    def _resolve_main(
        self,
        iteration: int,
        main_id: int,
        candidates: List[IntersectionCandidate],
        context: RunContext,
        rule_counts: Counter
    ) -> int:
        mutations = 0
        logger.debug(f"Main line {main_id}: {len(candidates)} candidates")

        for candidate in candidates:
            if not context.is_live_pair(main_id, candidate.incoming_id):
                logger.debug(f"Skipping incoming {candidate.incoming_id} (deleted this run)")
                continue

            resolution = self.classifier.classify(candidate)
            mutated = False
            if resolution.rule is not Rule.NONE:
                mutated = self.executor.apply(candidate, resolution, context)

            rule_counts[resolution.rule.value] += 1
            if mutated:
                mutations += 1
            logger.debug(
                f"main={main_id} incoming={candidate.incoming_id} "
                f"rule={resolution.rule.value} mutated={mutated}"
            )
            self._emit(ResolutionEvent(iteration, main_id, candidate.incoming_id, resolution.rule, mutated))

        # Settle the main id even when nothing fired, so the loop progresses
        context.mark_processed(main_id)
        if mutations and self.revisit_mutated:
            context.queue_revisit(main_id)
        return mutations

    def _run_iteration(
        self,
        iteration: int,
        candidates: Dict[int, List[IntersectionCandidate]],
        context: RunContext,
        rule_counts: Counter
    ) -> int:
        mutations = 0
        for main_id, main_candidates in candidates.items():
            if not context.should_examine(main_id):
                logger.debug(f"Skipping main {main_id} (already processed or deleted)")
                continue
            mutations += self._resolve_main(iteration, main_id, main_candidates, context, rule_counts)
        return mutations

    def run(self) -> RunResult:
        """Run until quiescent or livelocked."""
        context = RunContext()
        rule_counts = Counter()
        state = LoopState.RUNNING
        iteration = 0
        total_mutations = 0

        while state is LoopState.RUNNING:
            if self.max_iterations is not None and iteration >= self.max_iterations:
                logger.warning(f"Stopping after {iteration} iterations (max_iterations reached)")
                state = LoopState.LIVELOCKED
                break

            iteration += 1
            candidates = self.finder.find()
            if not candidates:
                logger.info(f"Iteration {iteration}: no candidates left")
                state = LoopState.QUIESCENT
                break

            mutations = self._run_iteration(iteration, candidates, context, rule_counts)
            total_mutations += mutations
            logger.info(
                f"Iteration {iteration}: {len(candidates)} main lines with candidates, "
                f"{mutations} mutations"
            )

            if mutations == 0:
                logger.info("No changes in this iteration, stopping to avoid cycling")
                state = LoopState.LIVELOCKED

        logger.info(
            f"Conflation {state.value} after {iteration} iterations, "
            f"{total_mutations} mutations, deleted {len(context.deleted_ids)} incoming lines"
        )
        return RunResult(
            state=state,
            iterations=iteration,
            mutations=total_mutations,
            rule_counts=dict(rule_counts),
            context=context,
        )
