"""
Run-scoped bookkeeping for one convergence run.

A fresh RunContext is created by every ConvergenceLoop.run() call and passed
down to the executor; nothing here outlives the run.
"""

from dataclasses import dataclass, field
from typing import Set


@dataclass
class RunContext:
    """
    Ids settled during one run.

    processed_ids and deleted_ids only ever grow. revisit_ids holds processed
    main ids queued for one more look when re-examination is enabled.
    """
    processed_ids: Set[int] = field(default_factory=set)
    deleted_ids: Set[int] = field(default_factory=set)
    revisit_ids: Set[int] = field(default_factory=set)

    def should_examine(self, main_id: int) -> bool:
        if main_id in self.deleted_ids:
            return False
        return main_id not in self.processed_ids or main_id in self.revisit_ids

    def is_live_pair(self, main_id: int, incoming_id: int) -> bool:
        return main_id not in self.deleted_ids and incoming_id not in self.deleted_ids

    def mark_processed(self, main_id: int) -> None:
        self.processed_ids.add(main_id)
        self.revisit_ids.discard(main_id)

    def mark_deleted(self, line_id: int) -> None:
        self.deleted_ids.add(line_id)

    def queue_revisit(self, main_id: int) -> None:
        if main_id not in self.deleted_ids:
            self.revisit_ids.add(main_id)
