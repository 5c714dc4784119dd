"""
Conflict resolution between the main and incoming road networks.

Handles:
- Finding candidate conflicts (intersections and near-adjacency)
- Classifying each conflict into one resolution rule
- Applying deletes, node insertions, splits and merges
- Iterating until no conflicts remain or nothing changes
"""

from .context import RunContext
from .finder import IntersectionCandidate, IntersectionFinder
from .classifier import ConflictClassifier, Resolution, Rule
from .executor import ResolutionExecutor
from .loop import ConvergenceLoop, LoopState, ResolutionEvent, RunResult
