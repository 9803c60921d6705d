"""
Backtracking search that places lessons into class group time grids.

The search walks the lessons in the order given (see service.heuristics),
tries every valid slot for each one, and backs up to the previous lesson
when a lesson has no slot left. It never raises for an unplaceable lesson:
the deepest partial assignment reached is returned together with the
lessons it does not contain.
"""

from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Tuple
import logging
import threading

from models.schemas import TimeGrid
from service.constraints import ConstraintEvaluator
from service.lesson import Lesson
from service.search_state import Placement, SearchState

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[int, int], None]


class GenerationCancelled(Exception):
    """Raised inside a run once its cancellation token has been set."""


class CancellationToken:
    """Cooperative cancellation flag shared between a run and its caller."""

    def __init__(self):
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise GenerationCancelled("Timetable generation was cancelled")


@dataclass
class SolverResult:
    lessons: List[Lesson]
    placements: List[Placement]
    unplaced: List[Lesson]
    backtrack_counts: Dict[str, int]
    success: bool
    budget_exhausted: bool = False
    steps: int = 0

    @property
    def total_backtracks(self) -> int:
        return sum(self.backtrack_counts.values())

    def most_difficult_lesson(self) -> Optional[Tuple[Lesson, int]]:
        """Lesson that forced the most backtracking, or None if nothing backtracked."""
        worst: Optional[Tuple[Lesson, int]] = None
        for lesson in self.lessons:
            count = self.backtrack_counts.get(lesson.id, 0)
            if count > 0 and (worst is None or count > worst[1]):
                worst = (lesson, count)
        return worst


@dataclass
class _Frame:
    lesson: Lesson
    candidates: List[Tuple[str, int]]
    cursor: int = 0
    placement: Optional[Placement] = field(default=None)


class BacktrackingSolver:
    """
    Depth-first placement with undo.

    Each frame of the explicit stack holds one lesson, the slots that were
    valid for it when it was reached, and the slot currently in use. The
    state is restored by removing a frame's placement before trying the
    frame's next slot, so the candidate list stays valid.
    """

    def __init__(
        self,
        evaluator: ConstraintEvaluator,
        grids_by_class_group: Dict[str, TimeGrid],
        token: Optional[CancellationToken] = None,
        max_backtracks: Optional[int] = None,
        progress_callback: Optional[ProgressCallback] = None,
        progress_interval: int = 500,
    ):
        self.evaluator = evaluator
        self.grids_by_class_group = grids_by_class_group
        self.token = token or CancellationToken()
        self.max_backtracks = max_backtracks
        self.progress_callback = progress_callback
        self.progress_interval = max(1, progress_interval)

    def solve(self, lessons: List[Lesson]) -> SolverResult:
        state = SearchState(self.grids_by_class_group)
        backtrack_counts = {lesson.id: 0 for lesson in lessons}
        frames: List[_Frame] = []
        best: List[Placement] = []
        total_backtracks = 0
        steps = 0
        success = False
        budget_exhausted = False
        resume = False

        while True:
            self._checkpoint(steps, len(frames), len(lessons))
            steps += 1

            if not resume:
                if len(frames) == len(lessons):
                    success = True
                    break
                lesson = lessons[len(frames)]
                frames.append(_Frame(lesson, self.evaluator.valid_slots(lesson, state)))

            frame = frames[-1]
            if frame.placement is not None:
                state.remove(frame.placement)
                frame.placement = None

            if frame.cursor < len(frame.candidates):
                day, start_index = frame.candidates[frame.cursor]
                frame.cursor += 1
                frame.placement = state.place(frame.lesson, day, start_index)
                if len(frames) > len(best):
                    best = [f.placement for f in frames]
                resume = False
                continue

            # Dead end: no remaining slot for this lesson leads anywhere
            backtrack_counts[frame.lesson.id] += 1
            total_backtracks += 1
            frames.pop()
            logger.debug(f"Backtracking from lesson {frame.lesson.id} at depth {len(frames)}")

            if not frames:
                break
            if self.max_backtracks is not None and total_backtracks >= self.max_backtracks:
                budget_exhausted = True
                logger.warning(f"Backtrack budget of {self.max_backtracks} exhausted")
                break
            resume = True

        if success:
            best = [f.placement for f in frames]

        placed_ids = {placement.lesson.id for placement in best}
        unplaced = [lesson for lesson in lessons if lesson.id not in placed_ids]

        return SolverResult(
            lessons=lessons,
            placements=best,
            unplaced=unplaced,
            backtrack_counts=backtrack_counts,
            success=success,
            budget_exhausted=budget_exhausted,
            steps=steps,
        )

    def _checkpoint(self, steps: int, placed: int, total: int) -> None:
        """Cancellation check and progress report between search steps."""
        self.token.raise_if_cancelled()
        if self.progress_callback is not None and steps % self.progress_interval == 0:
            self.progress_callback(placed, total)
