"""
Timetable generation pipeline.

Allocations, subject rules, time grids and teacher availability go in; a
history entry with the placed timetable and its conflicts comes out.
"""

from typing import Dict, List, Optional
from datetime import datetime
import logging

from models.schemas import (
    GenerationRequest, GenerationResponse, ErrorMessage, Messages, LessonSummary,
    SubjectRuleConstraint, TeacherAvailabilityConstraint, TimeGrid, TimetableHistoryEntry
)
from service.audit import audit_every_day_rules
from service.backtracking_solver import (
    BacktrackingSolver, CancellationToken, GenerationCancelled, ProgressCallback, SolverResult
)
from service.constraints import ConstraintEvaluator, SubjectRuleIndex
from service.heuristics import order_lessons
from service.history import TimetableHistoryStore
from service.lesson_expander import expand_lessons, schedulable_class_groups
from service.result_packager import (
    build_timetable, format_generation_log, package_result, placement_failure_conflicts
)

logger = logging.getLogger(__name__)


class TimetableGenerator:
    """
    Runs one generation over a read-only snapshot of school data.
    """

    def __init__(
        self,
        history: TimetableHistoryStore,
        solver_version: str,
        token: Optional[CancellationToken] = None,
        max_backtracks: Optional[int] = None,
        progress_callback: Optional[ProgressCallback] = None,
        progress_interval: int = 500,
    ):
        """
        Initialize the generator.

        Args:
            history: Store the finished entry is appended to
            solver_version: Version label recorded on every entry
            token: Cancellation token checked between search steps
            max_backtracks: Optional cap on backtracks before giving up
            progress_callback: Called with (placed, total) during the search
            progress_interval: Search steps between progress callbacks
        """
        self.history = history
        self.solver_version = solver_version
        self.token = token or CancellationToken()
        self.max_backtracks = max_backtracks
        self.progress_callback = progress_callback
        self.progress_interval = progress_interval

    def generate(self, request: GenerationRequest) -> GenerationResponse:
        """
        Main entry point to generate a timetable.

        Args:
            request: Snapshot of allocations, class groups, subjects, grids and constraints

        Returns:
            GenerationResponse with the new history entry, or a CANCELLED/ERROR status
        """
        try:
            start_time = datetime.now()
            response = self._run(request)
            response.solve_time_seconds = (datetime.now() - start_time).total_seconds()
            return response

        except GenerationCancelled:
            logger.info("Timetable generation cancelled; no history entry recorded")
            return GenerationResponse(
                status="CANCELLED",
                messages=Messages(error_message=[
                    ErrorMessage(title="Generation Cancelled", message="The run was cancelled before completion.")
                ]),
            )
        except Exception as e:
            logger.error(f"Timetable generation error: {str(e)}", exc_info=True)
            return self._create_error_response(str(e))

    def _run(self, request: GenerationRequest) -> GenerationResponse:
        # Step 1: Index the snapshot
        grids = {grid.id: grid for grid in request.time_grids}
        subjects = {subject.id: subject for subject in request.subjects}
        teachers = {teacher.id: teacher for teacher in request.teachers}
        class_groups = schedulable_class_groups(request.class_groups, grids)
        grids_by_class_group: Dict[str, TimeGrid] = {
            class_group_id: grids[class_group.time_grid_id]
            for class_group_id, class_group in class_groups.items()
        }

        subject_rules: List[SubjectRuleConstraint] = [
            c for c in request.constraints if isinstance(c, SubjectRuleConstraint)
        ]
        availability: List[TeacherAvailabilityConstraint] = [
            c for c in request.constraints if isinstance(c, TeacherAvailabilityConstraint)
        ]
        rule_index = SubjectRuleIndex(subject_rules, subjects)
        evaluator = ConstraintEvaluator(rule_index, availability)

        # Step 2: Expand allocations into lessons
        lessons = expand_lessons(request.allocations, class_groups, subjects, rule_index)
        logger.info(
            f"Generating timetable for {len(class_groups)} class groups, {len(lessons)} lessons"
        )

        # Step 3: Most-constrained-first ordering
        ordered = order_lessons(lessons, evaluator, grids_by_class_group)

        # Step 4: Search
        solver = BacktrackingSolver(
            evaluator,
            grids_by_class_group,
            token=self.token,
            max_backtracks=self.max_backtracks,
            progress_callback=self.progress_callback,
            progress_interval=self.progress_interval,
        )
        result = solver.solve(ordered)

        # Step 5: Conflicts and packaging
        timetable = build_timetable(result.placements, grids_by_class_group)
        conflicts = placement_failure_conflicts(result.unplaced, teachers)
        conflicts.extend(audit_every_day_rules(
            timetable, class_groups, grids_by_class_group, subject_rules, subjects
        ))

        # Last chance to honour a cancellation before anything is recorded
        self.token.raise_if_cancelled()

        entry = package_result(
            timetable, conflicts, result.total_backtracks, self.solver_version, request.academic_year
        )
        self.history.append(entry)
        logger.info(format_generation_log(entry))

        return self._create_response(result, entry)

    def _create_response(self, result: SolverResult, entry: TimetableHistoryEntry) -> GenerationResponse:
        """Create response for a finished run."""
        status = "COMPLETE" if not result.unplaced else "PARTIAL"
        if status == "PARTIAL":
            logger.warning(f"{len(result.unplaced)} lessons could not be placed")

        most_difficult = None
        worst = result.most_difficult_lesson()
        if worst is not None:
            lesson, count = worst
            most_difficult = LessonSummary(
                lesson_id=lesson.id,
                class_group_id=lesson.class_group.id,
                subject_id=lesson.subject.id,
                teacher_id=lesson.teacher_id,
                duration=lesson.duration,
                backtracks=count,
            )

        error_messages = []
        if result.budget_exhausted:
            error_messages.append(ErrorMessage(
                title="Search Stopped",
                message="The backtrack limit was reached; the best partial timetable was kept.",
            ))

        return GenerationResponse(
            status=status,
            entry=entry,
            lessons_total=len(result.lessons),
            lessons_placed=len(result.placements),
            total_backtracks=result.total_backtracks,
            search_steps=result.steps,
            most_difficult_lesson=most_difficult,
            messages=Messages(error_message=error_messages),
        )

    def _create_error_response(self, error: str) -> GenerationResponse:
        """Create response for an unexpected generator failure."""
        return GenerationResponse(
            status="ERROR",
            messages=Messages(error_message=[
                ErrorMessage(title="Generator Error", message=error)
            ]),
        )
