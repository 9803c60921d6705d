"""
Converts solver output into an immutable timetable history entry.
"""

from datetime import datetime, timezone
from typing import Dict, List, Optional
import uuid

from models.schemas import (
    Conflict, ConflictDetails, ConflictType, GeneratedSlot,
    GeneratedTimetable, Teacher, TimeGrid, TimetableHistoryEntry
)
from service.lesson import Lesson
from service.search_state import Placement


def build_timetable(
    placements: List[Placement],
    grids_by_class_group: Dict[str, TimeGrid],
) -> GeneratedTimetable:
    """Nested class group -> day -> period id -> occupants; empty slots are None."""
    timetable: GeneratedTimetable = {
        class_group_id: {
            day: {period.id: None for period in grid.periods}
            for day in grid.days
        }
        for class_group_id, grid in grids_by_class_group.items()
    }

    for placement in placements:
        lesson = placement.lesson
        grid = grids_by_class_group[lesson.class_group.id]
        day_slots = timetable[lesson.class_group.id][placement.day]
        for period in grid.periods[placement.start_index:placement.start_index + lesson.duration]:
            if day_slots[period.id] is None:
                day_slots[period.id] = []
            day_slots[period.id].append(GeneratedSlot(
                id=lesson.slot_id,
                class_group_id=lesson.class_group.id,
                subject_id=lesson.subject.id,
                teacher_id=lesson.teacher_id,
            ))

    return timetable


def placement_failure_conflicts(unplaced: List[Lesson], teachers: Dict[str, Teacher]) -> List[Conflict]:
    conflicts = []
    for lesson in unplaced:
        teacher = teachers.get(lesson.teacher_id)
        teacher_name = teacher.name if teacher and teacher.name else lesson.teacher_id
        period_word = "period" if lesson.duration == 1 else "periods"
        conflicts.append(Conflict(
            id=f"conflict-{uuid.uuid4().hex}",
            type=ConflictType.PLACEMENT_FAILURE,
            message=(
                f"Could not place a {lesson.duration}-{period_word} {lesson.subject.name} lesson "
                f"for {lesson.class_group.name} with {teacher_name}."
            ),
            details=ConflictDetails(
                teacher_id=lesson.teacher_id,
                teacher_name=teacher_name,
                class_group_id=lesson.class_group.id,
                class_group_name=lesson.class_group.name,
                subject_id=lesson.subject.id,
                subject_name=lesson.subject.name,
            ),
        ))
    return conflicts


def objective_score(conflict_count: int, total_backtracks: int) -> int:
    """
    Heuristic quality signal: 1000 less 20 per conflict and 0.1 per backtrack.

    Worked in tenths so exact halves round up (992.5 -> 993).
    """
    tenths = 10000 - 200 * conflict_count - total_backtracks
    return max(0, (tenths + 5) // 10)


def new_solver_seed() -> str:
    """Label for the run. The search is deterministic and never reads it."""
    return uuid.uuid4().hex[:8]


def package_result(
    timetable: GeneratedTimetable,
    conflicts: List[Conflict],
    total_backtracks: int,
    solver_version: str,
    academic_year: Optional[str] = None,
) -> TimetableHistoryEntry:
    return TimetableHistoryEntry(
        id=f"history-{uuid.uuid4().hex}",
        timestamp=datetime.now(timezone.utc).isoformat(),
        timetable=timetable,
        conflicts=conflicts,
        objective_score=objective_score(len(conflicts), total_backtracks),
        solver_seed=new_solver_seed(),
        solver_version=solver_version,
        academic_year=academic_year,
    )


def format_generation_log(entry: TimetableHistoryEntry) -> str:
    return (
        f"Generated timetable with {len(entry.conflicts)} conflicts. "
        f"Score: {entry.objective_score}, Seed: {entry.solver_seed}, Version: {entry.solver_version}."
    )
