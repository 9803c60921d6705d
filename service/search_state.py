"""
Mutable partial timetable owned by a single solver run.

Placements are applied and reverted in place, an undo log over one
shared timetable.
"""

from collections import defaultdict
from typing import Dict, List, NamedTuple, Set, Tuple

from models.schemas import TimeGrid
from service.lesson import Lesson


class Placement(NamedTuple):
    lesson: Lesson
    day: str
    start_index: int


class SearchState:
    """
    Per-class-group slot occupancy plus a per-teacher busy set.

    Slots are addressed by period index within the class group's grid; the
    teacher busy set is keyed by (day, period_id).
    """

    def __init__(self, grids_by_class_group: Dict[str, TimeGrid]):
        self._grids = grids_by_class_group
        self._slots: Dict[str, Dict[str, List[List[Lesson]]]] = {
            class_group_id: {day: [[] for _ in grid.periods] for day in grid.days}
            for class_group_id, grid in grids_by_class_group.items()
        }
        self._teacher_busy: Dict[str, Set[Tuple[str, str]]] = defaultdict(set)

    def grid_for(self, class_group_id: str) -> TimeGrid:
        return self._grids[class_group_id]

    def occupants(self, class_group_id: str, day: str, index: int) -> List[Lesson]:
        return self._slots[class_group_id][day][index]

    def is_teacher_busy(self, teacher_id: str, day: str, period_id: str) -> bool:
        return (day, period_id) in self._teacher_busy.get(teacher_id, ())

    def has_subject(self, class_group_id: str, day: str, index: int, subject_id: str) -> bool:
        return any(lesson.subject.id == subject_id for lesson in self._slots[class_group_id][day][index])

    def subject_periods_on_day(self, class_group_id: str, day: str, subject_id: str) -> int:
        """Number of periods on `day` holding `subject_id` for the class group."""
        return sum(
            1 for occupants in self._slots[class_group_id][day]
            if any(lesson.subject.id == subject_id for lesson in occupants)
        )

    def subject_on_day(self, class_group_id: str, day: str, subject_id: str) -> bool:
        return self.subject_periods_on_day(class_group_id, day, subject_id) > 0

    def place(self, lesson: Lesson, day: str, start_index: int) -> Placement:
        grid = self._grids[lesson.class_group.id]
        busy = self._teacher_busy[lesson.teacher_id]
        for index in range(start_index, start_index + lesson.duration):
            self._slots[lesson.class_group.id][day][index].append(lesson)
            busy.add((day, grid.periods[index].id))
        return Placement(lesson, day, start_index)

    def remove(self, placement: Placement) -> None:
        lesson = placement.lesson
        grid = self._grids[lesson.class_group.id]
        busy = self._teacher_busy[lesson.teacher_id]
        for index in range(placement.start_index, placement.start_index + lesson.duration):
            self._slots[lesson.class_group.id][placement.day][index].remove(lesson)
            busy.discard((placement.day, grid.periods[index].id))
