"""
Placement validity checks for the timetable generator.

The evaluator answers one question: may this lesson start at this day and
period given the current partial timetable? It never mutates the state.
"""

from typing import Dict, List, Optional, Sequence, Set, Tuple

from models.schemas import (
    Subject, SubjectRuleConstraint, TeacherAvailabilityConstraint, TimeGrid
)
from service.lesson import Lesson
from service.search_state import SearchState


class SubjectRuleIndex:
    """Lookup of subject rules by class group and subject."""

    def __init__(self, rules: Sequence[SubjectRuleConstraint], subjects: Dict[str, Subject]):
        self._subjects = subjects
        self._exact: Dict[Tuple[str, str], SubjectRuleConstraint] = {}
        self._by_class_group: Dict[str, List[SubjectRuleConstraint]] = {}
        for rule in rules:
            self._exact.setdefault((rule.class_group_id, rule.subject_id), rule)
            self._by_class_group.setdefault(rule.class_group_id, []).append(rule)

    def exact(self, class_group_id: str, subject_id: str) -> Optional[SubjectRuleConstraint]:
        """First rule stored for exactly this class group and subject."""
        return self._exact.get((class_group_id, subject_id))

    def resolve(self, class_group_id: str, subject: Subject) -> Optional[SubjectRuleConstraint]:
        """
        Exact (class group, subject) rule, else the elective group's rule.

        Elective group rules are stored against one representative subject,
        so any rule of the same class group whose subject shares the group
        applies to every member of that group.
        """
        rule = self.exact(class_group_id, subject.id)
        if rule is not None:
            return rule

        if not subject.is_grouped_elective:
            return None

        for candidate in self._by_class_group.get(class_group_id, []):
            representative = self._subjects.get(candidate.subject_id)
            if representative is not None and representative.elective_group == subject.elective_group:
                return candidate
        return None


class ConstraintEvaluator:
    """
    Hard placement checks, applied in order and short-circuiting:

    1. the span fits in the grid and covers lesson periods only
    2. the teacher is free and available for every period of the span
    3. the class group's slots are empty or hold electives of the same group
    4. the subject rule (per-day cap, day spacing, consecutiveness, time of day)
    """

    def __init__(
        self,
        rule_index: SubjectRuleIndex,
        availability: Sequence[TeacherAvailabilityConstraint] = (),
    ):
        self.rule_index = rule_index
        self.unavailable: Set[Tuple[str, str, str]] = {
            (constraint.target_id, constraint.day, constraint.period_id)
            for constraint in availability
        }

    def is_placement_valid(
        self,
        lesson: Lesson,
        day: str,
        start_index: int,
        state: SearchState,
        grid: TimeGrid,
    ) -> bool:
        return (
            self._span_fits(lesson, start_index, grid)
            and self._teacher_free(lesson, day, start_index, state, grid)
            and self._slots_compatible(lesson, day, start_index, state)
            and self._subject_rules_hold(lesson, day, start_index, state, grid)
        )

    def valid_slots(self, lesson: Lesson, state: SearchState) -> List[Tuple[str, int]]:
        """All valid (day, start index) pairs in grid day order, then period order."""
        grid = state.grid_for(lesson.class_group.id)
        return [
            (day, start_index)
            for day in grid.days
            for start_index in range(len(grid.periods))
            if self.is_placement_valid(lesson, day, start_index, state, grid)
        ]

    def _span_fits(self, lesson: Lesson, start_index: int, grid: TimeGrid) -> bool:
        end_index = start_index + lesson.duration
        if end_index > len(grid.periods):
            return False
        return all(period.type == "Lesson" for period in grid.periods[start_index:end_index])

    def _teacher_free(self, lesson: Lesson, day: str, start_index: int, state: SearchState, grid: TimeGrid) -> bool:
        for period in grid.periods[start_index:start_index + lesson.duration]:
            if state.is_teacher_busy(lesson.teacher_id, day, period.id):
                return False
            if (lesson.teacher_id, day, period.id) in self.unavailable:
                return False
        return True

    def _slots_compatible(self, lesson: Lesson, day: str, start_index: int, state: SearchState) -> bool:
        for index in range(start_index, start_index + lesson.duration):
            occupants = state.occupants(lesson.class_group.id, day, index)
            if not occupants:
                continue
            if not lesson.subject.is_grouped_elective:
                return False
            for occupant in occupants:
                if not occupant.subject.is_grouped_elective:
                    return False
                if occupant.subject.elective_group != lesson.subject.elective_group:
                    return False
        return True

    def _subject_rules_hold(self, lesson: Lesson, day: str, start_index: int, state: SearchState, grid: TimeGrid) -> bool:
        rule = self.rule_index.resolve(lesson.class_group.id, lesson.subject)
        if rule is None:
            return True
        rules = rule.rules
        class_group_id = lesson.class_group.id
        subject_id = lesson.subject.id

        if rules.max_periods_per_day is not None:
            placed = state.subject_periods_on_day(class_group_id, day, subject_id)
            if placed + lesson.duration > rules.max_periods_per_day:
                return False

        if rules.min_days_apart > 0:
            day_index = grid.days.index(day)
            low = max(0, day_index - rules.min_days_apart)
            high = min(len(grid.days) - 1, day_index + rules.min_days_apart)
            for other in grid.days[low:high + 1]:
                if state.subject_on_day(class_group_id, other, subject_id):
                    return False

        if rules.max_consecutive is not None:
            before = 0
            index = start_index - 1
            while index >= 0 and state.has_subject(class_group_id, day, index, subject_id):
                before += 1
                index -= 1
            after = 0
            index = start_index + lesson.duration
            while index < len(grid.periods) and state.has_subject(class_group_id, day, index, subject_id):
                after += 1
                index += 1
            if before + lesson.duration + after > rules.max_consecutive:
                return False

        if rules.preferred_time == "morning":
            return start_index < grid.morning_cutoff_index()
        if rules.preferred_time == "afternoon":
            return start_index >= grid.morning_cutoff_index()

        return True
