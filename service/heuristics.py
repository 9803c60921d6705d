"""
Static most-constrained-first ordering of lessons.
"""

from typing import Dict, List

from models.schemas import TimeGrid
from service.constraints import ConstraintEvaluator
from service.lesson import Lesson
from service.search_state import SearchState


def domain_sizes(lessons: List[Lesson], evaluator: ConstraintEvaluator, grids_by_class_group: Dict[str, TimeGrid]) -> Dict[str, int]:
    """Valid slot count per lesson id against an empty timetable."""
    empty = SearchState(grids_by_class_group)
    return {lesson.id: len(evaluator.valid_slots(lesson, empty)) for lesson in lessons}


def order_lessons(lessons: List[Lesson], evaluator: ConstraintEvaluator, grids_by_class_group: Dict[str, TimeGrid]) -> List[Lesson]:
    """
    Sort lessons by domain size ascending, longer lessons first on ties.

    Computed once before the search; the order is not revised as lessons
    are placed. The sort is stable so equal lessons keep expansion order.
    """
    sizes = domain_sizes(lessons, evaluator, grids_by_class_group)
    return sorted(lessons, key=lambda lesson: (sizes[lesson.id], -lesson.duration))
