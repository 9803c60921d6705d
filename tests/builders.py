"""
Small factories for building generator inputs in tests.
"""
from typing import List, Optional, Sequence, Tuple

from models.schemas import (
    Allocation, ClassGroup, GenerationRequest, LessonDefinition, Period, Subject,
    SubjectCategory, SubjectRuleConstraint, SubjectRules, Teacher,
    TeacherAvailabilityConstraint, TimeGrid
)
from service.history import TimetableHistoryStore
from service.timetable_generator import TimetableGenerator

DAYS = ["Monday", "Tuesday", "Wednesday", "Thursday", "Friday"]


def make_grid(grid_id="g1", days: Sequence[str] = DAYS, lessons=5, lunch_after: Optional[int] = None) -> TimeGrid:
    """Grid with periods p1..pN, optionally with a Lunch break after period `lunch_after`."""
    periods: List[Period] = []
    for n in range(1, lessons + 1):
        periods.append(Period(id=f"p{n}", name=f"Period {n}"))
        if lunch_after == n:
            periods.append(Period(id="lunch", name="Lunch", type="Break"))
    return TimeGrid(id=grid_id, name=f"Grid {grid_id}", days=list(days), periods=periods)


def make_subject(subject_id, elective_group=None) -> Subject:
    if elective_group:
        return Subject(
            id=subject_id, name=subject_id.title(),
            category=SubjectCategory.ELECTIVE, elective_group=elective_group
        )
    return Subject(id=subject_id, name=subject_id.title())


def make_group(group_id="cg1", grid_id: Optional[str] = "g1", subject_ids=(), **kwargs) -> ClassGroup:
    return ClassGroup(
        id=group_id, name=group_id.upper(), time_grid_id=grid_id,
        subject_ids=list(subject_ids), **kwargs
    )


def make_rule(group_id, subject_id, definitions: Sequence[Tuple[int, int]] = ((1, 1),), **rules) -> SubjectRuleConstraint:
    """`definitions` is a list of (count, duration) pairs."""
    return SubjectRuleConstraint(
        id=f"sr-{group_id}-{subject_id}",
        class_group_id=group_id,
        subject_id=subject_id,
        rules=SubjectRules(
            lesson_definitions=[LessonDefinition(count=c, duration=d) for c, d in definitions],
            **rules
        ),
    )


def unavailable(teacher_id, day, period_id) -> TeacherAvailabilityConstraint:
    return TeacherAvailabilityConstraint(
        id=f"na-{teacher_id}-{day}-{period_id}", target_id=teacher_id, day=day, period_id=period_id
    )


def allocate(group_id, subject_id, teacher_id) -> Allocation:
    return Allocation(class_group_id=group_id, subject_id=subject_id, teacher_id=teacher_id)


def make_request(allocations, class_groups, subjects, grids, constraints=(), teacher_ids=None) -> GenerationRequest:
    if teacher_ids is None:
        teacher_ids = sorted({a.teacher_id for a in allocations})
    return GenerationRequest(
        allocations=list(allocations),
        class_groups=list(class_groups),
        teachers=[Teacher(id=t, name=f"Teacher {t}") for t in teacher_ids],
        subjects=list(subjects),
        time_grids=list(grids),
        constraints=list(constraints),
    )


def run_generator(request, history=None, **kwargs):
    history = history if history is not None else TimetableHistoryStore()
    generator = TimetableGenerator(history, solver_version="test", **kwargs)
    return generator.generate(request), history


def scenario_a_request() -> GenerationRequest:
    """One group, 5x5 grid, five single lessons of one subject."""
    return make_request(
        allocations=[allocate("cg1", "math", "t1")],
        class_groups=[make_group("cg1", subject_ids=["math"])],
        subjects=[make_subject("math")],
        grids=[make_grid()],
        constraints=[make_rule("cg1", "math", [(5, 1)])],
    )


def scenario_b_request() -> GenerationRequest:
    """Two teachers competing for the only slot of one class group."""
    return make_request(
        allocations=[allocate("cg1", "math", "t1"), allocate("cg1", "science", "t2")],
        class_groups=[make_group("cg1", subject_ids=["math", "science"])],
        subjects=[make_subject("math"), make_subject("science")],
        grids=[make_grid(days=["Monday"], lessons=1)],
        constraints=[make_rule("cg1", "math"), make_rule("cg1", "science")],
    )
