"""
Operator-facing checks on subject rules.

None of this feeds the solver: it seeds missing rules and flags rule sets
that do not add up before a generation is attempted.
"""

from typing import Dict, List, Sequence
import logging

from models.schemas import (
    Allocation, AllocationAnalysis, ClassGroup, LessonDefinition, RuleCoverageRow,
    Subject, SubjectRuleConstraint, SubjectRules, TeacherAvailabilityConstraint, TimeGrid
)
from service.constraints import SubjectRuleIndex

logger = logging.getLogger(__name__)


def build_default_subject_rules(
    class_groups: Sequence[ClassGroup],
    subjects: Dict[str, Subject],
    existing: Sequence[SubjectRuleConstraint],
) -> List[SubjectRuleConstraint]:
    """
    Single-period rules for every class group subject that has none yet.

    The rule asks for the subject's required weekly periods as one-period
    lessons; subjects requiring nothing get an empty rule.
    """
    have = {(rule.class_group_id, rule.subject_id) for rule in existing}
    created = []

    for class_group in class_groups:
        for subject_id in class_group.subject_ids:
            if (class_group.id, subject_id) in have:
                continue
            subject = subjects.get(subject_id)
            if subject is None:
                continue

            total = subject.periods_for(class_group.curriculum, class_group.grade, class_group.mode)
            definitions = []
            if total > 0:
                definitions.append(LessonDefinition(
                    id=f"def-{class_group.id}-{subject_id}", count=total, duration=1
                ))
            created.append(SubjectRuleConstraint(
                id=f"sr-{class_group.id}-{subject_id}",
                class_group_id=class_group.id,
                subject_id=subject_id,
                academic_year=class_group.academic_year,
                rules=SubjectRules(lesson_definitions=definitions, min_days_apart=0),
            ))
            have.add((class_group.id, subject_id))

    logger.info(f"Seeded {len(created)} default subject rules")
    return created


def rule_coverage(
    class_groups: Sequence[ClassGroup],
    subjects: Dict[str, Subject],
    rules: Sequence[SubjectRuleConstraint],
) -> List[RuleCoverageRow]:
    """Required vs. defined periods for each class group subject."""
    by_key = {}
    for rule in rules:
        by_key.setdefault((rule.class_group_id, rule.subject_id), rule)

    rows = []
    for class_group in class_groups:
        for subject_id in class_group.subject_ids:
            subject = subjects.get(subject_id)
            if subject is None:
                continue
            required = subject.periods_for(class_group.curriculum, class_group.grade, class_group.mode)
            rule = by_key.get((class_group.id, subject_id))
            defined = rule.rules.defined_periods if rule else 0
            rows.append(RuleCoverageRow(
                class_group_id=class_group.id,
                class_group_name=class_group.name,
                subject_id=subject_id,
                subject_name=subject.name,
                required_periods=required,
                defined_periods=defined,
                has_rule=rule is not None,
                matches=required == 0 or defined == required,
            ))
    return rows


def _percent(part: int, whole: int) -> float:
    return round(part / whole * 100, 1) if whole > 0 else 0.0


def analyse_allocation(
    allocation: Allocation,
    class_group: ClassGroup,
    subject: Subject,
    grid: TimeGrid,
    availability: Sequence[TeacherAvailabilityConstraint],
    rule_index: SubjectRuleIndex,
) -> AllocationAnalysis:
    """
    Static pressure on one allocation: how much of the grid the teacher can
    use, and how full the class group's grid is once every rule is placed.
    """
    lesson_periods = [grid.periods[idx] for idx in grid.lesson_period_indices()]
    grid_keys = {(day, period.id) for day in grid.days for period in lesson_periods}
    total_slots = len(grid_keys)

    blocked = {
        (constraint.day, constraint.period_id)
        for constraint in availability
        if constraint.target_id == allocation.teacher_id
    } & grid_keys
    available = total_slots - len(blocked)
    availability_percent = _percent(available, total_slots)
    if availability_percent < 50:
        availability_status = "error"
    elif availability_percent < 75:
        availability_status = "warning"
    else:
        availability_status = "ok"

    required = 0
    for subject_id in class_group.subject_ids:
        group_rule = rule_index.exact(class_group.id, subject_id)
        if group_rule is not None:
            required += group_rule.rules.defined_periods
    saturation_percent = _percent(required, total_slots)
    if saturation_percent > 90:
        saturation_status = "error"
    elif saturation_percent > 75:
        saturation_status = "warning"
    else:
        saturation_status = "ok"

    rule = rule_index.resolve(class_group.id, subject)

    return AllocationAnalysis(
        class_group_id=class_group.id,
        subject_id=subject.id,
        teacher_id=allocation.teacher_id,
        grid_id=grid.id,
        total_slots=total_slots,
        teacher_available_slots=available,
        teacher_availability_percent=availability_percent,
        teacher_availability_status=availability_status,
        group_required_periods=required,
        group_saturation_percent=saturation_percent,
        group_saturation_status=saturation_status,
        rules=rule.rules if rule else None,
    )
