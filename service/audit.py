"""
Post-search audit of rules the solver does not enforce while placing.
"""

from typing import Dict, Iterable, List, Set
import logging
import uuid

from models.schemas import (
    ClassGroup, Conflict, ConflictDetails, ConflictType, GeneratedTimetable,
    Subject, SubjectRuleConstraint, TimeGrid
)

logger = logging.getLogger(__name__)


def audit_every_day_rules(
    timetable: GeneratedTimetable,
    class_groups: Dict[str, ClassGroup],
    grids_by_class_group: Dict[str, TimeGrid],
    rules: Iterable[SubjectRuleConstraint],
    subjects: Dict[str, Subject],
) -> List[Conflict]:
    """
    One Constraint Violation per class group/day missing a must-be-every-day subject.

    Only class groups present in the generated timetable are audited.
    """
    conflicts: List[Conflict] = []

    for rule in rules:
        if not rule.rules.must_be_every_day:
            continue
        group_timetable = timetable.get(rule.class_group_id)
        if group_timetable is None:
            continue

        class_group = class_groups[rule.class_group_id]
        grid = grids_by_class_group[rule.class_group_id]
        subject = subjects.get(rule.subject_id)
        subject_name = subject.name if subject else rule.subject_id
        covered = _subjects_sharing_rule(rule.subject_id, subjects)

        for day in grid.days:
            day_slots = group_timetable.get(day, {})
            present = any(
                slot.subject_id in covered
                for occupants in day_slots.values() if occupants
                for slot in occupants
            )
            if present:
                continue
            conflicts.append(Conflict(
                id=f"conflict-{uuid.uuid4().hex}",
                type=ConflictType.CONSTRAINT_VIOLATION,
                message=f"{subject_name} must be taught every day but is missing on {day} for {class_group.name}.",
                details=ConflictDetails(
                    class_group_id=class_group.id,
                    class_group_name=class_group.name,
                    subject_id=rule.subject_id,
                    subject_name=subject_name,
                    day=day,
                ),
            ))

    if conflicts:
        logger.info(f"Every-day audit found {len(conflicts)} missing days")
    return conflicts


def _subjects_sharing_rule(subject_id: str, subjects: Dict[str, Subject]) -> Set[str]:
    """A grouped elective's rule is met by any subject of its elective group."""
    subject = subjects.get(subject_id)
    if subject is None or not subject.is_grouped_elective:
        return {subject_id}
    return {
        other.id for other in subjects.values()
        if other.is_grouped_elective and other.elective_group == subject.elective_group
    }
