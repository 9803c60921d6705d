"""
Turns allocations and subject rules into the atomic lessons the solver places.
"""

from typing import Dict, List
import logging

from models.schemas import Allocation, ClassGroup, Subject, TimeGrid
from service.constraints import SubjectRuleIndex
from service.lesson import Lesson

logger = logging.getLogger(__name__)


def schedulable_class_groups(class_groups: List[ClassGroup], grids: Dict[str, TimeGrid]) -> Dict[str, ClassGroup]:
    """Class groups with a known time grid that are flagged for the timetable."""
    return {
        group.id: group
        for group in class_groups
        if group.add_to_timetable and group.time_grid_id and group.time_grid_id in grids
    }


def expand_lessons(
    allocations: List[Allocation],
    class_groups: Dict[str, ClassGroup],
    subjects: Dict[str, Subject],
    rule_index: SubjectRuleIndex,
) -> List[Lesson]:
    """
    Build the flat lesson list in allocation order.

    Args:
        allocations: Teacher allocations, one per class group/subject pair
        class_groups: Schedulable class groups keyed by id
        subjects: All subjects keyed by id
        rule_index: Subject rule lookup

    Returns:
        One Lesson per lesson definition count; allocations without a
        schedulable group, known subject or non-empty rule contribute nothing.
    """
    lessons: List[Lesson] = []

    for allocation in allocations:
        class_group = class_groups.get(allocation.class_group_id)
        if class_group is None:
            continue

        subject = subjects.get(allocation.subject_id)
        if subject is None:
            logger.debug(f"Skipping allocation for unknown subject {allocation.subject_id}")
            continue

        rule = rule_index.resolve(class_group.id, subject)
        if rule is None or not rule.rules.lesson_definitions:
            logger.debug(f"No lessons defined for {subject.name} in {class_group.name}; nothing to schedule")
            continue

        for def_idx, definition in enumerate(rule.rules.lesson_definitions):
            for n in range(definition.count):
                lessons.append(Lesson(
                    id=f"{class_group.id}-{subject.id}-{allocation.teacher_id}-{def_idx}-{n}",
                    class_group=class_group,
                    subject=subject,
                    teacher_id=allocation.teacher_id,
                    duration=definition.duration,
                ))

    logger.debug(f"Expanded {len(allocations)} allocations into {len(lessons)} lessons")
    return lessons
