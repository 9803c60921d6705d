"""
A teacher's weekly view of the active timetable.
"""

from typing import Dict, Optional, Sequence

from models.schemas import (
    Allocation, ClassGroup, TeacherTimetableResponse, TeacherTimetableSlot, TimeGrid,
    TimetableHistoryEntry
)


def teacher_timetable(
    teacher_id: str,
    entry: Optional[TimetableHistoryEntry],
    class_groups: Sequence[ClassGroup],
    grids: Dict[str, TimeGrid],
    allocations: Sequence[Allocation] = (),
) -> Optional[TeacherTimetableResponse]:
    """
    Lay the teacher's lessons from `entry` onto one grid.

    The grid is that of the class group in the teacher's first allocation,
    or the first grid when the teacher has no allocation or its class group
    is unknown. Returns None when there is no entry or no grid to show.
    """
    if entry is None:
        return None

    groups = {group.id: group for group in class_groups}
    grid = _grid_for_teacher(teacher_id, groups, grids, allocations)
    if grid is None:
        return None

    slots: Dict[str, Dict[str, Optional[TeacherTimetableSlot]]] = {
        day: {period.id: None for period in grid.periods} for day in grid.days
    }
    for class_group_id, days in entry.timetable.items():
        for day, periods in days.items():
            if day not in slots:
                continue
            for period_id, occupants in periods.items():
                if period_id not in slots[day] or not occupants:
                    continue
                for occupant in occupants:
                    if occupant.teacher_id != teacher_id:
                        continue
                    group = groups.get(class_group_id)
                    slots[day][period_id] = TeacherTimetableSlot(
                        class_group_id=class_group_id,
                        class_group_name=group.name if group else class_group_id,
                        subject_id=occupant.subject_id,
                    )

    return TeacherTimetableResponse(
        teacher_id=teacher_id,
        grid_id=grid.id,
        days=grid.days,
        periods=grid.periods,
        slots=slots,
    )


def _grid_for_teacher(teacher_id, groups, grids, allocations) -> Optional[TimeGrid]:
    allocation = next((a for a in allocations if a.teacher_id == teacher_id), None)
    group = groups.get(allocation.class_group_id) if allocation else None
    if group is None:
        return next(iter(grids.values()), None)
    return grids.get(group.time_grid_id)
