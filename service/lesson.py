"""
Solver-internal lesson unit. Created per run, never persisted.
"""

from dataclasses import dataclass

from models.schemas import ClassGroup, Subject


@dataclass(frozen=True, eq=False)
class Lesson:
    """One occurrence of a subject for a class group, `duration` periods long."""
    id: str
    class_group: ClassGroup
    subject: Subject
    teacher_id: str
    duration: int

    @property
    def slot_id(self) -> str:
        return f"{self.class_group.id}-{self.subject.id}-{self.teacher_id}"
