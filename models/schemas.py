from pydantic import BaseModel, Field
from typing import Annotated, List, Dict, Optional, Union, Literal
from enum import Enum


# ===========================
# Time Grid Models
# ===========================

class Period(BaseModel):
    """One row of a time grid. Times are for display only."""
    id: str
    name: str
    start_time: str = "00:00"  # HH:MM format
    end_time: str = "00:00"
    type: Literal["Lesson", "Break"] = "Lesson"


class TimeGrid(BaseModel):
    """Weekly frame a class group is scheduled into."""
    id: str
    name: str
    days: List[str] = ["Monday", "Tuesday", "Wednesday", "Thursday", "Friday"]
    periods: List[Period] = []
    color: str = "#3b82f6"

    def lesson_period_indices(self) -> List[int]:
        return [idx for idx, period in enumerate(self.periods) if period.type == "Lesson"]

    def morning_cutoff_index(self) -> int:
        """
        Index of the first afternoon period.

        The lunch break marks the boundary when a period is named after it;
        otherwise the midpoint of the lesson-type periods does.
        """
        for idx, period in enumerate(self.periods):
            if "lunch" in period.name.lower():
                return idx

        lesson_indices = self.lesson_period_indices()
        if not lesson_indices:
            return len(self.periods)
        return lesson_indices[len(lesson_indices) // 2]


# ===========================
# Academic Structure Models
# ===========================

class SubjectCategory(str, Enum):
    CORE = "Core"
    ELECTIVE = "Elective"


class PeriodsByMode(BaseModel):
    mode: str
    periods: int = 0


class PeriodOverride(BaseModel):
    """Period count for one curriculum/grade/mode combination"""
    curriculum: str
    grade: str
    mode: str
    periods: int = 0


class Subject(BaseModel):
    id: str
    name: str
    category: SubjectCategory = SubjectCategory.CORE
    elective_group: Optional[str] = None  # Electives sharing a group may share a slot
    grades: List[str] = []
    modes: List[str] = []
    curricula: List[str] = []
    periods_by_mode: List[PeriodsByMode] = []
    period_overrides: List[PeriodOverride] = []

    @property
    def is_grouped_elective(self) -> bool:
        return self.category == SubjectCategory.ELECTIVE and bool(self.elective_group)

    def periods_for(self, curriculum: str, grade: str, mode: str) -> int:
        """Weekly periods required for a class group of this curriculum/grade/mode."""
        for override in self.period_overrides:
            if override.curriculum == curriculum and override.grade == grade and override.mode == mode:
                return override.periods
        for entry in self.periods_by_mode:
            if entry.mode == mode:
                return entry.periods
        return 0


class ClassGroup(BaseModel):
    id: str
    name: str
    curriculum: str = ""
    grade: str = ""
    mode: str = ""
    learner_count: int = 0
    subject_ids: List[str] = []
    academic_year: Optional[str] = None
    time_grid_id: Optional[str] = None  # Ungridded groups are never scheduled
    add_to_timetable: bool = True


class Teacher(BaseModel):
    id: str
    name: str = ""
    max_periods_by_mode: Dict[str, int] = {}  # Used by allocation, not by the generator


class Allocation(BaseModel):
    """Who teaches which subject to which class group"""
    class_group_id: str
    subject_id: str
    teacher_id: str


# ===========================
# Constraint Models
# ===========================

class LessonDefinition(BaseModel):
    """`count` lessons of `duration` consecutive periods each"""
    id: Optional[str] = None
    count: int = Field(ge=0)
    duration: int = Field(default=1, ge=1)


class SubjectRules(BaseModel):
    lesson_definitions: List[LessonDefinition] = []
    min_days_apart: int = Field(default=0, ge=0)
    max_periods_per_day: Optional[int] = Field(default=None, ge=1)
    max_consecutive: Optional[int] = Field(default=None, ge=1)
    must_be_every_day: bool = False
    preferred_time: Literal["any", "morning", "afternoon"] = "any"

    @property
    def defined_periods(self) -> int:
        return sum(definition.count * definition.duration for definition in self.lesson_definitions)


class TeacherAvailabilityConstraint(BaseModel):
    """Marks one day/period as unavailable for a teacher (hard constraint)"""
    id: str
    type: Literal["not-available"] = "not-available"
    target_type: Literal["teacher"] = "teacher"
    target_id: str
    day: str
    period_id: str
    academic_year: Optional[str] = None


class TeacherMaxPeriodsDayConstraint(BaseModel):
    """General constraint; not enforced by the generator"""
    id: str
    type: Literal["teacher-max-periods-day"] = "teacher-max-periods-day"
    teacher_id: str
    max_periods: int
    academic_year: Optional[str] = None


class TeacherMaxConsecutiveConstraint(BaseModel):
    """General constraint; not enforced by the generator"""
    id: str
    type: Literal["teacher-max-consecutive"] = "teacher-max-consecutive"
    teacher_id: str
    max_periods: int
    academic_year: Optional[str] = None


class SubjectRuleConstraint(BaseModel):
    """Placement rules for one subject of one class group"""
    id: str
    type: Literal["subject-rule"] = "subject-rule"
    subject_id: str
    class_group_id: str
    academic_year: Optional[str] = None
    rules: SubjectRules = SubjectRules()


TimeConstraint = Annotated[
    Union[
        TeacherAvailabilityConstraint,
        TeacherMaxPeriodsDayConstraint,
        TeacherMaxConsecutiveConstraint,
        SubjectRuleConstraint,
    ],
    Field(discriminator="type"),
]


# ===========================
# Generated Timetable Models
# ===========================

class GeneratedSlot(BaseModel):
    id: str  # "{class_group_id}-{subject_id}-{teacher_id}"
    class_group_id: str
    subject_id: str
    teacher_id: str


# class_group_id -> day -> period_id -> slot occupants (None when empty)
GeneratedTimetable = Dict[str, Dict[str, Dict[str, Optional[List[GeneratedSlot]]]]]


class ConflictType(str, Enum):
    PLACEMENT_FAILURE = "Placement Failure"
    CONSTRAINT_VIOLATION = "Constraint Violation"


class ConflictDetails(BaseModel):
    teacher_id: Optional[str] = None
    teacher_name: Optional[str] = None
    class_group_id: Optional[str] = None
    class_group_name: Optional[str] = None
    subject_id: Optional[str] = None
    subject_name: Optional[str] = None
    day: Optional[str] = None
    period_id: Optional[str] = None
    period_name: Optional[str] = None


class Conflict(BaseModel):
    id: str
    type: ConflictType
    message: str
    details: ConflictDetails = ConflictDetails()


class TimetableHistoryEntry(BaseModel):
    """Immutable record of one generator run"""
    id: str
    timestamp: str  # ISO 8601, UTC
    timetable: GeneratedTimetable
    conflicts: List[Conflict] = []
    objective_score: int
    solver_seed: str
    solver_version: str
    academic_year: Optional[str] = None

    model_config = {"frozen": True}


# ===========================
# Request Schemas
# ===========================

class GenerationRequest(BaseModel):
    """Read-only snapshot of everything the generator consumes"""
    allocations: List[Allocation] = []
    class_groups: List[ClassGroup] = []
    teachers: List[Teacher] = []
    subjects: List[Subject] = []
    time_grids: List[TimeGrid] = []
    constraints: List[TimeConstraint] = []
    academic_year: Optional[str] = None


class TeacherTimetableRequest(BaseModel):
    allocations: List[Allocation] = []
    class_groups: List[ClassGroup] = []
    time_grids: List[TimeGrid] = []


class SubjectRuleRequest(BaseModel):
    class_groups: List[ClassGroup] = []
    subjects: List[Subject] = []
    constraints: List[TimeConstraint] = []


# ===========================
# Response Schemas
# ===========================

class ErrorMessage(BaseModel):
    """Error or warning message"""
    title: str
    message: str


class Messages(BaseModel):
    """Collection of error/warning messages"""
    error_message: List[ErrorMessage] = []


class LessonSummary(BaseModel):
    lesson_id: str
    class_group_id: str
    subject_id: str
    teacher_id: str
    duration: int
    backtracks: int = 0


class GenerationResponse(BaseModel):
    """Outcome of one generator run"""
    status: Literal["COMPLETE", "PARTIAL", "CANCELLED", "ERROR"]
    entry: Optional[TimetableHistoryEntry] = None
    lessons_total: int = 0
    lessons_placed: int = 0
    total_backtracks: int = 0
    search_steps: int = 0
    most_difficult_lesson: Optional[LessonSummary] = None
    messages: Messages = Messages()
    solve_time_seconds: Optional[float] = None


class TeacherTimetableSlot(BaseModel):
    class_group_id: str
    class_group_name: str
    subject_id: str


class TeacherTimetableResponse(BaseModel):
    teacher_id: str
    grid_id: str
    days: List[str]
    periods: List[Period]
    # day -> period_id -> slot (None when free)
    slots: Dict[str, Dict[str, Optional[TeacherTimetableSlot]]]


class RuleCoverageRow(BaseModel):
    class_group_id: str
    class_group_name: str
    subject_id: str
    subject_name: str
    required_periods: int
    defined_periods: int
    has_rule: bool
    matches: bool


class CancelResponse(BaseModel):
    cancelled: bool


class AllocationAnalysisRequest(BaseModel):
    allocation: Allocation
    class_groups: List[ClassGroup] = []
    subjects: List[Subject] = []
    time_grids: List[TimeGrid] = []
    constraints: List[TimeConstraint] = []


class AllocationAnalysis(BaseModel):
    """How tightly one allocation is constrained before generation"""
    class_group_id: str
    subject_id: str
    teacher_id: str
    grid_id: str
    total_slots: int
    teacher_available_slots: int
    teacher_availability_percent: float
    teacher_availability_status: Literal["ok", "warning", "error"]
    group_required_periods: int
    group_saturation_percent: float
    group_saturation_status: Literal["ok", "warning", "error"]
    rules: Optional[SubjectRules] = None
