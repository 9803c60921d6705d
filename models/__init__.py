"""
Data models and Pydantic schemas for the timetable generator API.
"""
from .schemas import (
    Period,
    TimeGrid,
    SubjectCategory,
    PeriodsByMode,
    PeriodOverride,
    Subject,
    ClassGroup,
    Teacher,
    Allocation,
    LessonDefinition,
    SubjectRules,
    TeacherAvailabilityConstraint,
    TeacherMaxPeriodsDayConstraint,
    TeacherMaxConsecutiveConstraint,
    SubjectRuleConstraint,
    TimeConstraint,
    GeneratedSlot,
    GeneratedTimetable,
    ConflictType,
    ConflictDetails,
    Conflict,
    TimetableHistoryEntry,
    GenerationRequest,
    TeacherTimetableRequest,
    SubjectRuleRequest,
    ErrorMessage,
    Messages,
    LessonSummary,
    GenerationResponse,
    TeacherTimetableSlot,
    TeacherTimetableResponse,
    RuleCoverageRow,
    CancelResponse,
    AllocationAnalysisRequest,
    AllocationAnalysis
)

__all__ = [
    "Period",
    "TimeGrid",
    "SubjectCategory",
    "PeriodsByMode",
    "PeriodOverride",
    "Subject",
    "ClassGroup",
    "Teacher",
    "Allocation",
    "LessonDefinition",
    "SubjectRules",
    "TeacherAvailabilityConstraint",
    "TeacherMaxPeriodsDayConstraint",
    "TeacherMaxConsecutiveConstraint",
    "SubjectRuleConstraint",
    "TimeConstraint",
    "GeneratedSlot",
    "GeneratedTimetable",
    "ConflictType",
    "ConflictDetails",
    "Conflict",
    "TimetableHistoryEntry",
    "GenerationRequest",
    "TeacherTimetableRequest",
    "SubjectRuleRequest",
    "ErrorMessage",
    "Messages",
    "LessonSummary",
    "GenerationResponse",
    "TeacherTimetableSlot",
    "TeacherTimetableResponse",
    "RuleCoverageRow",
    "CancelResponse",
    "AllocationAnalysisRequest",
    "AllocationAnalysis"
]
