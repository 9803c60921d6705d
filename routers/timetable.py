from typing import List
from fastapi import APIRouter, HTTPException, Response, status
from config import settings
from models.schemas import (
    AllocationAnalysis, AllocationAnalysisRequest, CancelResponse, GenerationRequest,
    GenerationResponse, RuleCoverageRow, SubjectRuleConstraint, SubjectRuleRequest,
    TeacherAvailabilityConstraint, TeacherTimetableRequest, TeacherTimetableResponse,
    TimetableHistoryEntry
)
from service.constraints import SubjectRuleIndex
from service.history import HistoryEntryNotFound, TimetableHistoryStore
from service.rule_analysis import analyse_allocation, build_default_subject_rules, rule_coverage
from service.runs import SolverBusyError, SolverRunRegistry
from service.teacher_timetable import teacher_timetable
from service.timetable_generator import TimetableGenerator

# Create a router instance
router = APIRouter()

# Process-wide state: one history log and at most one active run
history_store = TimetableHistoryStore(limit=settings.history_limit)
run_registry = SolverRunRegistry()


@router.post("/timetable/generate", response_model=GenerationResponse)
def generate_timetable(request: GenerationRequest):
    """
    Generate a timetable from the supplied snapshot.

    The finished run is recorded as the active history entry. Runs that
    are cancelled or fail unexpectedly record nothing.
    """
    try:
        token = run_registry.start()
    except SolverBusyError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))

    try:
        generator = TimetableGenerator(
            history_store,
            solver_version=settings.solver_version,
            token=token,
            max_backtracks=settings.solver_max_backtracks,
            progress_interval=settings.solver_progress_interval,
        )
        return generator.generate(request)
    finally:
        run_registry.finish(token)


@router.post("/timetable/cancel", response_model=CancelResponse)
async def cancel_generation():
    """Ask the active run, if any, to stop at its next check point."""
    return CancelResponse(cancelled=run_registry.cancel())


@router.get("/timetable/history", response_model=List[TimetableHistoryEntry])
async def list_history():
    """History entries, active first."""
    return history_store.list()


@router.get("/timetable/history/active", response_model=TimetableHistoryEntry)
async def get_active_entry():
    entry = history_store.active()
    if entry is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="No timetable has been generated yet")
    return entry


@router.get("/timetable/history/{entry_id}", response_model=TimetableHistoryEntry)
async def get_entry(entry_id: str):
    try:
        return history_store.get(entry_id)
    except HistoryEntryNotFound as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))


@router.post("/timetable/history/{entry_id}/activate", response_model=TimetableHistoryEntry)
async def activate_entry(entry_id: str):
    try:
        return history_store.set_active(entry_id)
    except HistoryEntryNotFound as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))


@router.delete("/timetable/history/{entry_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_entry(entry_id: str):
    try:
        history_store.delete(entry_id)
    except HistoryEntryNotFound as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/timetable/teachers/{teacher_id}", response_model=TeacherTimetableResponse)
async def get_teacher_timetable(teacher_id: str, request: TeacherTimetableRequest):
    """The teacher's weekly grid from the active history entry."""
    grids = {grid.id: grid for grid in request.time_grids}
    view = teacher_timetable(
        teacher_id, history_store.active(), request.class_groups, grids, request.allocations
    )
    if view is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="No timetable found for this teacher")
    return view


@router.post("/timetable/rules/defaults", response_model=List[SubjectRuleConstraint])
async def seed_default_rules(request: SubjectRuleRequest):
    """Default rules for class group subjects that have none yet."""
    subjects = {subject.id: subject for subject in request.subjects}
    existing = [c for c in request.constraints if isinstance(c, SubjectRuleConstraint)]
    return build_default_subject_rules(request.class_groups, subjects, existing)


@router.post("/timetable/rules/coverage", response_model=List[RuleCoverageRow])
async def check_rule_coverage(request: SubjectRuleRequest):
    """Compare the periods each rule defines with the subject's required periods."""
    subjects = {subject.id: subject for subject in request.subjects}
    rules = [c for c in request.constraints if isinstance(c, SubjectRuleConstraint)]
    return rule_coverage(request.class_groups, subjects, rules)


@router.post("/timetable/rules/analysis", response_model=AllocationAnalysis)
async def analyse_allocation_constraints(request: AllocationAnalysisRequest):
    """How constrained one allocation is before generation."""
    allocation = request.allocation
    class_group = next((g for g in request.class_groups if g.id == allocation.class_group_id), None)
    subject = next((s for s in request.subjects if s.id == allocation.subject_id), None)
    if class_group is None or subject is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Unknown class group or subject")
    grid = next((g for g in request.time_grids if g.id == class_group.time_grid_id), None)
    if grid is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Class group has no time grid")

    subjects = {s.id: s for s in request.subjects}
    rules = [c for c in request.constraints if isinstance(c, SubjectRuleConstraint)]
    availability = [c for c in request.constraints if isinstance(c, TeacherAvailabilityConstraint)]
    return analyse_allocation(
        allocation, class_group, subject, grid, availability, SubjectRuleIndex(rules, subjects)
    )
