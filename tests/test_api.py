"""
Test the timetable API end to end through the FastAPI test client.
"""
import pytest
from fastapi.testclient import TestClient
from main import app
from routers.timetable import history_store, run_registry


client = TestClient(app)


@pytest.fixture(autouse=True)
def reset_history():
    history_store.clear()
    yield
    history_store.clear()


# Test data fixtures
def get_minimal_request():
    """One class group with five single Mathematics lessons on a 5x5 grid."""
    return {
        "allocations": [
            {"class_group_id": "cg1", "subject_id": "math", "teacher_id": "t1"}
        ],
        "class_groups": [
            {"id": "cg1", "name": "Grade 10A", "grade": "10", "mode": "day",
             "subject_ids": ["math"], "time_grid_id": "g1"}
        ],
        "teachers": [
            {"id": "t1", "name": "Alice Smith"}
        ],
        "subjects": [
            {"id": "math", "name": "Mathematics",
             "periods_by_mode": [{"mode": "day", "periods": 5}]}
        ],
        "time_grids": [
            {
                "id": "g1",
                "name": "Standard Week",
                "days": ["Monday", "Tuesday", "Wednesday", "Thursday", "Friday"],
                "periods": [
                    {"id": f"p{n}", "name": f"Period {n}", "start_time": f"{7 + n:02d}:00",
                     "end_time": f"{7 + n:02d}:50"}
                    for n in range(1, 6)
                ]
            }
        ],
        "constraints": [
            {
                "id": "sr-cg1-math",
                "type": "subject-rule",
                "subject_id": "math",
                "class_group_id": "cg1",
                "rules": {
                    "lesson_definitions": [{"count": 5, "duration": 1}],
                    "max_periods_per_day": 1
                }
            }
        ],
        "academic_year": "2026"
    }


def get_competing_request():
    """Two teachers competing for the only slot of a class group."""
    request = get_minimal_request()
    request["allocations"].append({"class_group_id": "cg1", "subject_id": "science", "teacher_id": "t2"})
    request["class_groups"][0]["subject_ids"].append("science")
    request["teachers"].append({"id": "t2", "name": "Bob Johnson"})
    request["subjects"].append({"id": "science", "name": "Science"})
    request["time_grids"][0]["days"] = ["Monday"]
    request["time_grids"][0]["periods"] = [{"id": "p1", "name": "Period 1"}]
    request["constraints"] = [
        {"id": "sr-math", "type": "subject-rule", "subject_id": "math", "class_group_id": "cg1",
         "rules": {"lesson_definitions": [{"count": 1, "duration": 1}]}},
        {"id": "sr-science", "type": "subject-rule", "subject_id": "science", "class_group_id": "cg1",
         "rules": {"lesson_definitions": [{"count": 1, "duration": 1}]}},
    ]
    return request


def generate(payload=None):
    response = client.post("/api/v1/timetable/generate", json=payload or get_minimal_request())
    assert response.status_code == 200
    return response.json()


def test_root_endpoint():
    """Test root health check endpoint."""
    response = client.get("/")
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "healthy"
    assert "solver_version" in data

    assert client.get("/health").json() == {"status": "healthy"}


def test_generate_minimal_request():
    """Five lessons, one per day."""
    data = generate()

    assert data["status"] == "COMPLETE"
    assert data["lessons_total"] == 5
    assert data["lessons_placed"] == 5

    entry = data["entry"]
    assert entry["conflicts"] == []
    assert entry["objective_score"] == 1000
    assert entry["academic_year"] == "2026"
    assert len(entry["solver_seed"]) == 8

    week = entry["timetable"]["cg1"]
    for day in ["Monday", "Tuesday", "Wednesday", "Thursday", "Friday"]:
        assert week[day]["p1"][0]["subject_id"] == "math"
        assert week[day]["p1"][0]["id"] == "cg1-math-t1"
        assert all(week[day][f"p{n}"] is None for n in range(2, 6))


def test_generate_reports_placement_failure():
    data = generate(get_competing_request())

    assert data["status"] == "PARTIAL"
    assert data["lessons_placed"] == 1
    assert data["total_backtracks"] == 2
    conflicts = data["entry"]["conflicts"]
    assert len(conflicts) == 1
    assert conflicts[0]["type"] == "Placement Failure"
    assert conflicts[0]["details"]["teacher_name"] == "Bob Johnson"
    assert data["entry"]["objective_score"] == 980


def test_generate_rejected_while_run_active():
    token = run_registry.start()
    try:
        response = client.post("/api/v1/timetable/generate", json=get_minimal_request())
        assert response.status_code == 409
    finally:
        run_registry.finish(token)

    assert history_store.list() == []


def test_cancel_without_active_run():
    response = client.post("/api/v1/timetable/cancel")
    assert response.status_code == 200
    assert response.json() == {"cancelled": False}


def test_cancel_signals_active_run():
    token = run_registry.start()
    try:
        response = client.post("/api/v1/timetable/cancel")
        assert response.json() == {"cancelled": True}
        assert token.cancelled
    finally:
        run_registry.finish(token)


def test_history_lifecycle():
    assert client.get("/api/v1/timetable/history/active").status_code == 404

    first = generate()["entry"]
    second = generate()["entry"]

    history = client.get("/api/v1/timetable/history").json()
    assert [e["id"] for e in history] == [second["id"], first["id"]]
    assert client.get("/api/v1/timetable/history/active").json()["id"] == second["id"]

    response = client.get(f"/api/v1/timetable/history/{first['id']}")
    assert response.status_code == 200
    assert response.json()["objective_score"] == first["objective_score"]

    response = client.post(f"/api/v1/timetable/history/{first['id']}/activate")
    assert response.status_code == 200
    assert client.get("/api/v1/timetable/history/active").json()["id"] == first["id"]

    response = client.delete(f"/api/v1/timetable/history/{first['id']}")
    assert response.status_code == 204
    assert [e["id"] for e in client.get("/api/v1/timetable/history").json()] == [second["id"]]


def test_history_unknown_entry():
    assert client.get("/api/v1/timetable/history/missing").status_code == 404
    assert client.post("/api/v1/timetable/history/missing/activate").status_code == 404
    assert client.delete("/api/v1/timetable/history/missing").status_code == 404


def test_teacher_timetable_endpoint():
    request = get_minimal_request()
    generate(request)
    body = {
        "allocations": request["allocations"],
        "class_groups": request["class_groups"],
        "time_grids": request["time_grids"],
    }

    response = client.post("/api/v1/timetable/teachers/t1", json=body)
    assert response.status_code == 200
    data = response.json()
    assert data["grid_id"] == "g1"
    assert data["slots"]["Friday"]["p1"]["class_group_name"] == "Grade 10A"
    assert data["slots"]["Friday"]["p2"] is None

    idle = client.post("/api/v1/timetable/teachers/t9", json=body).json()
    assert idle["grid_id"] == "g1"
    assert all(slot is None for day in idle["slots"].values() for slot in day.values())

    history_store.clear()
    assert client.post("/api/v1/timetable/teachers/t1", json=body).status_code == 404


def test_rule_defaults_and_coverage():
    request = get_minimal_request()
    body = {
        "class_groups": request["class_groups"],
        "subjects": request["subjects"],
        "constraints": [],
    }

    defaults = client.post("/api/v1/timetable/rules/defaults", json=body).json()
    assert len(defaults) == 1
    assert defaults[0]["rules"]["lesson_definitions"][0]["count"] == 5

    body["constraints"] = request["constraints"]
    assert client.post("/api/v1/timetable/rules/defaults", json=body).json() == []

    coverage = client.post("/api/v1/timetable/rules/coverage", json=body).json()
    assert coverage == [{
        "class_group_id": "cg1",
        "class_group_name": "Grade 10A",
        "subject_id": "math",
        "subject_name": "Mathematics",
        "required_periods": 5,
        "defined_periods": 5,
        "has_rule": True,
        "matches": True,
    }]


def test_allocation_analysis_endpoint():
    request = get_minimal_request()
    body = {
        "allocation": request["allocations"][0],
        "class_groups": request["class_groups"],
        "subjects": request["subjects"],
        "time_grids": request["time_grids"],
        "constraints": request["constraints"] + [
            {"id": "na-1", "type": "not-available", "target_type": "teacher",
             "target_id": "t1", "day": "Monday", "period_id": "p1"}
        ],
    }

    response = client.post("/api/v1/timetable/rules/analysis", json=body)
    assert response.status_code == 200
    data = response.json()
    assert data["total_slots"] == 25
    assert data["teacher_available_slots"] == 24
    assert data["teacher_availability_status"] == "ok"
    assert data["group_saturation_percent"] == 20.0

    body["allocation"]["class_group_id"] = "cg9"
    assert client.post("/api/v1/timetable/rules/analysis", json=body).status_code == 404


def test_validation_error_format():
    """Invalid lesson durations come back as human-friendly field errors."""
    request = get_minimal_request()
    request["constraints"][0]["rules"]["lesson_definitions"][0]["duration"] = 0

    response = client.post("/api/v1/timetable/generate", json=request)
    assert response.status_code == 422
    errors = response.json()["errors"]
    assert any(field.endswith("Duration") for field in errors)


def test_unknown_constraint_type_rejected():
    request = get_minimal_request()
    request["constraints"].append({"id": "x", "type": "room-rule"})

    response = client.post("/api/v1/timetable/generate", json=request)
    assert response.status_code == 422
    messages = [m for msgs in response.json()["errors"].values() for m in msgs]
    assert any("unknown constraint type" in m for m in messages)
