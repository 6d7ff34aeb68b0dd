from __future__ import annotations

import pytest

SCENARIO_JOB = {"min_ug_percentage": 75, "allow_backlogs": False, "eligible_branches": ["CSE"]}


@pytest.fixture
def scenario_job(create_job) -> dict:
    return create_job(**SCENARIO_JOB)


def test_scenario_low_percentage_student_is_refused(client, register_and_login, scenario_job) -> None:
    register_and_login(client, ug_percentage=70, has_active_backlogs=False, branch="CSE")

    eligibility = client.get(f"/api/jobs/{scenario_job['id']}/eligibility").json()
    assert eligibility["eligible"] is False
    assert len(eligibility["reasons"]) == 1
    assert eligibility["reasons"][0].startswith("minimum percentage not met")

    # the write path re-runs the same evaluation
    resp = client.post("/api/applications", json={"jobId": scenario_job["id"]})
    assert resp.status_code == 400
    assert resp.json()["code"] == "not_eligible"
    assert resp.json()["reasons"] == eligibility["reasons"]


def test_full_placement_flow(client, admin_client, register_and_login, scenario_job) -> None:
    register_and_login(client, ug_percentage=80, has_active_backlogs=False, branch="CSE")

    eligibility = client.get(f"/api/jobs/{scenario_job['id']}/eligibility").json()
    assert eligibility == {"eligible": True, "reasons": []}

    created = client.post("/api/applications", json={"jobId": scenario_job["id"]})
    assert created.status_code == 200
    application = created.json()
    assert len(application["stage_history"]) == 1

    duplicate = client.post("/api/applications", json={"jobId": scenario_job["id"]})
    assert duplicate.status_code == 400
    assert duplicate.json()["code"] == "duplicate_application"

    rejected = admin_client.put(
        f"/api/applications/{application['id']}/status",
        json={"status": "rejected", "stage": "rejected"},
    )
    assert rejected.status_code == 200
    body = rejected.json()
    assert body["status"] == "rejected"
    assert len(body["stage_history"]) == 2
    assert body["stage_history"][1]["stage"] == "rejected"

    seen_by_student = client.get("/api/applications/student").json()
    assert len(seen_by_student) == 1
    states = {item["stage"]: item["state"] for item in seen_by_student[0]["timeline"]}
    assert states == {
        "applied": "completed",
        "under_review": "rejected",
        "shortlisted": "rejected",
        "interviewed": "rejected",
        "selected": "rejected",
    }


def test_admin_can_correct_a_decision(client, admin_client, register_and_login, scenario_job) -> None:
    register_and_login(client)
    application_id = client.post("/api/applications", json={"jobId": scenario_job["id"]}).json()["id"]

    for status in ("under_review", "shortlisted", "interviewed", "selected", "applied"):
        resp = admin_client.put(f"/api/applications/{application_id}/status", json={"status": status})
        assert resp.status_code == 200

    final = admin_client.get(f"/api/applications/{application_id}").json()
    assert final["status"] == "applied"
    assert [entry["stage"] for entry in final["stage_history"]] == [
        "applied",
        "under_review",
        "shortlisted",
        "interviewed",
        "selected",
        "applied",
    ]
