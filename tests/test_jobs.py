import pytest
from app.models.job import InterviewStage, JobPosting
from app.schemas.job import JobCreate
from app.services import job_service


def test_create_job_with_default_stages(client, auth_headers, ceo_user):
    response = client.post("/api/jobs", headers=auth_headers(ceo_user),
                           json={"job_title": "Robotics Trainer", "department": "Academics"})
    assert response.status_code == 201, response.text
    job = response.json()
    stages = [(s["stage_name"], s["stage_order"], s["is_mandatory"]) for s in job["stages"]]
    assert stages == [
        ("HR Screening", 1, True),
        ("Technical Interview", 2, True),
        ("Manager Interview", 3, True),
        ("Final Interview", 4, False),
    ]

    listed = client.get(f"/api/jobs/{job['id']}/stages", headers=auth_headers(ceo_user)).json()
    assert [s["stage_order"] for s in listed] == [1, 2, 3, 4]


def test_jobs_need_ats_feature(client, auth_headers, gm_user):
    response = client.post("/api/jobs", headers=auth_headers(gm_user), json={"job_title": "Coordinator"})
    assert response.status_code == 403


def test_failed_creation_leaves_nothing_behind(db_session, ceo_user, monkeypatch):
    def broken_audit(*args, **kwargs):
        raise RuntimeError("audit store offline")

    monkeypatch.setattr(job_service.AuditService, "log", broken_audit)
    with pytest.raises(RuntimeError):
        job_service.create_job_posting(db_session, ceo_user, JobCreate(job_title="Lab Assistant"))

    assert db_session.query(JobPosting).count() == 0
    assert db_session.query(InterviewStage).count() == 0


def test_unknown_job_stages(client, auth_headers, ceo_user):
    assert client.get("/api/jobs/404/stages", headers=auth_headers(ceo_user)).status_code == 404
