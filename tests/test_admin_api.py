import pytest
from app.models.institution import Institution, Student
from app.models.user import User, UserRole


def _admin_payload(institution, email="head@example.com"):
    return {"email": email, "password": "Password123!", "full_name": "Head Teacher", "institution_id": institution.id}


def test_super_admin_creates_institution_admin(client, db_session, auth_headers, super_admin, institution):
    response = client.post("/api/admin/institution-admins", headers=auth_headers(super_admin),
                           json=_admin_payload(institution))
    assert response.status_code == 201, response.text
    body = response.json()
    assert body["success"] is True
    assert body["data"]["role"] == "institution_admin"

    db_session.refresh(institution)
    assert institution.admin_user_id == body["data"]["id"]


def test_duplicate_email_conflicts(client, auth_headers, super_admin, institution):
    client.post("/api/admin/institution-admins", headers=auth_headers(super_admin), json=_admin_payload(institution))
    response = client.post("/api/admin/institution-admins", headers=auth_headers(super_admin),
                           json=_admin_payload(institution, email="HEAD@example.com"))
    assert response.status_code == 409


def test_officer_cannot_create_accounts(client, auth_headers, officer, institution):
    response = client.post("/api/admin/institution-admins", headers=auth_headers(officer.user),
                           json=_admin_payload(institution))
    assert response.status_code == 403


def test_institution_admin_creates_student_in_own_institution(client, db_session, auth_headers, make_user, institution):
    other = Institution(name="Riverside Academy", slug="riverside", is_active=True)
    db_session.add(other)
    db_session.commit()
    head = make_user("head@example.com", role=UserRole.INSTITUTION_ADMIN, institution_id=institution.id)

    payload = {"email": "kid@example.com", "password": "Password123!", "student_name": "Kiran",
               "institution_id": institution.id, "class_id": "8A", "roll_number": "17"}
    response = client.post("/api/admin/students", headers=auth_headers(head), json=payload)
    assert response.status_code == 201, response.text
    data = response.json()["data"]
    assert data["user"]["role"] == "student"
    assert data["roll_number"] == "17"
    assert db_session.query(Student).filter(Student.id == data["student_id"]).one().class_id == "8A"

    payload.update(email="kid2@example.com", institution_id=other.id)
    response = client.post("/api/admin/students", headers=auth_headers(head), json=payload)
    assert response.status_code == 403
    assert db_session.query(User).filter(User.email == "kid2@example.com").first() is None


def test_unknown_institution(client, auth_headers, super_admin):
    payload = {"email": "kid@example.com", "password": "Password123!", "student_name": "Kiran", "institution_id": 999}
    response = client.post("/api/admin/students", headers=auth_headers(super_admin), json=payload)
    assert response.status_code == 404


def test_audit_log_is_super_admin_only(client, auth_headers, super_admin, gm_user, institution):
    client.post("/api/admin/institution-admins", headers=auth_headers(super_admin), json=_admin_payload(institution))

    logs = client.get("/api/admin/audit-logs", params={"entity_type": "user"}, headers=auth_headers(super_admin))
    assert logs.status_code == 200
    assert any(entry["action"] == "create_institution_admin" for entry in logs.json())

    assert client.get("/api/admin/audit-logs", headers=auth_headers(gm_user)).status_code == 403
