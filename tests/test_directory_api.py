import pytest


def test_institution_and_timetable_setup(client, auth_headers, super_admin):
    headers = auth_headers(super_admin)
    inst = client.post("/api/institutions", headers=headers, json={"name": "Hilltop School", "slug": "hilltop"})
    assert inst.status_code == 201
    inst_id = inst.json()["id"]

    assert client.post("/api/institutions", headers=headers,
                       json={"name": "Hilltop Again", "slug": "hilltop"}).status_code == 409

    officer = client.post("/api/officers", headers=headers, json={
        "full_name": "Nisha Rao", "email": "nisha@example.com", "institution_ids": [inst_id], "monthly_salary": 45000,
    })
    assert officer.status_code == 201, officer.text
    assert officer.json()["assigned_institution_ids"] == [inst_id]

    period = client.post("/api/timetable/periods", headers=headers, json={
        "institution_id": inst_id, "label": "Period 1", "start_time": "09:00", "end_time": "09:45",
    })
    assert period.status_code == 201

    slot = client.post("/api/timetable/assignments", headers=headers, json={
        "institution_id": inst_id, "period_id": period.json()["id"], "day": "Tue",
        "class_id": "5B", "class_name": "Grade 5 B", "subject": "Coding", "teacher_id": officer.json()["id"],
    })
    assert slot.status_code == 201

    bad = client.post("/api/timetable/assignments", headers=headers, json={
        "institution_id": inst_id, "period_id": period.json()["id"], "day": "Tue",
        "class_id": "5B", "class_name": "Grade 5 B", "subject": "Coding", "teacher_id": 9999,
    })
    assert bad.status_code == 400

    listed = client.get("/api/timetable/assignments", params={"institution_id": inst_id,
                                                              "officer_id": officer.json()["id"]}, headers=headers)
    assert len(listed.json()) == 1


def test_officer_only_sees_assigned_institutions(client, db_session, auth_headers, officer, institution):
    from app.models.institution import Institution
    db_session.add(Institution(name="Elsewhere", slug="elsewhere", is_active=True))
    db_session.commit()
    names = [i["name"] for i in client.get("/api/institutions", headers=auth_headers(officer.user)).json()]
    assert names == ["Greenfield School"]


def test_company_and_institution_holidays(client, auth_headers, super_admin, institution):
    headers = auth_headers(super_admin)
    client.post("/api/holidays", headers=headers, json={"date": "2026-12-25", "name": "Christmas"})
    client.post("/api/holidays", headers=headers,
                json={"institution_id": institution.id, "date": "2026-11-14", "name": "Children's Day"})

    company = client.get("/api/holidays", headers=headers).json()
    assert [h["name"] for h in company] == ["Christmas"]

    school = client.get("/api/holidays", params={"institution_id": institution.id}, headers=headers).json()
    assert [h["date"] for h in school] == ["2026-11-14"]


def test_notifications_read_flow(client, db_session, auth_headers, officer):
    from app.services.notification import NotificationService
    NotificationService.create_notification(db_session, officer.user.id, "Hello", "First")
    NotificationService.create_notification(db_session, officer.user.id, "Again", "Second")
    headers = auth_headers(officer.user)

    items = client.get("/api/notifications", headers=headers).json()
    assert len(items) == 2

    r = client.patch(f"/api/notifications/{items[0]['id']}/read", headers=headers)
    assert r.status_code == 200
    assert r.json()["is_read"] is True

    unread = client.get("/api/notifications", params={"unread_only": True}, headers=headers).json()
    assert len(unread) == 1

    assert client.post("/api/notifications/mark-all-read", headers=headers).json()["updated"] == 1
    assert client.patch("/api/notifications/99999/read", headers=headers).status_code == 404
