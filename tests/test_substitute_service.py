import pytest
from datetime import date
from types import SimpleNamespace
from app.core.exceptions import ValidationError
from app.models.institution import InstitutionPeriod, TimetableAssignment
from app.services import substitute_service

MONDAY = date(2026, 11, 2)
SUNDAY = date(2026, 11, 8)


@pytest.mark.parametrize("raw", ["Mon", "monday", "MONDAY", " mon "])
def test_normalize_day_variants(raw):
    assert substitute_service.normalize_day(raw) == "monday"


def test_normalize_day_leaves_unknown_lowercased():
    assert substitute_service.normalize_day("Funday") == "funday"
    assert substitute_service.normalize_day(None) == ""


def test_affected_slots_for_a_week(db_session, institution, officer, timetable):
    slots = substitute_service.get_affected_slots(db_session, officer.id, institution.id, MONDAY, SUNDAY)

    assert [(s["date"], s["subject"]) for s in slots] == [
        (date(2026, 11, 2), "Robotics"),
        (date(2026, 11, 4), "Coding"),
    ]
    first = slots[0]
    assert first["day"] == "monday"
    assert first["period_label"] == "Period 1"
    assert first["period_time"] == "09:00 - 09:45"
    assert first["officer_role"] == "primary"
    assert first["room"] == "Lab 1"


def test_affected_slots_outside_teaching_days(db_session, institution, officer, timetable):
    tuesday = date(2026, 11, 3)
    assert substitute_service.get_affected_slots(db_session, officer.id, institution.id, tuesday, tuesday) == []


def test_affected_slots_sorted_by_start_time_within_a_day(db_session, institution, periods, officer, timetable):
    p1, p2 = periods
    # Inserted after the 09:00 class but starts earlier
    early = InstitutionPeriod(institution_id=institution.id, label="Zero", start_time="08:00", end_time="08:40")
    db_session.add(early)
    db_session.flush()
    db_session.add(TimetableAssignment(institution_id=institution.id, period_id=early.id, day="monday",
                                       class_id="9B", class_name="Grade 9 B", subject="Electronics",
                                       backup_officer_id=officer.id))
    db_session.commit()

    slots = substitute_service.get_affected_slots(db_session, officer.id, institution.id, MONDAY, MONDAY)
    assert [s["subject"] for s in slots] == ["Electronics", "Robotics"]
    assert slots[0]["officer_role"] == "backup"


def test_missing_period_falls_back_to_default_label(db_session, institution, officer):
    db_session.add(TimetableAssignment(institution_id=institution.id, period_id=9999, day="Fri",
                                       class_id="7C", class_name="Grade 7 C", subject="Design",
                                       teacher_id=officer.id))
    db_session.commit()

    friday = date(2026, 11, 6)
    slots = substitute_service.get_affected_slots(db_session, officer.id, institution.id, friday, friday)
    assert len(slots) == 1
    assert slots[0]["period_label"] == "Period"
    assert slots[0]["start_time"] == ""
    assert slots[0]["period_time"] == ""


def test_reversed_range_is_rejected(db_session, institution, officer):
    with pytest.raises(ValidationError):
        substitute_service.get_affected_slots(db_session, officer.id, institution.id, SUNDAY, MONDAY)


def test_available_substitutes_flags_busy_officers(db_session, institution, periods, officer, other_officer, timetable):
    p1, _ = periods
    db_session.add(TimetableAssignment(institution_id=institution.id, period_id=p1.id, day="MONDAY",
                                       class_id="6A", class_name="Grade 6 A", subject="Science",
                                       secondary_officer_id=other_officer.id))
    db_session.commit()

    candidates = substitute_service.get_available_substitutes(
        db_session, institution.id, "Mon", p1.id, exclude_officer_id=officer.id
    )
    assert candidates == [{
        "officer_id": other_officer.id,
        "officer_name": "Ravi Kumar (Greenfield School) (Has class)",
        "skills": ["robotics"],
        "is_available": False,
    }]


def test_available_substitutes_free_period(db_session, institution, periods, officer, other_officer, timetable):
    _, p2 = periods
    candidates = substitute_service.get_available_substitutes(db_session, institution.id, "monday", p2.id)
    by_id = {c["officer_id"]: c for c in candidates}
    assert by_id[other_officer.id]["is_available"] is True
    assert by_id[other_officer.id]["officer_name"] == "Ravi Kumar (Greenfield School)"
    assert by_id[officer.id]["is_available"] is True


def test_all_institution_officers(db_session, institution, officer, other_officer):
    result = substitute_service.get_all_institution_officers(db_session, institution.id, exclude_officer_id=officer.id)
    assert [r["officer_id"] for r in result] == [other_officer.id]


# --- Assignment through the API ---

def _submit(client, auth_headers, user, **extra):
    payload = {"start_date": "2026-11-02", "end_date": "2026-11-04", "leave_type": "sick", "reason": "Fever"}
    payload.update(extra)
    return client.post("/api/leave/applications", headers=auth_headers(user), json=payload)


def test_substitutes_picked_at_submission(client, auth_headers, officer, other_officer, timetable):
    monday_slot, _ = timetable
    response = _submit(client, auth_headers, officer.user, substitutes=[
        {"slot_id": monday_slot.id, "date": "2026-11-02", "substitute_officer_id": other_officer.id},
    ])
    assert response.status_code == 201, response.text
    assignments = response.json()["substitute_assignments"]
    assert len(assignments) == 1
    assert assignments[0]["substitute_officer_name"] == "Ravi Kumar"
    assert assignments[0]["original_officer_name"] == "Priya Sharma"
    assert assignments[0]["substitute_has_class"] is False


def test_pick_for_unaffected_slot_rejects_whole_submission(client, auth_headers, officer, other_officer, timetable):
    monday_slot, _ = timetable
    response = _submit(client, auth_headers, officer.user, substitutes=[
        {"slot_id": monday_slot.id, "date": "2026-11-03", "substitute_officer_id": other_officer.id},
    ])
    assert response.status_code == 400
    mine = client.get("/api/leave/applications/mine", headers=auth_headers(officer.user)).json()
    assert mine == []


def test_reassigning_a_slot_replaces_previous_pick(client, db_session, auth_headers, make_officer, institution,
                                                   officer, other_officer, timetable):
    monday_slot, wednesday_slot = timetable
    third = make_officer("Asha Nair", institution)
    data = _submit(client, auth_headers, officer.user).json()
    url = f"/api/leave/applications/{data['id']}/substitutes"

    r = client.post(url, headers=auth_headers(officer.user), json={"assignments": [
        {"slot_id": monday_slot.id, "date": "2026-11-02", "substitute_officer_id": other_officer.id},
        {"slot_id": wednesday_slot.id, "date": "2026-11-04", "substitute_officer_id": other_officer.id},
    ]})
    assert r.status_code == 200, r.text

    r = client.post(url, headers=auth_headers(officer.user), json={"assignments": [
        {"slot_id": monday_slot.id, "date": "2026-11-02", "substitute_officer_id": third.id},
    ]})
    assert r.status_code == 200

    listed = client.get(url, headers=auth_headers(officer.user)).json()
    assert len(listed) == 2
    by_slot = {a["slot_id"]: a["substitute_officer_id"] for a in listed}
    assert by_slot == {monday_slot.id: third.id, wednesday_slot.id: other_officer.id}


def test_officer_cannot_substitute_own_leave(client, auth_headers, officer, timetable):
    monday_slot, _ = timetable
    data = _submit(client, auth_headers, officer.user).json()
    r = client.post(f"/api/leave/applications/{data['id']}/substitutes", headers=auth_headers(officer.user),
                    json={"assignments": [
                        {"slot_id": monday_slot.id, "date": "2026-11-02", "substitute_officer_id": officer.id},
                    ]})
    assert r.status_code == 400


def test_meta_staff_application_takes_no_substitutes(db_session, institution):
    application = SimpleNamespace(applicant_type="meta_staff", status="pending")
    with pytest.raises(ValidationError):
        substitute_service.assign_substitutes(db_session, application, [], commit=False)


def test_affected_slots_endpoint_access(client, auth_headers, officer, other_officer, institution, timetable):
    params = {"officer_id": officer.id, "institution_id": institution.id,
              "start_date": "2026-11-02", "end_date": "2026-11-08"}
    own = client.get("/api/substitutes/affected-slots", params=params, headers=auth_headers(officer.user))
    assert own.status_code == 200
    assert [s["date"] for s in own.json()] == ["2026-11-02", "2026-11-04"]

    other = client.get("/api/substitutes/affected-slots", params=params, headers=auth_headers(other_officer.user))
    assert other.status_code == 403


def test_officer_listings_limited_to_assigned_institution(client, db_session, auth_headers, make_user, make_officer,
                                                          officer, other_officer, institution, periods, timetable,
                                                          manager_user):
    from app.models.institution import Institution
    from app.models.user import UserRole
    elsewhere = Institution(name="Riverside Academy", slug="riverside", is_active=True)
    db_session.add(elsewhere)
    db_session.commit()
    outsider = make_officer("Sana Iqbal", elsewhere)
    student = make_user("kid@example.com", role=UserRole.STUDENT, institution_id=institution.id)

    available = {"institution_id": institution.id, "day": "Mon", "period_id": periods[0].id}
    listing = {"institution_id": institution.id}

    for user in (student, outsider.user):
        assert client.get("/api/substitutes/available", params=available, headers=auth_headers(user)).status_code == 403
        assert client.get("/api/substitutes/officers", params=listing, headers=auth_headers(user)).status_code == 403

    r = client.get("/api/substitutes/available", params={**available, "exclude_officer_id": other_officer.id},
                   headers=auth_headers(other_officer.user))
    assert r.status_code == 200
    assert [s["officer_id"] for s in r.json()] == [officer.id]

    r = client.get("/api/substitutes/officers", params=listing, headers=auth_headers(manager_user))
    assert r.status_code == 200
    assert {s["officer_id"] for s in r.json()} == {officer.id, other_officer.id}
