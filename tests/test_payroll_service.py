import pytest
from datetime import date
from types import SimpleNamespace
from app.core.exceptions import ValidationError
from app.models.payroll import ProrationBasis
from app.services import payroll_service
from app.services.payroll_service import SalaryConfig


def _by_type(components):
    return {c.component_type: c.amount for c in components}


# --- Pure arithmetic ---

def test_basic_pay_is_prorated_and_rounded():
    components = payroll_service.generate_salary_components(SalaryConfig(100000, 600), 20, 22)
    amounts = _by_type(components)
    assert amounts["basic_pay"] == 36364
    assert amounts["hra"] == 27273
    assert amounts["da"] == 9091
    assert amounts["special_allowance"] == 18182
    assert "overtime" not in amounts


def test_overtime_component_only_when_hours_worked():
    config = SalaryConfig(monthly_salary=60000, hourly_rate=350)
    amounts = _by_type(payroll_service.generate_salary_components(config, 22, 22, overtime_hours=4))
    assert amounts["overtime"] == 2100  # 4 h x 350 x 1.5
    assert amounts["basic_pay"] == 24000


@pytest.mark.parametrize("present,total", [(5, 0), (-1, 22), (5, -3)])
def test_invalid_day_counts(present, total):
    with pytest.raises(ValidationError):
        payroll_service.generate_salary_components(SalaryConfig(50000, 300), present, total)


def test_days_beyond_divisor_pay_pro_rata():
    amounts = _by_type(payroll_service.generate_salary_components(SalaryConfig(60000, 350), 26, 21))
    assert amounts["basic_pay"] == 29714  # 60000 x 0.4 x 26/21
    assert amounts["special_allowance"] == 14857


def test_deductions_above_thresholds():
    deductions = _by_type(payroll_service.generate_deductions(60000))
    assert deductions == {"pf": 1800, "professional_tax": 200, "tds": 3000}


def test_deductions_below_thresholds():
    deductions = _by_type(payroll_service.generate_deductions(9000))
    assert "professional_tax" not in deductions
    assert "tds" not in deductions
    assert deductions["pf"] == 432


def test_pf_is_capped():
    assert _by_type(payroll_service.generate_deductions(250000))["pf"] == 1800


def test_compute_payroll_totals():
    breakdown = payroll_service.compute_payroll(SalaryConfig(60000, 350), 22, 22)
    assert breakdown.gross_salary == 60000
    assert breakdown.total_deductions == 5000
    assert breakdown.net_pay == 55000


def test_round_half_up():
    assert payroll_service.round_half_up(2.5) == 3
    assert payroll_service.round_half_up(2.4999) == 2


def test_working_days_skip_weekends_and_holidays():
    assert payroll_service.count_working_days(2026, 11) == 21
    holidays = [date(2026, 11, 2), date(2026, 11, 7), date(2026, 12, 25)]
    # Saturday and out-of-month holidays do not count
    assert payroll_service.count_working_days(2026, 11, holidays) == 20


def test_resolve_divisor():
    assert payroll_service.resolve_divisor(ProrationBasis.CALENDAR_DAYS, 2026, 2) == 28
    assert payroll_service.resolve_divisor(ProrationBasis.WORKING_DAYS, 2026, 11) == 21
    assert payroll_service.resolve_divisor(ProrationBasis.WORKING_DAYS, 2026, 11, total_days=26) == 26


def test_summarize_attendance_half_days():
    rows = [
        SimpleNamespace(status="present", hours_worked=8, overtime_hours=1),
        SimpleNamespace(status="half_day", hours_worked=4, overtime_hours=0),
        SimpleNamespace(status="leave", hours_worked=None, overtime_hours=None),
        SimpleNamespace(status="absent", hours_worked=0, overtime_hours=0),
    ]
    summary = payroll_service.summarize_attendance(rows, working_days=21)
    assert summary.present_days == 1.5
    assert summary.absent_days == 1.5
    assert summary.leave_days == 1
    assert summary.half_days == 1
    assert summary.hours_worked == 12
    assert summary.overtime_hours == 1
    assert summary.by_status == {"present": 1, "half_day": 1, "leave": 1, "absent": 1}


# --- Attendance and payroll API ---

def _mark(client, headers, officer_id, day, status="present", **extra):
    payload = {"officer_id": officer_id, "date": day, "status": status}
    payload.update(extra)
    response = client.post("/api/attendance/officers", headers=headers, json=payload)
    assert response.status_code == 200, response.text
    return response.json()


def test_officer_marks_own_attendance_and_second_mark_overwrites(client, auth_headers, officer, other_officer):
    headers = auth_headers(officer.user)
    first = _mark(client, headers, officer.id, "2026-11-02")
    second = _mark(client, headers, officer.id, "2026-11-02", status="half_day")
    assert first["id"] == second["id"]
    assert second["status"] == "half_day"

    r = client.post("/api/attendance/officers", headers=headers,
                    json={"officer_id": other_officer.id, "date": "2026-11-02", "status": "present"})
    assert r.status_code == 403


def test_attendance_summary(client, auth_headers, super_admin, officer):
    headers = auth_headers(super_admin)
    _mark(client, headers, officer.id, "2026-11-02")
    _mark(client, headers, officer.id, "2026-11-03", status="half_day")
    _mark(client, headers, officer.id, "2026-11-04", status="leave")

    r = client.get(f"/api/attendance/officers/{officer.id}/summary", params={"month": 11, "year": 2026}, headers=headers)
    assert r.status_code == 200
    body = r.json()
    assert body["working_days"] == 21
    assert body["present_days"] == 1.5
    assert body["leave_days"] == 1
    assert body["records"] == 3


def test_generate_officer_payroll(client, auth_headers, super_admin, officer):
    headers = auth_headers(super_admin)
    for day in range(2, 7):
        _mark(client, headers, officer.id, f"2026-11-0{day}", hours_worked=8, overtime_hours=1 if day == 2 else 0)

    r = client.post("/api/payroll/generate", headers=headers,
                    json={"payee_type": "officer", "payee_id": officer.id, "month": 11, "year": 2026})
    assert r.status_code == 200, r.text
    record = r.json()
    assert record["status"] == "draft"
    assert record["payee_name"] == "Priya Sharma"
    assert record["working_days"] == 21
    assert record["present_days"] == 5
    assert record["proration_basis"] == "working_days"

    earnings = {c["component_type"]: c["amount"] for c in record["components"] if c["kind"] == "earning"}
    assert earnings["basic_pay"] == 5714  # 60000 x 0.4 x 5/21
    assert earnings["overtime"] == 525
    assert record["gross_salary"] == sum(earnings.values())
    assert record["net_pay"] == record["gross_salary"] - record["total_deductions"]


def test_weekend_attendance_still_generates_payroll(client, auth_headers, super_admin, officer):
    headers = auth_headers(super_admin)
    mon_to_sat = [date(2025, 3, d) for d in range(1, 32) if date(2025, 3, d).weekday() < 6]
    for day in mon_to_sat:
        _mark(client, headers, officer.id, day.isoformat())

    r = client.post("/api/payroll/generate", headers=headers,
                    json={"payee_type": "officer", "payee_id": officer.id, "month": 3, "year": 2025})
    assert r.status_code == 200, r.text
    record = r.json()
    assert record["present_days"] == 26
    assert record["proration_divisor"] == 21
    earnings = {c["component_type"]: c["amount"] for c in record["components"] if c["kind"] == "earning"}
    assert earnings["basic_pay"] == 29714


def test_draft_is_recomputed_and_approved_is_locked(client, auth_headers, super_admin, officer):
    headers = auth_headers(super_admin)
    body = {"payee_type": "officer", "payee_id": officer.id, "month": 11, "year": 2026, "total_days": 20}
    _mark(client, headers, officer.id, "2026-11-02")
    first = client.post("/api/payroll/generate", headers=headers, json=body).json()
    assert first["proration_basis"] == "explicit"
    assert first["proration_divisor"] == 20

    _mark(client, headers, officer.id, "2026-11-03")
    second = client.post("/api/payroll/generate", headers=headers, json=body).json()
    assert second["id"] == first["id"]
    assert second["present_days"] == 2
    assert second["gross_salary"] > first["gross_salary"]

    r = client.patch(f"/api/payroll/records/{first['id']}/status", headers=headers, json={"status": "approved"})
    assert r.status_code == 200

    r = client.post("/api/payroll/generate", headers=headers, json=body)
    assert r.status_code == 409


def test_payroll_status_transitions(client, auth_headers, super_admin, gm_user):
    headers = auth_headers(super_admin)
    record = client.post("/api/payroll/generate", headers=headers,
                         json={"payee_type": "staff", "payee_id": gm_user.id, "month": 11, "year": 2026}).json()
    assert record["position"] == "gm"
    assert record["monthly_salary"] == 120000

    url = f"/api/payroll/records/{record['id']}/status"
    assert client.patch(url, headers=headers, json={"status": "paid"}).status_code == 409
    assert client.patch(url, headers=headers, json={"status": "approved"}).json()["status"] == "approved"
    assert client.patch(url, headers=headers, json={"status": "paid"}).json()["status"] == "paid"
    assert client.patch(url, headers=headers, json={"status": "approved"}).status_code == 409

    listed = client.get("/api/payroll/records", params={"status": "paid"}, headers=headers).json()
    assert [r["id"] for r in listed] == [record["id"]]


def test_preview_and_access(client, auth_headers, super_admin, gm_user):
    r = client.post("/api/payroll/preview", headers=auth_headers(super_admin),
                    json={"monthly_salary": 100000, "present_days": 20, "total_days": 22})
    assert r.status_code == 200
    earnings = {c["component_type"]: c["amount"] for c in r.json()["earnings"]}
    assert earnings["basic_pay"] == 36364

    r = client.post("/api/payroll/preview", headers=auth_headers(super_admin),
                    json={"present_days": 20, "total_days": 22})
    assert r.status_code == 422

    # Payroll is a CEO-only feature
    r = client.post("/api/payroll/preview", headers=auth_headers(gm_user),
                    json={"position": "manager", "present_days": 20, "total_days": 22})
    assert r.status_code == 403
