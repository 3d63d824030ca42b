import pytest
from app.core.permissions import Feature, approver_role_for, has_capability
from app.models.leave_application import ApproverRole
from app.models.user import StaffPosition, User, UserRole


def _user(role, position=None, is_ceo=False, features=None, active=True):
    return User(
        email="someone@example.com",
        hashed_password="x",
        role=role,
        position=position,
        is_ceo=is_ceo,
        allowed_features=features or [],
        is_active=active,
    )


def test_super_admin_has_every_feature():
    user = _user(UserRole.SUPER_ADMIN)
    assert all(has_capability(user, f) for f in Feature if f != Feature.LEAVE_APPROVALS)
    assert has_capability(user, Feature.LEAVE_APPROVALS)


def test_inactive_user_has_nothing():
    user = _user(UserRole.SUPER_ADMIN, active=False)
    assert not has_capability(user, Feature.SETTINGS)
    assert not has_capability(None, Feature.SETTINGS)


def test_ceo_only_features_need_ceo_flag():
    gm = _user(UserRole.SYSTEM_ADMIN, StaffPosition.GM, features=["payroll_management", "reports_analytics"])
    assert not has_capability(gm, Feature.PAYROLL_MANAGEMENT)
    assert has_capability(gm, Feature.REPORTS_ANALYTICS)

    ceo = _user(UserRole.SYSTEM_ADMIN, StaffPosition.CEO, is_ceo=True)
    assert has_capability(ceo, Feature.PAYROLL_MANAGEMENT)
    assert has_capability(ceo, Feature.ATS_MANAGEMENT)
    assert has_capability(ceo, Feature.SURVEY_FEEDBACK)


def test_system_admin_features_come_from_allowed_list():
    staff = _user(UserRole.SYSTEM_ADMIN, StaffPosition.ADMIN_STAFF, features=["task_management"])
    assert has_capability(staff, Feature.TASK_MANAGEMENT)
    assert not has_capability(staff, Feature.CRM_CLIENTS)


def test_leave_approvals_requires_an_approver_position():
    admin_staff = _user(UserRole.SYSTEM_ADMIN, StaffPosition.ADMIN_STAFF, features=["leave_approvals"])
    manager = _user(UserRole.SYSTEM_ADMIN, StaffPosition.MANAGER, features=["leave_approvals"])
    manager_without_feature = _user(UserRole.SYSTEM_ADMIN, StaffPosition.MANAGER)

    assert not has_capability(admin_staff, Feature.LEAVE_APPROVALS)
    assert has_capability(manager, Feature.LEAVE_APPROVALS)
    assert not has_capability(manager_without_feature, Feature.LEAVE_APPROVALS)


def test_role_defaults():
    officer = _user(UserRole.OFFICER)
    assert has_capability(officer, Feature.LEAVE_MANAGEMENT)
    assert not has_capability(officer, Feature.LEAVE_APPROVALS)

    inst_admin = _user(UserRole.INSTITUTION_ADMIN)
    assert has_capability(inst_admin, Feature.INSTITUTION_MANAGEMENT)
    assert has_capability(inst_admin, Feature.COMPANY_HOLIDAYS)
    assert not has_capability(inst_admin, Feature.PAYROLL_MANAGEMENT)

    student = _user(UserRole.STUDENT)
    assert not any(has_capability(student, f) for f in Feature)


@pytest.mark.parametrize("position,is_ceo,expected", [
    (StaffPosition.MANAGER, False, ApproverRole.MANAGER),
    (StaffPosition.AGM, False, ApproverRole.AGM),
    (StaffPosition.CEO, True, ApproverRole.CEO),
    (None, True, ApproverRole.CEO),
    (StaffPosition.GM, False, None),
])
def test_approver_role_for(position, is_ceo, expected):
    assert approver_role_for(_user(UserRole.SYSTEM_ADMIN, position, is_ceo=is_ceo)) == expected


def test_officer_is_never_an_approver():
    assert approver_role_for(_user(UserRole.OFFICER, StaffPosition.MANAGER)) is None
