"""
Capability checks.

Feature access used to be decided ad hoc by looking for a key in the user's
`allowed_features` list. Every check now goes through `has_capability`, a pure
function over the user row, so the rules can be tested in isolation.
"""
import enum
from typing import FrozenSet, Optional

from app.models.leave_application import ApproverRole
from app.models.user import StaffPosition, User, UserRole


class Feature(str, enum.Enum):
    INSTITUTION_MANAGEMENT = "institution_management"
    COURSE_MANAGEMENT = "course_management"
    ASSESSMENT_MANAGEMENT = "assessment_management"
    ASSIGNMENT_MANAGEMENT = "assignment_management"
    EVENT_MANAGEMENT = "event_management"
    OFFICER_MANAGEMENT = "officer_management"
    PROJECT_MANAGEMENT = "project_management"
    INVENTORY_MANAGEMENT = "inventory_management"
    PAYROLL_MANAGEMENT = "payroll_management"
    LEAVE_APPROVALS = "leave_approvals"
    GLOBAL_APPROVAL_CONFIG = "global_approval_config"
    LEAVE_MANAGEMENT = "leave_management"
    COMPANY_HOLIDAYS = "company_holidays"
    POSITION_MANAGEMENT = "position_management"
    CREDENTIAL_MANAGEMENT = "credential_management"
    TASK_MANAGEMENT = "task_management"
    TASK_ALLOTMENT = "task_allotment"
    GAMIFICATION = "gamification"
    ATS_MANAGEMENT = "ats_management"
    WEBINAR_MANAGEMENT = "webinar_management"
    REPORTS_ANALYTICS = "reports_analytics"
    SDG_MANAGEMENT = "sdg_management"
    SURVEY_FEEDBACK = "survey_feedback"
    PERFORMANCE_RATINGS = "performance_ratings"
    CRM_CLIENTS = "crm_clients"
    NEWS_FEEDS = "news_feeds"
    ASK_METOVA = "ask_metova"
    SETTINGS = "settings"
    ID_CONFIGURATION = "id_configuration"


CEO_ONLY_FEATURES: FrozenSet[Feature] = frozenset({
    Feature.PAYROLL_MANAGEMENT,
    Feature.GLOBAL_APPROVAL_CONFIG,
    Feature.POSITION_MANAGEMENT,
    Feature.ATS_MANAGEMENT,
})

# Roles without position settings get a fixed set
ROLE_DEFAULT_FEATURES = {
    UserRole.OFFICER: frozenset({Feature.LEAVE_MANAGEMENT}),
    UserRole.INSTITUTION_ADMIN: frozenset({
        Feature.INSTITUTION_MANAGEMENT,
        Feature.OFFICER_MANAGEMENT,
        Feature.COMPANY_HOLIDAYS,
    }),
    UserRole.STUDENT: frozenset(),
}


def approver_role_for(user: User) -> Optional[ApproverRole]:
    """Which leave stage this user may act on, if any."""
    if user.role != UserRole.SYSTEM_ADMIN:
        return None
    if user.is_ceo or user.position == StaffPosition.CEO:
        return ApproverRole.CEO
    if user.position == StaffPosition.AGM:
        return ApproverRole.AGM
    if user.position == StaffPosition.MANAGER:
        return ApproverRole.MANAGER
    return None


def _is_ceo(user: User) -> bool:
    return bool(user.is_ceo) or user.position == StaffPosition.CEO


def has_capability(user: Optional[User], feature: Feature) -> bool:
    if user is None or not user.is_active:
        return False

    if user.role == UserRole.SUPER_ADMIN:
        return True

    if user.role == UserRole.SYSTEM_ADMIN:
        if feature == Feature.LEAVE_APPROVALS and approver_role_for(user) is None:
            return False
        if _is_ceo(user):
            return True
        if feature in CEO_ONLY_FEATURES:
            return False
        return feature.value in (user.allowed_features or [])

    return feature in ROLE_DEFAULT_FEATURES.get(user.role, frozenset())
