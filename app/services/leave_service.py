"""
Leave Service Layer

Database side of the leave workflow: submission, approver queues, transitions,
substitute picks and the leave calendar. State changes themselves are made by
`leave_workflow`; this module persists them with an audit entry in the same
transaction and notifies the applicant once the change is committed.
"""
from datetime import date, timedelta
from typing import Any, Dict, List, Optional, Tuple
import logging

from sqlalchemy import or_
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from app.core.exceptions import (
    AccessDeniedError,
    ConflictError,
    InvalidTransitionError,
    NotFoundError,
    ValidationError,
)
from app.core.permissions import Feature, approver_role_for, has_capability
from app.core.security import sanitize_input
from app.models.institution import Holiday, Institution
from app.models.notification import NotificationType
from app.models.leave_application import (
    ApplicantType,
    ApprovalStage,
    ApproverRole,
    LeaveApplication,
    LeaveStatus,
)
from app.models.officer import Officer
from app.models.user import User, UserRole
from app.services import leave_workflow, substitute_service
from app.services.audit import AuditService
from app.services.email_service import build_gmail_compose_url
from app.services.notification import NotificationService

logger = logging.getLogger(__name__)

ACTIVE_STATUSES = (LeaveStatus.PENDING.value, LeaveStatus.APPROVED.value)

STAGE_FOR_ROLE = {
    ApproverRole.MANAGER: ApprovalStage.MANAGER_PENDING,
    ApproverRole.AGM: ApprovalStage.AGM_PENDING,
    ApproverRole.CEO: ApprovalStage.CEO_PENDING,
}


def resolve_applicant(db: Session, user: User, institution_id: Optional[int] = None) -> Tuple[ApplicantType, Optional[Officer], Optional[Institution]]:
    """Officer profile -> innovation officer; positioned system admin -> meta staff."""
    officer = user.officer_profile
    if officer is not None:
        if institution_id is None:
            institution = officer.home_institution
            if institution is None:
                raise ValidationError("Officer is not assigned to any institution")
        else:
            if institution_id not in officer.assigned_institution_ids:
                raise ValidationError("Officer is not assigned to this institution")
            institution = db.query(Institution).filter(Institution.id == institution_id).first()
        return ApplicantType.INNOVATION_OFFICER, officer, institution

    if user.is_meta_staff:
        return ApplicantType.META_STAFF, None, None

    raise AccessDeniedError("Only officers and meta staff can apply for leave")


def count_leave_days(db: Session, start_date: date, end_date: date, institution_id: Optional[int]) -> int:
    """Calendar days in the range minus holidays (institution holidays, or company holidays when None)."""
    query = db.query(Holiday.date).filter(Holiday.date >= start_date, Holiday.date <= end_date)
    if institution_id is None:
        query = query.filter(Holiday.institution_id.is_(None))
    else:
        query = query.filter(Holiday.institution_id == institution_id)
    holidays = {row[0] for row in query.all()}
    total = (end_date - start_date).days + 1
    return total - len(holidays)


def _applicant_filter(user: User, officer: Optional[Officer]):
    if officer is not None:
        return LeaveApplication.officer_id == officer.id
    return LeaveApplication.applicant_user_id == user.id


def has_overlap(db: Session, criterion, start_date: date, end_date: date, exclude_id: Optional[int] = None) -> bool:
    query = db.query(LeaveApplication.id).filter(
        criterion,
        LeaveApplication.status.in_(ACTIVE_STATUSES),
        LeaveApplication.start_date <= end_date,
        LeaveApplication.end_date >= start_date,
    )
    if exclude_id is not None:
        query = query.filter(LeaveApplication.id != exclude_id)
    return query.first() is not None


def _approvers_for_stage(db: Session, stage: str) -> List[User]:
    role = leave_workflow.STAGE_APPROVER.get(stage)
    if role is None:
        return []
    candidates = db.query(User).filter(User.role == UserRole.SYSTEM_ADMIN, User.is_active == True).all()  # noqa: E712
    return [u for u in candidates if approver_role_for(u) == role]


def _notify_stage_approvers(db: Session, application: LeaveApplication) -> None:
    for approver in _approvers_for_stage(db, application.approval_stage):
        NotificationService.notify_user(
            db,
            approver.id,
            "Leave approval needed",
            f"{application.officer_name} requested {application.total_days:g} day(s) of "
            f"{application.leave_type} leave from {application.start_date} to {application.end_date}.",
            type=NotificationType.INFO,
            link=f"/leave/approvals/{application.id}",
        )


def submit_leave(db: Session, user: User, payload) -> LeaveApplication:
    reason = sanitize_input(payload.reason)
    if not reason:
        raise ValidationError("A reason is required")
    if payload.end_date < payload.start_date:
        raise ValidationError("end_date must be on or after start_date")

    applicant_type, officer, institution = resolve_applicant(db, user, payload.institution_id)
    is_officer = applicant_type == ApplicantType.INNOVATION_OFFICER

    total_days = count_leave_days(
        db, payload.start_date, payload.end_date, institution.id if institution else None
    )
    if total_days <= 0:
        raise ValidationError("The selected dates contain no leave days (all holidays)")

    conflict = has_overlap(db, _applicant_filter(user, officer), payload.start_date, payload.end_date)
    if conflict:
        logger.info(f"Overlapping leave submitted by user {user.id}")

    affected_slots = None
    if is_officer:
        slots = substitute_service.get_affected_slots(
            db, officer.id, institution.id, payload.start_date, payload.end_date
        )
        affected_slots = substitute_service.serialize_slots(slots)

    try:
        application = LeaveApplication(
            officer_id=officer.id if officer else None,
            applicant_user_id=user.id,
            officer_name=officer.full_name if officer else user.display_name,
            applicant_type=applicant_type.value,
            institution_id=institution.id if institution else None,
            institution_name=institution.name if institution else None,
            start_date=payload.start_date,
            end_date=payload.end_date,
            leave_type=payload.leave_type.value,
            reason=reason,
            total_days=total_days,
            conflict_detected=conflict,
            status=LeaveStatus.PENDING.value,
            approval_stage=leave_workflow.first_stage_for(applicant_type).value,
            affected_slots=affected_slots,
        )
        db.add(application)
        db.flush()

        if payload.substitutes:
            if not is_officer:
                raise ValidationError("Substitutes only apply to innovation officer leave")
            substitute_service.assign_substitutes(
                db, application, payload.substitutes, assigned_by=user.display_name, commit=False
            )

        AuditService.log(
            db,
            action="submit_leave",
            entity_type="leave_application",
            entity_id=application.id,
            user_id=user.id,
            user_role=user.role,
            details={
                "applicant_type": applicant_type.value,
                "total_days": total_days,
                "conflict_detected": conflict,
                "affected_slots": len(affected_slots or []),
            },
            after_state=leave_workflow.snapshot(application),
        )
        db.commit()
    except Exception:
        db.rollback()
        raise

    db.refresh(application)
    logger.info(
        f"Leave application {application.id} submitted",
        extra={"applicant_type": applicant_type.value, "stage": application.approval_stage},
    )
    _notify_stage_approvers(db, application)
    return application


def get_application(db: Session, application_id: int) -> LeaveApplication:
    application = db.query(LeaveApplication).filter(LeaveApplication.id == application_id).first()
    if not application:
        raise NotFoundError("Leave application not found")
    return application


def is_applicant(user: User, application: LeaveApplication) -> bool:
    if application.applicant_user_id == user.id:
        return True
    officer = user.officer_profile
    return officer is not None and application.officer_id == officer.id


def get_visible_application(db: Session, user: User, application_id: int) -> LeaveApplication:
    application = get_application(db, application_id)
    if is_applicant(user, application) or has_capability(user, Feature.LEAVE_APPROVALS):
        return application
    raise AccessDeniedError("You cannot view this leave application")


def list_mine(db: Session, user: User, status: Optional[str] = None) -> List[LeaveApplication]:
    criterion = LeaveApplication.applicant_user_id == user.id
    if user.officer_profile is not None:
        criterion = or_(criterion, LeaveApplication.officer_id == user.officer_profile.id)
    query = db.query(LeaveApplication).filter(criterion)
    if status:
        query = query.filter(LeaveApplication.status == status)
    return query.order_by(LeaveApplication.applied_at.desc(), LeaveApplication.id.desc()).all()


def list_pending_for(db: Session, user: User) -> List[LeaveApplication]:
    """
    Applications waiting on the caller's stage, never the caller's own.
    Super admins see every pending application and act for its current stage.
    """
    query = db.query(LeaveApplication).filter(
        LeaveApplication.status == LeaveStatus.PENDING.value,
        or_(LeaveApplication.applicant_user_id.is_(None), LeaveApplication.applicant_user_id != user.id),
    )
    if user.role != UserRole.SUPER_ADMIN:
        role = approver_role_for(user)
        if role is None:
            return []
        query = query.filter(LeaveApplication.approval_stage == STAGE_FOR_ROLE[role].value)
    return query.order_by(LeaveApplication.applied_at, LeaveApplication.id).all()


def _notify_applicant(db: Session, application: LeaveApplication, title: str, message: str, type: NotificationType) -> None:
    NotificationService.notify_user(
        db, application.applicant_user_id, title, message, type=type,
        link=f"/leave/applications/{application.id}",
    )


def _transition(db: Session, user: User, application: LeaveApplication, action: str, mutate, details: Dict[str, Any]) -> LeaveApplication:
    before = leave_workflow.snapshot(application)
    try:
        mutate(application)
        db.flush()
        AuditService.log(
            db,
            action=action,
            entity_type="leave_application",
            entity_id=application.id,
            user_id=user.id,
            user_role=user.role,
            details=details,
            before_state=before,
            after_state=leave_workflow.snapshot(application),
        )
        db.commit()
    except StaleDataError:
        db.rollback()
        raise ConflictError("Leave application was modified concurrently; reload and retry")
    except Exception:
        db.rollback()
        raise
    db.refresh(application)
    return application


def _acting_role(user: User, application: LeaveApplication) -> ApproverRole:
    """Stage role the caller decides with. A super admin stands in for whichever stage is current."""
    if user.role == UserRole.SUPER_ADMIN:
        role = leave_workflow.required_approver(application)
    else:
        role = approver_role_for(user)
        if role is None:
            raise AccessDeniedError("You are not a leave approver")
    if is_applicant(user, application):
        raise AccessDeniedError("You cannot decide your own leave application")
    if role is None:
        raise InvalidTransitionError(
            f"Leave application is already {application.status}",
            details={"status": application.status, "approval_stage": application.approval_stage},
        )
    return role


def approve(db: Session, user: User, application_id: int, comments: Optional[str] = None, version: Optional[int] = None) -> LeaveApplication:
    application = get_application(db, application_id)
    role = _acting_role(user, application)

    application = _transition(
        db, user, application, "approve_leave",
        lambda app: leave_workflow.approve_stage(app, role, user.display_name, sanitize_input(comments), version),
        {"approver_role": role.value, "comments": comments},
    )

    if application.status == LeaveStatus.APPROVED.value:
        _notify_applicant(db, application, "Leave approved",
                          f"Your leave from {application.start_date} to {application.end_date} was approved.", NotificationType.SUCCESS)
    else:
        _notify_applicant(db, application, "Leave moved to next approval",
                          f"{role.value.upper()} approved your leave; it is now at {application.approval_stage}.", NotificationType.INFO)
        _notify_stage_approvers(db, application)
    return application


def reject(db: Session, user: User, application_id: int, reason: str, version: Optional[int] = None) -> LeaveApplication:
    application = get_application(db, application_id)
    role = _acting_role(user, application)

    application = _transition(
        db, user, application, "reject_leave",
        lambda app: leave_workflow.reject_stage(app, role, user.display_name, sanitize_input(reason) or "", version),
        {"approver_role": role.value, "reason": reason},
    )
    _notify_applicant(db, application, "Leave rejected",
                      f"Your leave was rejected at {application.rejection_stage} stage: {application.rejection_reason}",
                      NotificationType.ERROR)
    return application


def cancel(db: Session, user: User, application_id: int, version: Optional[int] = None) -> LeaveApplication:
    application = get_application(db, application_id)
    if not is_applicant(user, application):
        raise AccessDeniedError("Only the applicant can cancel a leave application")
    return _transition(
        db, user, application, "cancel_leave",
        lambda app: leave_workflow.cancel(app, version),
        {},
    )


def assign_substitutes(db: Session, user: User, application_id: int, picks) -> List[Any]:
    application = get_application(db, application_id)
    if not (is_applicant(user, application)
            or has_capability(user, Feature.LEAVE_APPROVALS)
            or has_capability(user, Feature.OFFICER_MANAGEMENT)):
        raise AccessDeniedError("You cannot assign substitutes for this application")

    assignments = substitute_service.assign_substitutes(
        db, application, picks, assigned_by=user.display_name, commit=False
    )
    try:
        AuditService.log(
            db,
            action="assign_substitutes",
            entity_type="leave_application",
            entity_id=application.id,
            user_id=user.id,
            user_role=user.role,
            details={
                "assignments": [
                    {"slot_id": a.slot_id, "date": a.date, "substitute_officer_id": a.substitute_officer_id,
                     "has_class": a.substitute_has_class}
                    for a in assignments
                ]
            },
        )
        db.commit()
    except Exception:
        db.rollback()
        raise

    for assignment in assignments:
        db.refresh(assignment)
        officer = db.query(Officer).filter(Officer.id == assignment.substitute_officer_id).first()
        if officer and officer.user_id:
            NotificationService.notify_user(
                db, officer.user_id, "Substitute assignment",
                f"You are covering {assignment.class_name} ({assignment.subject}), "
                f"{assignment.period_label} on {assignment.date} for {assignment.original_officer_name}.",
                type=NotificationType.INFO,
            )
    return assignments


def approved_calendar(
    db: Session,
    start: date,
    end: date,
    institution_id: Optional[int] = None,
) -> List[LeaveApplication]:
    if end < start:
        raise ValidationError("end must be on or after start")
    query = db.query(LeaveApplication).filter(
        LeaveApplication.status == LeaveStatus.APPROVED.value,
        LeaveApplication.start_date <= end,
        LeaveApplication.end_date >= start,
    )
    if institution_id is not None:
        query = query.filter(LeaveApplication.institution_id == institution_id)
    return query.order_by(LeaveApplication.start_date, LeaveApplication.id).all()


def officers_on_leave(db: Session, on_date: date, institution_id: Optional[int] = None) -> List[LeaveApplication]:
    """Approved innovation-officer leave covering on_date."""
    query = db.query(LeaveApplication).filter(
        LeaveApplication.status == LeaveStatus.APPROVED.value,
        LeaveApplication.applicant_type == ApplicantType.INNOVATION_OFFICER.value,
        LeaveApplication.start_date <= on_date,
        LeaveApplication.end_date >= on_date,
    )
    if institution_id is not None:
        query = query.filter(LeaveApplication.institution_id == institution_id)
    return query.order_by(LeaveApplication.officer_name).all()


def _applicant_email(db: Session, application: LeaveApplication) -> str:
    if application.officer is not None and application.officer.email:
        return application.officer.email
    if application.applicant_user_id:
        user = db.query(User).filter(User.id == application.applicant_user_id).first()
        if user:
            return user.email
    return ""


def compose_decision_email(db: Session, user: User, application_id: int) -> Dict[str, str]:
    """Pre-filled Gmail compose link for telling the applicant about the decision. Nothing is sent."""
    application = get_visible_application(db, user, application_id)
    period = f"{application.start_date} to {application.end_date}"

    if application.status == LeaveStatus.APPROVED.value:
        subject = f"Leave Approved: {period}"
        outcome = "has been approved"
    elif application.status == LeaveStatus.REJECTED.value:
        subject = f"Leave Rejected: {period}"
        outcome = f"has been rejected. Reason: {application.rejection_reason}"
    else:
        subject = f"Leave Application Update: {period}"
        outcome = f"is currently {application.status} ({application.approval_stage})"

    body = (
        f"Dear {application.officer_name},\n\n"
        f"Your {application.leave_type} leave application for {period} "
        f"({application.total_days:g} day(s)) {outcome}.\n\n"
        f"Regards,\n{user.display_name}"
    )
    to = _applicant_email(db, application)
    return {
        "to": to,
        "subject": subject,
        "body": body,
        "compose_url": build_gmail_compose_url(to, subject, body),
    }


def leave_days_in_range(application: LeaveApplication, start: date, end: date) -> List[date]:
    """Dates of the application that fall within [start, end]."""
    first = max(application.start_date, start)
    last = min(application.end_date, end)
    return [first + timedelta(days=i) for i in range((last - first).days + 1)] if first <= last else []
