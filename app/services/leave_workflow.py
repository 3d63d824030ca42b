"""
Leave approval state machine.

Innovation officers go through two stages (manager, then AGM); meta staff go
through a single CEO stage. Any pending stage may reject, which ends the
workflow. The functions here only mutate the application object in memory;
persistence, audit logging and notifications belong to `leave_service`.

    innovation_officer: manager_pending -> agm_pending -> approved
    meta_staff:         ceo_pending -> approved
    any pending stage:  -> rejected (rejection_stage records where)
"""
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from app.core.exceptions import AccessDeniedError, ConflictError, InvalidTransitionError, ValidationError
from app.models.leave_application import (
    ApplicantType,
    ApprovalStage,
    ApproverRole,
    LeaveApplication,
    LeaveStatus,
)

STAGE_APPROVER = {
    ApprovalStage.MANAGER_PENDING.value: ApproverRole.MANAGER,
    ApprovalStage.AGM_PENDING.value: ApproverRole.AGM,
    ApprovalStage.CEO_PENDING.value: ApproverRole.CEO,
}

NEXT_STAGE = {
    ApprovalStage.MANAGER_PENDING.value: ApprovalStage.AGM_PENDING,
    ApprovalStage.AGM_PENDING.value: ApprovalStage.APPROVED,
    ApprovalStage.CEO_PENDING.value: ApprovalStage.APPROVED,
}

# Pending stages each applicant type may pass through, in order
STAGES_BY_APPLICANT = {
    ApplicantType.INNOVATION_OFFICER.value: [ApprovalStage.MANAGER_PENDING, ApprovalStage.AGM_PENDING],
    ApplicantType.META_STAFF.value: [ApprovalStage.CEO_PENDING],
}

STAGE_LABELS = {
    ApproverRole.MANAGER: "Manager approval",
    ApproverRole.AGM: "AGM approval",
    ApproverRole.CEO: "CEO approval",
}


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _value(v: Any) -> Any:
    return v.value if hasattr(v, "value") else v


def first_stage_for(applicant_type) -> ApprovalStage:
    applicant_type = _value(applicant_type)
    if applicant_type == ApplicantType.INNOVATION_OFFICER.value:
        return ApprovalStage.MANAGER_PENDING
    if applicant_type == ApplicantType.META_STAFF.value:
        return ApprovalStage.CEO_PENDING
    raise ValidationError(f"Unknown applicant type: {applicant_type}")


def required_approver(application: LeaveApplication) -> Optional[ApproverRole]:
    """Approver role for the current stage, None once the workflow is over."""
    return STAGE_APPROVER.get(application.approval_stage)


def has_recorded_approval(application: LeaveApplication) -> bool:
    return bool(
        application.approved_by_manager
        or application.approved_by_agm
        or application.reviewed_by
    )


def _check_version(application: LeaveApplication, expected_version: Optional[int]) -> None:
    if expected_version is not None and expected_version != application.version:
        raise ConflictError(
            "Leave application was modified by someone else; reload and retry",
            details={"expected_version": expected_version, "current_version": application.version},
        )


def _check_actionable(application: LeaveApplication, approver_role) -> ApproverRole:
    if application.status != LeaveStatus.PENDING.value:
        raise InvalidTransitionError(
            f"Leave application is already {application.status}",
            details={"status": application.status, "approval_stage": application.approval_stage},
        )
    required = required_approver(application)
    if required is None:
        raise InvalidTransitionError(
            f"No approval pending at stage {application.approval_stage}",
            details={"approval_stage": application.approval_stage},
        )
    # Stages must match the chain of the applicant type
    allowed = [s.value for s in STAGES_BY_APPLICANT.get(application.applicant_type, [])]
    if application.approval_stage not in allowed:
        raise InvalidTransitionError(
            f"Stage {application.approval_stage} is not valid for {application.applicant_type}"
        )
    if approver_role is None or ApproverRole(_value(approver_role)) != required:
        raise AccessDeniedError(f"This application is waiting for {required.value} approval")
    return required


def approve_stage(
    application: LeaveApplication,
    approver_role,
    approver_name: str,
    comments: Optional[str] = None,
    expected_version: Optional[int] = None,
) -> LeaveApplication:
    _check_version(application, expected_version)
    role = _check_actionable(application, approver_role)
    now = _now()

    if role == ApproverRole.MANAGER:
        application.approved_by_manager = approver_name
        application.approved_by_manager_at = now
        application.manager_comments = comments
    elif role == ApproverRole.AGM:
        application.approved_by_agm = approver_name
        application.approved_by_agm_at = now
        application.agm_comments = comments
        # AGM is the final reviewer for officers
        application.reviewed_by = approver_name
        application.reviewed_at = now
        application.admin_comments = comments
    else:
        application.reviewed_by = approver_name
        application.reviewed_at = now
        application.admin_comments = comments

    next_stage = NEXT_STAGE[application.approval_stage]
    application.approval_stage = next_stage.value
    if next_stage == ApprovalStage.APPROVED:
        application.status = LeaveStatus.APPROVED.value
    return application


def reject_stage(
    application: LeaveApplication,
    approver_role,
    rejected_by: str,
    reason: str,
    expected_version: Optional[int] = None,
) -> LeaveApplication:
    if not reason or not reason.strip():
        raise ValidationError("A rejection reason is required")
    _check_version(application, expected_version)
    role = _check_actionable(application, approver_role)

    application.status = LeaveStatus.REJECTED.value
    application.approval_stage = ApprovalStage.REJECTED.value
    application.rejection_stage = role.value
    application.rejection_reason = reason.strip()
    application.rejected_by = rejected_by
    application.rejected_at = _now()
    return application


def cancel(application: LeaveApplication, expected_version: Optional[int] = None) -> LeaveApplication:
    """Withdraw a pending application. approval_stage is kept as it was."""
    _check_version(application, expected_version)
    if application.status != LeaveStatus.PENDING.value:
        raise InvalidTransitionError(f"Cannot cancel a leave application that is {application.status}")
    if has_recorded_approval(application):
        raise InvalidTransitionError("Cannot cancel after an approval has been recorded")
    application.status = LeaveStatus.CANCELLED.value
    application.cancelled_at = _now()
    return application


def snapshot(application: LeaveApplication) -> Dict[str, Any]:
    """Workflow fields, for audit before/after states."""
    return {
        "status": application.status,
        "approval_stage": application.approval_stage,
        "rejection_stage": application.rejection_stage,
        "approved_by_manager": application.approved_by_manager,
        "approved_by_agm": application.approved_by_agm,
        "reviewed_by": application.reviewed_by,
        "rejected_by": application.rejected_by,
        "version": application.version,
    }


def _stage_step(application: LeaveApplication, stage: ApprovalStage) -> Dict[str, Any]:
    role = STAGE_APPROVER[stage.value]
    step = {
        "key": role.value,
        "label": STAGE_LABELS[role],
        "status": "upcoming",
        "actor": None,
        "at": None,
        "comments": None,
    }

    if role == ApproverRole.MANAGER and application.approved_by_manager:
        step.update(status="completed", actor=application.approved_by_manager,
                    at=application.approved_by_manager_at, comments=application.manager_comments)
    elif role == ApproverRole.AGM and application.approved_by_agm:
        step.update(status="completed", actor=application.approved_by_agm,
                    at=application.approved_by_agm_at, comments=application.agm_comments)
    elif role == ApproverRole.CEO and application.reviewed_by:
        step.update(status="completed", actor=application.reviewed_by,
                    at=application.reviewed_at, comments=application.admin_comments)
    elif application.rejection_stage == role.value:
        step.update(status="rejected", actor=application.rejected_by,
                    at=application.rejected_at, comments=application.rejection_reason)
    elif application.status == LeaveStatus.PENDING.value and application.approval_stage == stage.value:
        step["status"] = "current"
    return step


def build_timeline(application: LeaveApplication) -> List[Dict[str, Any]]:
    steps = [{
        "key": "submitted",
        "label": "Submitted",
        "status": "completed",
        "actor": application.officer_name,
        "at": application.applied_at,
        "comments": None,
    }]
    for stage in STAGES_BY_APPLICANT.get(application.applicant_type, []):
        steps.append(_stage_step(application, stage))

    if application.status == LeaveStatus.CANCELLED.value:
        steps.append({
            "key": "cancelled",
            "label": "Cancelled by applicant",
            "status": "completed",
            "actor": application.officer_name,
            "at": application.cancelled_at,
            "comments": None,
        })
    return steps
