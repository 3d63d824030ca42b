"""
Privileged account operations: institution admins, students, password resets.

Every write here happens in a single transaction. A failure after the user
row is created rolls the user back as well, so no half-created accounts remain.
"""
from datetime import datetime, timedelta, timezone
import logging

from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.exceptions import AccessDeniedError, ConflictError, NotFoundError, ValidationError
from app.core.security import generate_reset_token
from app.models.institution import Institution, Student
from app.models.user import PasswordResetToken, User, UserRole
from app.services import auth as auth_service
from app.services import email_service
from app.services.audit import AuditService

logger = logging.getLogger(__name__)


def _utcnow_naive() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


def _ensure_email_free(db: Session, email: str) -> None:
    if db.query(User).filter(User.email == email).first():
        raise ConflictError(f"A user with email {email} already exists")


def _get_institution(db: Session, institution_id: int) -> Institution:
    institution = db.query(Institution).filter(Institution.id == institution_id).first()
    if not institution:
        raise NotFoundError("Institution not found")
    return institution


def create_institution_admin(db: Session, actor: User, payload) -> User:
    email = payload.email.lower()
    institution = _get_institution(db, payload.institution_id)
    _ensure_email_free(db, email)

    try:
        user = User(
            email=email,
            hashed_password=auth_service.get_password_hash(payload.password),
            full_name=payload.full_name,
            role=UserRole.INSTITUTION_ADMIN,
            institution_id=institution.id,
            is_active=True,
        )
        db.add(user)
        db.flush()
        institution.admin_user_id = user.id

        AuditService.log(
            db,
            action="create_institution_admin",
            entity_type="user",
            entity_id=user.id,
            user_id=actor.id,
            user_role=actor.role,
            details={"email": email, "institution_id": institution.id},
        )
        db.commit()
    except Exception:
        db.rollback()
        raise

    db.refresh(user)
    logger.info(f"Created institution admin {user.id} for institution {institution.id}")
    return user


def create_student(db: Session, actor: User, payload):
    """Returns (user, student)."""
    institution = _get_institution(db, payload.institution_id)
    if actor.role == UserRole.INSTITUTION_ADMIN and actor.institution_id != institution.id:
        raise AccessDeniedError("Institution admins can only create students in their own institution")

    email = payload.email.lower()
    _ensure_email_free(db, email)

    try:
        user = User(
            email=email,
            hashed_password=auth_service.get_password_hash(payload.password),
            full_name=payload.student_name,
            role=UserRole.STUDENT,
            institution_id=institution.id,
            is_active=True,
        )
        db.add(user)
        db.flush()

        student = Student(
            user_id=user.id,
            institution_id=institution.id,
            student_name=payload.student_name,
            class_id=payload.class_id,
            roll_number=payload.roll_number,
        )
        db.add(student)
        db.flush()

        AuditService.log(
            db,
            action="create_student",
            entity_type="student",
            entity_id=student.id,
            user_id=actor.id,
            user_role=actor.role,
            details={"email": email, "institution_id": institution.id, "class_id": payload.class_id},
        )
        db.commit()
    except Exception:
        db.rollback()
        raise

    db.refresh(user)
    db.refresh(student)
    return user, student


def request_password_reset(db: Session, email: str) -> None:
    """
    Issue a reset token and mail the link. Unknown emails are ignored silently
    so the response never reveals whether an account exists.
    """
    email = email.lower()
    user = db.query(User).filter(User.email == email, User.is_active == True).first()  # noqa: E712
    if not user:
        logger.info("Password reset requested for unknown email")
        return

    token = generate_reset_token()
    ttl = settings.password_reset_ttl_minutes
    try:
        # Only the newest link stays valid
        db.query(PasswordResetToken).filter(
            PasswordResetToken.user_id == user.id,
            PasswordResetToken.used == False,  # noqa: E712
        ).update({"used": True}, synchronize_session=False)
        db.add(PasswordResetToken(
            user_id=user.id,
            email=email,
            token=token,
            expires_at=_utcnow_naive() + timedelta(minutes=ttl),
        ))
        db.commit()
    except Exception:
        db.rollback()
        raise

    reset_url = f"{settings.app_url.rstrip('/')}/reset-password?token={token}"
    email_service.send_email(
        to=email,
        subject="Reset your password",
        html=email_service.password_reset_html(user.display_name, reset_url, ttl),
    )


def confirm_password_reset(db: Session, token: str, new_password: str) -> User:
    record = db.query(PasswordResetToken).filter(PasswordResetToken.token == token).first()
    if not record or record.used:
        raise ValidationError("Invalid or already used reset token")
    if record.expires_at < _utcnow_naive():
        raise ValidationError("Reset token has expired")

    user = db.query(User).filter(User.id == record.user_id).first()
    if not user:
        raise NotFoundError("User not found")

    try:
        user.hashed_password = auth_service.get_password_hash(new_password)
        record.used = True
        AuditService.log(
            db,
            action="password_reset",
            entity_type="user",
            entity_id=user.id,
            user_id=user.id,
            user_role=user.role,
            details={"status": "success"},
        )
        db.commit()
    except Exception:
        db.rollback()
        raise
    return user
