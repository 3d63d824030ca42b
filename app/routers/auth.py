import logging

from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlalchemy.orm import Session

from app.core.limiter import limiter, PUBLIC_RATE_LIMIT
from app.core.permissions import Feature, has_capability
from app.core.schemas import ApiResponse
from app.database import get_db
from app.models.user import User
from app.routers.auth_deps import get_current_user
from app.schemas.auth import LoginRequest, PasswordResetConfirm, PasswordResetRequest, Token, UserResponse
from app.services import accounts
from app.services import auth as auth_service
from app.services.audit import AuditService

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/auth",
    tags=["auth"]
)


def _user_response(user: User) -> UserResponse:
    data = UserResponse.model_validate(user)
    data.officer_id = user.officer_profile.id if user.officer_profile else None
    data.allowed_features = list(user.allowed_features or [])
    data.capabilities = [f.value for f in Feature if has_capability(user, f)]
    return data


@router.post("/login", response_model=Token)
@limiter.limit(PUBLIC_RATE_LIMIT)
def login(request: Request, login_data: LoginRequest, db: Session = Depends(get_db)):
    user = db.query(User).filter(User.email == login_data.email.lower()).first()
    if not user or not auth_service.verify_password(login_data.password, user.hashed_password):
        AuditService.log(
            db,
            action="failed_login",
            entity_type="user",
            entity_id=None,
            user_id=None,
            user_role=None,
            details={"email": login_data.email, "reason": "invalid_credentials"}
        )
        db.commit()
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Incorrect email or password",
            headers={"WWW-Authenticate": "Bearer"},
        )

    if not user.is_active:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="User is inactive")

    access_token = auth_service.create_access_token(data=auth_service.token_data_for(user))

    AuditService.log(
        db,
        action="login",
        entity_type="user",
        entity_id=user.id,
        user_id=user.id,
        user_role=user.role,
        details={"email": user.email}
    )
    db.commit()

    return {
        "access_token": access_token,
        "token_type": "bearer",
        "user": _user_response(user).model_dump(mode="json"),
    }


@router.get("/me", response_model=UserResponse)
def get_me(current_user: User = Depends(get_current_user)):
    return _user_response(current_user)


@router.post("/password-reset")
@limiter.limit(PUBLIC_RATE_LIMIT)
def send_password_reset(request: Request, data: PasswordResetRequest, db: Session = Depends(get_db)):
    """Always succeeds for well-formed input, whether or not the email is registered."""
    accounts.request_password_reset(db, data.email)
    return ApiResponse.ok(
        {"message": "If an account exists for this email, a reset link has been sent."}
    ).to_dict()


@router.post("/password-reset/confirm")
@limiter.limit(PUBLIC_RATE_LIMIT)
def confirm_password_reset(request: Request, data: PasswordResetConfirm, db: Session = Depends(get_db)):
    accounts.confirm_password_reset(db, data.token, data.new_password)
    return ApiResponse.ok({"message": "Password updated successfully"}).to_dict()
