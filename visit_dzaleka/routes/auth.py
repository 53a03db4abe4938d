import logging
from datetime import datetime, timedelta

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Request
from sqlalchemy import func
from sqlalchemy.orm import Session

from ..auth import get_current_user, require_role
from ..config import PASSWORD_RESET_EXPIRE_MINUTES
from ..database import get_db
from ..email_service import send_password_reset_email
from ..models import User
from ..rate_limiter import create_rate_limiter
from ..schemas import (
    ChangePasswordRequest,
    CreateUserRequest,
    ForgotPasswordRequest,
    LoginRequest,
    MessageResponse,
    ProfileUpdate,
    RegisterRequest,
    ResetPasswordRequest,
    TokenResponse,
    UserResponse,
    user_to_response,
)
from ..security_utils import create_access_token, generate_secure_token, hash_password, verify_password
from ..services.audit_service import record_audit
from ..utils.sanitization import sanitize_string

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth", tags=["Authentication"])

require_admin = require_role("admin")

rate_limit_login = create_rate_limiter(limit=10, window_seconds=60, key_prefix="login")
rate_limit_register = create_rate_limiter(limit=5, window_seconds=3600, key_prefix="register")
rate_limit_password_reset = create_rate_limiter(limit=10, window_seconds=3600, key_prefix="password_reset")

FORGOT_PASSWORD_MESSAGE = "If an account exists with this email, you will receive a password reset link."

PROFILE_FIELD_MAP = {
    "firstName": "first_name",
    "lastName": "last_name",
    "phone": "phone",
    "country": "country",
    "preferredLanguage": "preferred_language",
    "preferredContactMethod": "preferred_contact_method",
    "marketingConsent": "marketing_consent",
}


def _find_user_by_email(db: Session, email: str):
    return db.query(User).filter(func.lower(User.email) == email.lower()).first()


def _new_user(db: Session, data: RegisterRequest, role: str = "visitor") -> User:
    if _find_user_by_email(db, data.email):
        raise HTTPException(status_code=400, detail="An account with this email already exists")

    user = User(
        email=data.email,
        password_hash=hash_password(data.password),
        first_name=sanitize_string(data.firstName),
        last_name=sanitize_string(data.lastName),
        phone=data.phone,
        role=role,
    )
    db.add(user)
    db.flush()
    return user


def _token_response(user: User) -> TokenResponse:
    return TokenResponse(accessToken=create_access_token(user.id, user.role), user=user_to_response(user))


@router.post("/register", response_model=TokenResponse, status_code=201)
async def register(
    data: RegisterRequest,
    db: Session = Depends(get_db),
    _: None = Depends(rate_limit_register),
):
    """Create a visitor account and sign it in"""
    user = _new_user(db, data)
    record_audit(db, user.id, "register", "user", user.id)
    db.commit()
    db.refresh(user)
    logger.info(f"✅ New visitor registered: {user.email}")
    return _token_response(user)


@router.post("/login", response_model=TokenResponse)
async def login(
    data: LoginRequest,
    request: Request,
    db: Session = Depends(get_db),
    _: None = Depends(rate_limit_login),
):
    user = _find_user_by_email(db, data.email)
    if not user or not verify_password(data.password, user.password_hash):
        logger.warning(f"⚠️ Failed login attempt for {data.email}")
        raise HTTPException(status_code=401, detail="Invalid email or password")
    if not user.is_active:
        raise HTTPException(status_code=403, detail="Account is deactivated")

    user.last_login_at = datetime.utcnow()
    record_audit(db, user.id, "login", "user", user.id, request=request)
    db.commit()
    db.refresh(user)
    logger.info(f"🔐 User logged in: {user.email}")
    return _token_response(user)


@router.get("/user", response_model=UserResponse)
async def get_user(current_user: User = Depends(get_current_user)):
    return user_to_response(current_user)


@router.patch("/profile", response_model=UserResponse)
async def update_profile(
    data: ProfileUpdate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    for field, column in PROFILE_FIELD_MAP.items():
        value = getattr(data, field)
        if value is None:
            continue
        if isinstance(value, str):
            value = sanitize_string(value.strip())
        setattr(current_user, column, value)
    db.commit()
    db.refresh(current_user)
    logger.info(f"✅ Profile updated for {current_user.email}")
    return user_to_response(current_user)


@router.post("/change-password", response_model=MessageResponse)
async def change_password(
    data: ChangePasswordRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    if not verify_password(data.currentPassword, current_user.password_hash):
        raise HTTPException(status_code=400, detail="Current password is incorrect")

    current_user.password_hash = hash_password(data.newPassword)
    record_audit(db, current_user.id, "change_password", "user", current_user.id)
    db.commit()
    logger.info(f"🔐 Password changed for {current_user.email}")
    return {"message": "Password changed successfully"}


@router.post("/forgot-password", response_model=MessageResponse)
async def forgot_password(
    data: ForgotPasswordRequest,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    _: None = Depends(rate_limit_password_reset),
):
    """Same answer whether or not the account exists"""
    user = _find_user_by_email(db, data.email)
    if not user or not user.is_active:
        logger.info(f"Password reset requested for unknown or inactive account: {data.email}")
        return {"message": FORGOT_PASSWORD_MESSAGE}

    token = generate_secure_token()
    user.password_reset_token = token
    user.password_reset_expires = datetime.utcnow() + timedelta(minutes=PASSWORD_RESET_EXPIRE_MINUTES)
    db.commit()

    background_tasks.add_task(send_password_reset_email, user.email, token)
    logger.info(f"📧 Password reset link issued for {user.email}")
    return {"message": FORGOT_PASSWORD_MESSAGE}


@router.post("/reset-password", response_model=MessageResponse)
async def reset_password(
    data: ResetPasswordRequest,
    db: Session = Depends(get_db),
    _: None = Depends(rate_limit_password_reset),
):
    user = db.query(User).filter(User.password_reset_token == data.token).first()
    if not user or not user.password_reset_expires or user.password_reset_expires < datetime.utcnow():
        raise HTTPException(status_code=400, detail="Invalid or expired reset token")

    user.password_hash = hash_password(data.password)
    user.password_reset_token = None
    user.password_reset_expires = None
    record_audit(db, user.id, "reset_password", "user", user.id)
    db.commit()
    logger.info(f"🔐 Password reset completed for {user.email}")
    return {"message": "Password has been reset. You can now sign in."}


@router.post("/create-user", response_model=UserResponse, status_code=201)
async def create_user(
    data: CreateUserRequest,
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    """Admins create staff and guide accounts directly"""
    user = _new_user(db, data, role=data.role)
    user.email_verified = True
    record_audit(db, current_user.id, "create", "user", user.id, new_values={"email": user.email, "role": user.role})
    db.commit()
    db.refresh(user)
    logger.info(f"✅ User {user.email} ({user.role}) created by {current_user.email}")
    return user_to_response(user)
