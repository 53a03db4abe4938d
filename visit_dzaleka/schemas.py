from datetime import date, datetime
from typing import Any, Optional

from pydantic import BaseModel, Field, field_validator

from .security_utils import MIN_PASSWORD_LENGTH
from .shared.validators import validate_email, validate_phone

USER_ROLES = ("admin", "coordinator", "guide", "security", "visitor")
CONTACT_METHODS = ("email", "phone", "whatsapp")


class MessageResponse(BaseModel):
    message: str


class UserResponse(BaseModel):
    id: int
    email: str
    firstName: Optional[str] = None
    lastName: Optional[str] = None
    fullName: str
    phone: Optional[str] = None
    role: str
    isActive: bool
    emailVerified: bool
    country: Optional[str] = None
    preferredLanguage: Optional[str] = None
    preferredContactMethod: Optional[str] = None
    marketingConsent: bool = False
    lastLoginAt: Optional[datetime] = None
    createdAt: Optional[datetime] = None

    class Config:
        from_attributes = True


class CustomerProfileResponse(UserResponse):
    """User fields plus the CRM fields only staff see"""

    preferences: Optional[dict[str, Any]] = None
    adminNotes: Optional[str] = None
    tags: list[str] = []
    dateOfBirth: Optional[date] = None
    address: Optional[str] = None


class TokenResponse(BaseModel):
    accessToken: str
    tokenType: str = "bearer"
    user: UserResponse


# Auth requests
class RegisterRequest(BaseModel):
    email: str
    password: str = Field(min_length=MIN_PASSWORD_LENGTH)
    firstName: Optional[str] = None
    lastName: Optional[str] = None
    phone: Optional[str] = None

    @field_validator("email")
    @classmethod
    def check_email(cls, v):
        return validate_email(v)

    @field_validator("phone")
    @classmethod
    def check_phone(cls, v):
        return validate_phone(v)


class LoginRequest(BaseModel):
    email: str
    password: str

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v):
        return v.strip().lower()


class ProfileUpdate(BaseModel):
    firstName: Optional[str] = None
    lastName: Optional[str] = None
    phone: Optional[str] = None
    country: Optional[str] = None
    preferredLanguage: Optional[str] = None
    preferredContactMethod: Optional[str] = None
    marketingConsent: Optional[bool] = None

    @field_validator("phone")
    @classmethod
    def check_phone(cls, v):
        return validate_phone(v)

    @field_validator("preferredContactMethod")
    @classmethod
    def check_contact_method(cls, v):
        if v is not None and v not in CONTACT_METHODS:
            raise ValueError(f"Invalid contact method. Must be one of: {', '.join(CONTACT_METHODS)}")
        return v


class ChangePasswordRequest(BaseModel):
    currentPassword: str
    newPassword: str = Field(min_length=MIN_PASSWORD_LENGTH)


class ForgotPasswordRequest(BaseModel):
    email: str

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v):
        return v.strip().lower()


class ResetPasswordRequest(BaseModel):
    token: str
    password: str = Field(min_length=MIN_PASSWORD_LENGTH)


class CreateUserRequest(RegisterRequest):
    """Admin-created account with an explicit role"""

    role: str = "visitor"

    @field_validator("role")
    @classmethod
    def check_role(cls, v):
        if v not in USER_ROLES:
            raise ValueError(f"Invalid role. Must be one of: {', '.join(USER_ROLES)}")
        return v


def user_to_response(user) -> UserResponse:
    return UserResponse(
        id=user.id,
        email=user.email,
        firstName=user.first_name,
        lastName=user.last_name,
        fullName=user.full_name,
        phone=user.phone,
        role=user.role,
        isActive=user.is_active,
        emailVerified=user.email_verified,
        country=user.country,
        preferredLanguage=user.preferred_language,
        preferredContactMethod=user.preferred_contact_method,
        marketingConsent=bool(user.marketing_consent),
        lastLoginAt=user.last_login_at,
        createdAt=user.created_at,
    )


def customer_profile_to_response(user) -> CustomerProfileResponse:
    return CustomerProfileResponse(
        **user_to_response(user).model_dump(),
        preferences=user.preferences,
        adminNotes=user.admin_notes,
        tags=user.tags or [],
        dateOfBirth=user.date_of_birth,
        address=user.address,
    )
