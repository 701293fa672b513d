from pydantic import BaseModel, Field, field_validator
from typing import Optional, Literal
from datetime import datetime
import re


EMAIL_PATTERN = r'^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$'

Currency = Literal["USD", "EUR", "GBP", "JPY", "CAD", "AUD", "INR"]
DateFormat = Literal["MM/DD/YYYY", "DD/MM/YYYY", "YYYY-MM-DD"]


def check_password_strength(v: str) -> str:
    if len(v) < 6:
        raise ValueError('Password must be at least 6 characters long')
    if not re.search(r'[A-Z]', v):
        raise ValueError('Password must contain at least one uppercase letter')
    if not re.search(r'[a-z]', v):
        raise ValueError('Password must contain at least one lowercase letter')
    if not re.search(r'\d', v):
        raise ValueError('Password must contain at least one number')
    return v


# ===== USER PYDANTIC MODELS =====

class UserPreferences(BaseModel):
    currency: Currency = "USD"
    date_format: DateFormat = "MM/DD/YYYY"


class PreferencesUpdate(BaseModel):
    currency: Optional[Currency] = None
    date_format: Optional[DateFormat] = None


class UserCreate(BaseModel):
    name: str = Field(..., min_length=2, max_length=50, description="Display name (2-50 characters)")
    email: str = Field(..., description="User's email address")
    password: str = Field(..., description="Password (minimum 6 characters)")

    @field_validator('name')
    @classmethod
    def validate_name(cls, v: str) -> str:
        v = v.strip()
        if len(v) < 2:
            raise ValueError('Name must be between 2 and 50 characters')
        return v

    @field_validator('email')
    @classmethod
    def validate_email(cls, v: str) -> str:
        v = v.strip()
        if not re.match(EMAIL_PATTERN, v):
            raise ValueError('Please provide a valid email')
        return v.lower()

    @field_validator('password')
    @classmethod
    def validate_password(cls, v: str) -> str:
        return check_password_strength(v)


class UserLogin(BaseModel):
    email: str = Field(..., description="User's email")
    password: str = Field(..., min_length=1, description="User's password")

    @field_validator('email')
    @classmethod
    def validate_email(cls, v: str) -> str:
        return v.lower().strip()


class UserUpdate(BaseModel):
    """Update user profile - all fields optional"""
    name: Optional[str] = Field(None, min_length=2, max_length=50)
    preferences: Optional[PreferencesUpdate] = None

    @field_validator('name')
    @classmethod
    def validate_name(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        v = v.strip()
        if len(v) < 2:
            raise ValueError('Name must be between 2 and 50 characters')
        return v


class PasswordChange(BaseModel):
    current_password: str = Field(..., min_length=1, description="Current password")
    new_password: str = Field(..., description="New password (minimum 6 characters)")

    @field_validator('new_password')
    @classmethod
    def validate_new_password(cls, v: str) -> str:
        return check_password_strength(v)


class AccountDelete(BaseModel):
    password: str = Field(..., min_length=1, description="Password confirming the deactivation")


class UserResponse(BaseModel):
    """User data returned to client - no sensitive info"""
    id: int
    name: str
    email: str
    is_active: bool
    preferences: UserPreferences
    last_login_at: Optional[datetime]
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class Token(BaseModel):
    access_token: str
    token_type: str = "bearer"
    user: UserResponse
