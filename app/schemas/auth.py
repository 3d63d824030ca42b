from pydantic import BaseModel, EmailStr, ConfigDict, Field
from typing import List, Optional
from app.models.user import UserRole, StaffPosition
from datetime import datetime

class UserBase(BaseModel):
    email: EmailStr
    role: UserRole
    full_name: Optional[str] = None

class UserResponse(UserBase):
    model_config = ConfigDict(from_attributes=True)

    id: int
    position: Optional[StaffPosition] = None
    is_ceo: bool = False
    institution_id: Optional[int] = None
    officer_id: Optional[int] = None
    allowed_features: Optional[List[str]] = None
    capabilities: List[str] = Field(default_factory=list)
    created_at: Optional[datetime] = None

class LoginRequest(BaseModel):
    email: EmailStr
    password: str

class Token(BaseModel):
    access_token: str
    token_type: str
    user: Optional[dict] = None

class TokenData(BaseModel):
    email: Optional[str] = None
    role: Optional[str] = None

class PasswordResetRequest(BaseModel):
    email: EmailStr

class PasswordResetConfirm(BaseModel):
    token: str = Field(..., min_length=64, max_length=64)
    new_password: str = Field(..., min_length=8)
