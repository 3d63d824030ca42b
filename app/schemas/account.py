from pydantic import BaseModel, EmailStr, ConfigDict, Field
from typing import Optional
from app.models.user import UserRole

class InstitutionAdminCreate(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=8)
    full_name: str = Field(..., min_length=1)
    institution_id: int

class StudentCreate(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=8)
    student_name: str = Field(..., min_length=1)
    institution_id: int
    class_id: Optional[str] = None
    roll_number: Optional[str] = None

class CreatedUser(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    email: str
    full_name: Optional[str] = None
    role: UserRole
    institution_id: Optional[int] = None

class CreatedStudent(BaseModel):
    user: CreatedUser
    student_id: int
    class_id: Optional[str] = None
    roll_number: Optional[str] = None
