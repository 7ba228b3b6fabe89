"""Pydantic models for the backend wire format and client-side state"""

from datetime import date, datetime
from typing import Any, Optional

from pydantic import AliasChoices, BaseModel, Field, field_validator

from .errors import ValidationError
from .shared.validators import validate_employee_name, validate_phone


class Assignment(BaseModel):
    """One on-call day: who is on duty and how to reach them"""

    employee_name: str = Field(
        validation_alias=AliasChoices("name", "employeeName", "employee_name"),
        serialization_alias="name",
    )
    phone: str
    date: date

    class Config:
        populate_by_name = True
        frozen = True

    @field_validator("employee_name")
    @classmethod
    def check_employee_name(cls, v):
        try:
            return validate_employee_name(v)
        except ValidationError as e:
            raise ValueError(e.message) from e

    @field_validator("phone")
    @classmethod
    def check_phone(cls, v):
        try:
            return validate_phone(v)
        except ValidationError as e:
            raise ValueError(e.message) from e

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)


class AssignmentUpdate(BaseModel):
    """Body of PUT /api/schedule/{date}"""

    employee_name: str = Field(serialization_alias="name")
    phone: str

    class Config:
        populate_by_name = True

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)


class User(BaseModel):
    username: str
    email: Optional[str] = None
    full_name: Optional[str] = None
    is_active: bool = True
    role: str = "user"
    created_at: Optional[datetime] = None
    last_login: Optional[datetime] = None


class LoginResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    expires_in: int
    user: User


class RegisterRequest(BaseModel):
    username: str
    password: str
    email: Optional[str] = None
    full_name: Optional[str] = None


class RegistrationStatus(BaseModel):
    public_registration_enabled: bool = False
    admin_only_registration: bool = False


class HealthStatus(BaseModel):
    status: str
    service: Optional[str] = None


class ReminderSettings(BaseModel):
    """Process-wide reminder configuration, owned by the external settings store"""

    enabled: bool = True
    hours_before: int = Field(2, ge=1, le=24)
    webhook_url: Optional[str] = None


class Session(BaseModel):
    """Authenticated user's bearer token plus its expiry"""

    token: str
    user: User
    expires_at_ms: int
