from typing import Any, Optional
from pydantic import BaseModel, EmailStr, Field, AliasChoices, field_validator


class UserProfile(BaseModel):
    """Authenticated user as exposed by /auth/me and /auth/login."""
    id: str = Field(validation_alias=AliasChoices("id", "_id"))
    email: EmailStr
    first_name: Optional[str] = Field(None, alias="firstName")
    last_name: Optional[str] = Field(None, alias="lastName")
    phone: Optional[str] = None
    profile_picture: Optional[Any] = Field(None, alias="profilePicture")
    role: Optional[str] = None
    mfa_enabled: bool = Field(False, alias="mfaEnabled")
    password_expired: bool = Field(False, alias="passwordExpired")

    class Config:
        populate_by_name = True
        json_schema_extra = {
            "example": {
                "id": "65f1a2b3c4d5e6f708091a2b",
                "email": "client@example.com",
                "firstName": "Ada",
                "lastName": "Laurent",
                "role": "customer",
                "mfaEnabled": False
            }
        }

    @field_validator("role", mode="before")
    @classmethod
    def flatten_role(cls, value: Any) -> Any:
        # Roles arrive either as a name or as a populated role document
        if isinstance(value, dict):
            return value.get("name")
        return value

    @field_validator("mfa_enabled", "password_expired", mode="before")
    @classmethod
    def none_is_false(cls, value: Any) -> Any:
        return False if value is None else value
