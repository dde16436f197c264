"""Authentication-related request and response schemas."""

from typing import Annotated, Literal, Union

from pydantic import BaseModel, Field, field_validator

PHONE_PATTERN = r"^\+?[\d\s\-\(\)]{10,}$"


class RegisterBase(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    email: str = Field(min_length=3, max_length=255)
    password: str = Field(min_length=6, max_length=72)

    @field_validator("email")
    @classmethod
    def normalize_email(cls, value: str) -> str:
        value = value.strip().lower()
        if "@" not in value:
            raise ValueError("Email must contain '@'")
        return value


class BusinessRegisterRequest(RegisterBase):
    """Registration payload for a business account."""

    role: Literal["business"]
    business_name: str = Field(min_length=1, max_length=255)
    business_phone: str = Field(pattern=PHONE_PATTERN)
    business_address: str = Field(min_length=1)


class RiderRegisterRequest(RegisterBase):
    """Registration payload for a rider account."""

    role: Literal["rider"]
    phone: str = Field(pattern=PHONE_PATTERN)
    vehicle_type: Literal["bike", "scooter", "car", "van"]


RegisterRequest = Annotated[
    Union[BusinessRegisterRequest, RiderRegisterRequest],
    Field(discriminator="role"),
]


class LoginRequest(BaseModel):
    """Payload for user login."""

    email: str
    password: str


class TokenResponse(BaseModel):
    """JWT response payload."""

    access_token: str
    token_type: str = "bearer"
