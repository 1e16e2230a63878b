from datetime import datetime, timezone
from typing import Annotated, Optional

from pydantic import AfterValidator, ConfigDict, field_validator
from pydantic_core import PydanticCustomError

from .base import CamelModel
from ..utils.validators import is_valid_url, validate_custom_code

TITLE_MAX_LENGTH = 200
DESCRIPTION_MAX_LENGTH = 500
PASSWORD_MIN_LENGTH = 4
PASSWORD_MAX_LENGTH = 100


def _check_title(value: Optional[str]) -> Optional[str]:
    if value is not None and len(value) > TITLE_MAX_LENGTH:
        raise PydanticCustomError(
            "title_too_long", f"Title must be no more than {TITLE_MAX_LENGTH} characters"
        )
    return value


def _check_description(value: Optional[str]) -> Optional[str]:
    if value is not None and len(value) > DESCRIPTION_MAX_LENGTH:
        raise PydanticCustomError(
            "description_too_long",
            f"Description must be no more than {DESCRIPTION_MAX_LENGTH} characters"
        )
    return value


def _check_password(value: Optional[str]) -> Optional[str]:
    if value is None:
        return value
    if len(value) < PASSWORD_MIN_LENGTH:
        raise PydanticCustomError(
            "password_too_short", f"Password must be at least {PASSWORD_MIN_LENGTH} characters"
        )
    if len(value) > PASSWORD_MAX_LENGTH:
        raise PydanticCustomError(
            "password_too_long", f"Password must be no more than {PASSWORD_MAX_LENGTH} characters"
        )
    return value


def _check_future(value: Optional[datetime]) -> Optional[datetime]:
    if value is None:
        return value
    # Naive timestamps are taken as UTC
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    if value <= datetime.now(timezone.utc):
        raise PydanticCustomError("expires_in_past", "Expiration date must be in the future")
    return value


Title = Annotated[Optional[str], AfterValidator(_check_title)]
Description = Annotated[Optional[str], AfterValidator(_check_description)]
Password = Annotated[Optional[str], AfterValidator(_check_password)]
FutureDateTime = Annotated[Optional[datetime], AfterValidator(_check_future)]


class LinkCreate(CamelModel):
    """Schema for creating a new short link"""
    original_url: str
    custom_code: Optional[str] = None
    title: Title = None
    description: Description = None
    password: Password = None
    expires_at: FutureDateTime = None

    @field_validator("original_url")
    @classmethod
    def check_url(cls, value: str) -> str:
        is_valid, error_msg = is_valid_url(value)
        if not is_valid:
            raise PydanticCustomError("url", error_msg)
        return value

    @field_validator("custom_code")
    @classmethod
    def check_custom_code(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return value
        is_valid, error_msg = validate_custom_code(value)
        if not is_valid:
            raise PydanticCustomError("custom_code", error_msg)
        return value


class LinkUpdate(CamelModel):
    """
    Field mask for partial link updates.

    Only the fields declared here can be patched, and only the ones present in
    the request (`model_fields_set`) are merged. Sending null clears a field.
    """
    model_config = ConfigDict(extra="ignore")

    title: Title = None
    description: Description = None
    is_active: Optional[bool] = None
    password: Password = None
    expires_at: FutureDateTime = None

    @field_validator("is_active")
    @classmethod
    def check_is_active(cls, value: Optional[bool]) -> bool:
        if value is None:
            raise PydanticCustomError("is_active_null", "isActive must be true or false")
        return value

    def changes(self) -> dict:
        return self.model_dump(exclude_unset=True)


class LinkRecord(CamelModel):
    """A stored link, detached from the database session"""
    id: str
    short_code: str
    original_url: str
    title: Optional[str] = None
    description: Optional[str] = None
    created_at: datetime
    updated_at: datetime
    is_active: bool = True
    expires_at: Optional[datetime] = None
    password: Optional[str] = None
    user_id: Optional[str] = None
    total_clicks: int = 0
    unique_clicks: int = 0
    last_click_at: Optional[datetime] = None

    def to_public_dict(self) -> dict:
        """JSON-ready dict without the password"""
        return self.model_dump(mode="json", by_alias=True, exclude={"password"})
