"""Profile and preferences schemas."""

from datetime import datetime, time
from typing import Any, Literal
from uuid import UUID

from pydantic import Field

from mindflow.schemas.base import CamelModel

# Valid themes - must match DB constraint
THEMES = Literal["light", "dark"]


class ProfileOut(CamelModel):
    id: UUID
    display_name: str | None = None
    avatar_url: str | None = None
    created_at: datetime
    updated_at: datetime


class MeOut(CamelModel):
    """The authenticated viewer plus their profile (None until first written)."""

    user_id: UUID
    email: str | None = None
    profile: ProfileOut | None = None


class UpdateProfileRequest(CamelModel):
    """Partial profile upsert. An explicit null clears a field."""

    display_name: str | None = Field(None, max_length=100)
    avatar_url: str | None = Field(None, max_length=2048)

    def changes(self) -> dict[str, Any]:
        return {name: getattr(self, name) for name in self.model_fields_set}


class PreferencesOut(CamelModel):
    reminder_enabled: bool
    reminder_time: time
    theme: THEMES
    updated_at: datetime


class UpdatePreferencesRequest(CamelModel):
    """Partial preferences update. Omitted or null fields are left unchanged."""

    reminder_enabled: bool | None = None
    reminder_time: time | None = None
    theme: THEMES | None = None

    def changes(self) -> dict[str, Any]:
        return self.model_dump(exclude_none=True)
