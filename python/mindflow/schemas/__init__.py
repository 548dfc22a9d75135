"""Pydantic schemas for request/response models.

All schemas are re-exported here for convenient imports.
"""

from mindflow.schemas.auth import (
    AuthResult,
    AuthSessionOut,
    AuthUserOut,
    LoginRequest,
    ResetPasswordRequest,
    ResetPasswordResult,
    SignupRequest,
)
from mindflow.schemas.base import CamelModel
from mindflow.schemas.entries import (
    CreateEntryRequest,
    EntryOut,
    EntryPage,
    PageInfo,
    SearchEntriesQuery,
    UpdateEntryRequest,
)
from mindflow.schemas.insights import InsightList, InsightOut
from mindflow.schemas.profile import (
    MeOut,
    PreferencesOut,
    ProfileOut,
    UpdatePreferencesRequest,
    UpdateProfileRequest,
)

__all__ = [
    # Base
    "CamelModel",
    # Auth
    "AuthResult",
    "AuthSessionOut",
    "AuthUserOut",
    "LoginRequest",
    "ResetPasswordRequest",
    "ResetPasswordResult",
    "SignupRequest",
    # Entries
    "CreateEntryRequest",
    "EntryOut",
    "EntryPage",
    "PageInfo",
    "SearchEntriesQuery",
    "UpdateEntryRequest",
    # Insights
    "InsightList",
    "InsightOut",
    # Profile
    "MeOut",
    "PreferencesOut",
    "ProfileOut",
    "UpdatePreferencesRequest",
    "UpdateProfileRequest",
]
