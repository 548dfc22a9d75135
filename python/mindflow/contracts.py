"""Request/response contract shared by the API routes and the client data layer.

Paths and limits live here so both sides agree on the wire shape.
"""

from uuid import UUID

# Entry content bounds (characters), mirrored by the entries table check constraint
MIN_ENTRY_CONTENT_LENGTH = 1
MAX_ENTRY_CONTENT_LENGTH = 50_000

# Entry list pagination
DEFAULT_PAGE_LIMIT = 20
MAX_PAGE_LIMIT = 100

# Recent searches kept on the client
MAX_RECENT_SEARCHES = 10

# Minimum signup password length enforced by the auth provider
MIN_PASSWORD_LENGTH = 6


class AuthPaths:
    SIGNUP = "/auth/signup"
    LOGIN = "/auth/login"
    LOGOUT = "/auth/logout"
    RESET_PASSWORD = "/auth/reset-password"


class EntryPaths:
    LIST = "/entries"
    CREATE = "/entries"
    SEARCH = "/entries/search"

    @staticmethod
    def item(entry_id: UUID | str) -> str:
        return f"/entries/{entry_id}"

    @staticmethod
    def insights(entry_id: UUID | str) -> str:
        return f"/entries/{entry_id}/insights"


class MePaths:
    ME = "/me"
    PROFILE = "/me/profile"
    PREFERENCES = "/me/preferences"


class InsightPaths:
    LIST = "/insights"


HEALTH_PATH = "/health"
