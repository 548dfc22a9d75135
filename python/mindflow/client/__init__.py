"""Client data layer: API client, state stores and search helpers."""

from mindflow.client.api import ApiClientError, MindflowApiClient, OfflineError
from mindflow.client.routing import GateAction, GateDecision, is_public_route, resolve_gate
from mindflow.client.search import (
    DebouncedSearch,
    RecentSearches,
    extract_snippets,
    highlight_search_terms,
)
from mindflow.client.store import AuthStore, EntriesStore, MutationKind, PendingMutation

__all__ = [
    "ApiClientError",
    "MindflowApiClient",
    "OfflineError",
    "GateAction",
    "GateDecision",
    "is_public_route",
    "resolve_gate",
    "DebouncedSearch",
    "RecentSearches",
    "extract_snippets",
    "highlight_search_terms",
    "AuthStore",
    "EntriesStore",
    "MutationKind",
    "PendingMutation",
]
