"""Client-side state stores.

AuthStore and EntriesStore hold what a UI renders and reconcile API results
into that state. Subscribers are called with the store after every change.

EntriesStore keeps an offline queue: when the API is unreachable, mutations
are applied optimistically to local state and queued in order;
flush_pending() replays them in order and stops at the first failure.
Concurrent edits resolve as last write wins.
"""

from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import Any
from uuid import UUID, uuid4

from mindflow.client.api import ApiClientError, MindflowApiClient, OfflineError
from mindflow.schemas.auth import AuthSessionOut, LoginRequest, SignupRequest
from mindflow.schemas.entries import CreateEntryRequest, EntryOut, UpdateEntryRequest
from mindflow.schemas.profile import MeOut, UpdateProfileRequest

Listener = Callable[[Any], None]

# Owner placeholder for entries created offline and not yet synced
UNSYNCED_OWNER = UUID(int=0)


class _Observable:
    def __init__(self) -> None:
        self._listeners: list[Listener] = []

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a change listener; returns an unsubscribe function."""
        self._listeners.append(listener)
        return lambda: self._listeners.remove(listener)

    def _set(self, **changes: Any) -> None:
        for name, value in changes.items():
            setattr(self, name, value)
        for listener in list(self._listeners):
            listener(self)


def _message(error: Exception, fallback: str) -> str:
    return getattr(error, "message", None) or str(error) or fallback


# =============================================================================
# Auth
# =============================================================================


class AuthStore(_Observable):
    """Authentication state.

    `initialized` flips to True after the first initialize() attempt,
    whether or not it succeeded, and never goes back.
    """

    def __init__(self, api: MindflowApiClient):
        super().__init__()
        self.api = api
        self.user: MeOut | None = None
        self.session: AuthSessionOut | None = None
        self.loading = False
        self.initialized = False
        self.error: str | None = None

    async def initialize(self) -> None:
        """Resolve the current user from an existing token, if any. Never raises."""
        self._set(loading=True, error=None)
        try:
            user = await self.api.get_me() if self.api.access_token else None
        except (ApiClientError, OfflineError) as e:
            self._set(
                user=None,
                error=_message(e, "Failed to initialize"),
                loading=False,
                initialized=True,
            )
            return
        self._set(user=user, loading=False, initialized=True)

    async def login(self, email: str, password: str) -> None:
        request = LoginRequest(email=email, password=password)
        self._set(loading=True, error=None)
        try:
            result = await self.api.login(request)
            user = await self.api.get_me()
        except (ApiClientError, OfflineError) as e:
            self._set(error=_message(e, "Login failed"), loading=False)
            raise
        self._set(user=user, session=result.session, loading=False)

    async def signup(self, email: str, password: str, display_name: str | None = None) -> None:
        """Register. Without a session (confirmation pending) the user stays None."""
        request = SignupRequest(email=email, password=password, display_name=display_name)
        self._set(loading=True, error=None)
        try:
            result = await self.api.signup(request)
            user = await self.api.get_me() if result.session is not None else None
        except (ApiClientError, OfflineError) as e:
            self._set(error=_message(e, "Signup failed"), loading=False)
            raise
        self._set(user=user, session=result.session, loading=False)

    async def logout(self) -> None:
        """Sign out. The local session is dropped even if the server call fails."""
        self._set(loading=True, error=None)
        try:
            await self.api.logout()
        except (ApiClientError, OfflineError) as e:
            self._set(
                user=None, session=None, error=_message(e, "Logout failed"), loading=False
            )
            raise
        self._set(user=None, session=None, loading=False)

    async def update_profile(self, **changes: Any) -> None:
        """Update display name and/or avatar URL for the signed-in user."""
        if self.user is None:
            error = ApiClientError(401, "E_UNAUTHENTICATED", "No user logged in")
            self._set(error=error.message)
            raise error

        request = UpdateProfileRequest(**changes)
        self._set(loading=True, error=None)
        try:
            profile = await self.api.update_profile(request)
        except (ApiClientError, OfflineError) as e:
            self._set(error=_message(e, "Update failed"), loading=False)
            raise
        self._set(user=self.user.model_copy(update={"profile": profile}), loading=False)

    async def reset_password(self, email: str) -> None:
        self._set(loading=True, error=None)
        try:
            await self.api.reset_password(email)
        except (ApiClientError, OfflineError) as e:
            self._set(error=_message(e, "Password reset failed"), loading=False)
            raise
        self._set(loading=False)

    def clear_error(self) -> None:
        self._set(error=None)


# =============================================================================
# Entries
# =============================================================================


class MutationKind(str, Enum):
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"


@dataclass
class PendingMutation:
    """A mutation made while offline, waiting to be replayed."""

    kind: MutationKind
    entry_id: UUID
    payload: dict[str, Any] = field(default_factory=dict)
    queued_at: datetime = field(default_factory=lambda: datetime.now(UTC))


class EntriesStore(_Observable):
    """Journal entry state, newest first."""

    def __init__(self, api: MindflowApiClient):
        super().__init__()
        self.api = api
        self.entries: list[EntryOut] = []
        self.selected_entry: EntryOut | None = None
        self.loading = False
        self.error: str | None = None
        self.next_cursor: str | None = None
        self.pending: list[PendingMutation] = []

    # -------------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------------

    def _unsynced_entries(self) -> list[EntryOut]:
        created = {m.entry_id for m in self.pending if m.kind == MutationKind.CREATE}
        return [entry for entry in self.entries if entry.id in created]

    def _overlay_pending(self, entries: list[EntryOut]) -> list[EntryOut]:
        """Apply queued edits and deletes to entries loaded from the server."""
        deleted: set[UUID] = set()
        updates: dict[UUID, dict[str, Any]] = {}
        for mutation in self.pending:
            if mutation.kind == MutationKind.DELETE:
                deleted.add(mutation.entry_id)
            elif mutation.kind == MutationKind.UPDATE:
                changes = UpdateEntryRequest.model_validate(mutation.payload).changes()
                updates[mutation.entry_id] = {
                    **updates.get(mutation.entry_id, {}),
                    **changes,
                    "updated_at": mutation.queued_at,
                }

        overlaid = []
        for entry in entries:
            if entry.id in deleted:
                continue
            if entry.id in updates:
                entry = entry.model_copy(update=updates[entry.id])
            overlaid.append(entry)
        return overlaid

    async def fetch_entries(self, **filters: Any) -> None:
        """Load the first page with queued offline changes applied.

        Entries created offline stay on top until synced.
        """
        self._set(loading=True, error=None)
        try:
            page = await self.api.list_entries(**filters)
        except (ApiClientError, OfflineError) as e:
            self._set(error=_message(e, "Failed to fetch entries"), loading=False)
            raise
        self._set(
            entries=self._unsynced_entries() + self._overlay_pending(page.entries),
            next_cursor=page.page.next_cursor,
            loading=False,
        )

    async def fetch_more(self, **filters: Any) -> list[EntryOut]:
        """Append the next page; returns the entries added (empty at the end)."""
        if self.next_cursor is None:
            return []
        self._set(loading=True, error=None)
        try:
            page = await self.api.list_entries(cursor=self.next_cursor, **filters)
        except (ApiClientError, OfflineError) as e:
            self._set(error=_message(e, "Failed to fetch entries"), loading=False)
            raise
        added = self._overlay_pending(page.entries)
        self._set(
            entries=self.entries + added,
            next_cursor=page.page.next_cursor,
            loading=False,
        )
        return added

    async def fetch_entry(self, entry_id: UUID) -> EntryOut:
        self._set(loading=True, error=None)
        try:
            entry = await self.api.get_entry(entry_id)
        except (ApiClientError, OfflineError) as e:
            self._set(error=_message(e, "Failed to fetch entry"), loading=False)
            raise
        self._set(selected_entry=entry, loading=False)
        return entry

    # -------------------------------------------------------------------------
    # Local state reconciliation
    # -------------------------------------------------------------------------

    def _apply_created(self, entry: EntryOut) -> None:
        self._set(entries=[entry] + self.entries, loading=False)

    def _apply_updated(self, entry: EntryOut, replaces: UUID | None = None) -> None:
        target = replaces or entry.id
        selected = self.selected_entry
        self._set(
            entries=[entry if e.id == target else e for e in self.entries],
            selected_entry=entry if selected is not None and selected.id == target else selected,
            loading=False,
        )

    def _apply_deleted(self, entry_id: UUID) -> None:
        selected = self.selected_entry
        self._set(
            entries=[e for e in self.entries if e.id != entry_id],
            selected_entry=None if selected is not None and selected.id == entry_id else selected,
            loading=False,
        )

    def _find(self, entry_id: UUID) -> EntryOut | None:
        for entry in self.entries:
            if entry.id == entry_id:
                return entry
        if self.selected_entry is not None and self.selected_entry.id == entry_id:
            return self.selected_entry
        return None

    def _queue(self, mutation: PendingMutation) -> None:
        self._set(pending=self.pending + [mutation])

    # -------------------------------------------------------------------------
    # Mutations
    # -------------------------------------------------------------------------

    async def create_entry(self, request: CreateEntryRequest | dict[str, Any]) -> EntryOut:
        """Create an entry and prepend it. Offline: prepend a local copy and queue."""
        if not isinstance(request, CreateEntryRequest):
            request = CreateEntryRequest.model_validate(request)

        self._set(loading=True, error=None)
        try:
            entry = await self.api.create_entry(request)
        except OfflineError:
            now = datetime.now(UTC)
            entry = EntryOut(
                id=uuid4(),
                user_id=UNSYNCED_OWNER,
                content=request.content,
                mood=request.mood,
                created_at=now,
                updated_at=now,
            )
            self._queue(
                PendingMutation(
                    MutationKind.CREATE,
                    entry.id,
                    request.model_dump(mode="json", by_alias=True),
                )
            )
        except ApiClientError as e:
            self._set(error=e.message or "Failed to create entry", loading=False)
            raise

        self._apply_created(entry)
        return entry

    async def update_entry(
        self, entry_id: UUID, request: UpdateEntryRequest | dict[str, Any]
    ) -> EntryOut:
        """Update an entry in place. Offline: merge locally and queue."""
        if not isinstance(request, UpdateEntryRequest):
            request = UpdateEntryRequest.model_validate(request)

        self._set(loading=True, error=None)
        try:
            entry = await self.api.update_entry(entry_id, request)
        except OfflineError:
            current = self._find(entry_id)
            if current is None:
                self._set(error="Entry not available offline", loading=False)
                raise
            changes = request.changes()
            entry = current.model_copy(update={**changes, "updated_at": datetime.now(UTC)})
            self._queue(
                PendingMutation(
                    MutationKind.UPDATE,
                    entry_id,
                    request.model_dump(mode="json", by_alias=True, exclude_unset=True),
                )
            )
        except ApiClientError as e:
            self._set(error=e.message or "Failed to update entry", loading=False)
            raise

        self._apply_updated(entry)
        return entry

    async def delete_entry(self, entry_id: UUID) -> None:
        """Delete an entry. Offline: remove locally and queue."""
        self._set(loading=True, error=None)
        try:
            await self.api.delete_entry(entry_id)
        except OfflineError:
            self._queue(PendingMutation(MutationKind.DELETE, entry_id))
        except ApiClientError as e:
            self._set(error=e.message or "Failed to delete entry", loading=False)
            raise

        self._apply_deleted(entry_id)

    async def flush_pending(self) -> int:
        """Replay queued mutations in order.

        Stops at the first failure, leaving it and everything after it
        queued. Entries created offline get their server ids as they sync.

        Returns:
            Number of mutations applied.
        """
        applied = 0
        # Offline-created ids -> server ids
        synced_ids: dict[UUID, UUID] = {}

        while self.pending:
            mutation = self.pending[0]
            target = synced_ids.get(mutation.entry_id, mutation.entry_id)
            try:
                if mutation.kind == MutationKind.CREATE:
                    entry = await self.api.create_entry(mutation.payload)
                    synced_ids[mutation.entry_id] = entry.id
                    self._apply_updated(entry, replaces=mutation.entry_id)
                elif mutation.kind == MutationKind.UPDATE:
                    entry = await self.api.update_entry(target, mutation.payload)
                    self._apply_updated(entry)
                else:
                    await self.api.delete_entry(target)
                    self._apply_deleted(target)
            except (ApiClientError, OfflineError) as e:
                self._set(error=_message(e, "Failed to sync changes"))
                break

            remaining = [
                PendingMutation(
                    m.kind, synced_ids.get(m.entry_id, m.entry_id), m.payload, m.queued_at
                )
                for m in self.pending[1:]
            ]
            self._set(pending=remaining)
            applied += 1

        return applied

    def set_selected_entry(self, entry: EntryOut | None) -> None:
        self._set(selected_entry=entry)

    def clear_error(self) -> None:
        self._set(error=None)

    def clear_entries(self) -> None:
        """Forget everything (on logout), including the offline queue."""
        self._set(entries=[], selected_entry=None, error=None, next_cursor=None, pending=[])
