"""Client-side resolution state: location hints and stale-response guarding."""

from dataclasses import dataclass
from typing import Generic, TypeVar

from certdocs.resolution.models import AuthorityTier
from certdocs.storage.models import Lane, StorageLocation

ResultT = TypeVar("ResultT")


@dataclass(frozen=True)
class ResolutionHint:
    """Where a recorded artifact was actually found last time."""

    tier: AuthorityTier
    recorded: StorageLocation
    resolved: StorageLocation

    def applies_to(self, tier: AuthorityTier, recorded: StorageLocation) -> bool:
        return self.tier == tier and self.recorded == recorded


class ResolutionHintCache:
    """Hints keyed by (entry id, lane).

    Hints only speed up the next resolution; the registry keeps the recorded
    location.
    """

    def __init__(self) -> None:
        self._hints: dict[tuple[str, Lane], ResolutionHint] = {}

    def __len__(self) -> int:
        return len(self._hints)

    def get(self, entry_id: str, lane: Lane) -> ResolutionHint | None:
        return self._hints.get((entry_id, lane))

    def put(self, entry_id: str, lane: Lane, hint: ResolutionHint) -> None:
        self._hints[(entry_id, lane)] = hint

    def invalidate(self, entry_id: str, lane: Lane) -> None:
        self._hints.pop((entry_id, lane), None)

    def invalidate_lane(self, lane: Lane) -> int:
        """Drop every hint for ``lane``; returns how many were removed."""
        stale = [key for key in self._hints if key[1] is lane]
        for key in stale:
            del self._hints[key]
        return len(stale)

    def clear(self) -> None:
        self._hints.clear()


class ResolutionTracker(Generic[ResultT]):
    """Busy flag plus a request ticket per session.

    Each request takes a ticket from :meth:`begin`. A completion is applied
    only when its ticket is still the latest, so a slow superseded request
    cannot overwrite the state of a newer one.
    """

    def __init__(self) -> None:
        self._latest = 0
        self._busy = False
        self.result: ResultT | None = None
        self.error: Exception | None = None

    @property
    def busy(self) -> bool:
        return self._busy

    def begin(self) -> int:
        self._latest += 1
        self._busy = True
        return self._latest

    def is_current(self, ticket: int) -> bool:
        return ticket == self._latest

    def supersede(self) -> None:
        """Invalidate every outstanding ticket and reset state."""
        self._latest += 1
        self._busy = False
        self.result = None
        self.error = None

    def complete(self, ticket: int, result: ResultT) -> bool:
        if not self.is_current(ticket):
            return False
        self.result = result
        self.error = None
        self._busy = False
        return True

    def fail(self, ticket: int, error: Exception) -> bool:
        if not self.is_current(ticket):
            return False
        self.result = None
        self.error = error
        self._busy = False
        return True
