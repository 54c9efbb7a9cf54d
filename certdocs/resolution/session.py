from collections.abc import Callable

from certdocs.logging.logger import Log
from certdocs.processor.exceptions import CertificationError
from certdocs.resolution.cache import ResolutionHint, ResolutionHintCache, ResolutionTracker
from certdocs.resolution.entries import DocumentEntryLoader
from certdocs.resolution.models import DocumentEntry, ResolvedLink
from certdocs.resolution.resolver import ArtifactResolver
from certdocs.storage.models import Lane


class ResolutionSession:
    """Resolution state for one client bound to an active lane.

    Switching lanes drops that lane's hints and supersedes any in-flight
    request, so nothing resolved under the previous lane can land afterwards.
    """

    def __init__(
        self,
        resolver: ArtifactResolver,
        loader: DocumentEntryLoader,
        lane: Lane,
        cache: ResolutionHintCache | None = None,
        tracker: ResolutionTracker[ResolvedLink] | None = None,
    ) -> None:
        self._resolver = resolver
        self._loader = loader
        self._lane = lane
        self._cache = cache or ResolutionHintCache()
        self._tracker = tracker or ResolutionTracker()

    @property
    def lane(self) -> Lane:
        return self._lane

    @property
    def busy(self) -> bool:
        return self._tracker.busy

    @property
    def last_link(self) -> ResolvedLink | None:
        return self._tracker.result

    @property
    def last_error(self) -> Exception | None:
        return self._tracker.error

    @property
    def cache(self) -> ResolutionHintCache:
        return self._cache

    def switch_lane(self, lane: Lane) -> None:
        if lane is self._lane:
            return
        dropped = self._cache.invalidate_lane(self._lane)
        self._tracker.supersede()
        Log.info(f"Lane switched {self._lane.value} -> {lane.value}, dropped {dropped} hints")
        self._lane = lane

    def resolve(self, entry_id: str, download_name: str | None = None) -> ResolvedLink:
        return self._run(lambda: self._loader.load(entry_id), download_name)

    def resolve_hash(self, content_hash: str, download_name: str | None = None) -> ResolvedLink:
        return self._run(lambda: self._loader.load_by_hash(content_hash, self._lane), download_name)

    def _run(
        self, load_entry: Callable[[], DocumentEntry], download_name: str | None
    ) -> ResolvedLink:
        lane = self._lane
        ticket = self._tracker.begin()
        try:
            entry = load_entry()
            link = self._resolver.resolve(
                entry,
                lane,
                hint=self._cache.get(entry.id, lane),
                download_name=download_name,
            )
        except CertificationError as exc:
            self._tracker.fail(ticket, exc)
            raise

        if self._tracker.is_current(ticket):
            self._remember(link)
        self._tracker.complete(ticket, link)
        return link

    def _remember(self, link: ResolvedLink) -> None:
        if link.self_healed:
            self._cache.put(
                link.entry_id,
                link.lane,
                ResolutionHint(tier=link.tier, recorded=link.recorded, resolved=link.location),
            )
        else:
            self._cache.invalidate(link.entry_id, link.lane)
