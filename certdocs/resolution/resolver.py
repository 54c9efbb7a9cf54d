from certdocs.config.settings import Settings
from certdocs.logging.logger import Log
from certdocs.processor.exceptions import ArtifactNotFoundError, SigningError
from certdocs.resolution.cache import ResolutionHint
from certdocs.resolution.fallback import FallbackLocator
from certdocs.resolution.models import ArtifactCandidate, DocumentEntry, ResolvedLink
from certdocs.storage.base import BaseStorageClient
from certdocs.storage.exceptions import StorageError, StorageObjectNotFoundError
from certdocs.storage.models import Lane, SignedUrl, StorageLocation
from certdocs.storage.paths import bucket_for_lane, normalize_path


class ArtifactResolver:
    """Turns a document entry into a signed link for its most authoritative artifact.

    Only candidates recorded under the active lane are considered, and never
    one stored in the other lane's bucket. A not-found on the recorded path
    triggers a fallback search in the same bucket; any other storage failure
    propagates as :class:`SigningError`. The registry is never modified.
    """

    def __init__(
        self,
        storage: BaseStorageClient,
        fallback: FallbackLocator,
        settings: Settings,
    ) -> None:
        self._storage = storage
        self._fallback = fallback
        self._settings = settings

    def select(self, entry: DocumentEntry, lane: Lane) -> ArtifactCandidate:
        """Highest-tier candidate visible from ``lane``.

        Raises:
            ArtifactNotFoundError: if nothing is recorded for this lane.
        """
        foreign_bucket = bucket_for_lane(
            Lane.PRODUCTION if lane is Lane.SANDBOX else Lane.SANDBOX, self._settings
        )
        for candidate in entry.ranked(lane):
            if candidate.location.bucket == foreign_bucket:
                Log.warning(
                    f"Skipping {candidate.tier.name.lower()} artifact of entry {entry.id}: "
                    f"bucket {foreign_bucket} belongs to the other lane"
                )
                continue
            return candidate
        raise ArtifactNotFoundError(
            f"No artifact recorded for entry {entry.id} in lane {lane.value}"
        )

    def resolve(
        self,
        entry: DocumentEntry,
        lane: Lane,
        *,
        hint: ResolutionHint | None = None,
        download_name: str | None = None,
    ) -> ResolvedLink:
        candidate = self.select(entry, lane)
        recorded = StorageLocation(candidate.location.bucket, normalize_path(candidate.location.path))

        if hint is not None and hint.applies_to(candidate.tier, recorded):
            signed = self._try_sign(hint.resolved, download_name)
            if signed is not None:
                return self._link(entry, candidate, lane, recorded, signed)
            Log.info(f"Cached location {hint.resolved.path} for entry {entry.id} is gone")

        signed = self._try_sign(recorded, download_name)
        if signed is not None:
            return self._link(entry, candidate, lane, recorded, signed)

        replacement = self._fallback.locate(recorded.bucket, recorded.path)
        if replacement is None:
            raise ArtifactNotFoundError(
                f"Object not found. No matching PDF in bucket '{recorded.bucket}' "
                f"for '{recorded.path}'",
                bucket=recorded.bucket,
                path=recorded.path,
            )

        healed = StorageLocation(recorded.bucket, replacement)
        signed = self._try_sign(healed, download_name)
        if signed is None:
            raise ArtifactNotFoundError(
                f"Object not found in bucket '{recorded.bucket}' at '{recorded.path}' "
                f"or fallback '{replacement}'",
                bucket=recorded.bucket,
                path=recorded.path,
            )
        Log.info(
            f"Resolved entry {entry.id} via fallback: "
            f"{recorded.bucket}/{recorded.path} -> {healed.path}"
        )
        return self._link(entry, candidate, lane, recorded, signed)

    def _try_sign(self, location: StorageLocation, download_name: str | None) -> SignedUrl | None:
        """Signed link for ``location``, or None if the object does not exist."""
        try:
            return self._storage.create_signed_url(
                location.bucket,
                location.path,
                self._settings.signed_url_ttl_seconds,
                download_name=download_name,
            )
        except StorageObjectNotFoundError:
            return None
        except StorageError as exc:
            raise SigningError(
                f"Signing {location.bucket}/{location.path} failed: {exc}"
            ) from exc

    @staticmethod
    def _link(
        entry: DocumentEntry,
        candidate: ArtifactCandidate,
        lane: Lane,
        recorded: StorageLocation,
        signed: SignedUrl,
    ) -> ResolvedLink:
        return ResolvedLink(
            entry_id=entry.id,
            tier=candidate.tier,
            lane=lane,
            recorded=recorded,
            location=StorageLocation(signed.bucket, signed.path),
            url=signed.url,
            expires_at=signed.expires_at,
        )
