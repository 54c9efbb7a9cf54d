from dataclasses import dataclass
from datetime import datetime
from enum import IntEnum

from certdocs.database.models import RegistryRecord, VerifiedArtifactRecord
from certdocs.storage.models import Lane, StorageLocation


class AuthorityTier(IntEnum):
    """Artifact authority; a higher value wins."""

    UPLOADED = 1
    CERTIFIED = 2
    OFFICIAL = 3


@dataclass(frozen=True)
class ArtifactCandidate:
    tier: AuthorityTier
    location: StorageLocation
    lane: Lane
    file_hash: str | None = None


@dataclass(frozen=True)
class DocumentEntry:
    """A logical document and every artifact recorded for it."""

    id: str
    lane: Lane
    candidates: tuple[ArtifactCandidate, ...] = ()
    title: str | None = None

    def ranked(self, lane: Lane) -> list[ArtifactCandidate]:
        """Candidates recorded under ``lane``, highest tier first."""
        matching = [candidate for candidate in self.candidates if candidate.lane is lane]
        return sorted(matching, key=lambda candidate: candidate.tier, reverse=True)

    @classmethod
    def from_records(
        cls,
        record: RegistryRecord,
        verified: list[VerifiedArtifactRecord] | None = None,
    ) -> "DocumentEntry":
        candidates: list[ArtifactCandidate] = [
            ArtifactCandidate(
                tier=AuthorityTier.UPLOADED,
                location=record.location,
                lane=record.lane,
                file_hash=record.file_hash,
            )
        ]
        certified = record.certified_location
        if certified is not None:
            candidates.append(
                ArtifactCandidate(
                    tier=AuthorityTier.CERTIFIED,
                    location=certified,
                    lane=record.lane,
                    file_hash=record.certified_file_hash,
                )
            )
        for official in verified or []:
            candidates.append(
                ArtifactCandidate(
                    tier=AuthorityTier.OFFICIAL,
                    location=StorageLocation(official.storage_bucket, official.storage_path),
                    lane=Lane.from_is_test(official.is_test),
                    file_hash=official.file_hash,
                )
            )
        return cls(
            id=record.id,
            lane=record.lane,
            candidates=tuple(candidates),
            title=record.title or record.natural_key,
        )


@dataclass(frozen=True)
class ResolvedLink:
    """A time-boxed retrieval link; never persisted."""

    entry_id: str
    tier: AuthorityTier
    lane: Lane
    recorded: StorageLocation
    location: StorageLocation
    url: str
    expires_at: datetime

    @property
    def self_healed(self) -> bool:
        return self.location != self.recorded

    def to_dict(self) -> dict[str, object]:
        return {
            "entry_id": self.entry_id,
            "tier": self.tier.name.lower(),
            "lane": self.lane.value,
            "bucket": self.location.bucket,
            "path": self.location.path,
            "recorded_path": self.recorded.path,
            "self_healed": self.self_healed,
            "url": self.url,
            "expires_at": self.expires_at.isoformat(),
        }
