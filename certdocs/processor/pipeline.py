from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import date

from certdocs.billing.models import Totals
from certdocs.billing.requests import GenerateRequest
from certdocs.database.models import Issuer, UpsertOutcome
from certdocs.rendering.models import RenderInput, StabilizationResult
from certdocs.storage.models import Lane, StorageLocation, StoredObject


@dataclass(slots=True)
class GenerationContext:
    request: GenerateRequest
    lane: Lane
    issued_on: date
    issuer: Issuer | None = None
    totals: Totals | None = None
    render_input: RenderInput | None = None
    stabilization: StabilizationResult | None = None
    location: StorageLocation | None = None
    stored: StoredObject | None = None
    verify_url: str = ""
    outcome: UpsertOutcome | None = None


class PipelineStep(ABC):
    @abstractmethod
    def run(self, context: GenerationContext) -> GenerationContext:
        raise NotImplementedError
