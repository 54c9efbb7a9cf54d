"""Strict request schemas for the external boundary.

Payloads are parsed once, here; anything that does not fit is rejected with
a structured error code before any rendering or storage work happens.
"""

from collections.abc import Mapping
from datetime import date
from decimal import Decimal
from typing import Any, Literal, TypeVar

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from certdocs.billing.models import LineItem
from certdocs.processor.exceptions import RequestValidationError

DocumentType = Literal["invoice", "receipt", "credit_note", "statement"]

_HASH_PATTERN = r"^[0-9a-f]{64}$"

ModelT = TypeVar("ModelT", bound=BaseModel)


def _blank_to_none(value: Any) -> Any:
    if isinstance(value, str):
        value = value.strip()
        return value or None
    return value


class LineItemIn(BaseModel):
    model_config = ConfigDict(extra="forbid")

    description: str = ""
    quantity: Decimal | None = None
    unit_price: Decimal | None = None
    amount: Decimal | None = None

    def to_line_item(self) -> LineItem:
        return LineItem(
            description=self.description,
            quantity=self.quantity,
            unit_price=self.unit_price,
            amount=self.amount,
        )


class GenerateRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    entity_id: str
    is_test: bool
    category: str = "billing"
    document_type: DocumentType = "invoice"
    invoice_number: str | None = None
    document_number: str | None = None
    currency: str = Field(default="USD", pattern=r"^[A-Za-z]{3}$")
    title: str | None = None
    recipient_name: str | None = None
    recipient_email: str | None = None
    issued_at: date | None = None
    due_at: date | None = None
    period_start: date | None = None
    period_end: date | None = None
    notes: str | None = None
    line_items: list[LineItemIn] = Field(default_factory=list)
    reason: str | None = None
    source_record_id: str | None = None
    metadata: dict[str, Any] = Field(default_factory=dict)

    @field_validator(
        "invoice_number",
        "document_number",
        "title",
        "recipient_name",
        "recipient_email",
        "notes",
        "reason",
        "source_record_id",
        mode="before",
    )
    @classmethod
    def _strip_optional(cls, value: Any) -> Any:
        return _blank_to_none(value)

    @field_validator("entity_id", "category", mode="before")
    @classmethod
    def _strip_required(cls, value: Any) -> Any:
        return value.strip() if isinstance(value, str) else value

    @field_validator("currency")
    @classmethod
    def _upper_currency(cls, value: str) -> str:
        return value.upper()

    @property
    def natural_key(self) -> str | None:
        """Invoice number, falling back to document number."""
        return self.invoice_number or self.document_number

    def line_item_models(self) -> list[LineItem]:
        return [item.to_line_item() for item in self.line_items]


class CertifyRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    document_id: str
    force: bool = False

    @field_validator("document_id", mode="before")
    @classmethod
    def _strip_id(cls, value: Any) -> Any:
        return value.strip() if isinstance(value, str) else value


class ResolveRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    is_test: bool
    entry_id: str | None = None
    hash: str | None = Field(default=None, pattern=_HASH_PATTERN)
    download_name: str | None = None

    @field_validator("entry_id", "download_name", mode="before")
    @classmethod
    def _strip_optional(cls, value: Any) -> Any:
        return _blank_to_none(value)

    @field_validator("hash", mode="before")
    @classmethod
    def _normalize_hash(cls, value: Any) -> Any:
        value = _blank_to_none(value)
        return value.lower() if isinstance(value, str) else value


class DownloadRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    verified_document_id: str | None = None
    hash: str | None = Field(default=None, pattern=_HASH_PATTERN)

    @field_validator("verified_document_id", mode="before")
    @classmethod
    def _strip_id(cls, value: Any) -> Any:
        return _blank_to_none(value)

    @field_validator("hash", mode="before")
    @classmethod
    def _normalize_hash(cls, value: Any) -> Any:
        value = _blank_to_none(value)
        return value.lower() if isinstance(value, str) else value


def parse_generate_request(
    payload: Mapping[str, Any], categories: list[str]
) -> GenerateRequest:
    """Validate a generate payload.

    Raises:
        RequestValidationError: with LANE_REQUIRED, MISSING_REQUIRED_FIELDS,
            INVALID_CATEGORY or INVALID_REQUEST.
    """
    _require_mapping(payload)
    _require_lane(payload)
    if not _present(payload.get("entity_id")):
        raise RequestValidationError(
            "entity_id is required", code="MISSING_REQUIRED_FIELDS"
        )
    request = _validate(GenerateRequest, payload)
    if request.category not in categories:
        raise RequestValidationError(
            f"Unknown category '{request.category}'. Choose from: {categories}",
            code="INVALID_CATEGORY",
        )
    return request


def parse_certify_request(payload: Mapping[str, Any]) -> CertifyRequest:
    _require_mapping(payload)
    if not _present(payload.get("document_id")):
        raise RequestValidationError("document_id is required", code="MISSING_IDENTIFIER")
    return _validate(CertifyRequest, payload)


def parse_resolve_request(payload: Mapping[str, Any]) -> ResolveRequest:
    _require_mapping(payload)
    _require_lane(payload)
    request = _validate(ResolveRequest, payload)
    if request.entry_id is None and request.hash is None:
        raise RequestValidationError(
            "Either entry_id or hash is required", code="MISSING_IDENTIFIER"
        )
    return request


def parse_download_request(payload: Mapping[str, Any]) -> DownloadRequest:
    _require_mapping(payload)
    request = _validate(DownloadRequest, payload)
    if request.verified_document_id is None and request.hash is None:
        raise RequestValidationError(
            "Either verified_document_id or hash is required", code="MISSING_IDENTIFIER"
        )
    return request


def _require_mapping(payload: Any) -> None:
    if not isinstance(payload, Mapping):
        raise RequestValidationError("Request body must be an object")


def _require_lane(payload: Mapping[str, Any]) -> None:
    # Checked ahead of schema parsing so an absent lane is never reported as
    # a generic missing field.
    if payload.get("is_test") is None:
        raise RequestValidationError("is_test is required", code="LANE_REQUIRED")


def _present(value: Any) -> bool:
    if value is None:
        return False
    return bool(str(value).strip())


def _validate(model: type[ModelT], payload: Mapping[str, Any]) -> ModelT:
    try:
        return model.model_validate(dict(payload))
    except ValidationError as exc:
        errors = exc.errors()
        fields = sorted({".".join(str(part) for part in err["loc"]) for err in errors})
        if any(err["type"] == "missing" for err in errors):
            raise RequestValidationError(
                f"Missing required fields: {fields}", code="MISSING_REQUIRED_FIELDS"
            ) from exc
        raise RequestValidationError(f"Invalid fields: {fields}") from exc
