import pytest

from certdocs.billing.requests import (
    parse_certify_request,
    parse_generate_request,
    parse_resolve_request,
)
from certdocs.processor.exceptions import RequestValidationError

CATEGORIES = ["billing", "resolutions"]


def _payload(**overrides: object) -> dict:
    payload: dict = {
        "entity_id": "7d0f3f4e-5a43-4d59-9c77-2f1b1c3e9a10",
        "is_test": False,
        "invoice_number": "INV-1",
        "line_items": [{"description": "Service A", "amount": "100.00"}],
    }
    payload.update(overrides)
    return payload


class TestParseGenerateRequest:
    def test_parses_valid_payload(self) -> None:
        request = parse_generate_request(_payload(currency="usd"), CATEGORIES)

        assert request.is_test is False
        assert request.currency == "USD"
        assert request.category == "billing"
        assert request.line_items[0].description == "Service A"

    def test_missing_lane_is_lane_required(self) -> None:
        payload = _payload()
        del payload["is_test"]

        with pytest.raises(RequestValidationError) as exc_info:
            parse_generate_request(payload, CATEGORIES)

        assert exc_info.value.code == "LANE_REQUIRED"

    def test_null_lane_is_lane_required(self) -> None:
        with pytest.raises(RequestValidationError) as exc_info:
            parse_generate_request(_payload(is_test=None), CATEGORIES)

        assert exc_info.value.code == "LANE_REQUIRED"

    def test_lane_is_checked_before_other_fields(self) -> None:
        with pytest.raises(RequestValidationError) as exc_info:
            parse_generate_request({"line_items": "garbage"}, CATEGORIES)

        assert exc_info.value.code == "LANE_REQUIRED"

    def test_missing_entity_is_missing_required_fields(self) -> None:
        with pytest.raises(RequestValidationError) as exc_info:
            parse_generate_request(_payload(entity_id="  "), CATEGORIES)

        assert exc_info.value.code == "MISSING_REQUIRED_FIELDS"

    def test_unknown_category_is_invalid_category(self) -> None:
        with pytest.raises(RequestValidationError) as exc_info:
            parse_generate_request(_payload(category="payroll"), CATEGORIES)

        assert exc_info.value.code == "INVALID_CATEGORY"

    def test_unknown_field_is_invalid_request(self) -> None:
        with pytest.raises(RequestValidationError) as exc_info:
            parse_generate_request(_payload(tax_rate="0.2"), CATEGORIES)

        assert exc_info.value.code == "INVALID_REQUEST"

    def test_bad_currency_is_invalid_request(self) -> None:
        with pytest.raises(RequestValidationError) as exc_info:
            parse_generate_request(_payload(currency="DOLLARS"), CATEGORIES)

        assert exc_info.value.code == "INVALID_REQUEST"

    def test_non_mapping_is_invalid_request(self) -> None:
        with pytest.raises(RequestValidationError) as exc_info:
            parse_generate_request(["not", "a", "dict"], CATEGORIES)  # type: ignore[arg-type]

        assert exc_info.value.code == "INVALID_REQUEST"

    def test_natural_key_prefers_invoice_number(self) -> None:
        request = parse_generate_request(_payload(document_number="DOC-9"), CATEGORIES)

        assert request.natural_key == "INV-1"

    def test_natural_key_falls_back_to_document_number(self) -> None:
        request = parse_generate_request(
            _payload(invoice_number="  ", document_number="DOC-9"), CATEGORIES
        )

        assert request.invoice_number is None
        assert request.natural_key == "DOC-9"

    def test_natural_key_absent(self) -> None:
        request = parse_generate_request(_payload(invoice_number=None), CATEGORIES)

        assert request.natural_key is None

    def test_validation_errors_are_not_retryable(self) -> None:
        with pytest.raises(RequestValidationError) as exc_info:
            parse_generate_request(_payload(is_test=None), CATEGORIES)

        assert exc_info.value.retryable is False


class TestParseCertifyRequest:
    def test_parses_force_flag(self) -> None:
        request = parse_certify_request({"document_id": "abc", "force": True})

        assert request.document_id == "abc"
        assert request.force is True

    def test_missing_document_id(self) -> None:
        with pytest.raises(RequestValidationError) as exc_info:
            parse_certify_request({"force": True})

        assert exc_info.value.code == "MISSING_IDENTIFIER"


class TestParseResolveRequest:
    def test_requires_lane(self) -> None:
        with pytest.raises(RequestValidationError) as exc_info:
            parse_resolve_request({"entry_id": "abc"})

        assert exc_info.value.code == "LANE_REQUIRED"

    def test_requires_entry_or_hash(self) -> None:
        with pytest.raises(RequestValidationError) as exc_info:
            parse_resolve_request({"is_test": True})

        assert exc_info.value.code == "MISSING_IDENTIFIER"

    def test_hash_is_lower_cased(self) -> None:
        request = parse_resolve_request({"is_test": True, "hash": "AB" * 32})

        assert request.hash == "ab" * 32

    def test_malformed_hash_is_invalid(self) -> None:
        with pytest.raises(RequestValidationError) as exc_info:
            parse_resolve_request({"is_test": True, "hash": "xyz"})

        assert exc_info.value.code == "INVALID_REQUEST"
