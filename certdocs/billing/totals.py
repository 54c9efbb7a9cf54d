"""Line items -> canonical subtotal/tax/total in minor units."""

from decimal import ROUND_HALF_UP, Decimal

from certdocs.billing.models import LineItem, NormalizedLineItem, Totals

_CENTS = Decimal("100")
_DEFAULT_QUANTITY = Decimal("1")
_DEFAULT_UNIT_PRICE = Decimal("0")


def to_minor_units(amount: Decimal) -> int:
    """Convert a major-unit amount to minor units, rounding half away from zero."""
    return int((amount * _CENTS).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


class TotalsNormalizer:
    """Normalizes line items and computes document totals.

    Never rejects input: missing quantities default to 1, missing unit prices
    to 0. There is no tax engine, so tax is always zero.
    """

    def __init__(self, description_max_length: int = 120) -> None:
        self._description_max_length = description_max_length

    def normalize(self, items: list[LineItem], currency: str) -> Totals:
        normalized = [self._normalize_item(item) for item in items]
        subtotal = sum(item.amount_cents for item in normalized)
        tax = 0
        return Totals(
            currency=(currency or "USD").strip().upper(),
            subtotal_cents=subtotal,
            tax_cents=tax,
            total_cents=subtotal + tax,
            items=normalized,
        )

    def _normalize_item(self, item: LineItem) -> NormalizedLineItem:
        quantity = item.quantity if item.quantity is not None else _DEFAULT_QUANTITY
        unit_price = item.unit_price if item.unit_price is not None else _DEFAULT_UNIT_PRICE
        amount = item.amount if item.amount is not None else quantity * unit_price
        return NormalizedLineItem(
            description=self._truncate(item.description),
            quantity=quantity,
            unit_price_cents=to_minor_units(unit_price),
            amount_cents=to_minor_units(amount),
        )

    def _truncate(self, description: str) -> str:
        text = " ".join((description or "").split())
        if len(text) <= self._description_max_length:
            return text
        return text[: self._description_max_length - 3].rstrip() + "..."
