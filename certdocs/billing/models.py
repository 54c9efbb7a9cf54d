from dataclasses import dataclass, field
from decimal import Decimal


@dataclass(frozen=True)
class LineItem:
    """A billed line as supplied by the caller (major currency units).

    ``amount`` is an explicit override; when absent the amount is
    ``quantity * unit_price``.
    """

    description: str = ""
    quantity: Decimal | None = None
    unit_price: Decimal | None = None
    amount: Decimal | None = None


@dataclass(frozen=True)
class NormalizedLineItem:
    """A line item after defaulting, truncation and conversion to minor units."""

    description: str
    quantity: Decimal
    unit_price_cents: int
    amount_cents: int

    def to_dict(self) -> dict[str, object]:
        return {
            "description": self.description,
            "quantity": str(self.quantity),
            "unit_price_cents": self.unit_price_cents,
            "amount_cents": self.amount_cents,
        }

    @classmethod
    def from_dict(cls, raw: dict[str, object]) -> "NormalizedLineItem":
        return cls(
            description=str(raw.get("description", "")),
            quantity=Decimal(str(raw.get("quantity", "1"))),
            unit_price_cents=int(str(raw.get("unit_price_cents", 0))),
            amount_cents=int(str(raw.get("amount_cents", 0))),
        )


@dataclass(frozen=True)
class Totals:
    """Canonical totals for a document, all money in minor units."""

    currency: str
    subtotal_cents: int
    tax_cents: int
    total_cents: int
    items: list[NormalizedLineItem] = field(default_factory=list)

    def to_dict(self) -> dict[str, object]:
        return {
            "currency": self.currency,
            "subtotal": format_minor(self.subtotal_cents),
            "tax": format_minor(self.tax_cents),
            "total": format_minor(self.total_cents),
            "subtotal_cents": self.subtotal_cents,
            "tax_cents": self.tax_cents,
            "total_cents": self.total_cents,
        }


def format_minor(cents: int) -> str:
    """Render minor units as a two-decimal string, e.g. 15000 -> '150.00'."""
    sign = "-" if cents < 0 else ""
    whole, frac = divmod(abs(cents), 100)
    return f"{sign}{whole}.{frac:02d}"
