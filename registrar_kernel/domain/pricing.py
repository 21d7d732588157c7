"""
Pricing -- line and total amounts from snapshotted unit prices.

Architecture position:
    Kernel > Domain.  Pure.  PricingCalculator loads the active document
    types and hands their current base prices to ``price_lines``.

Invariants enforced:
    - total_price == quantity * unit_price for every line, in Decimal.
    - total_amount == sum of line totals.
    - quantity is an integer >= 1.
    - A document type appears at most once per request.
"""

from dataclasses import dataclass
from decimal import Decimal
from typing import Mapping, Sequence

from registrar_kernel.db.types import to_money
from registrar_kernel.exceptions import ValidationError

ZERO = Decimal("0.00")


@dataclass(frozen=True)
class PricedLine:
    document_type_id: int
    document_name: str
    quantity: int
    unit_price: Decimal
    total_price: Decimal
    year: str | None = None
    semester: str | None = None


@dataclass(frozen=True)
class PriceQuote:
    lines: tuple[PricedLine, ...]
    total_amount: Decimal

    @property
    def document_type_ids(self) -> frozenset[int]:
        return frozenset(line.document_type_id for line in self.lines)


def validate_quantity(quantity: object) -> int:
    if isinstance(quantity, bool) or not isinstance(quantity, int):
        raise ValidationError(
            f"Quantity must be an integer, got {quantity!r}", field="quantity"
        )
    if quantity < 1:
        raise ValidationError(
            f"Quantity must be at least 1, got {quantity}", field="quantity"
        )
    return quantity


def price_lines(
    lines: Sequence,
    unit_prices: Mapping[int, Decimal],
    names: Mapping[int, str],
) -> PriceQuote:
    """
    Price a request's lines.

    Args:
        lines: LineItem-like objects with document_type_id, quantity and
            optional year/semester.
        unit_prices: Snapshot of base prices keyed by document type id.
        names: Document names keyed by id.

    Raises:
        ValidationError: Empty request, bad quantity or repeated type.
    """
    if not lines:
        raise ValidationError("A request needs at least one document", field="lines")

    seen: set[int] = set()
    priced: list[PricedLine] = []
    total = ZERO
    for line in lines:
        quantity = validate_quantity(line.quantity)
        type_id = line.document_type_id
        if type_id in seen:
            raise ValidationError(
                f"Document type {type_id} is listed more than once",
                field="document_type_id",
            )
        seen.add(type_id)

        unit_price = to_money(unit_prices[type_id])
        line_total = unit_price * quantity
        priced.append(
            PricedLine(
                document_type_id=type_id,
                document_name=names[type_id],
                quantity=quantity,
                unit_price=unit_price,
                total_price=line_total,
                year=getattr(line, "year", None),
                semester=getattr(line, "semester", None),
            )
        )
        total += line_total

    return PriceQuote(lines=tuple(priced), total_amount=total)
