"""
PricingCalculator -- snapshot document prices into request lines.

Responsibility:
    Loads the referenced document types, rejects missing or inactive ones
    and prices the lines with ``domain.pricing.price_lines``.  The unit
    price captured here is what the request keeps forever.

Failure modes:
    - InvalidDocumentTypeError: type missing or inactive.
    - ValidationError: empty request, quantity < 1, repeated type.
"""

from typing import Sequence

from sqlalchemy import select

from registrar_kernel.domain.dtos import LineItem
from registrar_kernel.domain.pricing import PriceQuote, price_lines
from registrar_kernel.exceptions import InvalidDocumentTypeError
from registrar_kernel.logging_config import get_logger
from registrar_kernel.models.catalog import DocumentType
from registrar_kernel.services.base import BaseService

logger = get_logger("services.pricing")


class PricingCalculator(BaseService):
    """
    Contract:
        ``price(lines)`` -> PriceQuote with one PricedLine per input line
        and ``total_amount`` equal to the sum of line totals.

    Non-goals:
        Discounts, requester-specific pricing and currency handling.
    """

    def price(self, lines: Sequence[LineItem]) -> PriceQuote:
        """
        Raises:
            InvalidDocumentTypeError: A line names a missing or retired type.
            ValidationError: Empty request, bad quantity or repeated type
                (from ``price_lines``).
        """
        type_ids = {line.document_type_id for line in lines}
        types = {
            doc_type.id: doc_type
            for doc_type in self.session.execute(
                select(DocumentType).where(DocumentType.id.in_(type_ids))
            ).scalars()
        }

        for line in lines:
            doc_type = types.get(line.document_type_id)
            if doc_type is None:
                raise InvalidDocumentTypeError(line.document_type_id, "does not exist")
            if not doc_type.is_active:
                raise InvalidDocumentTypeError(line.document_type_id, "is no longer offered")

        quote = price_lines(
            lines,
            unit_prices={type_id: t.base_price for type_id, t in types.items()},
            names={type_id: t.document_name for type_id, t in types.items()},
        )
        logger.debug(
            "request_priced",
            extra={"line_count": len(quote.lines), "total_amount": quote.total_amount},
        )
        return quote
