"""
Module: registrar_kernel.db.types
Responsibility: Annotated column type aliases and the money conversion helper
    shared by models, domain and services.
Architecture position: Kernel > DB.  May be imported by every other layer.

Invariants enforced:
    - Money is a Decimal with exactly two fractional digits, never negative.
    - No floats anywhere in price arithmetic: ``to_money`` refuses them.

Failure modes:
    - InvalidMoneyError on float input, non-numeric strings, more than two
      fractional digits, negative or non-finite values.
"""

from decimal import Decimal, InvalidOperation
from typing import Annotated

from sqlalchemy import Numeric, String, Text

from registrar_kernel.exceptions import InvalidMoneyError

Money = Annotated[Decimal, Numeric(10, 2)]

# Natural-key and label columns
ShortCode = Annotated[str, String(50)]
Name = Annotated[str, String(100)]
Label = Annotated[str, String(255)]
LongText = Annotated[str, Text]

MONEY_DECIMAL_PLACES = 2
MONEY_QUANTUM = Decimal("0.01")
# Largest value a Numeric(10, 2) column holds
MONEY_MAX = Decimal("99999999.99")


def to_money(value: Decimal | int | str) -> Decimal:
    """
    Convert a value to a two-decimal money amount.

    Preconditions: value is a Decimal, an int, or a numeric string.
    Postconditions: Returns a Decimal quantized to 0.01 without rounding.

    Raises:
        InvalidMoneyError: float input, malformed string, too many
            fractional digits, negative, non-finite or over the column
            capacity.
    """
    if isinstance(value, bool) or isinstance(value, float):
        raise InvalidMoneyError(value, "floats are not accepted for money")
    if isinstance(value, Decimal):
        amount = value
    elif isinstance(value, (int, str)):
        try:
            amount = Decimal(str(value).strip())
        except InvalidOperation:
            raise InvalidMoneyError(value, "not a number") from None
    else:
        raise InvalidMoneyError(value, f"unsupported type {type(value).__name__}")

    if not amount.is_finite():
        raise InvalidMoneyError(value, "not a finite number")
    if amount < 0:
        raise InvalidMoneyError(value, "must not be negative")
    if amount > MONEY_MAX:
        raise InvalidMoneyError(value, "exceeds the storable maximum")
    if amount != amount.quantize(MONEY_QUANTUM):
        raise InvalidMoneyError(value, "more than two fractional digits")
    return amount.quantize(MONEY_QUANTUM)
