"""Money helpers."""
from decimal import Decimal, InvalidOperation
from typing import Any

from freelancehub.utils.errors import ValidationFailed

CENTS = Decimal("0.01")


def to_decimal(value: Any, *, field: str = "amount") -> Decimal:
    """Coerce ``value`` to a two-place Decimal or raise ``ValidationFailed``."""

    if isinstance(value, Decimal):
        amount = value
    else:
        try:
            # str() avoids binary float artefacts
            amount = Decimal(str(value))
        except (InvalidOperation, ValueError, TypeError) as exc:
            raise ValidationFailed(f"Invalid {field}: {value!r}", details={"field": field}) from exc
    if not amount.is_finite():
        raise ValidationFailed(f"Invalid {field}: {value!r}", details={"field": field})
    return amount.quantize(CENTS)


__all__ = ["CENTS", "to_decimal"]
