"""Tagged value union for row fields."""

import math
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from enum import Enum
from typing import Any


class ValueKind(Enum):
    """Kind of a single row field."""

    NUMBER = "number"
    BOOLEAN = "boolean"
    TEXT = "text"
    UNSUPPORTED = "unsupported"


@dataclass(frozen=True)
class Value:
    """A single field of a row, tagged with its kind."""

    kind: ValueKind
    raw: Any

    @classmethod
    def of(cls, raw: Any) -> "Value":
        """Classify an arbitrary Python object.

        bool is checked before numbers since it subclasses int.
        """
        if isinstance(raw, Value):
            return raw
        if isinstance(raw, bool):
            return cls(ValueKind.BOOLEAN, raw)
        if isinstance(raw, (int, float, Decimal)):
            return cls(ValueKind.NUMBER, raw)
        if isinstance(raw, str):
            return cls(ValueKind.TEXT, raw)
        return cls(ValueKind.UNSUPPORTED, raw)

    def render(self, precision: int) -> str:
        """Render the value as a CSV field.

        Args:
            precision: Decimal places for floating point numbers.

        Returns:
            Field text; empty for unsupported kinds.
        """
        if self.kind is ValueKind.BOOLEAN:
            return "true" if self.raw else "false"
        if self.kind is ValueKind.NUMBER:
            return _render_number(self.raw, precision)
        if self.kind is ValueKind.TEXT:
            return single_line(self.raw)
        return ""


def _render_number(number: int | float | Decimal, precision: int) -> str:
    if isinstance(number, int):
        return str(number)

    if isinstance(number, float) and not math.isfinite(number):
        return str(number)

    # Round from the shortest repr so 12.345 becomes 12.35, not 12.34
    try:
        exact = Decimal(repr(number)) if isinstance(number, float) else number
        quantum = Decimal(1).scaleb(-max(precision, 0))
        return str(exact.quantize(quantum, rounding=ROUND_HALF_UP))
    except InvalidOperation:
        # Too many digits for the default decimal context
        return str(number)


def single_line(text: str) -> str:
    """Replace line breaks with spaces so a record stays on one line."""
    return text.replace("\r\n", " ").replace("\r", " ").replace("\n", " ")
