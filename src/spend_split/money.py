"""Exact decimal money type.

All ledger arithmetic goes through ``Money`` so that binary floating point
never touches an amount. Halving is exact: half of 0.01 is 0.005 and half of
33.33 is 16.665, rounding only ever happens when formatting for display.
"""

from collections.abc import Iterable
from decimal import ROUND_HALF_UP, Context, Decimal, InvalidOperation
from functools import total_ordering
from typing import Any

from pydantic import GetCoreSchemaHandler
from pydantic_core import core_schema

# Wide enough that sums and halves of any realistic amount stay exact
_CONTEXT = Context(prec=34)
_CENTS = Decimal("0.01")


def _to_decimal(value: Any) -> Decimal:
    """Coerce a supported value to Decimal, refusing floats."""
    if isinstance(value, Money):
        return value.value
    if isinstance(value, bool):
        raise TypeError("Money cannot be built from a bool")
    if isinstance(value, float):
        raise TypeError(
            f"Money cannot be built from float {value!r}; pass a string or Decimal"
        )
    if isinstance(value, Decimal):
        if not value.is_finite():
            raise ValueError(f"Money must be finite, got {value}")
        return value
    if isinstance(value, int):
        return Decimal(value)
    if isinstance(value, str):
        try:
            parsed = Decimal(value.strip())
        except InvalidOperation as e:
            raise ValueError(f"Invalid money amount: {value!r}") from e
        if not parsed.is_finite():
            raise ValueError(f"Money must be finite, got {value!r}")
        return parsed
    raise TypeError(f"Unsupported money value: {type(value).__name__}")


@total_ordering
class Money:
    """An immutable, exact decimal amount."""

    __slots__ = ("_value",)

    def __init__(self, value: "Money | Decimal | int | str" = 0):
        object.__setattr__(self, "_value", _to_decimal(value))

    def __setattr__(self, name: str, value: Any) -> None:
        raise AttributeError("Money is immutable")

    def __reduce__(self):
        return (Money, (str(self),))

    def __copy__(self) -> "Money":
        return self

    def __deepcopy__(self, memo: dict) -> "Money":
        return self

    @classmethod
    def zero(cls) -> "Money":
        return cls(0)

    @classmethod
    def total(cls, amounts: Iterable["Money"]) -> "Money":
        """Sum an iterable of Money values (empty sums to zero)."""
        result = _CONTEXT.create_decimal(0)
        for amount in amounts:
            result = _CONTEXT.add(result, _to_decimal(amount))
        return cls(result)

    @property
    def value(self) -> Decimal:
        return self._value

    # ------------------------------------------------------------------
    # Arithmetic
    # ------------------------------------------------------------------

    def __add__(self, other: Any) -> "Money":
        try:
            other_value = _to_decimal(other)
        except TypeError:
            return NotImplemented
        return Money(_CONTEXT.add(self._value, other_value))

    def __radd__(self, other: Any) -> "Money":
        # Lets the builtin sum() start from 0
        return self.__add__(other)

    def __sub__(self, other: Any) -> "Money":
        try:
            other_value = _to_decimal(other)
        except TypeError:
            return NotImplemented
        return Money(_CONTEXT.subtract(self._value, other_value))

    def __rsub__(self, other: Any) -> "Money":
        try:
            other_value = _to_decimal(other)
        except TypeError:
            return NotImplemented
        return Money(_CONTEXT.subtract(other_value, self._value))

    def __neg__(self) -> "Money":
        return Money(_CONTEXT.minus(self._value))

    def __abs__(self) -> "Money":
        return Money(_CONTEXT.abs(self._value))

    def half(self) -> "Money":
        """Return exactly half of this amount."""
        return Money(_CONTEXT.divide(self._value, Decimal(2)))

    # ------------------------------------------------------------------
    # Sign tests
    # ------------------------------------------------------------------

    @property
    def sign(self) -> int:
        """-1, 0 or 1 depending on the sign of the amount."""
        if self._value > 0:
            return 1
        if self._value < 0:
            return -1
        return 0

    @property
    def is_zero(self) -> bool:
        return self._value == 0

    @property
    def is_positive(self) -> bool:
        return self._value > 0

    @property
    def is_negative(self) -> bool:
        return self._value < 0

    def __bool__(self) -> bool:
        return not self.is_zero

    # ------------------------------------------------------------------
    # Comparison
    # ------------------------------------------------------------------

    def __eq__(self, other: object) -> bool:
        try:
            other_value = _to_decimal(other)
        except (TypeError, ValueError):
            return NotImplemented
        return self._value == other_value

    def __lt__(self, other: Any) -> bool:
        try:
            other_value = _to_decimal(other)
        except (TypeError, ValueError):
            return NotImplemented
        return self._value < other_value

    def __hash__(self) -> int:
        return hash(self._value)

    # ------------------------------------------------------------------
    # Display
    # ------------------------------------------------------------------

    def quantize_cents(self) -> Decimal:
        """Round to cents for display (ROUND_HALF_UP)."""
        return self._value.quantize(_CENTS, rounding=ROUND_HALF_UP)

    def __str__(self) -> str:
        return format(self._value, "f")

    def __repr__(self) -> str:
        return f"Money('{self}')"

    def __format__(self, format_spec: str) -> str:
        if not format_spec:
            return str(self)
        return format(self._value, format_spec)

    # ------------------------------------------------------------------
    # Pydantic integration
    # ------------------------------------------------------------------

    @classmethod
    def __get_pydantic_core_schema__(
        cls, source_type: Any, handler: GetCoreSchemaHandler
    ) -> core_schema.CoreSchema:
        return core_schema.no_info_plain_validator_function(
            cls._validate,
            serialization=core_schema.plain_serializer_function_ser_schema(str),
        )

    @classmethod
    def _validate(cls, value: Any) -> "Money":
        if isinstance(value, Money):
            return value
        try:
            return cls(value)
        except TypeError as e:
            # pydantic only wraps ValueError/AssertionError into ValidationError
            raise ValueError(str(e)) from e
