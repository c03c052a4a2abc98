from __future__ import annotations

import decimal
import math
from contextlib import contextmanager
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Callable, ContextManager, Iterator, Protocol, TypeVar

import mpmath

DEFAULT_BACKEND = "decimal"
DEFAULT_PRECISION = 100  # significant decimal digits
CSV_SIGNIFICANT_DIGITS = 16


class HighPrecisionNumber(Protocol):
    """Capabilities the numeric primitives rely on.

    Any type providing ordering, the four arithmetic operators, negation,
    ``abs``, ``**`` (tetration only) and construction from a literal string
    (``type(x)("1e-300")``) can be used; ``decimal.Decimal`` and ``mpmath.mpf``
    both qualify. Series termination relies on rounding, so exact types such
    as ``fractions.Fraction`` only stop at the term limit.
    """

    def __add__(self, other: Any, /) -> Any: ...
    def __sub__(self, other: Any, /) -> Any: ...
    def __mul__(self, other: Any, /) -> Any: ...
    def __truediv__(self, other: Any, /) -> Any: ...
    def __pow__(self, other: Any, /) -> Any: ...
    def __neg__(self) -> Any: ...
    def __abs__(self) -> Any: ...
    def __lt__(self, other: Any, /) -> bool: ...
    def __le__(self, other: Any, /) -> bool: ...


Num = TypeVar("Num", bound=HighPrecisionNumber)


@dataclass(frozen=True)
class NumericBackend:
    """A named high-precision number type together with its precision control."""

    name: str
    number_type: type
    factory: Callable[[str], Any]
    precision_scope: Callable[[int], ContextManager[Any]]
    formatter: Callable[[Any, int], str]
    finite_check: Callable[[Any], bool]

    def convert(self, value: Any) -> Any:
        """Convert an int, float, string or foreign number into this backend's type.

        Floats go through their shortest ``repr`` so ``0.1`` becomes the
        decimal literal 0.1 rather than its binary expansion.
        """
        if isinstance(value, self.number_type):
            return value
        if isinstance(value, bool):
            raise TypeError("bool is not an accepted numeric value")
        if isinstance(value, float):
            if not math.isfinite(value):
                raise ValueError(f"Cannot convert non-finite float {value!r}.")
            text = repr(value)
        else:
            text = str(value).strip()
        try:
            return self.factory(text)
        except (decimal.InvalidOperation, ValueError) as e:
            raise ValueError(f"Cannot convert {value!r} to a {self.name} number.") from e

    def working_precision(self, digits: int) -> ContextManager[Any]:
        if digits < 1:
            raise ValueError("precision must be >= 1 significant digit.")
        return self.precision_scope(digits)

    def format(self, value: Any, digits: int = CSV_SIGNIFICANT_DIGITS) -> str:
        return self.formatter(value, digits)

    def is_finite(self, value: Any) -> bool:
        return bool(self.finite_check(value))

    def to_float(self, value: Any) -> float:
        return float(value)


@contextmanager
def _decimal_precision(digits: int) -> Iterator[decimal.Context]:
    with decimal.localcontext() as ctx:
        ctx.prec = digits
        yield ctx


def _format_decimal(value: Decimal, digits: int) -> str:
    return format(value, f".{digits}g")


def _format_mpf(value: Any, digits: int) -> str:
    return str(mpmath.nstr(value, digits))


DECIMAL_BACKEND = NumericBackend(
    name="decimal",
    number_type=Decimal,
    factory=Decimal,
    precision_scope=_decimal_precision,
    formatter=_format_decimal,
    finite_check=lambda value: value.is_finite(),
)

MPMATH_BACKEND = NumericBackend(
    name="mpmath",
    number_type=mpmath.mpf,
    factory=mpmath.mpf,
    precision_scope=lambda digits: mpmath.workdps(digits),
    formatter=_format_mpf,
    finite_check=mpmath.isfinite,
)

BACKENDS: dict[str, NumericBackend] = {
    DECIMAL_BACKEND.name: DECIMAL_BACKEND,
    MPMATH_BACKEND.name: MPMATH_BACKEND,
}


def get_backend(name: str | NumericBackend) -> NumericBackend:
    if isinstance(name, NumericBackend):
        return name
    backend = BACKENDS.get(str(name).lower())
    if backend is None:
        supported = ", ".join(sorted(BACKENDS))
        raise ValueError(f"Unknown numeric backend '{name}'. Use one of: {supported}")
    return backend
