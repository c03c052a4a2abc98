from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Any, Generic

from hpthermo.science.numeric import Num

LOGGER = logging.getLogger(__name__)

DEFAULT_MAX_TERMS = 100_000
DEFAULT_MAX_ITERATIONS = 10_000
LN_TOLERANCE_LITERAL = "1e-300"


@dataclass(frozen=True)
class SeriesResult(Generic[Num]):
    """Outcome of a bounded series or iteration.

    ``converged`` is False when the iteration ceiling was reached first; the
    value is then a best-effort approximation.
    """

    value: Num
    converged: bool
    iterations: int


def factorial(n: Num) -> Num:
    """
    Compute n! for a nonnegative integral n of any numeric type.

    Returns 1 for n < 2. Negative input is not rejected and also yields 1.
    """
    one = type(n)(1)
    result = one
    i = one + one
    while i <= n:
        result *= i
        i += one
    return result


def exp_series(x: Num, max_terms: int = DEFAULT_MAX_TERMS) -> SeriesResult[Num]:
    """
    Evaluate e**x by summing x**k / k! until the running sum stops changing.

    Termination uses the number type's own equality, so the result carries
    every digit the current working precision allows. Negative arguments are
    summed at -x and inverted, which keeps every term positive.

    When the terms for -x leave the number type's exponent range, e**x is
    below the smallest representable magnitude and is returned as zero,
    flagged as not converged. A positive x that large raises the number
    type's ArithmeticError (``decimal.Overflow`` for Decimal).
    """
    one = type(x)(1)
    zero = type(x)(0)
    if x < zero:
        try:
            inner = exp_series(-x, max_terms=max_terms)
        except ArithmeticError:
            LOGGER.debug("exp(%s) underflows the exponent range; using 0.", x)
            return SeriesResult(value=zero, converged=False, iterations=0)
        return SeriesResult(value=one / inner.value, converged=inner.converged, iterations=inner.iterations)

    total = one
    previous = zero
    term = one
    k = 0
    while total != previous:
        if k >= max_terms:
            return SeriesResult(value=total, converged=False, iterations=k)
        k += 1
        previous = total
        term = term * x / k
        total = previous + term

    return SeriesResult(value=total, converged=True, iterations=k)


def exp(x: Num, max_terms: int = DEFAULT_MAX_TERMS) -> Num:
    result = exp_series(x, max_terms=max_terms)
    if not result.converged:
        LOGGER.warning("exp(%s) did not converge within %d terms; returning partial sum.", x, max_terms)
    return result.value


def _initial_log_estimate(x: Any) -> Any:
    zero = type(x)(0)
    try:
        estimate = math.log(float(x))
    except (ValueError, OverflowError):
        return zero
    if not math.isfinite(estimate):
        return zero
    return type(x)(repr(estimate))


def ln_newton(
    x: Num,
    tolerance: Num | None = None,
    max_iterations: int = DEFAULT_MAX_ITERATIONS,
    max_terms: int = DEFAULT_MAX_TERMS,
) -> SeriesResult[Num]:
    """
    Natural logarithm by Newton refinement against ``exp_series``.

    Iterates y <- y + 2 (x - e**y) / (x + e**y) until successive iterates
    differ by less than ``tolerance`` (1e-300 by default). Reaching a fixed
    point or a two-cycle also counts as converged: at a finite working
    precision the last digit can flip back and forth forever.

    For x <= 0 the logarithm is undefined and the unconverged initial state
    (zero, no iterations) is returned.
    """
    zero = type(x)(0)
    if not zero < x:
        return SeriesResult(value=zero, converged=False, iterations=0)

    tol = type(x)(LN_TOLERANCE_LITERAL) if tolerance is None else tolerance
    two = type(x)(2)
    y = _initial_log_estimate(x)
    previous = None

    for iteration in range(1, max_iterations + 1):
        ey = exp_series(y, max_terms=max_terms).value
        y_next = y + two * (x - ey) / (x + ey)
        if abs(y_next - y) < tol or y_next == previous:
            return SeriesResult(value=y_next, converged=True, iterations=iteration)
        previous, y = y, y_next

    return SeriesResult(value=y, converged=False, iterations=max_iterations)


def ln(x: Num, tolerance: Num | None = None, max_iterations: int = DEFAULT_MAX_ITERATIONS) -> Num:
    result = ln_newton(x, tolerance=tolerance, max_iterations=max_iterations)
    if not result.converged:
        LOGGER.warning(
            "ln(%s) did not converge after %d iterations; returning last iterate.",
            x,
            result.iterations,
        )
    return result.value


def tetrate(base: Num, hyperpower: int) -> Num:
    """
    Iterated exponentiation (power tower) of ``base`` with height ``hyperpower``.

    Negative hyperpowers take repeated base-th roots instead (only for
    base > 0); every other case, hyperpower 0 included, yields 1.
    """
    one = type(base)(1)
    zero = type(base)(0)
    result = base

    if hyperpower > 0:
        for _ in range(1, hyperpower):
            result = base ** result
    elif hyperpower < 0 and base > zero:
        root = one / base
        for _ in range(1, -hyperpower):
            result = result ** root
    else:
        result = one

    return result
