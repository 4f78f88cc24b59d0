"""
MoneyMath -- per-line and per-document HT / tax / TTC computation.

Responsibility:
    Validates raw line input and derives the three stored amounts of a line
    item, then sums stored line amounts into document totals.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O, no state.

Invariants enforced:
    - Rounding happens per line, BEFORE summation:
          line_total_ht  = round2(quantity * unit_price)
          line_tax       = round2(line_total_ht * vat_rate / 100)
          line_total_ttc = round2(line_total_ht + line_tax)
      Document totals are the plain sum of the already-rounded line values,
      so line_total_ht + line_tax == line_total_ttc holds to the cent for
      every line and for every document.
    - Decimal only.  Floats are refused at the boundary (to_decimal).

Failure modes:
    - InvalidLineInputError when quantity <= 0, unit_price < 0, vat_rate
      outside [0, 100], a value is not a finite number, a value or a derived
      amount does not fit its stored column (MAX_QUANTITY, MAX_UNIT_PRICE,
      MAX_AMOUNT), or the designation is empty after trimming / longer than
      MAX_DESIGNATION_LENGTH.
    - Arithmetic runs in a local Decimal context wide enough for every
      accepted input, so it never raises decimal.InvalidOperation.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal, localcontext
from typing import Any, Iterable, Protocol

from billing_kernel.db.types import (
    MONEY_PRECISION,
    MONEY_SCALE,
    QUANTITY_PRECISION,
    QUANTITY_SCALE,
    UNIT_PRICE_PRECISION,
    UNIT_PRICE_SCALE,
    VAT_RATE_SCALE,
    column_limit,
    round_money,
    to_decimal,
)
from billing_kernel.exceptions import InvalidLineInputError

MAX_DESIGNATION_LENGTH = 500

_ZERO = Decimal("0")
_HUNDRED = Decimal("100")

# Exclusive magnitude bounds imposed by the stored columns
MAX_QUANTITY = column_limit(QUANTITY_PRECISION, QUANTITY_SCALE)
MAX_UNIT_PRICE = column_limit(UNIT_PRICE_PRECISION, UNIT_PRICE_SCALE)
MAX_AMOUNT = column_limit(MONEY_PRECISION, MONEY_SCALE)

# Wide enough for the exact product of two maximal inputs and a VAT rate
_ARITHMETIC_PRECISION = 60


class HasLineAmounts(Protocol):
    """Anything carrying the three stored amounts of a line."""

    line_total_ht: Decimal
    line_tax: Decimal
    line_total_ttc: Decimal


@dataclass(frozen=True)
class LineInput:
    """A validated line, ready to be priced and persisted."""

    designation: str
    quantity: Decimal
    unit_price: Decimal
    vat_rate: Decimal


@dataclass(frozen=True)
class LineAmounts:
    """Derived, stored amounts of one line (2 decimal places each)."""

    line_total_ht: Decimal
    line_tax: Decimal
    line_total_ttc: Decimal


@dataclass(frozen=True)
class DocumentTotals:
    """Document totals: pointwise sums of the line amounts."""

    sub_total: Decimal
    tax_total: Decimal
    grand_total: Decimal

    @classmethod
    def zero(cls) -> DocumentTotals:
        zero = round_money(_ZERO)
        return cls(sub_total=zero, tax_total=zero, grand_total=zero)


def _number(field: str, value: Any, line_index: int | None) -> Decimal:
    try:
        return to_decimal(value)
    except (TypeError, ValueError) as e:
        raise InvalidLineInputError(field, value, str(e), line_index) from e


def _check_amounts(
    quantity: Decimal,
    unit_price: Decimal,
    vat_rate: Decimal,
    line_index: int | None,
) -> None:
    if quantity <= _ZERO:
        raise InvalidLineInputError("quantity", quantity, "must be > 0", line_index)
    if unit_price < _ZERO:
        raise InvalidLineInputError("unit_price", unit_price, "must be >= 0", line_index)
    if not (_ZERO <= vat_rate <= _HUNDRED):
        raise InvalidLineInputError("vat_rate", vat_rate, "must be within [0, 100]", line_index)


def _check_scale(field: str, value: Decimal, places: int, line_index: int | None) -> None:
    if value.normalize().as_tuple().exponent < -places:
        raise InvalidLineInputError(
            field, value, f"at most {places} decimal places", line_index
        )


def _check_magnitude(field: str, value: Decimal, limit: Decimal, line_index: int | None) -> None:
    if abs(value) >= limit:
        raise InvalidLineInputError(field, value, f"must be less than {limit}", line_index)


def _price(
    quantity: Decimal,
    unit_price: Decimal,
    vat_rate: Decimal,
    line_index: int | None,
) -> LineAmounts:
    with localcontext() as ctx:
        ctx.prec = _ARITHMETIC_PRECISION
        ht = round_money(quantity * unit_price)
        tax = round_money(ht * vat_rate / _HUNDRED)
        ttc = round_money(ht + tax)
    # line_tax <= line_total_ht <= line_total_ttc
    _check_magnitude("line_total_ttc", ttc, MAX_AMOUNT, line_index)
    return LineAmounts(line_total_ht=ht, line_tax=tax, line_total_ttc=ttc)


def validate_line(
    designation: Any,
    quantity: Any,
    unit_price: Any,
    vat_rate: Any,
    line_index: int | None = None,
) -> LineInput:
    """
    Validate and normalize raw line input.

    Numeric inputs may be Decimal, int or numeric str.  The designation is
    trimmed.  ``line_index`` only decorates the error message.

    Raises:
        InvalidLineInputError: on the first invalid field.
    """
    if not isinstance(designation, str) or not designation.strip():
        raise InvalidLineInputError(
            "designation", designation, "must be a non-empty string", line_index
        )
    clean = designation.strip()
    if len(clean) > MAX_DESIGNATION_LENGTH:
        raise InvalidLineInputError(
            "designation",
            f"{clean[:20]}...",
            f"must be at most {MAX_DESIGNATION_LENGTH} characters",
            line_index,
        )

    qty = _number("quantity", quantity, line_index)
    price = _number("unit_price", unit_price, line_index)
    rate = _number("vat_rate", vat_rate, line_index)
    _check_amounts(qty, price, rate, line_index)
    _check_magnitude("quantity", qty, MAX_QUANTITY, line_index)
    _check_magnitude("unit_price", price, MAX_UNIT_PRICE, line_index)
    _check_scale("quantity", qty, QUANTITY_SCALE, line_index)
    _check_scale("unit_price", price, UNIT_PRICE_SCALE, line_index)
    _check_scale("vat_rate", rate, VAT_RATE_SCALE, line_index)
    _price(qty, price, rate, line_index)

    return LineInput(designation=clean, quantity=qty, unit_price=price, vat_rate=rate)


def compute_line(quantity: Any, unit_price: Any, vat_rate: Any) -> LineAmounts:
    """
    Compute the stored amounts of one line.

    Raises:
        InvalidLineInputError: if quantity <= 0, unit_price < 0, vat_rate
            is outside [0, 100], or an input or the derived TTC amount does
            not fit its stored column.
    """
    qty = _number("quantity", quantity, None)
    price = _number("unit_price", unit_price, None)
    rate = _number("vat_rate", vat_rate, None)
    _check_amounts(qty, price, rate, None)
    _check_magnitude("quantity", qty, MAX_QUANTITY, None)
    _check_magnitude("unit_price", price, MAX_UNIT_PRICE, None)
    return _price(qty, price, rate, None)


def sum_lines(lines: Iterable[HasLineAmounts]) -> DocumentTotals:
    """
    Sum already-rounded line amounts into document totals.

    No re-rounding happens beyond presenting each sum with 2 decimals (the
    sum of 2-decimal values is already exact).

    Raises:
        InvalidLineInputError: if the grand total does not fit the stored
            document total column.
    """
    sub = tax = ttc = _ZERO
    with localcontext() as ctx:
        ctx.prec = _ARITHMETIC_PRECISION
        for line in lines:
            sub += line.line_total_ht
            tax += line.line_tax
            ttc += line.line_total_ttc
        totals = DocumentTotals(
            sub_total=round_money(sub),
            tax_total=round_money(tax),
            grand_total=round_money(ttc),
        )
    if totals.grand_total >= MAX_AMOUNT:
        raise InvalidLineInputError(
            "lines", totals.grand_total, f"document total must be less than {MAX_AMOUNT}"
        )
    return totals
