"""
Module: billing_kernel.db.types
Responsibility: Annotated column types and the money helpers shared by every
    model and service: precision constants, the single sanctioned rounding
    function, strict Decimal coercion, and ISO 4217 currency validation.
Architecture position: Kernel > DB.  May be imported by models/, domain/,
    services/ and selectors/.  MUST NOT import from any of those layers.

Invariants enforced:
    - No floats anywhere.  to_decimal() refuses float input so that a value
      like 0.1 + 0.2 can never leak into an invoice total.
    - round_money() is the ONLY rounding function for currency values
      (ROUND_HALF_UP to MONEY_DECIMAL_PLACES).
    - Currency codes are validated against ISO_4217_CURRENCIES.
"""

from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Annotated, Any

from sqlalchemy import String
from sqlalchemy.orm import mapped_column

from billing_kernel.db.base import ExactDecimal
from billing_kernel.exceptions import InvalidCurrencyError

# Column precision (total digits) and scale (digits after the point)
MONEY_PRECISION, MONEY_SCALE = 18, 2
QUANTITY_PRECISION, QUANTITY_SCALE = 18, 4
UNIT_PRICE_PRECISION, UNIT_PRICE_SCALE = 18, 4
VAT_RATE_PRECISION, VAT_RATE_SCALE = 5, 2

# Stored currency amount (line totals, document totals)
Money = Annotated[Decimal, mapped_column(ExactDecimal(MONEY_PRECISION, MONEY_SCALE))]

# Quantity and unit price keep extra scale; only derived amounts are rounded
Quantity = Annotated[Decimal, mapped_column(ExactDecimal(QUANTITY_PRECISION, QUANTITY_SCALE))]
UnitPrice = Annotated[
    Decimal, mapped_column(ExactDecimal(UNIT_PRICE_PRECISION, UNIT_PRICE_SCALE))
]

# Percentage, 0-100 inclusive
VatRate = Annotated[Decimal, mapped_column(ExactDecimal(VAT_RATE_PRECISION, VAT_RATE_SCALE))]

# ISO 4217 currency code (e.g., "EUR", "USD")
Currency = Annotated[str, mapped_column(String(3))]


MONEY_DECIMAL_PLACES = 2
DEFAULT_ROUNDING = ROUND_HALF_UP


def to_decimal(value: Any) -> Decimal:
    """
    Coerce Decimal, int or numeric str to a finite Decimal.

    Raises:
        TypeError: on float, bool or any other type.
        ValueError: on non-numeric strings and non-finite values.
    """
    if isinstance(value, bool) or isinstance(value, float):
        raise TypeError(f"Refusing {type(value).__name__} for a monetary value: {value!r}")
    if isinstance(value, Decimal):
        result = value
    elif isinstance(value, int):
        result = Decimal(value)
    elif isinstance(value, str):
        try:
            result = Decimal(value.strip())
        except InvalidOperation as e:
            raise ValueError(f"Not a number: {value!r}") from e
    else:
        raise TypeError(f"Unsupported numeric type {type(value).__name__}")
    if not result.is_finite():
        raise ValueError(f"Not a finite number: {value!r}")
    return result


def round_money(
    value: Decimal,
    decimal_places: int = MONEY_DECIMAL_PLACES,
    rounding: str = DEFAULT_ROUNDING,
) -> Decimal:
    """
    Round a monetary value to the given number of decimal places.

    This is the ONLY sanctioned rounding function for currency values.
    """
    quantize_str = "0." + "0" * decimal_places if decimal_places > 0 else "1"
    return value.quantize(Decimal(quantize_str), rounding=rounding)


def column_limit(precision: int, scale: int) -> Decimal:
    """Exclusive upper bound on the magnitude a (precision, scale) column holds."""
    return Decimal(10) ** (precision - scale)


# ISO 4217 Currency Codes
ISO_4217_CURRENCIES: set[str] = {
    # Major currencies
    "USD", "EUR", "GBP", "JPY", "CHF", "CAD", "AUD", "NZD",
    # Other currencies (alphabetical)
    "AED", "AFN", "ALL", "AMD", "ANG", "AOA", "ARS", "AWG", "AZN",
    "BAM", "BBD", "BDT", "BGN", "BHD", "BIF", "BMD", "BND", "BOB", "BOV", "BRL", "BSD", "BTN", "BWP", "BYN", "BZD",
    "CDF", "CHE", "CHW", "CLF", "CLP", "CNY", "COP", "COU", "CRC", "CUC", "CUP", "CVE", "CZK",
    "DJF", "DKK", "DOP", "DZD",
    "EGP", "ERN", "ETB",
    "FJD", "FKP",
    "GEL", "GHS", "GIP", "GMD", "GNF", "GTQ", "GYD",
    "HKD", "HNL", "HRK", "HTG", "HUF",
    "IDR", "ILS", "INR", "IQD", "IRR", "ISK",
    "JMD", "JOD",
    "KES", "KGS", "KHR", "KMF", "KPW", "KRW", "KWD", "KYD", "KZT",
    "LAK", "LBP", "LKR", "LRD", "LSL", "LYD",
    "MAD", "MDL", "MGA", "MKD", "MMK", "MNT", "MOP", "MRU", "MUR", "MVR", "MWK", "MXN", "MXV", "MYR", "MZN",
    "NAD", "NGN", "NIO", "NOK", "NPR",
    "OMR",
    "PAB", "PEN", "PGK", "PHP", "PKR", "PLN", "PYG",
    "QAR",
    "RON", "RSD", "RUB", "RWF",
    "SAR", "SBD", "SCR", "SDG", "SEK", "SGD", "SHP", "SLE", "SLL", "SOS", "SRD", "SSP", "STN", "SVC", "SYP", "SZL",
    "THB", "TJS", "TMT", "TND", "TOP", "TRY", "TTD", "TWD", "TZS",
    "UAH", "UGX", "USN", "UYI", "UYU", "UYW", "UZS",
    "VED", "VES", "VND", "VUV",
    "WST",
    "XAF", "XAG", "XAU", "XBA", "XBB", "XBC", "XBD", "XCD", "XDR", "XOF", "XPD", "XPF", "XPT", "XSU", "XTS", "XUA", "XXX",
    "YER",
    "ZAR", "ZMW", "ZWL",
}


def validate_currency(currency: str) -> str:
    """
    Normalize (trim, uppercase) and validate an ISO 4217 currency code.

    Raises:
        InvalidCurrencyError: If the currency code is not valid.
    """
    if not currency or not isinstance(currency, str):
        raise InvalidCurrencyError(str(currency))

    normalized = currency.strip().upper()
    if len(normalized) != 3 or normalized not in ISO_4217_CURRENCIES:
        raise InvalidCurrencyError(currency)

    return normalized
