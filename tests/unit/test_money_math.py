"""
Tests for per-line and per-document money math.

Covers:
- The three stored amounts of a line, ROUND_HALF_UP per line
- Rounding before summation
- Input validation (ranges, floats, non-numbers, scale, designation)
- Property: HT + tax == TTC for every valid line; totals are pointwise sums
"""

from decimal import Decimal

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from billing_kernel.domain.money_math import (
    MAX_DESIGNATION_LENGTH,
    DocumentTotals,
    LineAmounts,
    compute_line,
    sum_lines,
    validate_line,
)
from billing_kernel.exceptions import InvalidLineInputError


class TestComputeLine:
    """Stored amounts of a single line."""

    def test_reference_example(self):
        amounts = compute_line(Decimal("2"), Decimal("100.00"), Decimal("20"))

        assert amounts == LineAmounts(
            line_total_ht=Decimal("200.00"),
            line_tax=Decimal("40.00"),
            line_total_ttc=Decimal("240.00"),
        )

    def test_ht_rounded_half_up(self):
        amounts = compute_line("1", "0.125", "0")

        assert amounts.line_total_ht == Decimal("0.13")
        assert amounts.line_tax == Decimal("0.00")
        assert amounts.line_total_ttc == Decimal("0.13")

    def test_tax_computed_from_rounded_ht(self):
        # 3 x 33.333 = 99.999 -> 100.00, tax on 100.00 not on 99.999
        amounts = compute_line("3", "33.333", "20")

        assert amounts.line_total_ht == Decimal("100.00")
        assert amounts.line_tax == Decimal("20.00")
        assert amounts.line_total_ttc == Decimal("120.00")

    def test_fractional_vat_rate(self):
        # 10.05 * 5.5% = 0.55275 -> 0.55
        amounts = compute_line("1", "10.05", "5.5")

        assert amounts.line_tax == Decimal("0.55")
        assert amounts.line_total_ttc == Decimal("10.60")

    def test_amounts_have_two_decimal_places(self):
        amounts = compute_line(3, 7, 0)

        for value in (amounts.line_total_ht, amounts.line_tax, amounts.line_total_ttc):
            assert value.as_tuple().exponent == -2

    def test_zero_unit_price_allowed(self):
        amounts = compute_line("5", "0", "20")

        assert amounts.line_total_ttc == Decimal("0.00")

    @pytest.mark.parametrize("vat_rate", ["0", "100"])
    def test_vat_rate_bounds_inclusive(self, vat_rate):
        amounts = compute_line("1", "10", vat_rate)

        assert amounts.line_tax == Decimal("10") * Decimal(vat_rate) / Decimal("100")

    @pytest.mark.parametrize(
        "quantity, unit_price, vat_rate, field",
        [
            ("0", "10", "20", "quantity"),
            ("-1", "10", "20", "quantity"),
            ("1", "-0.01", "20", "unit_price"),
            ("1", "10", "-0.01", "vat_rate"),
            ("1", "10", "100.01", "vat_rate"),
        ],
    )
    def test_out_of_range_rejected(self, quantity, unit_price, vat_rate, field):
        with pytest.raises(InvalidLineInputError) as exc_info:
            compute_line(quantity, unit_price, vat_rate)

        assert exc_info.value.field == field

    def test_float_rejected(self):
        with pytest.raises(InvalidLineInputError) as exc_info:
            compute_line(1.5, "10", "20")

        assert exc_info.value.field == "quantity"

    @pytest.mark.parametrize("bad", ["abc", "", "NaN", "Infinity", None])
    def test_non_numbers_rejected(self, bad):
        with pytest.raises(InvalidLineInputError):
            compute_line("1", bad, "20")


class TestSumLines:
    """Document totals."""

    def test_empty_is_zero(self):
        assert sum_lines([]) == DocumentTotals.zero()

    def test_rounds_per_line_before_summing(self):
        # Each 0.005 line rounds up to 0.01; rounding the sum would give 0.01
        lines = [compute_line("1", "0.005", "0"), compute_line("1", "0.005", "0")]

        totals = sum_lines(lines)

        assert totals.sub_total == Decimal("0.02")

    def test_totals_are_pointwise_sums(self):
        lines = [
            compute_line("2", "100.00", "20"),
            compute_line("3", "19.99", "5.5"),
            compute_line("1", "0.10", "10"),
        ]

        totals = sum_lines(lines)

        assert totals.sub_total == sum(l.line_total_ht for l in lines)
        assert totals.tax_total == sum(l.line_tax for l in lines)
        assert totals.grand_total == sum(l.line_total_ttc for l in lines)
        assert totals.sub_total + totals.tax_total == totals.grand_total


class TestValidateLine:
    """Raw input validation."""

    def test_trims_designation_and_parses_numbers(self):
        line = validate_line("  Consulting  ", "2", "100.00", 20)

        assert line.designation == "Consulting"
        assert line.quantity == Decimal("2")
        assert line.unit_price == Decimal("100.00")
        assert line.vat_rate == Decimal("20")

    @pytest.mark.parametrize("designation", ["", "   ", None, 42])
    def test_blank_designation_rejected(self, designation):
        with pytest.raises(InvalidLineInputError) as exc_info:
            validate_line(designation, "1", "1", "0")

        assert exc_info.value.field == "designation"

    def test_designation_length_limit(self):
        validate_line("x" * MAX_DESIGNATION_LENGTH, "1", "1", "0")

        with pytest.raises(InvalidLineInputError):
            validate_line("x" * (MAX_DESIGNATION_LENGTH + 1), "1", "1", "0")

    def test_excess_scale_rejected(self):
        validate_line("Widget", "1.2500", "9.9999", "5.50")

        with pytest.raises(InvalidLineInputError) as exc_info:
            validate_line("Widget", "1", "9.99999", "5")
        assert exc_info.value.field == "unit_price"

        with pytest.raises(InvalidLineInputError) as exc_info:
            validate_line("Widget", "1", "9.99", "5.555")
        assert exc_info.value.field == "vat_rate"

    def test_error_carries_line_index(self):
        with pytest.raises(InvalidLineInputError) as exc_info:
            validate_line("Widget", "0", "1", "0", line_index=3)

        assert exc_info.value.line_index == 3
        assert exc_info.value.to_dict()["code"] == "INVALID_LINE_INPUT"


class TestColumnLimits:
    """Inputs and derived amounts must fit NUMERIC(18, 4) / NUMERIC(18, 2)."""

    def test_largest_quantity_accepted(self):
        line = validate_line("Bulk", "99999999999999.9999", "0", "0")

        assert line.quantity == Decimal("99999999999999.9999")

    @pytest.mark.parametrize(
        "quantity, unit_price, field",
        [
            ("100000000000000", "1", "quantity"),
            ("1", "100000000000000", "unit_price"),
        ],
    )
    def test_inputs_beyond_column_rejected(self, quantity, unit_price, field):
        with pytest.raises(InvalidLineInputError) as exc_info:
            validate_line("Bulk", quantity, unit_price, "0")

        assert exc_info.value.field == field

    def test_huge_product_is_a_line_error(self):
        # Both inputs fit their columns; the product overflows NUMERIC(18, 2)
        with pytest.raises(InvalidLineInputError) as exc_info:
            validate_line("Bulk", "10000000000000", "10000000000000", "20", line_index=0)
        assert exc_info.value.field == "line_total_ttc"

        with pytest.raises(InvalidLineInputError):
            compute_line("10000000000000", "10000000000000", "20")

    def test_ttc_just_below_limit(self):
        amounts = compute_line("100", "83333333333333.33", "20")

        assert amounts.line_total_ht == Decimal("8333333333333333.00")
        assert amounts.line_tax == Decimal("1666666666666666.60")
        assert amounts.line_total_ttc == Decimal("9999999999999999.60")

        with pytest.raises(InvalidLineInputError):
            compute_line("100", "83333333333333.33", "20.01")

    def test_document_total_beyond_column_rejected(self):
        line = compute_line("100", "83333333333333.33", "20")

        with pytest.raises(InvalidLineInputError) as exc_info:
            sum_lines([line, line])

        assert exc_info.value.field == "lines"


quantities = st.decimals(min_value="0.0001", max_value="100000", places=4)
unit_prices = st.decimals(min_value="0", max_value="1000000", places=4)
vat_rates = st.decimals(min_value="0", max_value="100", places=2)


class TestMoneyProperties:
    """Properties that must hold for every valid input."""

    @given(quantity=quantities, unit_price=unit_prices, vat_rate=vat_rates)
    @settings(max_examples=300)
    def test_ht_plus_tax_equals_ttc(self, quantity, unit_price, vat_rate):
        amounts = compute_line(quantity, unit_price, vat_rate)

        assert amounts.line_total_ht + amounts.line_tax == amounts.line_total_ttc
        assert amounts.line_total_ht >= 0
        assert amounts.line_tax >= 0

    @given(
        st.lists(
            st.tuples(quantities, unit_prices, vat_rates),
            min_size=0,
            max_size=20,
        )
    )
    @settings(max_examples=100)
    def test_document_totals_balance(self, raw_lines):
        lines = [compute_line(q, p, r) for q, p, r in raw_lines]

        totals = sum_lines(lines)

        assert totals.sub_total == sum((l.line_total_ht for l in lines), Decimal("0"))
        assert totals.tax_total == sum((l.line_tax for l in lines), Decimal("0"))
        assert totals.grand_total == sum((l.line_total_ttc for l in lines), Decimal("0"))
        assert totals.sub_total + totals.tax_total == totals.grand_total
