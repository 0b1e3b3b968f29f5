"""
Test suite for currency module

Tests Money arithmetic, rounding to currency precision and currency guards.
All monetary calculations must use Decimal precision.
"""

import pytest
from decimal import Decimal

from lending_core.currency import Money, Currency, sum_money


class TestCurrency:
    """Test Currency lookup"""

    def test_from_code(self):
        """Test case-insensitive lookup by ISO code"""
        assert Currency.from_code("brl") == Currency.BRL
        assert Currency.from_code(" USD ") == Currency.USD
        assert Currency.BRL.precision == 2
        assert Currency.JPY.precision == 0

    def test_unknown_code(self):
        """Test unknown codes are rejected"""
        with pytest.raises(ValueError, match="Unknown currency code"):
            Currency.from_code("XYZ")


class TestMoney:
    """Test Money class operations"""

    def test_money_creation(self):
        """Test Money object creation and rounding"""
        money = Money(Decimal('100.50'), Currency.BRL)
        assert money.amount == Decimal('100.50')
        assert money.currency == Currency.BRL

        assert Money(Decimal('100.555'), Currency.BRL).amount == Decimal('100.56')
        assert Money(Decimal('100.7'), Currency.JPY).amount == Decimal('101')

    def test_non_decimal_amount_is_coerced(self):
        """Test ints and strings become Decimal"""
        assert Money(10, Currency.BRL).amount == Decimal('10.00')
        assert Money('3.333', Currency.BRL).amount == Decimal('3.33')

    def test_money_arithmetic(self):
        """Test Money arithmetic operations"""
        a = Money(Decimal('100.50'), Currency.BRL)
        b = Money(Decimal('50.25'), Currency.BRL)

        assert (a + b).amount == Decimal('150.75')
        assert (a - b).amount == Decimal('50.25')
        assert (a * Decimal('2')).amount == Decimal('201.00')
        assert (a / Decimal('2')).amount == Decimal('50.25')
        assert (-a).amount == Decimal('-100.50')
        assert abs(Money(Decimal('-5'), Currency.BRL)).amount == Decimal('5.00')

    def test_division_rounds_half_up(self):
        """Test division results are quantized to cents"""
        result = Money(Decimal('1000'), Currency.BRL) / Decimal('12')
        assert result.amount == Decimal('83.33')

    def test_currency_mismatch(self):
        """Test operations across currencies are refused"""
        brl = Money(Decimal('10'), Currency.BRL)
        usd = Money(Decimal('10'), Currency.USD)

        with pytest.raises(ValueError, match="Cannot add"):
            brl + usd
        with pytest.raises(ValueError, match="Cannot subtract"):
            brl - usd
        with pytest.raises(ValueError, match="Cannot compare"):
            brl < usd

    def test_money_comparison(self):
        """Test Money comparison operations"""
        a = Money(Decimal('100.00'), Currency.BRL)
        b = Money(Decimal('50.00'), Currency.BRL)

        assert a == Money(Decimal('100'), Currency.BRL)
        assert a != b
        assert b < a
        assert a >= b
        assert a != Money(Decimal('100'), Currency.USD)
        assert a != Decimal('100')

    def test_sign_checks(self):
        """Test zero/positive/negative helpers"""
        assert Money.zero(Currency.BRL).is_zero()
        assert Money(Decimal('0.01'), Currency.BRL).is_positive()
        assert Money(Decimal('-0.01'), Currency.BRL).is_negative()

    def test_hashable(self):
        """Test equal Money values hash equally"""
        values = {Money(Decimal('1'), Currency.BRL), Money(Decimal('1.00'), Currency.BRL)}
        assert len(values) == 1

    def test_to_string(self):
        """Test code + amount rendering"""
        assert Money(Decimal('1234.5'), Currency.BRL).to_string() == "BRL 1,234.50"
        assert Money(Decimal('1500'), Currency.JPY).to_string() == "JPY 1,500"


class TestSumMoney:
    """Test sum_money helper"""

    def test_empty_sum_is_zero(self):
        """Test an empty iterable sums to zero in the given currency"""
        assert sum_money([], Currency.EUR) == Money.zero(Currency.EUR)

    def test_sum(self):
        """Test values are added exactly"""
        values = [Money(Decimal('0.10'), Currency.BRL)] * 3
        assert sum_money(values, Currency.BRL).amount == Decimal('0.30')

    def test_mixed_currency_rejected(self):
        """Test a value in another currency raises"""
        with pytest.raises(ValueError):
            sum_money([Money(Decimal('1'), Currency.USD)], Currency.BRL)
