"""
Tests for the calculator source.

Uses real simpleeval (no mocking). Covers arithmetic, currency and
kinship recognition, number formatting, and safety (no access to
builtins/os).
"""

from unittest.mock import patch

import pytest

from quickseek.search import currency, kinship
from quickseek.search.result import ResultType
from quickseek.search.sources.calculator import (
    Calculation,
    CalculatorSource,
    ExpressionEngine,
    evaluate_arithmetic,
    format_number,
    is_arithmetic,
)


@pytest.fixture
def engine():
    return ExpressionEngine()


class TestArithmetic:
    """Test expression evaluation."""

    def test_basic_addition(self, engine):
        assert engine.evaluate("2 + 2") == Calculation("2 + 2", "4")

    def test_operators_are_beautified(self, engine):
        assert engine.evaluate("6*7") == Calculation("6×7", "42")
        assert engine.evaluate("1/3") == Calculation("1÷3", "0.33333333")

    def test_alternate_division_signs(self, engine):
        assert engine.evaluate("9、3").result == "3"
        assert engine.evaluate("9\\3").result == "3"
        assert engine.evaluate("9÷3").result == "3"

    def test_power_and_percent(self, engine):
        assert engine.evaluate("2^10").result == "1024"
        assert engine.evaluate("50%").result == "0.5"

    def test_functions_and_constants(self, engine):
        assert engine.evaluate("sqrt(16)").result == "4"
        assert engine.evaluate("pi * 2").result == "6.28318531"
        assert engine.evaluate("abs(-3)").result == "3"

    def test_round_halves_go_up(self):
        assert evaluate_arithmetic("round(2.5)") == 3
        assert evaluate_arithmetic("round(-2.5)") == -2

    def test_huge_integer_result_does_not_raise(self, engine):
        # Echoed where the interpreter caps int-to-str conversion
        for text in ("10^5000", "2^20000"):
            assert engine.evaluate(text).formula == text

    def test_unprintable_result_is_echoed(self, engine):
        error = ValueError("Exceeds the limit (4300 digits) for integer string conversion")
        with patch("quickseek.search.sources.calculator.format_number", side_effect=error):
            assert engine.evaluate("2+2") == Calculation("2+2", "2+2")

    def test_currency_amount_too_large_is_echoed(self, engine):
        assert engine.evaluate("$10^5000") == Calculation("$10^5000", "$10^5000")

    def test_division_by_zero_is_echoed(self, engine):
        assert engine.evaluate("1/0") == Calculation("1/0", "1/0")

    def test_incomplete_expression_is_echoed(self, engine):
        assert engine.evaluate("2 +") == Calculation("2 +", "2 +")

    def test_plain_text_is_not_a_calculation(self, engine):
        assert engine.evaluate("qqqqq") is None
        assert engine.evaluate("firefox") is None
        assert engine.evaluate("") is None

    def test_bare_number_is_not_a_calculation(self):
        assert is_arithmetic("42") is False


class TestSafety:
    """Evaluation never reaches Python builtins."""

    def test_import_is_rejected(self, engine):
        assert is_arithmetic("__import__('os')") is False
        assert engine.evaluate("__import__('os').system('true')") is None

    def test_unknown_names_are_rejected(self):
        assert is_arithmetic("open(1)") is False
        assert is_arithmetic("2 + x") is False

    def test_evaluator_refuses_attribute_access(self):
        assert evaluate_arithmetic("(1).__class__") is None


class TestFormatNumber:

    def test_integers(self):
        assert format_number(4) == "4"
        assert format_number(10.0) == "10"

    def test_fraction_digits_are_capped(self):
        assert format_number(2 / 3) == "0.66666667"

    def test_trailing_zeros_trimmed(self):
        assert format_number(2.5) == "2.5"

    def test_negative_zero(self):
        assert format_number(-0.0) == "0"
        assert format_number(-1e-12) == "0"


class TestCurrency:
    """Fixed-rate conversion into CNY."""

    def test_dollar_symbol(self, engine):
        assert engine.evaluate("$50") == Calculation("$50.00", "¥361.00")

    def test_longer_symbol_wins(self, engine):
        assert engine.evaluate("HK$10") == Calculation("HK$10.00", "¥9.20")

    def test_code_as_word(self, engine):
        assert engine.evaluate("100 JPY") == Calculation("¥100.00", "¥4.70")
        assert engine.evaluate("5 usd") == Calculation("$5.00", "¥36.10")

    def test_amount_can_be_arithmetic(self, engine):
        assert engine.evaluate("$10+5") == Calculation("$15.00", "¥108.30")

    def test_thousands_separator(self, engine):
        assert engine.evaluate("$1,200") == Calculation("$1,200.00", "¥8,664.00")

    def test_symbol_without_digit_is_not_currency(self):
        assert currency.is_currency_query("$") is False

    def test_code_inside_word_is_ignored(self):
        assert currency.find_currency("busdriver 5") is None

    def test_yen_symbol_is_cny(self):
        found, _ = currency.find_currency("¥20")
        assert found.code == "CNY"


class TestKinship:
    """Relationship chains."""

    def test_paternal_grandfather(self, engine):
        assert engine.evaluate("爸爸的爸爸") == Calculation("爸爸的爸爸", "爷爷")

    def test_maternal_grandfather(self, engine):
        assert engine.evaluate("妈妈的爸爸") == Calculation("妈妈的爸爸", "外公")

    def test_leading_self_is_kept_in_formula(self, engine):
        assert engine.evaluate("我的妈妈的哥哥") == Calculation("我的妈妈的哥哥", "舅舅")
        assert engine.evaluate("我的爸爸") == Calculation("我的爸爸", "爸爸")

    def test_aliases(self, engine):
        assert engine.evaluate("父亲的母亲") == Calculation("爸爸的妈妈", "奶奶")

    def test_spouse_is_not_read_as_son(self, engine):
        assert engine.evaluate("妻子的爸爸") == Calculation("妻子的爸爸", "岳父")

    def test_gap_in_table_is_echoed(self, engine):
        assert engine.evaluate("妻子的儿子") == Calculation("妻子的儿子", "妻子的儿子")

    def test_question_target_has_no_answer(self):
        assert kinship.evaluate("爸爸的叫什么") is None

    def test_normalize(self):
        assert kinship.normalize("老爸") == "爸爸"
        assert kinship.normalize("妻子") == "妻子"
        assert kinship.normalize("叫什么") == ""


class TestCalculatorSource:

    @pytest.mark.asyncio
    async def test_single_result(self):
        source = CalculatorSource()
        [result] = await source.search("2 + 2")

        assert result.type == ResultType.CALCULATOR
        assert result.category == "Calculator"
        assert result.name == "2 + 2"
        assert result.subtitle == "4"
        assert result.formula == "2 + 2"
        assert result.calculation_result == "4"
        assert result.relevance_score == 100

    @pytest.mark.asyncio
    async def test_huge_power_gives_one_result(self):
        [result] = await CalculatorSource().search("10^5000")
        assert result.formula == "10^5000"

    @pytest.mark.asyncio
    async def test_no_result_for_text(self):
        assert await CalculatorSource().search("qqqqq") == []

    def test_registry_attributes(self):
        assert CalculatorSource.name == "calculator"
        assert CalculatorSource.priority == 0
