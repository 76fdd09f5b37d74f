"""
Calculator Source - Inline arithmetic, currency and kinship answers.

Every query is offered to three recognizers in order: currency
conversion, kinship chains, then arithmetic. The first one that produces
a value wins. Input that looks like a calculation but yields nothing is
echoed back unchanged; anything else produces no result at all.

Arithmetic goes through simpleeval (no access to builtins, filesystem,
or imports).
"""

import math
import re
from typing import NamedTuple, Optional

from loguru import logger
from simpleeval import InvalidExpression, simple_eval

from quickseek.search import currency, kinship
from quickseek.search.result import CATEGORY_CALCULATOR, ResultType, SearchResult
from quickseek.search.router import SearchSource, SourceMode

CALCULATOR_ICON = "accessories-calculator"
MAX_FRACTION_DIGITS = 8


def _js_round(x):
    return math.floor(x + 0.5)


FUNCTIONS = {
    "sin": math.sin,
    "cos": math.cos,
    "tan": math.tan,
    "asin": math.asin,
    "acos": math.acos,
    "atan": math.atan,
    "sqrt": math.sqrt,
    "pow": math.pow,
    "log": math.log,
    "log10": math.log10,
    "exp": math.exp,
    "abs": abs,
    "round": _js_round,
    "floor": math.floor,
    "ceil": math.ceil,
}

NAMES = {
    "pi": math.pi,
    "e": math.e,
    "PI": math.pi,
    "E": math.e,
}

OPERATORS = "+-*/、\\^%×÷"
_IDENTIFIER = re.compile(r"[A-Za-z_][A-Za-z0-9_]*")
_ALLOWED = set("0123456789.,() \t" + OPERATORS)


class Calculation(NamedTuple):
    formula: str
    result: str


def format_number(value) -> str:
    """Up to eight fractional digits, trailing zeros trimmed."""
    if isinstance(value, int):
        return str(value)
    text = f"{value:.{MAX_FRACTION_DIGITS}f}".rstrip("0").rstrip(".")
    return "0" if text == "-0" else text


def beautify(expression: str) -> str:
    return (
        expression.replace("*", "×")
        .replace("/", "÷")
        .replace("、", "÷")
        .replace("\\", "÷")
    )


def to_python(formula: str) -> str:
    return (
        formula.replace("×", "*")
        .replace("÷", "/")
        .replace("^", "**")
        .replace("%", "/100")
    )


def is_arithmetic(text: str) -> bool:
    """
    True if text is made only of numbers, operators and known names,
    and has something to compute.
    """
    identifiers = _IDENTIFIER.findall(text)
    if any(i not in FUNCTIONS and i not in NAMES for i in identifiers):
        return False

    remainder = _IDENTIFIER.sub("", text)
    if not remainder.strip() and not identifiers:
        return False
    if any(c not in _ALLOWED for c in remainder):
        return False

    has_operand = any(c.isdigit() for c in remainder) or any(i in NAMES for i in identifiers)
    has_operation = any(c in OPERATORS for c in remainder) or any(i in FUNCTIONS for i in identifiers)
    return has_operand and has_operation


def evaluate_arithmetic(expression: str) -> Optional[float]:
    """Evaluate an expression; None if it is invalid or not a finite number."""
    try:
        value = simple_eval(to_python(beautify(expression)), functions=FUNCTIONS, names=NAMES)
    except InvalidExpression:
        return None
    except (SyntaxError, TypeError, ValueError, ZeroDivisionError, OverflowError):
        return None
    except Exception as e:
        logger.warning(f"Unexpected calculator error for '{expression}': {e}")
        return None

    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    if isinstance(value, float) and not math.isfinite(value):
        return None
    return value


class ExpressionEngine:
    """Recognize and evaluate compute queries."""

    def is_calculation(self, text: str) -> bool:
        return (
            currency.is_currency_query(text)
            or kinship.is_kinship_query(text)
            or is_arithmetic(text)
        )

    def evaluate(self, text: str) -> Optional[Calculation]:
        """
        Evaluate text.

        Returns:
            Calculation(formula, result), or None when text is not a
            calculation at all
        """
        text = text.strip()
        if not text or not self.is_calculation(text):
            return None

        for recognizer in (self._currency, self._kinship, self._arithmetic):
            calculation = recognizer(text)
            if calculation is not None:
                return calculation

        return Calculation(text, text)

    def _currency(self, text: str) -> Optional[Calculation]:
        if not currency.is_currency_query(text):
            return None
        found = currency.find_currency(text)
        if found is None:
            return None
        matched, remainder = found
        remainder = remainder.strip()

        amount = None
        if is_arithmetic(remainder):
            amount = evaluate_arithmetic(remainder)
        if amount is None:
            amount = currency.first_number(remainder)
        if amount is None:
            return None

        try:
            amount = float(amount)
        except OverflowError:
            return None
        return Calculation(*currency.format_conversion(matched, amount))

    def _kinship(self, text: str) -> Optional[Calculation]:
        if not kinship.is_kinship_query(text):
            return None
        answer = kinship.evaluate(text)
        if answer is None:
            return None
        return Calculation(*answer)

    def _arithmetic(self, text: str) -> Optional[Calculation]:
        if not is_arithmetic(text):
            return None
        value = evaluate_arithmetic(text)
        if value is None:
            return None
        try:
            result = format_number(value)
        except ValueError:
            # Integer too long to render as a string
            logger.debug(f"Result of {text!r} is too large to display")
            return None
        return Calculation(beautify(text), result)


class CalculatorSource(SearchSource):
    """Produce at most one calculator result per query."""

    name = "calculator"
    priority = 0
    mode = SourceMode.AUTOMATIC

    def __init__(self, engine: Optional[ExpressionEngine] = None, mode: Optional[SourceMode] = None):
        self.engine = engine or ExpressionEngine()
        if mode is not None:
            self.mode = SourceMode(mode)

    async def search(self, query: str) -> list[SearchResult]:
        calculation = self.engine.evaluate(query)
        if calculation is None:
            return []

        return [SearchResult(
            name=calculation.formula,
            type=ResultType.CALCULATOR,
            category=CATEGORY_CALCULATOR,
            icon=CALCULATOR_ICON,
            subtitle=calculation.result,
            relevance_score=100,
            formula=calculation.formula,
            calculation_result=calculation.result,
        )]
