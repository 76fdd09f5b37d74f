"""
Currency conversion - Fixed-rate conversion into CNY.

Rates are static; there is no network lookup. A query is a currency query
when it names a currency (ISO code as a whole word, or its symbol) and
contains a digit.
"""

import re
from dataclasses import dataclass
from typing import Optional

BASE_SYMBOL = "¥"


@dataclass(frozen=True)
class Currency:
    symbol: str
    code: str
    rate: float  # units of CNY per one unit of this currency
    name: str


CURRENCIES = (
    Currency("¥", "CNY", 1.0, "人民币"),
    Currency("$", "USD", 7.22, "美元"),
    Currency("€", "EUR", 7.83, "欧元"),
    Currency("£", "GBP", 9.15, "英镑"),
    Currency("¥", "JPY", 0.047, "日元"),
    Currency("₩", "KRW", 0.0053, "韩元"),
    Currency("₽", "RUB", 0.077, "俄罗斯卢布"),
    Currency("₹", "INR", 0.086, "印度卢比"),
    Currency("A$", "AUD", 4.75, "澳元"),
    Currency("C$", "CAD", 5.29, "加元"),
    Currency("HK$", "HKD", 0.92, "港币"),
)

_DIGIT = re.compile(r"\d")
_NUMBER = re.compile(r"\d+(?:,\d{3})*(?:\.\d+)?")


def _code_pattern(code: str) -> re.Pattern:
    return re.compile(rf"(?<![A-Za-z]){code}(?![A-Za-z])", re.IGNORECASE)


_CODE_PATTERNS = [(c, _code_pattern(c.code)) for c in CURRENCIES]


def _symbol_table(currencies) -> list[tuple[str, Currency]]:
    # First currency listed for a symbol owns it, so ¥ is CNY
    owners: dict[str, Currency] = {}
    for currency in currencies:
        owners.setdefault(currency.symbol, currency)
    return sorted(owners.items(), key=lambda kv: len(kv[0]), reverse=True)


_SYMBOLS = _symbol_table(CURRENCIES)


def find_currency(text: str) -> Optional[tuple[Currency, str]]:
    """
    Find the currency named in text.

    Codes win over symbols, and longer symbols over shorter ones, so
    "HK$10" is Hong Kong dollars rather than US dollars.

    Returns:
        (currency, text with the code or symbol removed), or None
    """
    for currency, pattern in _CODE_PATTERNS:
        if pattern.search(text):
            return currency, pattern.sub(" ", text, count=1)

    for symbol, currency in _SYMBOLS:
        if symbol in text:
            return currency, text.replace(symbol, " ", 1)
    return None


def is_currency_query(text: str) -> bool:
    return _DIGIT.search(text) is not None and find_currency(text) is not None


def first_number(text: str) -> Optional[float]:
    """First numeric literal in text ("1,200.5" reads as 1200.5)."""
    match = _NUMBER.search(text)
    if match is None:
        return None
    return float(match.group(0).replace(",", ""))


def format_conversion(currency: Currency, amount: float) -> tuple[str, str]:
    """Render (formula, result), both with exactly two decimals."""
    return (
        f"{currency.symbol}{amount:,.2f}",
        f"{BASE_SYMBOL}{amount * currency.rate:,.2f}",
    )
