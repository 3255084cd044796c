"""Supported currencies and their display symbols."""

from enum import Enum


class Currency(str, Enum):
    """ISO 4217 currencies accepted on orders."""

    AUD = "AUD"
    BRL = "BRL"
    CAD = "CAD"
    CHF = "CHF"
    CNY = "CNY"
    CZK = "CZK"
    DKK = "DKK"
    EUR = "EUR"
    GBP = "GBP"
    INR = "INR"
    JPY = "JPY"
    MXN = "MXN"
    NOK = "NOK"
    NZD = "NZD"
    PLN = "PLN"
    SEK = "SEK"
    USD = "USD"
    ZAR = "ZAR"

    @property
    def symbol(self) -> str:
        """Get the display symbol for the currency."""
        return CURRENCY_SYMBOLS[self]


CURRENCY_SYMBOLS: dict[Currency, str] = {
    Currency.AUD: "$",
    Currency.BRL: "R$",
    Currency.CAD: "$",
    Currency.CHF: "CHF",
    Currency.CNY: "¥",
    Currency.CZK: "Kč",
    Currency.DKK: "kr.",
    Currency.EUR: "€",
    Currency.GBP: "£",
    Currency.INR: "₹",
    Currency.JPY: "¥",
    Currency.MXN: "$",
    Currency.NOK: "kr",
    Currency.NZD: "$",
    Currency.PLN: "zł",
    Currency.SEK: "kr",
    Currency.USD: "$",
    Currency.ZAR: "R",
}


def currency_symbol(code: str) -> str:
    """Get the symbol for a currency code, empty when unknown."""
    try:
        return Currency(code.upper()).symbol
    except ValueError:
        return ""
