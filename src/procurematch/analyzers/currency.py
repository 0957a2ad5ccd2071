"""
Multi-Currency Support — exchange rates and invoice normalisation.

Suppliers may bill in a different currency from the purchase order. Before
matching, the invoice is converted into the PO's currency using the
configured exchange rates so that price and total variances compare like
with like.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from decimal import ROUND_HALF_UP, Decimal

from procurematch.models.documents import Invoice

logger = logging.getLogger("procurematch.analyzers.currency")


# Currency symbols and info
CURRENCY_INFO = {
    "USD": {"symbol": "$", "name": "US Dollar", "decimals": 2},
    "EUR": {"symbol": "€", "name": "Euro", "decimals": 2},
    "GBP": {"symbol": "£", "name": "British Pound", "decimals": 2},
    "LKR": {"symbol": "Rs", "name": "Sri Lankan Rupee", "decimals": 2},
    "INR": {"symbol": "₹", "name": "Indian Rupee", "decimals": 2},
    "AED": {"symbol": "AED", "name": "UAE Dirham", "decimals": 2},
    "SGD": {"symbol": "S$", "name": "Singapore Dollar", "decimals": 2},
    "AUD": {"symbol": "A$", "name": "Australian Dollar", "decimals": 2},
    "JPY": {"symbol": "¥", "name": "Japanese Yen", "decimals": 0},
    "THB": {"symbol": "฿", "name": "Thai Baht", "decimals": 2},
}


@dataclass
class ExchangeRate:
    """An exchange rate between two currencies (1 from = rate to)."""

    from_currency: str
    to_currency: str
    rate: Decimal
    valid_from: date
    valid_to: date | None = None
    is_active: bool = True
    source: str = "manual"

    def is_valid_on(self, on: date) -> bool:
        if not self.is_active or self.valid_from > on:
            return False
        return self.valid_to is None or self.valid_to >= on

    @property
    def inverse(self) -> ExchangeRate:
        """Get inverse rate."""
        return ExchangeRate(
            from_currency=self.to_currency,
            to_currency=self.from_currency,
            rate=Decimal(1) / self.rate if self.rate != 0 else Decimal(0),
            valid_from=self.valid_from,
            valid_to=self.valid_to,
            is_active=self.is_active,
            source=self.source,
        )


@dataclass
class ConversionResult:
    """Result of a currency conversion."""

    original_amount: Decimal
    original_currency: str
    converted_amount: Decimal
    target_currency: str
    exchange_rate: Decimal

    def __str__(self) -> str:
        return (
            f"{format_currency(self.original_amount, self.original_currency)} → "
            f"{format_currency(self.converted_amount, self.target_currency)}"
        )


def quantize(amount: Decimal, currency: str) -> Decimal:
    """Round an amount to the currency's minor unit."""
    decimals = CURRENCY_INFO.get(currency.upper(), {}).get("decimals", 2)
    return amount.quantize(Decimal(1).scaleb(-decimals), rounding=ROUND_HALF_UP)


class CurrencyConverter:
    """
    Convert between currencies with exchange rate management.

    Rates are looked up directly, then through the inverse of the reverse
    pair, then triangulated through the base currency.

    Example usage:
        converter = CurrencyConverter(base_currency="USD")
        converter.add_rate("EUR", "USD", Decimal("1.08"))
        result = converter.convert(Decimal("100"), "EUR", "USD")
        print(f"{result}")  # €100.00 → $108.00
    """

    def __init__(self, base_currency: str = "USD") -> None:
        self.base_currency = base_currency.upper()
        self.rates: dict[tuple[str, str], list[ExchangeRate]] = {}

    def add_rate(
        self,
        from_currency: str,
        to_currency: str,
        rate: Decimal | float | str,
        valid_from: date | None = None,
        valid_to: date | None = None,
        source: str = "manual",
    ) -> ExchangeRate:
        """Add an exchange rate (1 from_currency = rate to_currency)."""
        rate = Decimal(str(rate))
        if rate <= 0:
            raise ValueError(f"Exchange rate must be positive, got {rate}")

        exchange_rate = ExchangeRate(
            from_currency=from_currency.upper(),
            to_currency=to_currency.upper(),
            rate=rate,
            valid_from=valid_from or date.min,
            valid_to=valid_to,
            source=source,
        )
        key = (exchange_rate.from_currency, exchange_rate.to_currency)
        self.rates.setdefault(key, []).append(exchange_rate)
        return exchange_rate

    def _direct(self, from_curr: str, to_curr: str, on: date) -> ExchangeRate | None:
        candidates = [r for r in self.rates.get((from_curr, to_curr), []) if r.is_valid_on(on)]
        if not candidates:
            return None
        # Most recently effective rate wins
        return max(candidates, key=lambda r: r.valid_from)

    def get_rate(
        self,
        from_currency: str,
        to_currency: str,
        on: date | None = None,
    ) -> ExchangeRate | None:
        """Get the exchange rate for a currency pair valid on a date (today if None)."""
        from_curr = from_currency.upper()
        to_curr = to_currency.upper()
        on = on or date.today()

        if from_curr == to_curr:
            return ExchangeRate(from_curr, to_curr, Decimal(1), valid_from=on)

        rate = self._direct(from_curr, to_curr, on)
        if rate:
            return rate

        reverse = self._direct(to_curr, from_curr, on)
        if reverse:
            return reverse.inverse

        return self._triangulate(from_curr, to_curr, on)

    def _triangulate(self, from_curr: str, to_curr: str, on: date) -> ExchangeRate | None:
        """FROM → base → TO, when neither leg is the base currency itself."""
        base = self.base_currency
        if base in (from_curr, to_curr):
            return None

        first = self.get_rate(from_curr, base, on)
        second = self.get_rate(base, to_curr, on) if first else None
        if not first or not second:
            return None

        return ExchangeRate(
            from_currency=from_curr,
            to_currency=to_curr,
            rate=first.rate * second.rate,
            valid_from=max(first.valid_from, second.valid_from),
            source="triangulated",
        )

    def convert(
        self,
        amount: Decimal,
        from_currency: str,
        to_currency: str | None = None,
        on: date | None = None,
    ) -> ConversionResult | None:
        """Convert an amount; None when no rate is known for the pair."""
        from_curr = from_currency.upper()
        to_curr = (to_currency or self.base_currency).upper()

        rate = self.get_rate(from_curr, to_curr, on)
        if rate is None:
            logger.warning("No rate found for %s → %s", from_curr, to_curr)
            return None

        return ConversionResult(
            original_amount=amount,
            original_currency=from_curr,
            converted_amount=quantize(amount * rate.rate, to_curr),
            target_currency=to_curr,
            exchange_rate=rate.rate,
        )

    def convert_invoice(self, invoice: Invoice, to_currency: str) -> tuple[Invoice, Decimal | None]:
        """Express an invoice in another currency.

        Returns the converted copy and the rate applied. When no rate is
        known the invoice is returned unchanged with a rate of None.
        """
        target = to_currency.upper()
        if invoice.currency.upper() == target:
            return invoice, Decimal(1)

        rate = self.get_rate(invoice.currency, target, invoice.invoice_date)
        if rate is None:
            logger.warning(
                "Invoice %s is in %s but no rate to %s is configured; comparing unconverted amounts",
                invoice.display_number,
                invoice.currency,
                target,
            )
            return invoice, None

        items = [
            line.model_copy(update={
                "unit_price": line.unit_price * rate.rate,
                "line_total": quantize(line.line_total * rate.rate, target),
            })
            for line in invoice.items
        ]
        converted = invoice.model_copy(update={
            "items": items,
            "total": quantize(invoice.total * rate.rate, target),
            "currency": target,
        })
        logger.info(
            "Converted invoice %s from %s to %s at %s",
            invoice.display_number,
            invoice.currency,
            target,
            rate.rate,
        )
        return converted, rate.rate


def format_currency(amount: Decimal | float, currency: str = "USD") -> str:
    """Quick currency formatting."""
    info = CURRENCY_INFO.get(currency.upper(), {})
    symbol = info.get("symbol", currency)
    decimals = info.get("decimals", 2)
    return f"{symbol}{amount:,.{decimals}f}"
