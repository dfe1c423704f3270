"""
Currency normalization for ledger entries.

Expenses must reach the settlement engine in the trip's base currency. Entries
recorded in the trip's secondary currency are converted with the trip's fixed
exchange rate; other currencies can be converted with live rates.
"""
import asyncio
from datetime import datetime, timedelta
from typing import Dict, Optional

import aiohttp
import numpy as np
import pandas as pd

from .exceptions import ExchangeRateError, LedgerValidationError
from .logging import get_logger

log = get_logger(__name__)


def to_base_amount(
    amount: float,
    currency: str,
    base_currency: str,
    exchange_rate: Optional[float],
    secondary_currency: str = "THB"
) -> float:
    """
    Convert an entered amount into the base currency at the trip rate.

    Args:
        amount: Amount as entered
        currency: Currency the amount was entered in
        base_currency: Trip base currency
        exchange_rate: Base currency units per one secondary currency unit
        secondary_currency: Currency the trip rate applies to

    Returns:
        Amount in the base currency
    """
    currency = currency.upper()
    if currency == base_currency.upper():
        return float(amount)
    if currency == secondary_currency.upper():
        if not exchange_rate or exchange_rate <= 0:
            raise LedgerValidationError(
                f"No exchange rate set for {secondary_currency} -> {base_currency}"
            )
        return float(amount) * exchange_rate
    raise LedgerValidationError(
        f"Cannot convert {currency} to {base_currency} at the trip rate"
    )


class CurrencyConverter:
    """
    Handles currency conversion with real-time exchange rates.

    Uses the free API from exchangerate-api.com and caches rates for an hour.
    """

    API_URL = "https://api.exchangerate-api.com/v4/latest/{base}"
    CACHE_DURATION = timedelta(hours=1)

    def __init__(self, base_currency: str = "VND"):
        self.base_currency = base_currency
        self._rates_cache: Dict[str, float] = {}
        self._cache_timestamp: Optional[datetime] = None

    async def fetch_rates(self) -> Dict[str, float]:
        """
        Fetch current exchange rates from the API.

        Returns:
            Dict mapping currency codes to rates relative to base currency
        """
        url = self.API_URL.format(base=self.base_currency)
        log.debug(f"Fetching exchange rates from {url}")
        try:
            async with aiohttp.ClientSession() as session:
                async with session.get(url) as response:
                    if response.status != 200:
                        raise ExchangeRateError(
                            f"unexpected response for {self.base_currency}",
                            status_code=response.status
                        )
                    data = await response.json()
        except aiohttp.ClientError as e:
            raise ExchangeRateError(f"request for {self.base_currency} failed", original_error=e) from e

        self.set_rates(data.get('rates', {}))
        return self._rates_cache

    def set_rates(self, rates: Dict[str, float]) -> None:
        """Replace the cached rates, e.g. with rates stored alongside a trip."""
        self._rates_cache = dict(rates)
        self._cache_timestamp = datetime.now()

    async def get_rates(self) -> Dict[str, float]:
        """Get exchange rates, using the cache if it is still valid."""
        if self._is_cache_valid():
            return self._rates_cache

        return await self.fetch_rates()

    def _is_cache_valid(self) -> bool:
        if not self._cache_timestamp or not self._rates_cache:
            return False
        return datetime.now() - self._cache_timestamp < self.CACHE_DURATION

    async def convert(
        self,
        amount: float,
        from_currency: str,
        to_currency: str
    ) -> float:
        """
        Convert amount between currencies.

        Args:
            amount: Amount to convert
            from_currency: Source currency code
            to_currency: Target currency code

        Returns:
            Converted amount
        """
        if from_currency == to_currency:
            return amount

        rates = await self.get_rates()

        for code in (from_currency, to_currency):
            if code != self.base_currency and code not in rates:
                raise ExchangeRateError(f"no rate for {code}")

        # Convert to base currency first, then to target
        if from_currency == self.base_currency:
            return float(np.round(amount * rates[to_currency], 2))
        elif to_currency == self.base_currency:
            return float(np.round(amount / rates[from_currency], 2))
        else:
            base_amount = amount / rates[from_currency]
            return float(np.round(base_amount * rates[to_currency], 2))

    def get_rates_dataframe(self) -> pd.DataFrame:
        """Get cached rates as a DataFrame with currency and rate columns."""
        if not self._rates_cache:
            return pd.DataFrame(columns=['currency', 'rate'])

        data = [
            {'currency': code, 'rate': rate}
            for code, rate in self._rates_cache.items()
        ]
        return pd.DataFrame(data)


def run_async(coro):
    """
    Helper to run async functions in sync context.

    Args:
        coro: Coroutine to run

    Returns:
        Result of coroutine
    """
    return asyncio.run(coro)


def normalize_amount(
    amount: float,
    currency: str,
    base_currency: str,
    exchange_rate: Optional[float],
    secondary_currency: str = "THB",
    converter: Optional[CurrencyConverter] = None
) -> float:
    """
    Convert an entered amount into the base currency.

    The base and secondary currencies use the trip rate. Any other currency
    goes through `converter`, which must be set up for the same base currency.

    Returns:
        Amount in the base currency
    """
    code = currency.upper()
    if code in (base_currency.upper(), secondary_currency.upper()) or converter is None:
        return to_base_amount(amount, code, base_currency, exchange_rate, secondary_currency)

    if converter.base_currency.upper() != base_currency.upper():
        raise ExchangeRateError(
            f"converter is based on {converter.base_currency}, trip on {base_currency}"
        )
    return run_async(converter.convert(float(amount), code, converter.base_currency))
