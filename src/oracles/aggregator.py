"""Aggregator price API oracle (prices quoted against USDC)."""
import asyncio
import logging
import re
import ssl
from decimal import Decimal
from typing import Any

import aiohttp
import certifi

from ..config import AggregatorConfig

logger = logging.getLogger(__name__)

_ADDRESS_RE = re.compile(r"^(0x)?([0-9a-fA-F]+)$")


def normalize_type_name(type_name: str) -> str:
    """Zero-pad the address part of a ``0x..::module::Name`` type tag.

    Examples:
        "0x2::sui::SUI" → "0x000…0002::sui::SUI"
    """
    parts = type_name.split("::")
    match = _ADDRESS_RE.match(parts[0])
    if match is None:
        return type_name
    parts[0] = "0x" + match.group(2).lower().rjust(64, "0")
    return "::".join(parts)


class AggregatorOracle:
    """Fetch USD prices from the aggregator price API.

    The quote asset (USDC) is priced at exactly 1 without a request.
    """

    def __init__(self, config: AggregatorConfig) -> None:
        self.base_url = config.base_url.rstrip("/")
        self.quote_asset = config.quote_asset
        self.timeout = config.timeout

    def _is_quote(self, asset_type: str) -> bool:
        return normalize_type_name(asset_type) == normalize_type_name(self.quote_asset)

    async def _fetch_one(
        self, session: aiohttp.ClientSession, asset_type: str
    ) -> Decimal | None:
        url = f"{self.base_url}/price"
        params = {"ids": asset_type, "vsCoin": self.quote_asset}
        try:
            async with session.get(
                url, params=params, timeout=aiohttp.ClientTimeout(total=self.timeout)
            ) as response:
                if response.status != 200:
                    logger.error(
                        "Error fetching price for %s: HTTP %s", asset_type, response.status
                    )
                    return None
                data: dict[str, Any] = await response.json()
        except Exception as e:
            logger.error("Error fetching price for %s: %s", asset_type, e)
            return None

        token_price = data.get(normalize_type_name(asset_type)) or data.get(asset_type)
        if not token_price or not token_price.get("price"):
            logger.warning("No price returned for %s", asset_type)
            return None
        return Decimal(str(token_price["price"]))

    async def fetch_prices(self, asset_types: list[str]) -> dict[str, Decimal]:
        """Fetch prices for ``asset_types``; failures are logged and omitted."""
        prices: dict[str, Decimal] = {}
        to_fetch: list[str] = []
        for asset_type in asset_types:
            if self._is_quote(asset_type):
                prices[asset_type] = Decimal(1)
            else:
                to_fetch.append(asset_type)

        if not to_fetch:
            return prices

        ssl_context = ssl.create_default_context(cafile=certifi.where())
        connector = aiohttp.TCPConnector(ssl=ssl_context)

        async with aiohttp.ClientSession(connector=connector) as session:
            results = await asyncio.gather(
                *(self._fetch_one(session, asset_type) for asset_type in to_fetch)
            )

        for asset_type, price in zip(to_fetch, results):
            if price is not None:
                prices[asset_type] = price

        logger.info("Fetched %d/%d prices from aggregator", len(prices), len(asset_types))
        return prices
