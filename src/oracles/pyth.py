"""Pyth Network price oracle service."""
import logging
import ssl
from decimal import Decimal

import aiohttp
import certifi

from ..config import PythConfig

logger = logging.getLogger(__name__)


class PythOracle:
    """Fetch prices from Pyth Network Hermes, keyed by asset type name."""

    def __init__(self, config: PythConfig) -> None:
        self.hermes_url = config.hermes_url
        self.price_feeds = dict(config.feeds)

    async def fetch_prices(self, asset_types: list[str]) -> dict[str, Decimal]:
        """Fetch current prices for the given asset types.

        Asset types without a configured feed are skipped and logged. Feed
        errors are logged and yield no price; callers decide whether a
        missing price is fatal.
        """
        prices: dict[str, Decimal] = {}

        feeds = {k: v for k, v in self.price_feeds.items() if k in asset_types}
        for asset_type in asset_types:
            if asset_type not in feeds:
                logger.warning("No Pyth feed configured for %s", asset_type)

        feed_ids = sorted(set(feeds.values()))
        if not feed_ids:
            return prices

        query_params = "&".join([f"ids[]={fid}" for fid in feed_ids])
        url = f"{self.hermes_url}?{query_params}"

        ssl_context = ssl.create_default_context(cafile=certifi.where())
        connector = aiohttp.TCPConnector(ssl=ssl_context)

        try:
            async with aiohttp.ClientSession(connector=connector) as session:
                async with session.get(url) as response:
                    if response.status != 200:
                        logger.error(
                            "Error fetching prices from Pyth: HTTP %s", response.status
                        )
                        return prices

                    data = await response.json()
                    parsed = data.get("parsed", [])

                    # Reverse mapping from feed ID to asset types
                    id_to_assets: dict[str, list[str]] = {}
                    for asset_type, feed_id in feeds.items():
                        id_to_assets.setdefault(feed_id, []).append(asset_type)

                    for item in parsed:
                        feed_id = item.get("id")
                        price_data = item.get("price", {})
                        price_raw = int(price_data.get("price", 0))
                        expo = int(price_data.get("expo", 0))

                        price = Decimal(price_raw).scaleb(expo)
                        if price <= 0:
                            logger.warning("Ignoring non-positive Pyth price for feed %s", feed_id)
                            continue

                        for asset_type in id_to_assets.get(feed_id, []):
                            prices[asset_type] = price

                    logger.info("Fetched %d prices from Pyth Network", len(prices))
                    for asset_type, price in sorted(prices.items()):
                        logger.debug("  %s: $%s", asset_type, price)

        except Exception as e:
            logger.error("Error fetching prices from Pyth: %s", e)

        return prices
