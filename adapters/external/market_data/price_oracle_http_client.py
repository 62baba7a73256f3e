import logging
from typing import Optional

import httpx

from core.services.price_oracle import AssetQuote, PriceOracle


class PriceOracleHttpClient(PriceOracle):
    """
    Thin async HTTP client for a market-data quote service.

    Design goals:
      - Small surface area (one quote per asset class).
      - Best-effort: any transport error, non-200 or malformed payload returns None,
        which makes the trading cycle skip that candidate.
      - The path is a template so the upstream can move routes without touching callers.

    Expected payload: {"symbol": "AAPL", "name": "Apple", "price": 178.5}
    """

    def __init__(
        self,
        base_url: str,
        timeout_sec: float = 5.0,
        quote_path_tpl: str = "/api/quotes/{asset_class}",
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self._base_url = (base_url or "").rstrip("/")
        self._timeout = float(timeout_sec)
        self._quote_path_tpl = quote_path_tpl
        self._transport = transport
        self._logger = logging.getLogger(self.__class__.__name__)

    def _url(self, path: str) -> str:
        return f"{self._base_url}{path}"

    async def quote_for_asset_class(self, asset_class: str) -> Optional[AssetQuote]:
        if not self._base_url:
            self._logger.warning("PriceOracleHttpClient base_url is empty; cannot fetch quotes.")
            return None

        url = self._url(self._quote_path_tpl.format(asset_class=asset_class or "stocks"))

        try:
            async with httpx.AsyncClient(timeout=self._timeout, transport=self._transport) as client:
                r = await client.get(url)
                if r.status_code == 200:
                    data = r.json()
                    return AssetQuote(
                        symbol=str(data["symbol"]),
                        name=str(data.get("name") or data["symbol"]),
                        price=float(data["price"]),
                    )
                self._logger.warning("quote non-200 %s: %s %s", url, r.status_code, r.text)
        except (httpx.HTTPError, KeyError, TypeError, ValueError) as exc:
            self._logger.warning("quote error for %s: %s", url, exc)

        return None
