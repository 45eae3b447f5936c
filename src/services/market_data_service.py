"""Price snapshot fetching and normalization for the tracked assets."""

import time
from collections.abc import Mapping
from datetime import datetime, timezone
from typing import Any

import httpx

from src.models.market_data import Token
from src.utils.config import MarketDataConfig, TrackedAsset, config
from src.utils.errors import FetchFailure, MalformedRecord
from src.utils.event_store import FETCH_COMPLETE, EventStore
from src.utils.formatting import format_billions, format_change, format_price, to_billions
from src.utils.logger import StructuredLogger
from src.utils.trace_context import get_current_trace

SUPPORT_MARGIN = 0.98
RESISTANCE_MARGIN = 1.02

PRICE_SOURCE = "CoinGecko"
PRICE_FETCH_ADVISORY = "Failed to fetch cryptocurrency data. Using cached data."


def calculate_support(low_24h: float) -> float:
    return low_24h * SUPPORT_MARGIN


def calculate_resistance(high_24h: float) -> float:
    return high_24h * RESISTANCE_MARGIN


def _required_number(record: Mapping[str, Any], field: str, index: int) -> float:
    value = record.get(field)
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise MalformedRecord(index, field, "is missing or not numeric")
    return float(value)


def _optional_number(record: Mapping[str, Any], field: str) -> float:
    value = record.get(field)
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return 0.0
    return float(value)


def _parse_timestamp(value: Any, default: datetime) -> datetime:
    if isinstance(value, str):
        try:
            parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            return default
        return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)
    return default


def normalize_quote(
    record: Any,
    index: int = 0,
    tracked_assets: Mapping[str, TrackedAsset] | None = None,
    fetched_at: datetime | None = None,
) -> Token:
    """
    Convert one raw CoinGecko market record into a Token.

    Args:
        record: Raw quote object from /coins/markets
        index: Position of the record in its batch, for error reporting
        tracked_assets: Static asset mapping used to resolve display symbols
        fetched_at: Default for a missing or unparsable last_updated

    Returns:
        Token with support/resistance and display strings filled in

    Raises:
        MalformedRecord: If the record is not an object or lacks a required price field
    """
    if not isinstance(record, Mapping):
        raise MalformedRecord(index, "record", "is not an object")

    tracked_assets = tracked_assets if tracked_assets is not None else config.tracked_assets
    fetched_at = fetched_at or datetime.now(timezone.utc)

    asset_id = str(record.get("id") or "")
    tracked = tracked_assets.get(asset_id)
    symbol = tracked.symbol if tracked else str(record.get("symbol") or "").upper()
    if not symbol:
        raise MalformedRecord(index, "symbol", "is missing")

    price = _required_number(record, "current_price", index)
    change_percent = _required_number(record, "price_change_percentage_24h", index)
    high_24h = _required_number(record, "high_24h", index)
    low_24h = _required_number(record, "low_24h", index)
    total_volume = _optional_number(record, "total_volume")
    market_cap = _optional_number(record, "market_cap")

    return Token(
        asset_id=asset_id or symbol.lower(),
        symbol=symbol,
        name=str(record.get("name") or symbol),
        price=price,
        change_percent=change_percent,
        support=calculate_support(low_24h),
        resistance=calculate_resistance(high_24h),
        high_24h=high_24h,
        low_24h=low_24h,
        volume_24h=to_billions(total_volume),
        market_cap=to_billions(market_cap),
        last_updated=_parse_timestamp(record.get("last_updated"), fetched_at),
        price_display=format_price(price),
        change_display=format_change(change_percent),
        volume_display=format_billions(total_volume),
        market_cap_display=format_billions(market_cap),
    )


def placeholder_token(now: datetime | None = None) -> Token:
    """Hardcoded BTC snapshot shown when the very first fetch fails."""
    return Token(
        asset_id="bitcoin",
        symbol="BTC",
        name="Bitcoin",
        price=67234.0,
        change_percent=2.34,
        support=65000.0,
        resistance=69000.0,
        high_24h=68000.0,
        low_24h=65500.0,
        volume_24h=28.5,
        market_cap=1320.0,
        last_updated=now or datetime.now(timezone.utc),
        price_display="$67,234",
        change_display="+2.34%",
        volume_display="$28.5B",
        market_cap_display="$1.32T",
    )


class MarketDataService:
    """Fetches price snapshots and keeps the last-known-good Token set."""

    def __init__(
        self,
        market_config: MarketDataConfig | None = None,
        tracked_assets: Mapping[str, TrackedAsset] | None = None,
        event_store: EventStore | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """
        Initialize the service.

        Args:
            market_config: Price source settings (defaults to global config)
            tracked_assets: Static asset mapping (defaults to global config)
            event_store: Optional event store for fetch events
            transport: Optional httpx transport, used by tests to fake the API
        """
        self.market_config = market_config or config.market
        self.tracked_assets = tracked_assets if tracked_assets is not None else config.tracked_assets
        self.event_store = event_store
        self.transport = transport
        self.logger = StructuredLogger("MarketDataService", config.log_file)
        self.error = ""
        self._tokens: tuple[Token, ...] = ()
        self._fetch_seq = 0
        self._applied_seq = 0

    @property
    def tokens(self) -> tuple[Token, ...]:
        return self._tokens

    def get_tokens(self) -> list[Token]:
        return list(self._tokens)

    async def fetch_quotes(self) -> list[Any]:
        """
        Fetch raw market records for every tracked asset.

        Raises:
            FetchFailure: On network errors, non-200 responses or a non-list payload
        """
        url = f"{self.market_config.base_url}/coins/markets"
        params = {
            "vs_currency": self.market_config.vs_currency,
            "ids": ",".join(self.tracked_assets),
            "order": "market_cap_desc",
            "per_page": self.market_config.per_page,
            "page": 1,
            "sparkline": "false",
            "price_change_percentage": "24h",
        }

        try:
            async with httpx.AsyncClient(
                timeout=self.market_config.request_timeout, transport=self.transport
            ) as client:
                response = await client.get(url, params=params)
        except httpx.HTTPError as e:
            raise FetchFailure(PRICE_SOURCE, f"request failed: {e}") from e

        if response.status_code != 200:
            raise FetchFailure(
                PRICE_SOURCE, f"HTTP error! status: {response.status_code}", response.status_code
            )

        try:
            data = response.json()
        except ValueError as e:
            raise FetchFailure(PRICE_SOURCE, "response is not valid JSON") from e

        if not isinstance(data, list):
            raise FetchFailure(PRICE_SOURCE, "expected a list of quote records")
        return data

    def normalize_batch(self, records: list[Any], fetched_at: datetime) -> list[Token]:
        """
        Normalize a batch record by record.

        A malformed record is replaced by the token currently held for the
        same asset, or dropped when there is none.
        """
        previous = {token.asset_id: token for token in self._tokens}
        tokens = []
        for index, record in enumerate(records):
            try:
                tokens.append(normalize_quote(record, index, self.tracked_assets, fetched_at))
            except MalformedRecord as e:
                asset_id = record.get("id") if isinstance(record, Mapping) else None
                substitute = previous.get(asset_id) if isinstance(asset_id, str) else None
                self.logger.warning(
                    "Skipping malformed quote record",
                    context={
                        "source": PRICE_SOURCE,
                        "index": index,
                        "field": e.field,
                        "asset_id": asset_id,
                        "substituted": substitute is not None,
                    },
                )
                if substitute is not None:
                    tokens.append(substitute)
        return tokens

    async def refresh(self) -> list[Token]:
        """
        Fetch and normalize a new Token set, never raising.

        On failure the previous set is kept (or the placeholder, when nothing
        was ever fetched) and `error` carries the advisory. A result that
        arrives after a newer fetch was applied is discarded.
        """
        self._fetch_seq += 1
        seq = self._fetch_seq
        trace_id = get_current_trace()
        start_time = time.time()

        self.logger.info(
            "Starting price fetch",
            context={"source": PRICE_SOURCE, "assets": list(self.tracked_assets), "seq": seq},
        )

        try:
            records = await self.fetch_quotes()
            tokens = self.normalize_batch(records, datetime.now(timezone.utc))
            if not tokens:
                raise FetchFailure(PRICE_SOURCE, "no usable quote records in response")
        except FetchFailure as e:
            duration_ms = (time.time() - start_time) * 1000
            if seq < self._applied_seq:
                self._record_fetch(trace_id, "superseded", duration_ms, seq=seq)
                return self.get_tokens()

            fallback = not self._tokens
            if fallback:
                self._tokens = (placeholder_token(),)
            self.error = PRICE_FETCH_ADVISORY
            self._applied_seq = seq
            self.logger.error(
                "Error fetching price data",
                context={
                    "source": PRICE_SOURCE,
                    "result": "failed",
                    "status_code": e.status_code,
                    "fallback": fallback,
                },
                exception=e,
            )
            self._record_fetch(trace_id, "failed", duration_ms, fallback=fallback, error=str(e))
            return self.get_tokens()

        duration_ms = (time.time() - start_time) * 1000
        if seq < self._applied_seq:
            self.logger.debug(
                "Discarding superseded price fetch",
                context={"seq": seq, "applied_seq": self._applied_seq},
            )
            self._record_fetch(trace_id, "superseded", duration_ms, seq=seq)
            return self.get_tokens()

        self._tokens = tuple(tokens)
        self._applied_seq = seq
        self.error = ""

        self.logger.info(
            "Successfully fetched price data",
            context={
                "source": PRICE_SOURCE,
                "result": "success",
                "tokens": len(tokens),
                "duration_ms": duration_ms,
            },
        )
        self._record_fetch(trace_id, "success", duration_ms, tokens=len(tokens))
        return self.get_tokens()

    def _record_fetch(
        self, trace_id: str | None, status: str, duration_ms: float, **context: Any
    ) -> None:
        if not self.event_store:
            return
        self.event_store.add_event(
            trace_id=trace_id,
            event_type=FETCH_COMPLETE,
            component="MarketDataService",
            message=f"Price fetch {status}",
            context={"source": "prices", "status": status, **context},
            duration_ms=duration_ms,
        )
