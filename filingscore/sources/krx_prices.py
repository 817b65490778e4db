"""KRX daily price sources.

Three interchangeable sources deliver every listed ticker's close for one
trading date:

- ``KrxApiPriceSource``: KRX OpenAPI JSON (``OutBlock_1`` rows, ``AUTH_KEY``
  header, ``basDd`` date parameter).
- ``KrxPublicPriceSource``: the public data portal's two-step download. A
  form POST returns a one-time password (OTP), which is then exchanged for a
  CSV file in EUC-KR.
- ``MockPriceSource``: deterministic prices derived from the ticker, for
  local development only.

``build_price_source`` picks one from settings.
"""

from __future__ import annotations

import asyncio
import csv
import io
import re
from collections.abc import Sequence
from datetime import date
from typing import Any, Protocol
from urllib.parse import parse_qsl, urlsplit

import httpx
import pandas as pd

from filingscore.core.config import Settings
from filingscore.core.data_helpers import parse_number, parse_trade_date, safe_int
from filingscore.core.exceptions import ConfigurationError, SourceError
from filingscore.core.logging import get_logger
from filingscore.domain import PriceRow
from filingscore.repositories.base import CompanyRepository


logger = get_logger("sources.krx_prices")

USER_AGENT = "filingscore/1.0"
DEFAULT_REFERER = "https://data.krx.co.kr/contents/MDC/MDI/mdiLoader"
DOWNLOAD_PATH = "/comm/fileDn/download_csv/download.cmd"

# Header row is searched for within the first rows of the CSV
HEADER_SEARCH_ROWS = 10

HEADER_ALIASES: dict[str, tuple[str, ...]] = {
    "ticker": ("종목코드", "단축코드", "코드", "isusrtcd", "isucd", "표준코드"),
    "company_name": ("종목명", "종목", "isunm", "isu_nm"),
    "trade_date": ("일자", "거래일", "trddd", "trdd", "기준일"),
    "open": ("시가", "시가원", "opnprc", "tddopnprc"),
    "high": ("고가", "고가원", "hgprc", "tddhgprc"),
    "low": ("저가", "저가원", "lwprc", "tddlwprc"),
    "close": ("종가", "현재가", "clsprc", "tddclsprc"),
    "volume": ("거래량", "거래량주", "acc_trdvol"),
    "market_cap": ("시가총액", "시가총액원", "mktcap", "mkcap"),
}


class PriceSource(Protocol):
    async def fetch_daily_prices(self, trade_date: date) -> list[PriceRow]: ...


def _compact(trade_date: date) -> str:
    return trade_date.strftime("%Y%m%d")


def with_date(url: str, trade_date: date, param: str | None = None) -> str:
    """Substitute ``{date}`` in the URL, or append ``param=YYYYMMDD``."""
    if "{date}" in url:
        return url.replace("{date}", _compact(trade_date))
    if param is None:
        return url
    separator = "&" if "?" in url else "?"
    return f"{url}{separator}{param}={_compact(trade_date)}"


def normalize_header(value: Any) -> str:
    text = str(value).replace("\ufeff", "")
    text = re.sub(r"\s+", "", text)
    text = re.sub(r"[()]", "", text)
    text = re.sub(r"[^\w가-힣]", "", text)
    return text.lower()


def build_header_index(headers: Sequence[Any]) -> dict[str, int]:
    """Column position for each known field, matched by alias."""
    normalized = [normalize_header(h) for h in headers]
    index: dict[str, int] = {}
    for field, aliases in HEADER_ALIASES.items():
        for alias in aliases:
            target = normalize_header(alias)
            if target in normalized:
                index[field] = normalized.index(target)
                break
    return index


def decode_krx_csv(payload: bytes) -> str:
    """KRX serves EUC-KR; fall back to UTF-8 for mirrors that re-encode."""
    try:
        return payload.decode("euc-kr")
    except UnicodeDecodeError:
        return payload.decode("utf-8", errors="replace")


def parse_price_csv(text: str, trade_date: date, market: str | None = None) -> list[PriceRow]:
    """Parse a KRX price CSV into rows, dropping rows without a close.

    Downloads may carry title lines above the header, so rows are tokenised
    first and the header is located by alias before framing the data.
    """
    records = [
        r for r in csv.reader(io.StringIO(text.lstrip("\ufeff"))) if any(c.strip() for c in r)
    ]
    header_row = None
    header_index: dict[str, int] = {}
    for i, record in enumerate(records[:HEADER_SEARCH_ROWS]):
        candidate = build_header_index(record)
        if "ticker" in candidate and "close" in candidate:
            header_row, header_index = i, candidate
            break
    if header_row is None:
        if records:
            logger.warning("KRX CSV has no recognisable header row")
        return []

    width = len(records[header_row])
    body = [(r + [""] * width)[:width] for r in records[header_row + 1:]]
    if not body:
        return []
    frame = pd.DataFrame(body, dtype=str).rename(
        columns={pos: field for field, pos in header_index.items()}
    )[list(header_index)]
    frame = frame.apply(lambda col: col.str.strip())

    rows: list[PriceRow] = []
    for record in frame.to_dict("records"):
        ticker = record.get("ticker")
        close = parse_number(record.get("close"))
        if not ticker or close is None:
            continue
        rows.append(
            PriceRow(
                ticker=ticker,
                trade_date=parse_trade_date(record.get("trade_date")) or trade_date,
                open=parse_number(record.get("open")),
                high=parse_number(record.get("high")),
                low=parse_number(record.get("low")),
                close=close,
                volume=safe_int(parse_number(record.get("volume"))),
                market_cap=parse_number(record.get("market_cap")),
                company_name=record.get("company_name") or None,
                market=market,
            )
        )
    return rows


def map_api_row(row: dict[str, Any], trade_date: date, market: str | None = None) -> PriceRow | None:
    """Map one OpenAPI ``OutBlock_1`` row; None when ticker or close is missing."""
    ticker = (row.get("ISU_SRT_CD") or "").strip()
    close = parse_number(row.get("TDD_CLSPRC"))
    if not ticker or close is None:
        return None
    return PriceRow(
        ticker=ticker,
        trade_date=parse_trade_date(row.get("BAS_DD")) or trade_date,
        open=parse_number(row.get("TDD_OPNPRC")),
        high=parse_number(row.get("TDD_HGPRC")),
        low=parse_number(row.get("TDD_LWPRC")),
        close=close,
        volume=safe_int(parse_number(row.get("ACC_TRDVOL"))),
        market_cap=parse_number(row.get("MKTCAP")),
        company_name=(row.get("ISU_NM") or "").strip() or None,
        market=market,
    )


# =============================================================================
# OPENAPI SOURCE
# =============================================================================


class KrxApiPriceSource:
    def __init__(
        self,
        api_key: str,
        kospi_url: str,
        kosdaq_url: str,
        *,
        timeout: float = 10.0,
        http_client: httpx.AsyncClient | None = None,
    ):
        if not kospi_url or not kosdaq_url:
            raise ConfigurationError(
                message="KRX_KOSPI_API_URL and KRX_KOSDAQ_API_URL are required"
            )
        if not api_key:
            raise ConfigurationError(message="KRX_API_KEY is required")
        self._api_key = api_key
        self._markets = (("KOSPI", kospi_url), ("KOSDAQ", kosdaq_url))
        self._timeout = timeout
        self._http_client = http_client

    async def _fetch_market(
        self, client: httpx.AsyncClient, market: str, base_url: str, trade_date: date
    ) -> list[PriceRow]:
        url = with_date(base_url, trade_date, param="basDd")
        try:
            response = await client.get(
                url,
                headers={
                    "User-Agent": USER_AGENT,
                    "Accept": "application/json",
                    "AUTH_KEY": self._api_key,
                },
            )
        except httpx.HTTPError as e:
            raise SourceError(message=f"KRX API request failed: {e}") from e
        if response.status_code != 200:
            raise SourceError(message=f"KRX API error: HTTP {response.status_code}")
        try:
            body = response.json()
        except ValueError as e:
            raise SourceError(message="KRX API returned invalid JSON") from e

        block = body.get("OutBlock_1") if isinstance(body, dict) else None
        if not isinstance(block, list):
            return []
        rows = [map_api_row(raw, trade_date, market) for raw in block if isinstance(raw, dict)]
        return [r for r in rows if r is not None]

    async def fetch_daily_prices(self, trade_date: date) -> list[PriceRow]:
        if self._http_client is not None:
            return await self._fetch_all(self._http_client, trade_date)
        async with httpx.AsyncClient(timeout=self._timeout) as client:
            return await self._fetch_all(client, trade_date)

    async def _fetch_all(self, client: httpx.AsyncClient, trade_date: date) -> list[PriceRow]:
        results = await asyncio.gather(
            *(self._fetch_market(client, m, url, trade_date) for m, url in self._markets)
        )
        return [row for rows in results for row in rows]


# =============================================================================
# PUBLIC CSV SOURCE
# =============================================================================


class KrxPublicPriceSource:
    def __init__(
        self,
        kospi_url: str,
        kosdaq_url: str,
        *,
        timeout: float = 10.0,
        http_client: httpx.AsyncClient | None = None,
    ):
        if not kospi_url or not kosdaq_url:
            raise ConfigurationError(
                message="KRX_PUBLIC_KOSPI_URL and KRX_PUBLIC_KOSDAQ_URL are required"
            )
        self._markets = (("KOSPI", kospi_url), ("KOSDAQ", kosdaq_url))
        self._timeout = timeout
        self._http_client = http_client

    async def _fetch_market(
        self, client: httpx.AsyncClient, market: str, base_url: str, trade_date: date
    ) -> list[PriceRow]:
        parts = urlsplit(with_date(base_url, trade_date))
        if not parts.scheme or not parts.netloc:
            raise ConfigurationError(message=f"Invalid KRX public URL: {base_url}")

        origin = f"{parts.scheme}://{parts.netloc}"
        form = dict(parse_qsl(parts.query, keep_blank_values=True))
        form.setdefault("trdDd", _compact(trade_date))
        headers = {
            "User-Agent": USER_AGENT,
            "Content-Type": "application/x-www-form-urlencoded; charset=UTF-8",
            "Referer": DEFAULT_REFERER,
        }

        try:
            otp_response = await client.post(
                f"{origin}{parts.path}",
                data=form,
                headers={**headers, "Accept": "text/plain,*/*"},
            )
            if otp_response.status_code != 200:
                raise SourceError(message=f"KRX OTP error: HTTP {otp_response.status_code}")
            otp = otp_response.text.strip()
            if not otp:
                raise SourceError(message="KRX OTP response empty")

            download = await client.post(
                f"{origin}{DOWNLOAD_PATH}",
                data={"code": otp},
                headers={**headers, "Accept": "text/csv, application/vnd.ms-excel, */*"},
            )
        except httpx.HTTPError as e:
            raise SourceError(message=f"KRX public request failed: {e}") from e
        if download.status_code != 200:
            raise SourceError(message=f"KRX download error: HTTP {download.status_code}")

        return parse_price_csv(decode_krx_csv(download.content), trade_date, market)

    async def fetch_daily_prices(self, trade_date: date) -> list[PriceRow]:
        if self._http_client is not None:
            return await self._fetch_all(self._http_client, trade_date)
        async with httpx.AsyncClient(timeout=self._timeout) as client:
            return await self._fetch_all(client, trade_date)

    async def _fetch_all(self, client: httpx.AsyncClient, trade_date: date) -> list[PriceRow]:
        results = await asyncio.gather(
            *(self._fetch_market(client, m, url, trade_date) for m, url in self._markets)
        )
        return [row for rows in results for row in rows]


# =============================================================================
# MOCK SOURCE
# =============================================================================


def simple_hash(text: str) -> int:
    """31-multiplier string hash folded to a signed 32-bit int, then abs()."""
    h = 0
    for ch in text:
        h = (h * 31 + ord(ch)) & 0xFFFFFFFF
    if h >= 0x80000000:
        h -= 0x100000000
    return abs(h)


def mock_price(ticker: str, trade_date: date) -> PriceRow:
    base = simple_hash(ticker) % 50000
    close = 1000 + base
    return PriceRow(
        ticker=ticker,
        trade_date=trade_date,
        open=close - (base % 200),
        high=close + (base % 300),
        low=close - (base % 250),
        close=close,
        volume=100000 + base * 3,
        market_cap=None,
    )


class MockPriceSource:
    """Deterministic prices for every active listed company. Development only."""

    def __init__(self, companies: CompanyRepository):
        self._companies = companies

    async def fetch_daily_prices(self, trade_date: date) -> list[PriceRow]:
        companies = await self._companies.list_active_with_ticker()
        return [mock_price(c.ticker, trade_date) for c in companies if c.ticker]


def build_price_source(
    settings: Settings,
    companies: CompanyRepository,
    http_client: httpx.AsyncClient | None = None,
) -> PriceSource:
    """Pick the configured price source.

    Raises:
        ConfigurationError: When the chosen source is missing URLs or keys
    """
    source = settings.resolved_krx_source
    timeout = float(settings.external_api_timeout)
    if source == "mock":
        logger.warning("Using mock KRX prices")
        return MockPriceSource(companies)
    if source == "api":
        return KrxApiPriceSource(
            settings.krx_api_key,
            settings.krx_kospi_api_url,
            settings.krx_kosdaq_api_url,
            timeout=timeout,
            http_client=http_client,
        )
    return KrxPublicPriceSource(
        settings.krx_public_kospi_url,
        settings.krx_public_kosdaq_url,
        timeout=timeout,
        http_client=http_client,
    )
