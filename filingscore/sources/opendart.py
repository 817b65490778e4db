"""OpenDART disclosure list client.

Fetches the paginated ``list.json`` feed and maps rows to
``FilingFeedItem``. Transport errors are retried with exponential backoff;
anything else the API returns that is not a usable page raises
``SourceError``.

Usage:
    async with OpenDartClient(api_key) as client:
        items = await client.get_recent_disclosures(days=1, max_pages=3)
"""

from __future__ import annotations

from datetime import date, datetime, timedelta, timezone
from typing import Any

import httpx
from tenacity import (
    AsyncRetrying,
    RetryError,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential_jitter,
)

from filingscore.core.config import settings
from filingscore.core.exceptions import ConfigurationError, SourceError
from filingscore.core.logging import get_logger
from filingscore.domain import FilingFeedItem


logger = get_logger("sources.opendart")

# DART filing dates are Korean business dates
KST = timezone(timedelta(hours=9))

STATUS_OK = "000"
STATUS_NO_DATA = "013"

DEFAULT_HEADERS = {
    "User-Agent": (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
    ),
    "Accept": "application/json, text/plain, */*",
    "Accept-Language": "ko-KR,ko;q=0.9,en-US;q=0.8,en;q=0.7",
}


def to_feed_item(raw: dict[str, Any]) -> FilingFeedItem:
    """Map one ``list.json`` row to a feed item."""
    return FilingFeedItem(
        filing_id=str(raw["rcept_no"]),
        company_id=str(raw["corp_code"]),
        ticker=(raw.get("stock_code") or "").strip() or None,
        company_name=raw.get("corp_name") or "",
        title=(raw.get("report_nm") or "").strip(),
        filed_at=str(raw["rcept_dt"]),
        remark=raw.get("rm") or "",
        exchange_class=raw.get("corp_cls") or "",
    )


def format_dart_date(value: date) -> str:
    return value.strftime("%Y%m%d")


class OpenDartClient:
    """Async client for the OpenDART disclosure search API."""

    def __init__(
        self,
        api_key: str,
        *,
        base_url: str | None = None,
        page_size: int | None = None,
        timeout: float | None = None,
        retries: int | None = None,
        http_client: httpx.AsyncClient | None = None,
    ):
        if not api_key:
            raise ConfigurationError(
                message="OPENDART_API_KEY is required",
                error_code="OPENDART_KEY_MISSING",
            )
        self._api_key = api_key
        self._base_url = (base_url or settings.opendart_base_url).rstrip("/")
        self._page_size = page_size or settings.opendart_page_size
        self._retries = settings.external_api_retries if retries is None else retries
        self._owns_client = http_client is None
        self._client = http_client or httpx.AsyncClient(
            timeout=timeout or settings.external_api_timeout,
            headers=DEFAULT_HEADERS,
            follow_redirects=True,
        )

    async def __aenter__(self) -> "OpenDartClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def _get(self, url: str, params: dict[str, Any]) -> httpx.Response:
        try:
            async for attempt in AsyncRetrying(
                stop=stop_after_attempt(self._retries + 1),
                wait=wait_exponential_jitter(initial=0.5, max=5.0, jitter=0.5),
                retry=retry_if_exception_type(httpx.TransportError),
                reraise=True,
            ):
                with attempt:
                    return await self._client.get(url, params=params)
        except (httpx.TransportError, RetryError) as e:
            raise SourceError(
                message=f"OpenDART request failed: {e}",
                details={"url": url},
            ) from e
        raise SourceError(message="OpenDART request failed without a response")

    async def get_disclosure_list(
        self,
        *,
        bgn_de: str | None = None,
        end_de: str | None = None,
        page_no: int = 1,
        page_count: int | None = None,
        corp_code: str | None = None,
    ) -> dict[str, Any]:
        """Fetch one page of ``list.json`` and return the decoded body."""
        params: dict[str, Any] = {
            "crtfc_key": self._api_key,
            "page_count": page_count or self._page_size,
            "page_no": page_no,
        }
        if bgn_de:
            params["bgn_de"] = bgn_de
        if end_de:
            params["end_de"] = end_de
        if corp_code:
            params["corp_code"] = corp_code

        response = await self._get(f"{self._base_url}/list.json", params)

        # Blocked requests are redirected to an HTML error page
        if "error" in str(response.url.path).lower():
            raise SourceError(
                message=f"OpenDART blocked request. Final URL path: {response.url.path}",
                error_code="OPENDART_BLOCKED",
            )
        if response.status_code != 200:
            raise SourceError(
                message=f"OpenDART API error: HTTP {response.status_code}",
                details={"status_code": response.status_code},
            )
        try:
            body = response.json()
        except ValueError as e:
            raise SourceError(
                message=f"Invalid JSON response: {response.text[:200]}",
            ) from e
        if not isinstance(body, dict):
            raise SourceError(message="OpenDART response is not a JSON object")
        return body

    async def get_disclosures_for_range(
        self,
        start: date,
        end: date,
        max_pages: int = 10,
    ) -> list[FilingFeedItem]:
        """All filings between two dates, following pagination.

        Stops at ``total_page``, at ``max_pages`` or when the API reports
        no data (status 013). Any other non-000 status is a source error.
        """
        items: list[FilingFeedItem] = []
        page_no = 1
        while page_no <= max_pages:
            body = await self.get_disclosure_list(
                bgn_de=format_dart_date(start),
                end_de=format_dart_date(end),
                page_no=page_no,
            )
            status = str(body.get("status", ""))
            if status == STATUS_NO_DATA:
                break
            if status != STATUS_OK:
                raise SourceError(
                    message=f"OpenDART error {status}: {body.get('message', '')}",
                    details={"status": status},
                )

            for raw in body.get("list") or []:
                try:
                    items.append(to_feed_item(raw))
                except (KeyError, ValueError) as e:
                    logger.warning(f"Skipping malformed disclosure row: {e}")

            total_page = int(body.get("total_page") or 1)
            if page_no >= total_page:
                break
            page_no += 1

        logger.info(
            f"Fetched {len(items)} disclosures for {format_dart_date(start)}-{format_dart_date(end)}"
        )
        return items

    async def get_recent_disclosures(
        self,
        days: int = 1,
        max_pages: int = 3,
    ) -> list[FilingFeedItem]:
        """Filings from ``days`` days ago through today (KST)."""
        today = datetime.now(KST).date()
        return await self.get_disclosures_for_range(
            today - timedelta(days=days), today, max_pages=max_pages
        )
