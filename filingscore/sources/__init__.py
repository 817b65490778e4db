"""Upstream feeds: OpenDART disclosures and KRX daily prices."""

from .krx_prices import (
    KrxApiPriceSource,
    KrxPublicPriceSource,
    MockPriceSource,
    PriceSource,
    build_price_source,
)
from .opendart import OpenDartClient


__all__ = [
    "KrxApiPriceSource",
    "KrxPublicPriceSource",
    "MockPriceSource",
    "OpenDartClient",
    "PriceSource",
    "build_price_source",
]
