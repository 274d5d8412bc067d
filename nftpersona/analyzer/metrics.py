"""Analytics classifiers: market health, holder distribution, activity trends.

Each ``fetch_*`` call pulls fresh data from the provider and reduces it to a
snapshot. Nothing is cached and provider errors are not masked here. The
thresholds are fixed heuristics, kept as-is.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Sequence
from typing import Any

from nftpersona.core.exceptions import UpstreamDataError
from nftpersona.core.models import (
    ActivityAnalytics,
    Collection,
    Distribution,
    GasEfficiency,
    HolderAnalytics,
    MarketAnalytics,
    Momentum,
    TradingPattern,
    Transfer,
    TrendDirection,
)

logger = logging.getLogger(__name__)

MARKET_FETCH_COUNT = 50
MARKET_WINDOW = 20
ACTIVITY_FETCH_COUNT = 20
ACTIVITY_WINDOW = 10
VELOCITY_FACTOR = 2.4  # recent window -> implied daily rate
AVG_TRANSACTION_VALUE = 0.1  # ETH, not available upstream
PEAK_ACTIVITY = "Evening (7-9 PM UTC)"


def classify_market(transfers: Sequence[Transfer]) -> MarketAnalytics:
    recent = list(transfers)[:MARKET_WINDOW]
    count = len(recent)
    traders = {t.from_address for t in recent} | {t.to_address for t in recent}

    if count > 10:
        momentum = Momentum.BULLISH
    elif count > 5:
        momentum = Momentum.NEUTRAL
    else:
        momentum = Momentum.BEARISH

    return MarketAnalytics(
        transfer_count_24h=count,
        unique_traders_24h=len(traders),
        liquidity_score=min(100, count * 5),
        momentum=momentum,
        avg_transaction_value=AVG_TRANSACTION_VALUE,
    )


def classify_holders(total_holders: int) -> HolderAnalytics:
    # Falls as holder count rises; a proxy, not a real top-holder share
    concentration = min(90, max(10, 100 - total_holders / 10))

    if concentration > 70:
        distribution = Distribution.CONCENTRATED
    elif concentration < 30:
        distribution = Distribution.DISTRIBUTED
    else:
        distribution = Distribution.BALANCED

    return HolderAnalytics(
        total_holders=total_holders,
        concentration_ratio=concentration,
        whale_holders=math.floor(total_holders * 0.05),
        cross_collection_holders=math.floor(total_holders * 0.3),
        distribution=distribution,
    )


def classify_activity(transfers: Sequence[Transfer]) -> ActivityAnalytics:
    velocity = len(list(transfers)[:ACTIVITY_WINDOW]) * VELOCITY_FACTOR

    if velocity > 20:
        pattern = TradingPattern.ACTIVE
    elif velocity > 5:
        pattern = TradingPattern.ACCUMULATING
    else:
        pattern = TradingPattern.DORMANT

    if velocity > 10:
        trend = TrendDirection.UP
    elif velocity > 5:
        trend = TrendDirection.STABLE
    else:
        trend = TrendDirection.DOWN

    return ActivityAnalytics(
        transfer_velocity=velocity,
        trading_pattern=pattern,
        gas_efficiency=GasEfficiency.HIGH,
        peak_activity=PEAK_ACTIVITY,
        trend_direction=trend,
    )


async def fetch_market_health(provider: Any, collection: Collection) -> MarketAnalytics:
    logger.info("[metrics] market health for %s", collection.display_name)
    transfers = await _call(
        provider.get_asset_transfers(collection.contract_address, max_count=MARKET_FETCH_COUNT, order="desc"),
        "market health", collection,
    )
    return classify_market(transfers)


async def fetch_holder_analysis(provider: Any, collection: Collection) -> HolderAnalytics:
    logger.info("[metrics] holder analysis for %s", collection.display_name)
    owners = await _call(
        provider.get_owners(collection.contract_address), "holder analysis", collection,
    )
    return classify_holders(len(owners))


async def fetch_activity_trends(provider: Any, collection: Collection) -> ActivityAnalytics:
    logger.info("[metrics] activity trends for %s", collection.display_name)
    transfers = await _call(
        provider.get_asset_transfers(collection.contract_address, max_count=ACTIVITY_FETCH_COUNT, order="desc"),
        "activity trends", collection,
    )
    return classify_activity(transfers)


async def _call(coro: Any, label: str, collection: Collection) -> Any:
    try:
        return await coro
    except UpstreamDataError:
        logger.error("[metrics] %s failed for %s", label, collection.display_name)
        raise
    except Exception as e:
        logger.error("[metrics] %s failed for %s: %s", label, collection.display_name, e)
        raise UpstreamDataError(
            f"{label} fetch failed: {e}", {"address": collection.contract_address},
        ) from e
