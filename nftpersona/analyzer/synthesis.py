"""Deep-dive synthesis: merge analytics snapshots into one investment verdict.

Two implementations share the ``DeepDiveSynthesizer`` interface:

  LocalSynthesizer     deterministic heuristics, no network
  ProviderSynthesizer  Claude-authored verdict, normalised field by field
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from statistics import mean

from nftpersona.analyzer.llm import TextGenerator, extract_json
from nftpersona.core.exceptions import ResponseParseError
from nftpersona.core.models import (
    ActivityAnalytics,
    AIAnalytics,
    Collection,
    GasEfficiency,
    HolderAnalytics,
    InvestmentThesis,
    MarketAnalytics,
    Momentum,
    TradingPattern,
)

logger = logging.getLogger(__name__)

MAX_RISKS = 3
MAX_OPPORTUNITIES = 3
MAX_COMPARABLES = 2

DEFAULT_RISKS = ["General market volatility", "Shape Network adoption risk"]
DEFAULT_OPPORTUNITIES = ["Early Shape Network ecosystem participation", "Potential for community growth"]
PROVIDER_DEFAULT_OPPORTUNITIES = ["Early ecosystem participation", "Potential for growth"]
PROVIDER_DEFAULT_COMPARABLES = ["Similar Shape Network Collections", "Emerging NFT Projects"]

_MARKET_SCORES = {Momentum.BULLISH: 80, Momentum.NEUTRAL: 60, Momentum.BEARISH: 40}
_ACTIVITY_SCORES = {TradingPattern.ACTIVE: 80, TradingPattern.ACCUMULATING: 70, TradingPattern.DORMANT: 50}


class DeepDiveSynthesizer(ABC):
    @abstractmethod
    async def synthesize(
        self,
        collection: Collection,
        market: MarketAnalytics | None = None,
        holder: HolderAnalytics | None = None,
        activity: ActivityAnalytics | None = None,
    ) -> AIAnalytics:
        ...


class LocalSynthesizer(DeepDiveSynthesizer):
    """Client-side quick estimate from whatever snapshots are available."""

    async def synthesize(
        self,
        collection: Collection,
        market: MarketAnalytics | None = None,
        holder: HolderAnalytics | None = None,
        activity: ActivityAnalytics | None = None,
    ) -> AIAnalytics:
        return synthesize_local(collection, market, holder, activity)


def score_thesis(
    collection: Collection,
    market: MarketAnalytics | None,
    holder: HolderAnalytics | None,
    activity: ActivityAnalytics | None,
) -> tuple[InvestmentThesis, float]:
    if market and holder and activity:
        overall = mean([
            _MARKET_SCORES[market.momentum],
            80 if holder.concentration_ratio < 50 else 60,
            _ACTIVITY_SCORES[activity.trading_pattern],
        ])
        if overall > 75:
            return InvestmentThesis.BUY, overall
        if overall < 50:
            return InvestmentThesis.AVOID, overall
        return InvestmentThesis.HOLD, overall

    # Partial data: fall back on the collection's own counts
    supply = collection.total_supply or 0
    holders = collection.owners or 0
    if supply > 0 and holders > supply * 0.3:
        return InvestmentThesis.BUY, 65
    if supply > 10000:
        return InvestmentThesis.AVOID, 60
    return InvestmentThesis.HOLD, 50


def synthesize_local(
    collection: Collection,
    market: MarketAnalytics | None = None,
    holder: HolderAnalytics | None = None,
    activity: ActivityAnalytics | None = None,
) -> AIAnalytics:
    thesis, confidence = score_thesis(collection, market, holder, activity)

    risks: list[str] = []
    if market and market.liquidity_score < 30:
        risks.append("Low liquidity score may impact trading")
    if holder and holder.concentration_ratio > 70:
        risks.append("High holder concentration risk")
    if activity is None or activity.transfer_velocity < 5:
        risks.append("Limited recent trading activity")
    if not risks:
        risks = list(DEFAULT_RISKS)

    opportunities: list[str] = []
    if market and market.momentum is Momentum.BULLISH:
        opportunities.append("Positive market momentum")
    if holder and holder.cross_collection_holders > holder.total_holders * 0.5:
        opportunities.append("Strong cross-collection network effects")
    if activity and activity.gas_efficiency is GasEfficiency.HIGH:
        opportunities.append("Optimized for Shape Network efficiency")
    if not opportunities:
        opportunities = list(DEFAULT_OPPORTUNITIES)

    supply = collection.total_supply or 0
    owners = collection.owners or 0
    exclusive = supply < 1000
    appetite = {
        InvestmentThesis.BUY: ("growth-oriented", "Aggressive"),
        InvestmentThesis.AVOID: ("risk-averse", "Conservative"),
        InvestmentThesis.HOLD: ("balanced", "Moderate"),
    }[thesis]

    if confidence > 70:
        potential = "strong"
    elif confidence > 50:
        potential = "moderate"
    else:
        potential = "limited"

    reasoning = (
        f"{collection.display_name} shows {potential} potential with "
        f"{_or_unknown(collection.owners)} holders and {_or_unknown(collection.total_supply)} supply. "
        + (f"Market momentum is {market.momentum.value}." if market else "Limited market data available.")
    )
    if holder:
        ownership = "concentrated" if holder.concentration_ratio > 50 else "distributed"
        reasoning += f" Ownership is {ownership}."

    return AIAnalytics(
        investment_thesis=thesis,
        confidence_score=round(confidence),
        cultural_significance=(
            f"{collection.display_name} represents {'exclusive' if exclusive else 'accessible'} "
            f"digital culture on Shape Network, appealing to {appetite[0]} collectors."
        ),
        risk_factors=risks[:MAX_RISKS],
        opportunities=opportunities[:MAX_OPPORTUNITIES],
        comparable_collections=[
            "CryptoPunks (exclusivity)" if exclusive else "Bored Apes (community)",
            "Azuki (engagement)" if owners > 500 else "Moonbirds (curation)",
        ],
        collector_profile=(
            f"{appetite[1]} collectors interested in "
            f"{'rare' if exclusive else 'community-driven'} Shape Network assets"
        ),
        reasoning=reasoning,
    )


class ProviderSynthesizer(DeepDiveSynthesizer):
    """Server-side authoritative verdict written by Claude.

    A reply without any JSON object raises ResponseParseError; once JSON is
    found every field is defaulted or clamped into the AIAnalytics shape.
    """

    def __init__(self, generator: TextGenerator, max_tokens: int = 1000) -> None:
        self.generator = generator
        self.max_tokens = max_tokens

    async def synthesize(
        self,
        collection: Collection,
        market: MarketAnalytics | None = None,
        holder: HolderAnalytics | None = None,
        activity: ActivityAnalytics | None = None,
    ) -> AIAnalytics:
        logger.info("[synthesis] Claude deep dive for %s", collection.display_name)
        prompt = build_deep_dive_prompt(collection, market, holder, activity)
        text = await self.generator.generate(prompt, max_tokens=self.max_tokens)
        parsed = extract_json(text)
        if not isinstance(parsed, dict):
            raise ResponseParseError("Claude response JSON is not an object", {"response": text[:500]})
        analysis = normalize_analysis(parsed, collection)
        logger.info(
            "[synthesis] deep dive complete for %s: %s (%d%% confidence)",
            collection.display_name, analysis.investment_thesis.value, analysis.confidence_score,
        )
        return analysis


def build_deep_dive_prompt(
    collection: Collection,
    market: MarketAnalytics | None,
    holder: HolderAnalytics | None,
    activity: ActivityAnalytics | None,
) -> str:
    if market:
        market_block = f"""📈 MARKET HEALTH:
• Momentum: {market.momentum.value} trend
• Recent Activity: {market.transfer_count_24h} transfers in 24h
• Active Traders: {market.unique_traders_24h} unique addresses
• Liquidity Score: {market.liquidity_score}/100
• Avg Transaction: {market.avg_transaction_value} ETH"""
    else:
        market_block = "📈 Market data unavailable"

    if holder:
        holder_block = f"""👥 HOLDER ANALYSIS:
• Distribution: {holder.distribution.value} ownership pattern
• Concentration Risk: {holder.concentration_ratio:g}% held by top holders
• Total Holders: {holder.total_holders}
• Whale Count: {holder.whale_holders} major holders (>5% supply)
• Cross-Collection Holders: {holder.cross_collection_holders} diversified collectors"""
    else:
        holder_block = "👥 Holder data unavailable"

    if activity:
        activity_block = f"""⚡ ACTIVITY TRENDS:
• Trading Pattern: {activity.trading_pattern.value}
• Transfer Velocity: {activity.transfer_velocity:g} daily transfers
• Gas Efficiency: {activity.gas_efficiency.value} (Shape Network optimized)
• Peak Activity: {activity.peak_activity}
• Trend Direction: {activity.trend_direction.value}"""
    else:
        activity_block = "⚡ Activity data unavailable"

    return f"""\
You are an expert NFT investment analyst specializing in Shape Network collections. Provide a comprehensive investment analysis for this collection.

COLLECTION DATA:
Name: {collection.name or 'Unnamed Collection'}
Symbol: {collection.symbol or 'N/A'}
Supply: {_or_unknown(collection.total_supply, 'Unknown')}
Current Holders: {_or_unknown(collection.owners, 'Unknown')}
Contract: {collection.contract_address}

ON-CHAIN ANALYTICS:
{market_block}

{holder_block}

{activity_block}

ANALYSIS REQUIREMENTS:
Provide a professional investment analysis as JSON with this exact structure:

{{
  "investmentThesis": "buy" | "hold" | "avoid",
  "confidenceScore": 85,
  "culturalSignificance": "Detailed cultural and artistic significance assessment",
  "riskFactors": ["Primary risk factor", "Secondary risk factor", "Additional concern"],
  "opportunities": ["Key opportunity 1", "Growth potential 2", "Strategic advantage 3"],
  "comparableCollections": ["Similar Project 1", "Comparable Collection 2"],
  "collectorProfile": "Detailed target collector profile and investment style",
  "reasoning": "Comprehensive investment thesis with specific data points and market context"
}}

ANALYSIS GUIDELINES:
• confidenceScore: 0-100 integer based on data quality and conviction
• riskFactors and opportunities: 2-3 meaningful items each
• comparableCollections: exactly 2 items
• Consider Shape Network's unique positioning in the L2 ecosystem
• Evaluate both quantitative metrics and qualitative cultural factors
• Assess risk/reward balance for different investor types
• Be specific and data-driven in your reasoning

Respond ONLY with the JSON object."""


def normalize_analysis(parsed: dict, collection: Collection) -> AIAnalytics:
    name = collection.display_name
    return AIAnalytics(
        investment_thesis=_thesis(parsed.get("investmentThesis")),
        confidence_score=_score(parsed.get("confidenceScore")),
        cultural_significance=_text(
            parsed.get("culturalSignificance"),
            f"{name} represents unique digital culture on Shape Network.",
        ),
        risk_factors=_strings(parsed.get("riskFactors"), DEFAULT_RISKS, MAX_RISKS),
        opportunities=_strings(parsed.get("opportunities"), PROVIDER_DEFAULT_OPPORTUNITIES, MAX_OPPORTUNITIES),
        comparable_collections=_strings(
            parsed.get("comparableCollections"), PROVIDER_DEFAULT_COMPARABLES, MAX_COMPARABLES,
        ),
        collector_profile=_text(
            parsed.get("collectorProfile"), "Collectors interested in Shape Network digital assets",
        ),
        reasoning=_text(
            parsed.get("reasoning"), f"{name} shows potential as a Shape Network collection.",
        ),
    )


def _thesis(value: object) -> InvestmentThesis:
    if isinstance(value, str):
        try:
            return InvestmentThesis(value.strip().lower())
        except ValueError:
            pass
    return InvestmentThesis.HOLD


def _score(value: object) -> int:
    try:
        score = int(float(value)) if not isinstance(value, bool) else 50
    except (TypeError, ValueError, OverflowError):
        score = 50
    return max(0, min(100, score))


def _text(value: object, default: str) -> str:
    return value if isinstance(value, str) and value.strip() else default


def _strings(value: object, default: list[str], limit: int) -> list[str]:
    if not isinstance(value, list):
        return list(default)
    return [str(v) for v in value if v is not None][:limit]


def _or_unknown(value: int | None, unknown: str = "unknown") -> str:
    return unknown if value is None else str(value)
