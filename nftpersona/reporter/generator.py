"""Report generator - markdown and JSON output."""

from __future__ import annotations

import json

from pydantic import BaseModel

from nftpersona.core.models import (
    ActivityAnalytics,
    AIAnalytics,
    Collection,
    HolderAnalytics,
    MarketAnalytics,
    PersonaDefinition,
    PersonaMatchResult,
)


def match_to_markdown(definition: PersonaDefinition, result: PersonaMatchResult) -> str:
    lines = [
        f"# {definition.emoji} {definition.title} Collections",
        f"*{definition.description}*  ",
        f"**Confidence:** {round(result.confidence * 100)}%  ",
        f"**Outcome:** {result.outcome.value}",
        "",
        "## Reasoning",
        result.reasoning,
        "",
        "## Selected Collections",
        "",
    ]
    if not result.selected_collections:
        lines.append("_No collections selected._")
    for i, c in enumerate(result.selected_collections, start=1):
        lines.append(f"### {i}. {c.display_name} ({c.symbol or 'N/A'})")
        lines.extend(_collection_lines(c))
        lines.append("")
    return "\n".join(lines)


def deep_dive_to_markdown(
    collection: Collection,
    analysis: AIAnalytics,
    market: MarketAnalytics | None = None,
    holder: HolderAnalytics | None = None,
    activity: ActivityAnalytics | None = None,
) -> str:
    lines = [
        f"# Deep Dive: {collection.display_name}",
        *_collection_lines(collection),
        "",
        "---",
        "",
    ]

    if market:
        lines.extend([
            "## Market Health",
            f"- Momentum: {market.momentum.value}",
            f"- Transfers (24h): {market.transfer_count_24h}",
            f"- Unique traders: {market.unique_traders_24h}",
            f"- Liquidity score: {market.liquidity_score}/100",
            "",
        ])
    if holder:
        lines.extend([
            "## Holder Analysis",
            f"- Distribution: {holder.distribution.value}",
            f"- Total holders: {holder.total_holders}",
            f"- Concentration: {holder.concentration_ratio:g}%",
            f"- Whales: {holder.whale_holders}",
            f"- Cross-collection holders: {holder.cross_collection_holders}",
            "",
        ])
    if activity:
        lines.extend([
            "## Activity Trends",
            f"- Pattern: {activity.trading_pattern.value}",
            f"- Velocity: {activity.transfer_velocity:g}/day",
            f"- Trend: {activity.trend_direction.value}",
            f"- Peak: {activity.peak_activity}",
            "",
        ])

    lines.extend([
        "## Verdict",
        f"**Thesis:** {analysis.investment_thesis.value.upper()} ({analysis.confidence_score}/100)",
        "",
        analysis.reasoning,
        "",
        "## Cultural Significance",
        analysis.cultural_significance,
        "",
        "## Risk Factors",
        *[f"- ⚠ {r}" for r in analysis.risk_factors],
        "",
        "## Opportunities",
        *[f"- ✓ {o}" for o in analysis.opportunities],
        "",
        "## Comparable Collections",
        *[f"- {c}" for c in analysis.comparable_collections],
        "",
        "## Collector Profile",
        analysis.collector_profile,
        "",
    ])
    return "\n".join(lines)


def to_json(model: BaseModel) -> str:
    return json.dumps(model.model_dump(mode="json", by_alias=True), indent=2, default=str)


def _collection_lines(c: Collection) -> list[str]:
    supply = "unknown" if c.total_supply is None else c.total_supply
    owners = "unknown" if c.owners is None else c.owners
    return [
        f"**Contract:** `{c.contract_address}`  ",
        f"**Supply:** {supply} | **Owners:** {owners}  ",
        f"[OpenSea]({c.open_sea_url}) · [Shape]({c.original_url})",
    ]
