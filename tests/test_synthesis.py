"""Tests for deep-dive synthesis, local heuristics and the Claude-backed path."""

from __future__ import annotations

import json

import pytest

from conftest import FakeGenerator
from nftpersona.analyzer.metrics import classify_activity, classify_holders, classify_market
from nftpersona.analyzer.synthesis import (
    DEFAULT_OPPORTUNITIES,
    DEFAULT_RISKS,
    LocalSynthesizer,
    ProviderSynthesizer,
    build_deep_dive_prompt,
    synthesize_local,
)
from nftpersona.core.exceptions import ResponseParseError
from nftpersona.core.models import (
    ActivityAnalytics,
    Collection,
    Distribution,
    GasEfficiency,
    HolderAnalytics,
    InvestmentThesis,
    MarketAnalytics,
    Momentum,
    TradingPattern,
    TrendDirection,
)


def market(momentum: Momentum = Momentum.BULLISH, liquidity: int = 60) -> MarketAnalytics:
    return MarketAnalytics(
        transfer_count_24h=12, unique_traders_24h=20, liquidity_score=liquidity,
        momentum=momentum, avg_transaction_value=0.1,
    )


def holder(ratio: float = 40, total: int = 600, cross: int = 180) -> HolderAnalytics:
    return HolderAnalytics(
        total_holders=total, concentration_ratio=ratio, whale_holders=30,
        cross_collection_holders=cross, distribution=Distribution.BALANCED,
    )


def activity(pattern: TradingPattern = TradingPattern.ACTIVE, velocity: float = 24.0) -> ActivityAnalytics:
    return ActivityAnalytics(
        transfer_velocity=velocity, trading_pattern=pattern, gas_efficiency=GasEfficiency.HIGH,
        peak_activity="Evening (7-9 PM UTC)", trend_direction=TrendDirection.UP,
    )


# ── Local heuristics ──────────────────────────────────────────────────────────


def test_all_strong_signals_give_buy_80(collection: Collection) -> None:
    result = synthesize_local(collection, market(), holder(ratio=40), activity())
    assert result.investment_thesis is InvestmentThesis.BUY
    assert result.confidence_score == 80


def test_weakest_full_signals_still_hold(collection: Collection) -> None:
    # (40 + 60 + 50) / 3 = 50 -> not below 50 -> hold
    result = synthesize_local(collection, market(Momentum.BEARISH), holder(ratio=80), activity(TradingPattern.DORMANT, 2.4))
    assert result.investment_thesis is InvestmentThesis.HOLD
    assert result.confidence_score == 50


def test_mixed_signals_give_hold_with_rounded_confidence(collection: Collection) -> None:
    # (60 + 80 + 70) / 3 = 70
    result = synthesize_local(collection, market(Momentum.NEUTRAL), holder(ratio=40), activity(TradingPattern.ACCUMULATING, 7.2))
    assert result.investment_thesis is InvestmentThesis.HOLD
    assert result.confidence_score == 70

    # (40 + 60 + 70) / 3 = 56.67
    result = synthesize_local(collection, market(Momentum.BEARISH), holder(ratio=60), activity(TradingPattern.ACCUMULATING, 7.2))
    assert result.confidence_score == 57


@pytest.mark.parametrize("supply,owners,thesis,confidence", [
    (1000, 400, InvestmentThesis.BUY, 65),
    (20000, 100, InvestmentThesis.AVOID, 60),
    (5000, 100, InvestmentThesis.HOLD, 50),
    (None, None, InvestmentThesis.HOLD, 50),
])
def test_partial_data_uses_collection_counts(supply, owners, thesis, confidence) -> None:
    c = Collection(contract_address="0xabc", name="X", total_supply=supply, owners=owners)
    result = synthesize_local(c, market())
    assert result.investment_thesis is thesis
    assert result.confidence_score == confidence


def test_no_snapshots_defaults_risks_and_opportunities() -> None:
    c = Collection(contract_address="0xabc", name="Quiet", total_supply=5000, owners=100)
    result = synthesize_local(c)

    assert result.risk_factors == ["Limited recent trading activity"]
    assert result.opportunities == DEFAULT_OPPORTUNITIES
    assert "Limited market data available." in result.reasoning
    assert len(result.comparable_collections) == 2


def test_triggered_risks_and_opportunities(collection: Collection) -> None:
    result = synthesize_local(
        collection,
        market(Momentum.BULLISH, liquidity=10),
        holder(ratio=85, total=100, cross=60),
        activity(TradingPattern.DORMANT, 2.4),
    )
    assert result.risk_factors == [
        "Low liquidity score may impact trading",
        "High holder concentration risk",
        "Limited recent trading activity",
    ]
    assert result.opportunities == [
        "Positive market momentum",
        "Strong cross-collection network effects",
        "Optimized for Shape Network efficiency",
    ]


def test_generic_risks_when_nothing_triggers(collection: Collection) -> None:
    result = synthesize_local(collection, market(), holder(ratio=40), activity())
    assert result.risk_factors == DEFAULT_RISKS


def test_templates_are_deterministic(collections: list[Collection]) -> None:
    exclusive = collections[2]  # supply 300, owners 120
    result = synthesize_local(exclusive, market(), holder(ratio=60))

    assert result.cultural_significance.startswith("Gamma represents exclusive digital culture")
    assert result.comparable_collections == ["CryptoPunks (exclusivity)", "Moonbirds (curation)"]
    assert "Gamma shows" in result.reasoning
    assert "120 holders and 300 supply" in result.reasoning
    assert "Market momentum is bullish." in result.reasoning
    assert result.reasoning.endswith("Ownership is concentrated.")
    assert synthesize_local(exclusive, market(), holder(ratio=60)) == result


def test_local_output_works_with_real_classifier_output(collection: Collection) -> None:
    from conftest import make_transfers

    result = synthesize_local(
        collection, classify_market(make_transfers(11)), classify_holders(600), classify_activity(make_transfers(10)),
    )
    # bullish 80, ratio 40 -> 80, active 80
    assert result.investment_thesis is InvestmentThesis.BUY


@pytest.mark.asyncio
async def test_local_synthesizer_interface(collection: Collection) -> None:
    result = await LocalSynthesizer().synthesize(collection, market(), holder(), activity())
    assert result.confidence_score == 80


# ── Provider path ─────────────────────────────────────────────────────────────


FULL_REPLY = {
    "investmentThesis": "buy",
    "confidenceScore": 85,
    "culturalSignificance": "A cornerstone of Shape art.",
    "riskFactors": ["Thin order books", "Small community", "Creator concentration", "Extra"],
    "opportunities": ["Early mover", "Gallery partnerships"],
    "comparableCollections": ["Chromie Squiggle", "Fidenza", "Ringers"],
    "collectorProfile": "Long-term art collectors.",
    "reasoning": "Strong holders and steady activity.",
}


@pytest.mark.asyncio
async def test_provider_parses_and_truncates(collection: Collection) -> None:
    gen = FakeGenerator("Sure!\n" + json.dumps(FULL_REPLY))
    result = await ProviderSynthesizer(gen, max_tokens=1000).synthesize(collection, market())

    assert result.investment_thesis is InvestmentThesis.BUY
    assert result.confidence_score == 85
    assert len(result.risk_factors) == 3
    assert result.opportunities == ["Early mover", "Gallery partnerships"]
    assert result.comparable_collections == ["Chromie Squiggle", "Fidenza"]
    assert gen.max_tokens == [1000]


@pytest.mark.asyncio
async def test_provider_defaults_missing_and_malformed_fields(collection: Collection) -> None:
    gen = FakeGenerator(json.dumps({"investmentThesis": "moon", "confidenceScore": "250", "riskFactors": "many"}))
    result = await ProviderSynthesizer(gen).synthesize(collection)

    assert result.investment_thesis is InvestmentThesis.HOLD
    assert result.confidence_score == 100
    assert result.risk_factors == DEFAULT_RISKS
    assert result.opportunities == ["Early ecosystem participation", "Potential for growth"]
    assert result.comparable_collections == ["Similar Shape Network Collections", "Emerging NFT Projects"]
    assert result.cultural_significance == "Alpha represents unique digital culture on Shape Network."
    assert result.reasoning == "Alpha shows potential as a Shape Network collection."
    assert result.collector_profile == "Collectors interested in Shape Network digital assets"


@pytest.mark.asyncio
@pytest.mark.parametrize("raw,expected", [(-5, 0), (72.9, 72), ("abc", 50), (None, 50), ("64", 64)])
async def test_provider_confidence_is_clamped(raw, expected, collection: Collection) -> None:
    gen = FakeGenerator(json.dumps({"confidenceScore": raw}))
    result = await ProviderSynthesizer(gen).synthesize(collection)
    assert result.confidence_score == expected


@pytest.mark.asyncio
async def test_provider_without_json_raises(collection: Collection) -> None:
    gen = FakeGenerator("I'd rather not say.")
    with pytest.raises(ResponseParseError):
        await ProviderSynthesizer(gen).synthesize(collection)


@pytest.mark.asyncio
async def test_provider_generation_errors_propagate(collection: Collection) -> None:
    gen = FakeGenerator(error=RuntimeError("overloaded"))
    with pytest.raises(RuntimeError):
        await ProviderSynthesizer(gen).synthesize(collection)


def test_prompt_marks_missing_sections(collection: Collection) -> None:
    prompt = build_deep_dive_prompt(collection, market(), None, None)

    assert "Name: Alpha" in prompt
    assert f"Contract: {collection.contract_address}" in prompt
    assert "Momentum: bullish trend" in prompt
    assert "Holder data unavailable" in prompt
    assert "Activity data unavailable" in prompt
    assert '"comparableCollections"' in prompt
    assert "0-100 integer" in prompt


def test_prompt_with_all_sections(collection: Collection) -> None:
    prompt = build_deep_dive_prompt(collection, market(), holder(), activity())
    assert "Concentration Risk: 40% held by top holders" in prompt
    assert "Transfer Velocity: 24 daily transfers" in prompt
    assert "unavailable" not in prompt
