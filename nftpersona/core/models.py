"""Pydantic models for collections, personas, analytics snapshots and results."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from urllib.parse import quote_plus

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel

OPENSEA_URL = "https://opensea.io/assets/shape/{address}"
SHAPE_URL = "https://shape.network/collection/{address}"
PLACEHOLDER_IMAGE = "https://via.placeholder.com/300x300?text={text}"
ERROR_IMAGE = PLACEHOLDER_IMAGE.format(text="Error+Loading")


def placeholder_image(label: str | None) -> str:
    return PLACEHOLDER_IMAGE.format(text=quote_plus(label or "Collection"))


class WireModel(BaseModel):
    """camelCase on the wire, snake_case in Python."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class Collection(WireModel):
    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, frozen=True
    )

    contract_address: str = Field(min_length=1)
    name: str | None = None
    symbol: str | None = None
    total_supply: int | None = Field(default=None, ge=0)
    owners: int | None = Field(default=None, ge=0)
    image: str = ""
    open_sea_url: str = ""
    original_url: str = ""

    @model_validator(mode="after")
    def _derive_links(self) -> Collection:
        # Frozen model: fill derived fields through __dict__
        if not self.image:
            self.__dict__["image"] = placeholder_image(self.name)
        if not self.open_sea_url:
            self.__dict__["open_sea_url"] = OPENSEA_URL.format(address=self.contract_address)
        if not self.original_url:
            self.__dict__["original_url"] = SHAPE_URL.format(address=self.contract_address)
        return self

    @property
    def display_name(self) -> str:
        return self.name or "Unnamed"


# --- Personas ---


class PersonaType(str, Enum):
    RENEGADE = "renegade"
    FOMO = "fomo"
    ZEN = "zen"
    CHAOS = "chaos"


class PersonaDefinition(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: PersonaType
    emoji: str
    title: str
    description: str
    color: str
    theme: str


PERSONA_DEFINITIONS: dict[PersonaType, PersonaDefinition] = {
    PersonaType.RENEGADE: PersonaDefinition(
        id=PersonaType.RENEGADE,
        emoji="🔥",
        title="RENEGADE",
        description="Anti-establishment rebel",
        color="#ef4444",
        theme="Anti-establishment, punk rebellion, questioning normalcy",
    ),
    PersonaType.FOMO: PersonaDefinition(
        id=PersonaType.FOMO,
        emoji="⚡",
        title="FOMO",
        description="Trend-chasing maximalist",
        color="#eab308",
        theme="Fear of missing out, trend-following, hype-driven",
    ),
    PersonaType.ZEN: PersonaDefinition(
        id=PersonaType.ZEN,
        emoji="🧘",
        title="ZEN",
        description="Mindful collector",
        color="#22c55e",
        theme="Mindfulness, balance, thoughtful curation",
    ),
    PersonaType.CHAOS: PersonaDefinition(
        id=PersonaType.CHAOS,
        emoji="💫",
        title="CHAOS",
        description="Unpredictable maximalist",
        color="#8b5cf6",
        theme="Randomness, experimentation, breaking patterns",
    ),
}


def parse_persona(value: object) -> PersonaType | None:
    """Return the PersonaType for a raw key, or None when it is not one of the four."""
    if isinstance(value, PersonaType):
        return value
    if not isinstance(value, str):
        return None
    try:
        return PersonaType(value)
    except ValueError:
        return None


class MatchOutcome(str, Enum):
    MATCHED = "matched"
    MALFORMED_RESPONSE = "malformed_response"  # model replied, JSON unusable
    FAILED = "failed"  # prompt or generation call failed


class PersonaMatchResult(WireModel):
    selected_collections: list[Collection] = Field(default_factory=list)
    reasoning: str
    confidence: float = Field(ge=0.0, le=1.0)
    outcome: MatchOutcome = MatchOutcome.MATCHED


# --- Analytics snapshots ---


class Momentum(str, Enum):
    BULLISH = "bullish"
    NEUTRAL = "neutral"
    BEARISH = "bearish"


class Distribution(str, Enum):
    CONCENTRATED = "concentrated"
    DISTRIBUTED = "distributed"
    BALANCED = "balanced"


class TradingPattern(str, Enum):
    ACTIVE = "active"
    ACCUMULATING = "accumulating"
    DORMANT = "dormant"


class GasEfficiency(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class TrendDirection(str, Enum):
    UP = "up"
    DOWN = "down"
    STABLE = "stable"


class InvestmentThesis(str, Enum):
    BUY = "buy"
    HOLD = "hold"
    AVOID = "avoid"


class MarketAnalytics(WireModel):
    # to_camel would give "transferCount24H"
    transfer_count_24h: int = Field(alias="transferCount24h")
    unique_traders_24h: int = Field(alias="uniqueTraders24h")
    liquidity_score: int = Field(ge=0, le=100)
    momentum: Momentum
    avg_transaction_value: float


class HolderAnalytics(WireModel):
    total_holders: int
    concentration_ratio: float  # approx. % held by top holders
    whale_holders: int
    cross_collection_holders: int
    distribution: Distribution


class ActivityAnalytics(WireModel):
    transfer_velocity: float  # implied transfers per day
    trading_pattern: TradingPattern
    gas_efficiency: GasEfficiency
    peak_activity: str
    trend_direction: TrendDirection


class AIAnalytics(WireModel):
    investment_thesis: InvestmentThesis
    confidence_score: int = Field(ge=0, le=100)
    cultural_significance: str
    risk_factors: list[str] = Field(default_factory=list, max_length=3)
    opportunities: list[str] = Field(default_factory=list, max_length=3)
    comparable_collections: list[str] = Field(default_factory=list, max_length=2)
    collector_profile: str
    reasoning: str


# --- Provider payloads ---


class ContractMetadata(BaseModel):
    name: str | None = None
    symbol: str | None = None
    total_supply: int | None = None
    image_url: str | None = None


class Transfer(BaseModel):
    from_address: str | None = None
    to_address: str | None = None
    block_num: str | None = None
    hash: str | None = None
    token_id: str | None = None


# --- Layer results ---


class CollectionFetch(BaseModel):
    """Gateway result: always carries a collection, flagged when degraded."""

    collection: Collection
    degraded: bool = False
    error: str | None = None


class CacheSource(str, Enum):
    LIVE = "live"
    FALLBACK = "fallback"
    CACHED = "cached"


@dataclass(frozen=True)
class CacheLoad:
    # Plain dataclass so `collections` is the cache's own list, not a copy
    collections: list[Collection]
    source: CacheSource
    error: str | None = None
    degraded_count: int = field(default=0)
