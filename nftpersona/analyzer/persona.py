"""Persona matching: ask Claude to curate collections for one of the four personas."""

from __future__ import annotations

import logging
from collections.abc import Sequence

from nftpersona.analyzer.llm import TextGenerator, extract_json
from nftpersona.core.exceptions import ResponseParseError
from nftpersona.core.models import (
    Collection,
    MatchOutcome,
    PersonaDefinition,
    PersonaMatchResult,
    PersonaType,
)

logger = logging.getLogger(__name__)

MAX_SELECTED = 4
FALLBACK_COUNT = 2
FAILED_CONFIDENCE = 0.1
MALFORMED_CONFIDENCE = 0.2
DEFAULT_CONFIDENCE = 0.5

PERSONA_CRITERIA: dict[PersonaType, str] = {
    PersonaType.RENEGADE: """\
- Challenge conventional NFT aesthetics or market norms
- Have underground, countercultural, or punk vibes
- Represent artistic rebellion or anti-establishment themes
- Appeal to collectors who reject mainstream trends
- Show experimental, edgy, or provocative concepts
- Have smaller, tight-knit communities of rebels

Look for: Dark aesthetics, punk art, glitch art, underground movements, anti-corporate themes""",
    PersonaType.FOMO: """\
- Generate excitement, hype, or urgency
- Have viral potential or trending aesthetics
- Appeal to collectors who chase the "next big thing"
- Show high activity, buzz, or social momentum
- Feature eye-catching, shareable visual styles
- Represent current or emerging cultural trends

Look for: Trending styles, viral concepts, hype-worthy art, social media friendly, momentum indicators""",
    PersonaType.ZEN: """\
- Promote calm, mindfulness, or spiritual reflection
- Have minimalist, meditative, or nature-inspired aesthetics
- Appeal to thoughtful, intentional collectors
- Show artistic depth, philosophy, or meaning
- Encourage slow appreciation over quick flipping
- Represent balance, harmony, or inner peace

Look for: Minimalist art, nature themes, spiritual concepts, meditative qualities, timeless appeal""",
    PersonaType.CHAOS: """\
- Embrace randomness, unpredictability, or complexity
- Have maximalist, eclectic, or wildly creative aesthetics
- Appeal to experimental, risk-taking collectors
- Show innovative, boundary-pushing concepts
- Feature multiple styles, themes, or approaches
- Represent creative freedom and artistic chaos

Look for: Experimental art, random generation, complex systems, innovative concepts, creative chaos""",
}


def build_prompt(
    persona: PersonaType,
    definition: PersonaDefinition,
    collections: Sequence[Collection],
) -> str:
    listing = "\n\n".join(
        f'{i}. "{c.display_name}" ({c.symbol or "N/A"})\n'
        f"   Supply: {_or_unknown(c.total_supply)} | Owners: {_or_unknown(c.owners)}\n"
        f"   Contract: {c.contract_address}"
        for i, c in enumerate(collections, start=1)
    )
    title, emoji = definition.title, definition.emoji

    return f"""\
You are an expert NFT cultural analyst specializing in blockchain subcultures and digital art movements on Shape Network.

MISSION: Analyze {len(collections)} real NFT collections and select 3-4 that authentically embody the "{title}" persona.

TARGET PERSONA: {title} {emoji}
CORE IDENTITY: {definition.description}
CULTURAL THEME: {definition.theme}

COLLECTIONS DATABASE:
{listing}

PERSONA-SPECIFIC ANALYSIS CRITERIA:
For {title} {emoji}, prioritize collections that:
{PERSONA_CRITERIA[persona]}

RESPONSE FORMAT: Provide your analysis as JSON with this exact structure:
{{
  "selectedCollections": [1, 3, 7],
  "reasoning": "I selected these collections because...",
  "confidence": 0.85
}}

IMPORTANT:
- selectedCollections: Array of collection numbers (1-{len(collections)}) that best match this persona
- reasoning: 2-3 sentences explaining your cultural analysis and why these collections embody the {title} persona
- confidence: Your confidence score (0-1) in this persona match

Select 3-4 collections that most authentically represent the {title} mindset and aesthetic preferences."""


def parse_response(text: str, collections: Sequence[Collection]) -> PersonaMatchResult:
    """Map Claude's numbered selection back onto ``collections``.

    Raises ResponseParseError (or ValueError from json) when the reply is
    unusable; out-of-range or non-integer indices are dropped silently.
    """
    parsed = extract_json(text)
    if not isinstance(parsed, dict) or not isinstance(parsed.get("selectedCollections"), list):
        raise ResponseParseError("Invalid selectedCollections format")

    selected = [
        collections[index - 1]
        for index in (_index(v) for v in parsed["selectedCollections"])
        if index is not None and 1 <= index <= len(collections)
    ][:MAX_SELECTED]

    reasoning = parsed.get("reasoning")
    return PersonaMatchResult(
        selected_collections=selected,
        reasoning=reasoning if isinstance(reasoning, str) and reasoning else "AI analysis completed",
        confidence=_confidence(parsed.get("confidence")),
        outcome=MatchOutcome.MATCHED,
    )


class PersonaMatcher:
    def __init__(self, generator: TextGenerator) -> None:
        self.generator = generator

    async def match(
        self,
        persona: PersonaType,
        definition: PersonaDefinition,
        collections: Sequence[Collection],
    ) -> PersonaMatchResult:
        """Never raises: failures come back as a low-confidence first-two selection."""
        try:
            logger.info("[persona] analyzing %d collections for %s", len(collections), persona.value.upper())
            prompt = build_prompt(persona, definition, collections)
            text = await self.generator.generate(prompt)
        except Exception as e:
            logger.error("[persona] analysis failed for %s: %s", getattr(persona, "value", persona), e)
            return PersonaMatchResult(
                selected_collections=list(collections[:FALLBACK_COUNT]),
                reasoning=f"AI analysis failed, showing first {FALLBACK_COUNT} collections as fallback. Error: {e}",
                confidence=FAILED_CONFIDENCE,
                outcome=MatchOutcome.FAILED,
            )

        try:
            result = parse_response(text, collections)
        except Exception as e:
            logger.warning("[persona] failed to parse Claude response: %s", e)
            logger.debug("[persona] raw response: %s", text)
            return PersonaMatchResult(
                selected_collections=list(collections[:FALLBACK_COUNT]),
                reasoning="AI response parsing failed, using fallback selection",
                confidence=MALFORMED_CONFIDENCE,
                outcome=MatchOutcome.MALFORMED_RESPONSE,
            )

        logger.info(
            "[persona] %d collections selected with %d%% confidence",
            len(result.selected_collections), round(result.confidence * 100),
        )
        return result


def _or_unknown(value: int | None) -> str:
    return "Unknown" if value is None else str(value)


def _index(value: object) -> int | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    return None


def _confidence(value: object) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)) or value != value:
        return DEFAULT_CONFIDENCE
    return max(0.0, min(1.0, float(value)))
