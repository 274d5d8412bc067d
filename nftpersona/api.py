"""FastAPI server: persona matching and Claude deep-dive endpoints."""

from __future__ import annotations

import logging
from typing import Any

from fastapi import Depends, FastAPI, Request
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from nftpersona.analyzer.llm import ClaudeGenerator, TextGenerator
from nftpersona.analyzer.persona import PersonaMatcher
from nftpersona.analyzer.synthesis import ProviderSynthesizer
from nftpersona.collectors.alchemy import AlchemyClient
from nftpersona.collectors.gateway import CollectionGateway
from nftpersona.core.cache import CollectionCache
from nftpersona.core.config import alchemy_api_key, load_config, section
from nftpersona.core.exceptions import NftPersonaError
from nftpersona.core.models import (
    PERSONA_DEFINITIONS,
    ActivityAnalytics,
    Collection,
    HolderAnalytics,
    MarketAnalytics,
    parse_persona,
)

logger = logging.getLogger(__name__)

app = FastAPI(title="nftpersona", version="0.1.0")


def get_config() -> dict:
    if not hasattr(app.state, "config"):
        app.state.config = load_config()
    return app.state.config


def get_generator(config: dict = Depends(get_config)) -> TextGenerator:
    return ClaudeGenerator(section(config, "llm"))


def get_cache(config: dict = Depends(get_config)) -> CollectionCache:
    # One cache per process, shared by every request
    if not hasattr(app.state, "cache"):
        provider = AlchemyClient(section(config, "alchemy"), alchemy_api_key())
        gateway = CollectionGateway(
            provider, fetch_delay=section(config, "gateway").get("fetch_delay", 0.1),
        )
        cache_cfg = section(config, "cache")
        app.state.cache = CollectionCache(
            gateway,
            progress_start=cache_cfg.get("progress_start", 10),
            progress_end=cache_cfg.get("progress_end", 95),
        )
    return app.state.cache


def _error(status: int, error: str, details: str | None = None) -> JSONResponse:
    body: dict[str, Any] = {"error": error}
    if details is not None:
        body["details"] = details
    return JSONResponse(status_code=status, content=body)


def _failure(e: Exception) -> JSONResponse:
    if isinstance(e, NftPersonaError):
        info = e.to_dict()
        return JSONResponse(status_code=500, content={
            "error": "AI analysis failed", "details": info["message"], "code": info["error"],
        })
    return _error(500, "AI analysis failed", str(e))


@app.post("/analyze-persona")
async def analyze_persona(
    request: Request, generator: TextGenerator = Depends(get_generator),
) -> JSONResponse:
    try:
        body = await request.json()
        if not isinstance(body, dict):
            raise ValueError("request body must be a JSON object")
        raw_persona = body.get("persona")
        raw_collections = body.get("collections")

        if not raw_persona or not isinstance(raw_collections, list):
            return _error(400, "Invalid request: persona and collections array required")

        persona = parse_persona(raw_persona)
        if persona is None:
            return _error(400, f"Unknown persona: {raw_persona}")

        collections = [Collection.model_validate(c) for c in raw_collections]
        logger.info("[api] persona analysis for %s over %d collections", persona.value.upper(), len(collections))

        analysis = await PersonaMatcher(generator).match(
            persona, PERSONA_DEFINITIONS[persona], collections,
        )
        return JSONResponse(content={
            "success": True,
            "analysis": analysis.model_dump(
                mode="json", by_alias=True, include={"selected_collections", "reasoning", "confidence"},
            ),
        })
    except ValidationError as e:
        return _error(400, "Invalid request: malformed collections", str(e))
    except Exception as e:
        logger.exception("[api] persona analysis failed")
        return _failure(e)


@app.post("/ai-analysis")
async def ai_analysis(
    request: Request,
    generator: TextGenerator = Depends(get_generator),
    config: dict = Depends(get_config),
) -> JSONResponse:
    try:
        body = await request.json()
        if not isinstance(body, dict):
            raise ValueError("request body must be a JSON object")
        raw_collection = body.get("collection")
        if not isinstance(raw_collection, dict) or not raw_collection.get("contractAddress"):
            return _error(400, "Invalid request: collection data required")

        if not generator.configured:
            return _error(500, "Anthropic API key not configured")

        collection = Collection.model_validate(raw_collection)
        market = _optional(MarketAnalytics, body.get("marketHealth"))
        holder = _optional(HolderAnalytics, body.get("holderAnalysis"))
        activity = _optional(ActivityAnalytics, body.get("activityTrends"))

        synthesizer = ProviderSynthesizer(
            generator, max_tokens=section(config, "llm").get("deep_dive_max_tokens", 1000),
        )
        analysis = await synthesizer.synthesize(collection, market, holder, activity)
        return JSONResponse(content={
            "success": True,
            "analysis": analysis.model_dump(mode="json", by_alias=True),
        })
    except ValidationError as e:
        return _error(400, "Invalid request: malformed collection data", str(e))
    except Exception as e:
        logger.exception("[api] deep dive failed")
        return _failure(e)


@app.get("/collections")
async def collections(cache: CollectionCache = Depends(get_cache)) -> dict:
    loaded = await cache.load()
    return {
        "success": True,
        "source": (cache.source or loaded.source).value,
        "collections": [c.model_dump(mode="json", by_alias=True) for c in loaded.collections],
    }


@app.get("/health")
async def health() -> dict:
    return {"status": "ok"}


def _optional(model: type, value: Any) -> Any:
    return model.model_validate(value) if value else None
