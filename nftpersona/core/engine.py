"""Workflow controller: cache load -> persona selection -> per-collection analytics.

Main states:
  IDLE -> LOADING_CACHE -> READY_COLLAPSED -> EXPANDED_SELECTING
       -> ANALYZING_PERSONA -> SHOWING_RESULTS

Per-collection analytics run beside the main state machine. Each metric
moves IDLE -> LOADING -> LOADED | FAILED and several may run at once.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Coroutine
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from nftpersona.analyzer.metrics import (
    fetch_activity_trends,
    fetch_holder_analysis,
    fetch_market_health,
)
from nftpersona.analyzer.persona import PersonaMatcher
from nftpersona.analyzer.synthesis import DeepDiveSynthesizer, LocalSynthesizer
from nftpersona.core.cache import CollectionCache
from nftpersona.core.models import (
    PERSONA_DEFINITIONS,
    CacheSource,
    Collection,
    PersonaMatchResult,
    PersonaType,
)

logger = logging.getLogger(__name__)

# Cache progress (0-100) is shown in this slice of the session's bar
CACHE_PROGRESS_START = 25
CACHE_PROGRESS_SPAN = 50


class WorkflowState(str, Enum):
    IDLE = "idle"
    LOADING_CACHE = "loading_cache"
    READY_COLLAPSED = "ready_collapsed"
    EXPANDED_SELECTING = "expanded_selecting"
    ANALYZING_PERSONA = "analyzing_persona"
    SHOWING_RESULTS = "showing_results"


class MetricKind(str, Enum):
    MARKET = "market"
    HOLDER = "holder"
    ACTIVITY = "activity"
    AI = "ai"


class MetricStatus(str, Enum):
    IDLE = "idle"
    LOADING = "loading"
    LOADED = "loaded"
    FAILED = "failed"


@dataclass
class CollectionAnalytics:
    expanded: bool = False
    status: dict[MetricKind, MetricStatus] = field(
        default_factory=lambda: {kind: MetricStatus.IDLE for kind in MetricKind}
    )
    data: dict[MetricKind, Any] = field(default_factory=dict)
    errors: dict[MetricKind, str] = field(default_factory=dict)


class WorkflowController:
    """One user session over a shared CollectionCache."""

    def __init__(
        self,
        cache: CollectionCache,
        matcher: PersonaMatcher,
        provider: Any,
        synthesizer: DeepDiveSynthesizer | None = None,
    ) -> None:
        self.cache = cache
        self.matcher = matcher
        self.provider = provider
        self.synthesizer = synthesizer or LocalSynthesizer()

        self.state = WorkflowState.IDLE
        self.progress: float = 0
        self.status = ""
        self.error: str | None = None
        self.collections: list[Collection] = []
        self.cache_source: CacheSource | None = None
        self.selected_persona: PersonaType | None = None
        self.match: PersonaMatchResult | None = None
        self.analytics: dict[str, CollectionAnalytics] = {}
        self._progress_cb: Callable[[float, str], Coroutine[Any, Any, None]] | None = None

    def on_progress(self, cb: Callable[[float, str], Coroutine[Any, Any, None]]) -> None:
        self._progress_cb = cb

    async def _emit(self, progress: float, status: str) -> None:
        self.progress = progress
        self.status = status
        if self._progress_cb:
            await self._progress_cb(progress, status)

    @property
    def results(self) -> list[Collection] | None:
        return self.match.selected_collections if self.match else None

    # --- cache ---

    async def start(self) -> None:
        """Mount: load the cache unless it is already populated."""
        if self.state is not WorkflowState.IDLE:
            return
        if self.cache.is_populated:
            self.collections = self.cache.collections
            self.cache_source = CacheSource.CACHED
            self.state = WorkflowState.READY_COLLAPSED
            return
        await self._load()

    async def retry(self) -> None:
        self.error = None
        await self._load()

    async def _load(self) -> None:
        self.state = WorkflowState.LOADING_CACHE
        await self._emit(0, "Initializing...")
        await self._emit(CACHE_PROGRESS_START, "Loading Shape Network collections...")

        async def forward(progress: float, status: str) -> None:
            await self._emit(CACHE_PROGRESS_START + progress * CACHE_PROGRESS_SPAN / 100, status)

        loaded = await self.cache.load(forward)
        if loaded.source is CacheSource.FALLBACK:
            logger.warning("[workflow] running on fallback collections: %s", loaded.error)

        await self._emit(80, "Processing collection metadata...")
        self.collections = loaded.collections
        self.cache_source = loaded.source
        await self._emit(100, "✨ Ready to discover your persona!")
        self.state = WorkflowState.READY_COLLAPSED

    # --- main flow ---

    def expand(self) -> None:
        if self.state is WorkflowState.READY_COLLAPSED:
            self.state = WorkflowState.EXPANDED_SELECTING

    def collapse(self) -> None:
        self.selected_persona = None
        self.match = None
        if self.state not in (WorkflowState.IDLE, WorkflowState.LOADING_CACHE):
            self.state = WorkflowState.READY_COLLAPSED

    async def select_persona(self, persona: PersonaType | None) -> PersonaMatchResult | None:
        if persona is None:
            self.selected_persona = None
            self.match = None
            self.state = WorkflowState.EXPANDED_SELECTING
            return None

        self.selected_persona = persona
        self.match = None
        self.state = WorkflowState.ANALYZING_PERSONA
        # The matcher masks its own failures; the outcome field tells them apart
        result = await self.matcher.match(persona, PERSONA_DEFINITIONS[persona], self.collections)
        if self.selected_persona is persona:
            self.match = result
            self.state = WorkflowState.SHOWING_RESULTS
        return result

    # --- per-collection analytics ---

    def analytics_for(self, address: str) -> CollectionAnalytics:
        return self.analytics.setdefault(address, CollectionAnalytics())

    def toggle_analytics(self, address: str) -> bool:
        entry = self.analytics_for(address)
        entry.expanded = not entry.expanded
        return entry.expanded

    async def run_analytics(self, collection: Collection, kind: MetricKind) -> Any:
        """Fetch one metric for one collection. Failures land in ``errors``."""
        entry = self.analytics_for(collection.contract_address)
        entry.status[kind] = MetricStatus.LOADING
        entry.errors.pop(kind, None)

        try:
            if kind is MetricKind.MARKET:
                result = await fetch_market_health(self.provider, collection)
            elif kind is MetricKind.HOLDER:
                result = await fetch_holder_analysis(self.provider, collection)
            elif kind is MetricKind.ACTIVITY:
                result = await fetch_activity_trends(self.provider, collection)
            else:
                # Reads whatever has already landed; does not wait for the rest
                result = await self.synthesizer.synthesize(
                    collection,
                    entry.data.get(MetricKind.MARKET),
                    entry.data.get(MetricKind.HOLDER),
                    entry.data.get(MetricKind.ACTIVITY),
                )
        except Exception as e:
            logger.error("[workflow] %s analytics failed for %s: %s", kind.value, collection.display_name, e)
            entry.status[kind] = MetricStatus.FAILED
            entry.errors[kind] = str(e)
            return None

        entry.data[kind] = result
        entry.status[kind] = MetricStatus.LOADED
        return result
