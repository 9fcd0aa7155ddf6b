"""Per-user wiring of lifecycle, vector space and insight analytics."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Optional

from grain.memory.vector_space import VectorSpace
from grain.runtime.config import EngineCfg
from grain.runtime.lifecycle import SessionLifecycle

from .contracts import InsightRenderer, ProfileSource, SessionStore
from .insight import Finding, InsightAnalytics

logger = logging.getLogger(__name__)


@dataclass
class GrainEngine:
    """Explicit, user-scoped instances; nothing here is process-global."""

    lifecycle: SessionLifecycle
    vector_space: VectorSpace
    insights: InsightAnalytics

    async def end_session_with_insight(self) -> Optional[Finding]:
        """End the live session and compare it against history."""

        session = await self.lifecycle.end_session()
        if session is None:
            return None
        return await self.insights.session_comparison(session)


def build_engine(
    store: SessionStore,
    renderer: InsightRenderer,
    *,
    profiles: Optional[ProfileSource] = None,
    cfg: Optional[EngineCfg] = None,
    clock: Optional[Callable[[], datetime]] = None,
) -> GrainEngine:
    cfg = cfg or EngineCfg()
    space = VectorSpace(
        cluster_iterations=cfg.clustering.iterations,
        default_clusters=cfg.clustering.default_clusters,
        seed=cfg.clustering.seed,
    )
    lifecycle = SessionLifecycle(
        store,
        vector_space=space,
        clock=clock,
        trace_path=cfg.lifecycle.trace_path,
    )
    insights = InsightAnalytics(
        store,
        renderer,
        vector_space=space,
        profiles=profiles,
        config=cfg.insight,
        clock=clock,
    )
    logger.debug("grain engine built (seed=%s)", cfg.clustering.seed)
    return GrainEngine(lifecycle=lifecycle, vector_space=space, insights=insights)


__all__ = ["GrainEngine", "build_engine"]
