"""Structured findings built from vector-space analytics.

The engine only assembles numeric/dimension context; wording comes from the
injected renderer. Canned findings short-circuit the renderer when there is
nothing to compare against.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

import numpy as np

from grain_core.models.dimension import DIMENSIONS, Dimension, parse_dimension_tags, scan_dimensions
from grain_core.models.profile import CircadianProfile, TimeOfDay
from grain_core.models.session import Session

from grain.memory.clustering import summarize_clusters
from grain.memory.vector_space import VectorSpace
from grain.runtime.config import InsightCfg

from .contracts import InsightContext, InsightRenderer, ProfileSource, SessionStore

logger = logging.getLogger(__name__)

NOVEL_EXPERIENCE_SUMMARY = "This is a new type of experience for you. Keep exploring!"
EMPTY_WEEK_SUMMARY = "Start some sessions to get weekly insights!"
NO_HISTORY_SUMMARY = "Try starting with a Drift session to explore freely."
NO_HISTORY_DIMENSIONS = (Dimension.SERENDIPITY_FOLLOWING, Dimension.MOBILITY)


class InsightType(str, Enum):
    PATTERN = "pattern"
    WEEKLY = "weekly"
    SUGGESTION = "suggestion"
    MILESTONE = "milestone"


@dataclass
class Finding:
    type: InsightType
    summary: str
    dimensions: List[Dimension] = field(default_factory=list)
    related_session_ids: List[str] = field(default_factory=list)
    generated_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    metadata: Dict[str, str] = field(default_factory=dict)
    context: Optional[InsightContext] = None
    tags: List[Dimension] = field(default_factory=list)
    rendered: bool = False
    id: str = field(default_factory=lambda: uuid.uuid4().hex)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "type": self.type.value,
            "summary": self.summary,
            "dimensions": [d.value for d in self.dimensions],
            "related_session_ids": list(self.related_session_ids),
            "generated_at": self.generated_at.isoformat(),
            "metadata": dict(self.metadata),
            "context": self.context.to_payload() if self.context else None,
            "tags": [d.value for d in self.tags],
            "rendered": self.rendered,
        }


def _names(dims: Sequence[Dimension]) -> List[str]:
    return [d.value for d in dims]


def _display(dims: Sequence[Dimension]) -> str:
    return ", ".join(d.display_name for d in dims)


def rank_variance(variance: Sequence[float], count: int = 3) -> Tuple[List[Dimension], List[Dimension]]:
    """Return (most varied, least explored), ties broken by dimension order."""

    indexed = list(enumerate(float(v) for v in variance))[: len(DIMENSIONS)]
    most = sorted(indexed, key=lambda iv: (-iv[1], iv[0]))[:count]
    least = sorted(indexed, key=lambda iv: (iv[1], iv[0]))[:count]
    return [DIMENSIONS[i] for i, _ in most], [DIMENSIONS[i] for i, _ in least]


def underexplored_dimensions(center: Sequence[float], threshold: float = 0.2) -> List[Dimension]:
    vec = np.asarray(center, dtype=float).reshape(-1)
    return [dim for idx, dim in enumerate(DIMENSIONS) if idx < vec.size and vec[idx] < threshold]


def build_weekly_context(
    sessions: Sequence[Session],
    *,
    vector_space: VectorSpace,
    config: InsightCfg,
) -> InsightContext:
    """Structured weekly pattern context: clusters, centroid, variance extremes."""

    clusters = vector_space.cluster(sessions, config.weekly_clusters)
    variance = vector_space.dimension_variance(sessions)
    center = vector_space.centroid(sessions)
    dominant = vector_space.dominant_dimensions_in(center)
    most_varied, least_explored = rank_variance(variance, config.extremes_count)
    return InsightContext(
        kind=InsightType.WEEKLY.value,
        system_role=config.system_role,
        dimensions={
            "dominant": _names(dominant),
            "most_varied": _names(most_varied),
            "least_explored": _names(least_explored),
        },
        counts={"total_sessions": len(sessions), "clusters": len(clusters)},
        extra={
            "centroid": [float(v) for v in center],
            "variance": [float(v) for v in variance],
            "clusters": summarize_clusters(clusters),
        },
    )


class InsightAnalytics:
    """Combines clusters, variance and neighbours into renderer-ready findings."""

    def __init__(
        self,
        store: SessionStore,
        renderer: InsightRenderer,
        *,
        vector_space: Optional[VectorSpace] = None,
        profiles: Optional[ProfileSource] = None,
        config: Optional[InsightCfg] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        self.store = store
        self.renderer = renderer
        self.vector_space = vector_space or VectorSpace()
        self.profiles = profiles
        self.config = config or InsightCfg()
        self._clock = clock or (lambda: datetime.now(timezone.utc).astimezone())

    # ------------------------------------------------------------------
    # Session comparison
    # ------------------------------------------------------------------

    async def session_comparison(self, session: Session) -> Finding:
        cfg = self.config
        dims = session.pleasure_vector.dominant_dimensions if session.pleasure_vector else []
        embedding = self.vector_space.embed(session)
        limit = cfg.neighbor_k + (1 if session.id else 0)
        neighbors = await self.store.find_neighbors([float(v) for v in embedding], limit)
        similar = [s for s in neighbors if not (session.id and s.id == session.id)][: cfg.neighbor_k]

        if not similar:
            logger.info("session %s has no similar history; novel finding", session.id)
            return Finding(
                type=InsightType.PATTERN,
                summary=NOVEL_EXPERIENCE_SUMMARY,
                dimensions=list(dims),
                generated_at=self._clock(),
            )

        context = InsightContext(
            kind=InsightType.PATTERN.value,
            system_role=cfg.system_role,
            dimensions={"current": _names(dims)},
            counts={"similar_sessions": len(similar)},
            extra={
                "similar_sessions": [
                    {
                        "id": s.id,
                        "date": s.timestamp_start.date().isoformat(),
                        "dimensions": _names(
                            s.pleasure_vector.dominant_dimensions if s.pleasure_vector else []
                        ),
                    }
                    for s in similar
                ]
            },
        )
        return await self._rendered_finding(
            InsightType.PATTERN,
            context,
            dimensions=list(dims),
            related_ids=[s.id for s in similar if s.id],
        )

    # ------------------------------------------------------------------
    # Weekly patterns
    # ------------------------------------------------------------------

    def weekly_context(self, sessions: Sequence[Session]) -> InsightContext:
        return build_weekly_context(sessions, vector_space=self.vector_space, config=self.config)

    async def weekly(self, sessions: Sequence[Session]) -> Finding:
        if not sessions:
            return Finding(type=InsightType.WEEKLY, summary=EMPTY_WEEK_SUMMARY, generated_at=self._clock())

        context = self.weekly_context(sessions)
        dims = context.dimensions
        return await self._rendered_finding(
            InsightType.WEEKLY,
            context,
            dimensions=[Dimension(v) for v in dims["dominant"]],
            related_ids=[s.id for s in sessions if s.id],
            metadata={
                "session_count": str(len(sessions)),
                "cluster_count": str(context.counts["clusters"]),
                "most_varied": _display([Dimension(v) for v in dims["most_varied"]]),
                "least_varied": _display([Dimension(v) for v in dims["least_explored"]]),
            },
        )

    async def weekly_for_user(self, user_id: str, now: Optional[datetime] = None) -> Finding:
        current = now or self._clock()
        sessions = await self.store.fetch_sessions(user_id, self.config.fetch_limit)
        cutoff = current - timedelta(days=self.config.weekly_days)
        recent = [s for s in sessions if s.timestamp_start >= cutoff]
        logger.debug("weekly window for %s: %d of %d sessions", user_id, len(recent), len(sessions))
        return await self.weekly(recent)

    # ------------------------------------------------------------------
    # Next-session suggestion
    # ------------------------------------------------------------------

    async def next_suggestion(self, user_id: str, now: Optional[datetime] = None) -> Finding:
        cfg = self.config
        current = now or self._clock()
        sessions = await self.store.fetch_sessions(user_id, cfg.fetch_limit)
        recent = list(sessions[: cfg.recent_window])
        if not recent:
            return Finding(
                type=InsightType.SUGGESTION,
                summary=NO_HISTORY_SUMMARY,
                dimensions=list(NO_HISTORY_DIMENSIONS),
                generated_at=current,
            )

        center = self.vector_space.centroid(recent)
        underexplored = underexplored_dimensions(center, cfg.underexplored_threshold)
        time_of_day = TimeOfDay.current(current)
        circadian = await self._circadian_profile(user_id)
        preferred = circadian.dimensions_for(time_of_day)
        suggested = underexplored[: cfg.suggestion_dims] if underexplored else preferred

        context = InsightContext(
            kind=InsightType.SUGGESTION.value,
            system_role=cfg.system_role,
            dimensions={"underexplored": _names(underexplored), "time_preferences": _names(preferred)},
            counts={"recent_sessions": len(recent)},
            extra={"time_of_day": time_of_day.value},
        )
        return await self._rendered_finding(InsightType.SUGGESTION, context, dimensions=suggested)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    async def _circadian_profile(self, user_id: str) -> CircadianProfile:
        if self.profiles is None:
            return CircadianProfile()
        profile = await self.profiles.circadian_profile(user_id)
        return profile if profile is not None else CircadianProfile()

    async def _rendered_finding(
        self,
        kind: InsightType,
        context: InsightContext,
        *,
        dimensions: Sequence[Dimension],
        related_ids: Sequence[str] = (),
        metadata: Optional[Dict[str, str]] = None,
    ) -> Finding:
        rendered = await self.renderer.render(context)
        text = (rendered.text or "").strip()
        tags = parse_dimension_tags(rendered.dimension_tags) or scan_dimensions(text)
        return Finding(
            type=kind,
            summary=text,
            dimensions=list(dimensions),
            related_session_ids=list(related_ids),
            generated_at=self._clock(),
            metadata=dict(metadata or {}),
            context=context,
            tags=tags,
            rendered=True,
        )


__all__ = [
    "InsightAnalytics",
    "InsightType",
    "Finding",
    "build_weekly_context",
    "rank_variance",
    "underexplored_dimensions",
    "NOVEL_EXPERIENCE_SUMMARY",
    "EMPTY_WEEK_SUMMARY",
    "NO_HISTORY_SUMMARY",
]
