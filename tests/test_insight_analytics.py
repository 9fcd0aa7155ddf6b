from __future__ import annotations

import asyncio
from datetime import datetime, timedelta, timezone
from typing import List, Optional, Sequence

import pytest

from grain_core.models.dimension import DIMENSIONS, Dimension
from grain_core.models.pleasure import PleasureVector
from grain_core.models.profile import CircadianProfile
from grain_core.models.session import Session

from grain.hub.contracts import InsightContext, RenderedText
from grain.hub.insight import (
    EMPTY_WEEK_SUMMARY,
    NO_HISTORY_SUMMARY,
    NOVEL_EXPERIENCE_SUMMARY,
    InsightAnalytics,
    InsightType,
    rank_variance,
    underexplored_dimensions,
)
from grain.memory.store import InMemorySessionStore
from grain.memory.vector_space import VectorSpace, embed_dimensions

NOW = datetime(2026, 3, 9, 8, 30, tzinfo=timezone.utc)


class _Renderer:
    def __init__(self, text: str = "A quiet pattern.", tags: Sequence[str] = ()) -> None:
        self.text = text
        self.tags = list(tags)
        self.contexts: List[InsightContext] = []

    async def render(self, context: InsightContext) -> RenderedText:
        self.contexts.append(context)
        return RenderedText(text=self.text, dimension_tags=list(self.tags))


class _Profiles:
    def __init__(self, profile: Optional[CircadianProfile]) -> None:
        self.profile = profile

    async def circadian_profile(self, user_id: str) -> Optional[CircadianProfile]:
        return self.profile


def _session(sid: str, dims: Sequence[Dimension], *, days_ago: float = 0.0) -> Session:
    dims = list(dims)
    vector = PleasureVector(
        primary=dims[:3],
        activated_dimensions={d: 0.9 for d in dims},
        embedding=[float(v) for v in embed_dimensions(dims)],
    )
    return Session(
        user_id="u1",
        id=sid,
        timestamp_start=NOW - timedelta(days=days_ago),
        pleasure_vector=vector,
    )


def _analytics(store: InMemorySessionStore, renderer: _Renderer, **kwargs) -> InsightAnalytics:
    return InsightAnalytics(store, renderer, vector_space=VectorSpace(seed=5), clock=lambda: NOW, **kwargs)


def test_novel_session_gets_canned_finding_without_rendering() -> None:
    store = InMemorySessionStore()
    current = _session("current", [Dimension.POWER])
    store.add([current])
    renderer = _Renderer()

    finding = asyncio.run(_analytics(store, renderer).session_comparison(current))

    assert finding.type is InsightType.PATTERN
    assert finding.summary == NOVEL_EXPERIENCE_SUMMARY
    assert finding.dimensions == [Dimension.POWER]
    assert not finding.rendered
    assert renderer.contexts == []


def test_comparison_renders_with_neighbours_and_tags() -> None:
    store = InMemorySessionStore()
    current = _session("current", [Dimension.NATURE_MIRROR, Dimension.PATH])
    history = [
        _session("h1", [Dimension.NATURE_MIRROR], days_ago=1),
        _session("h2", [Dimension.NATURE_MIRROR, Dimension.PATH], days_ago=2),
        _session("h3", [Dimension.FOOD], days_ago=3),
    ]
    store.add([current, *history])
    renderer = _Renderer(text="You return to Nature Mirror often.", tags=["Nature Mirror", "bogus"])

    finding = asyncio.run(_analytics(store, renderer).session_comparison(current))

    assert finding.rendered
    assert finding.summary == "You return to Nature Mirror often."
    assert finding.tags == [Dimension.NATURE_MIRROR]
    assert "current" not in finding.related_session_ids
    assert finding.related_session_ids[0] == "h2"
    context = renderer.contexts[0]
    assert context.kind == "pattern"
    assert context.counts["similar_sessions"] == 3
    assert context.dimensions["current"] == ["nature_mirror", "path"]


def test_tags_fall_back_to_text_scan() -> None:
    store = InMemorySessionStore()
    current = _session("current", [Dimension.ORDER])
    store.add([current, _session("h1", [Dimension.ORDER], days_ago=1)])
    renderer = _Renderer(text="Lots of order and a little food lately.")

    finding = asyncio.run(_analytics(store, renderer).session_comparison(current))
    assert finding.tags == [Dimension.ORDER, Dimension.FOOD]


def test_weekly_with_no_sessions_is_canned() -> None:
    renderer = _Renderer()
    finding = asyncio.run(_analytics(InMemorySessionStore(), renderer).weekly([]))
    assert finding.type is InsightType.WEEKLY
    assert finding.summary == EMPTY_WEEK_SUMMARY
    assert renderer.contexts == []


def test_weekly_reports_variance_extremes() -> None:
    sessions = [
        _session("a", [Dimension.ORDER]),
        _session("b", [Dimension.ORDER]),
        _session("c", [Dimension.ORDER, Dimension.FOOD]),
        _session("d", [Dimension.ORDER, Dimension.FOOD]),
    ]
    renderer = _Renderer()
    finding = asyncio.run(_analytics(InMemorySessionStore(), renderer).weekly(sessions))

    context = renderer.contexts[0]
    assert context.dimensions["dominant"] == ["order", "food"]
    assert context.dimensions["most_varied"] == ["food", "order", "enclosure"]
    assert context.dimensions["least_explored"] == ["enclosure", "path", "horizon"]
    assert context.counts["total_sessions"] == 4
    assert 1 <= context.counts["clusters"] <= 4
    assert finding.dimensions == [Dimension.ORDER, Dimension.FOOD]
    assert finding.metadata["session_count"] == "4"
    assert finding.metadata["cluster_count"] == str(context.counts["clusters"])
    assert finding.metadata["most_varied"] == "Food, Order, Enclosure"
    assert finding.metadata["least_varied"] == "Enclosure, Path, Horizon"
    assert finding.related_session_ids == ["a", "b", "c", "d"]


def test_weekly_for_user_keeps_last_seven_days() -> None:
    store = InMemorySessionStore()
    store.add(
        [
            _session("recent", [Dimension.POST], days_ago=1),
            _session("midweek", [Dimension.POST], days_ago=3),
            _session("stale", [Dimension.POST], days_ago=10),
        ]
    )
    renderer = _Renderer()
    finding = asyncio.run(_analytics(store, renderer).weekly_for_user("u1"))
    assert renderer.contexts[0].counts["total_sessions"] == 2
    assert sorted(finding.related_session_ids) == ["midweek", "recent"]


def test_suggestion_without_history() -> None:
    renderer = _Renderer()
    finding = asyncio.run(_analytics(InMemorySessionStore(), renderer).next_suggestion("u1"))
    assert finding.type is InsightType.SUGGESTION
    assert finding.summary == NO_HISTORY_SUMMARY
    assert finding.dimensions == [Dimension.SERENDIPITY_FOLLOWING, Dimension.MOBILITY]
    assert renderer.contexts == []


def test_suggestion_prefers_underexplored_dimensions() -> None:
    store = InMemorySessionStore()
    store.add([_session(f"s{i}", [Dimension.ORDER], days_ago=i) for i in range(3)])
    renderer = _Renderer()

    finding = asyncio.run(_analytics(store, renderer).next_suggestion("u1"))

    assert finding.dimensions == [Dimension.ENCLOSURE, Dimension.PATH]
    context = renderer.contexts[0]
    assert len(context.dimensions["underexplored"]) == 15
    assert context.extra["time_of_day"] == "morning"
    assert context.counts["recent_sessions"] == 3


def test_suggestion_falls_back_to_circadian_preferences() -> None:
    store = InMemorySessionStore()
    store.add([_session("all", DIMENSIONS)])
    profiles = _Profiles(CircadianProfile.from_mapping({"morning": ["food", "mobility"]}))
    renderer = _Renderer()

    finding = asyncio.run(_analytics(store, renderer, profiles=profiles).next_suggestion("u1"))
    assert finding.dimensions == [Dimension.FOOD, Dimension.MOBILITY]
    assert renderer.contexts[0].dimensions["underexplored"] == []

    default = asyncio.run(_analytics(store, _Renderer(), profiles=_Profiles(None)).next_suggestion("u1"))
    assert default.dimensions == [Dimension.ORDER, Dimension.PATH, Dimension.POWER]


def test_rank_helpers() -> None:
    variance = [0.0] * 16
    variance[Dimension.POWER.offset] = 0.4
    variance[Dimension.FOOD.offset] = 0.4
    variance[Dimension.ORDER.offset] = 0.1
    most, least = rank_variance(variance, count=3)
    assert most == [Dimension.FOOD, Dimension.POWER, Dimension.ORDER]
    assert least == [Dimension.ENCLOSURE, Dimension.PATH, Dimension.HORIZON]

    center = [0.5] * 16
    center[Dimension.ANXIETY.offset] = 0.19
    assert underexplored_dimensions(center) == [Dimension.ANXIETY]
    assert underexplored_dimensions(center, threshold=0.1) == []
