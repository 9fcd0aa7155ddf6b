from __future__ import annotations

import asyncio
import math
from datetime import datetime, timezone
from typing import Iterable, List, Optional

import numpy as np
import pytest

from grain_core.models.dimension import Dimension
from grain_core.models.pleasure import PleasureProfile, PleasureVector
from grain_core.models.session import Session

from grain.memory.store import InMemorySessionStore
from grain.memory.vector_space import (
    VectorSpace,
    activation_array,
    axis_projection,
    centroid,
    cosine_similarity,
    dimension_variance,
    dominant_dimensions_in,
    embed_dimensions,
    euclidean_distance,
    find_similar,
    legacy_projection,
    normalize,
)


def _session(sid: str, dims: Iterable[Dimension], embedding: Optional[List[float]] = None) -> Session:
    dims = list(dims)
    vector = PleasureVector(
        primary=dims[:3],
        activated_dimensions={d: 1.0 for d in dims},
        embedding=embedding if embedding is not None else [float(v) for v in embed_dimensions(dims)],
    )
    return Session(user_id="u1", id=sid, timestamp_start=datetime(2026, 3, 1, tzinfo=timezone.utc), pleasure_vector=vector)


def test_embedding_is_unit_length_activation() -> None:
    raw = activation_array({Dimension.ORDER: 1.0, Dimension.FOOD: 0.5})
    assert raw[Dimension.ORDER.offset] == 1.0
    assert raw[Dimension.FOOD.offset] == 0.5
    unit = normalize(raw)
    assert np.linalg.norm(unit) == pytest.approx(1.0)
    assert unit[Dimension.ORDER.offset] == pytest.approx(1.0 / math.sqrt(1.25))
    assert np.array_equal(normalize(np.zeros(16)), np.zeros(16))


def test_embed_dispatches_on_source_type() -> None:
    space = VectorSpace()
    pair = space.embed([Dimension.ORDER, Dimension.POWER])
    assert pair[Dimension.POWER.offset] == pytest.approx(1.0 / math.sqrt(2))
    profile = space.embed(PleasureProfile())
    assert profile == pytest.approx(np.full(16, 0.25))
    empty_session = Session(user_id="u1")
    assert np.array_equal(space.embed(empty_session), np.zeros(16))


def test_similarity_metrics() -> None:
    v = embed_dimensions([Dimension.PATH, Dimension.HORIZON])
    assert cosine_similarity(v, v) == pytest.approx(1.0)
    assert cosine_similarity(np.zeros(16), v) == 0.0
    assert cosine_similarity([], []) == 0.0
    assert cosine_similarity([1.0, 0.0], v) == 0.0
    assert euclidean_distance([0.0, 0.0], [3.0, 4.0]) == pytest.approx(5.0)
    assert euclidean_distance([1.0], [1.0, 2.0]) == math.inf


def test_find_similar_skips_missing_and_malformed_embeddings() -> None:
    sessions = [
        _session("food", [Dimension.FOOD]),
        _session("order", [Dimension.ORDER]),
        _session("order-path", [Dimension.ORDER, Dimension.PATH]),
        _session("empty", [Dimension.ORDER], embedding=[]),
        _session("short", [Dimension.ORDER], embedding=[1.0, 0.0]),
    ]
    query = embed_dimensions([Dimension.ORDER])
    ranked = find_similar(query, sessions, k=2)
    assert [s.id for s in ranked] == ["order", "order-path"]
    assert len(find_similar(query, sessions, k=10)) == 3


def test_centroid_and_variance() -> None:
    assert np.array_equal(centroid([]), np.zeros(16))
    single = [_session("a", [Dimension.MOBILITY])]
    assert np.array_equal(dimension_variance(single), np.zeros(16))

    pair = [_session("a", [Dimension.MOBILITY]), _session("b", [Dimension.POWER])]
    center = centroid(pair)
    assert center[Dimension.MOBILITY.offset] == pytest.approx(0.5)
    variance = dimension_variance(pair)
    assert variance[Dimension.POWER.offset] == pytest.approx(0.25)
    assert variance[Dimension.ORDER.offset] == 0.0


def test_dominant_dimensions_in_fixed_order() -> None:
    vec = np.zeros(16)
    vec[Dimension.POWER.offset] = 0.9
    vec[Dimension.ORDER.offset] = 0.3
    vec[Dimension.FOOD.offset] = 0.5
    vec[Dimension.PATH.offset] = 0.29
    assert dominant_dimensions_in(vec) == [Dimension.ORDER, Dimension.FOOD, Dimension.POWER]


def test_projections() -> None:
    vec = np.zeros(16)
    vec[:7] = 1.0
    assert legacy_projection(vec) == pytest.approx((1.0, 0.0))
    assert legacy_projection([1.0, 2.0]) == (0.0, 0.0)
    vec[Dimension.FOOD.offset] = 0.4
    assert axis_projection(vec, Dimension.FOOD, Dimension.ORDER) == pytest.approx((0.4, 1.0))


def test_backfill_embeds_only_missing_vectors() -> None:
    store = InMemorySessionStore()
    missing = _session("missing", [Dimension.ANXIETY], embedding=[])
    ready = _session("ready", [Dimension.POST])
    bare = Session(user_id="u1", id="bare")
    store.add([missing, ready, bare])

    updated = asyncio.run(VectorSpace().backfill_embeddings(store, "u1"))
    assert [s.id for s in updated] == ["missing"]

    stored = {s.id: s for s in asyncio.run(store.fetch_sessions("u1"))}
    assert stored["missing"].embedding[Dimension.ANXIETY.offset] == pytest.approx(1.0)
    assert stored["bare"].pleasure_vector is None
