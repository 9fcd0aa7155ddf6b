"""16D pleasure embeddings, similarity metrics and aggregate statistics."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Iterable, List, Mapping, Optional, Sequence, Tuple

import numpy as np

from grain_core.models.dimension import DIMENSION_COUNT, DIMENSIONS, Dimension
from grain_core.models.pleasure import PleasureProfile, PleasureVector
from grain_core.models.session import Session

if TYPE_CHECKING:
    from .clustering import Cluster

logger = logging.getLogger(__name__)

EMBEDDING_DIM = DIMENSION_COUNT
VECTOR_DOMINANT_THRESHOLD = 0.3


def _as_vector(values: Sequence[float] | np.ndarray) -> np.ndarray:
    return np.asarray(values, dtype=float).reshape(-1)


def _zeros() -> np.ndarray:
    return np.zeros(EMBEDDING_DIM, dtype=float)


# ---------------------------------------------------------------------------
# Embedding generation
# ---------------------------------------------------------------------------


def normalize(vector: Sequence[float] | np.ndarray) -> np.ndarray:
    """Scale to unit Euclidean length; the zero vector is returned unchanged."""

    vec = _as_vector(vector)
    norm = float(np.linalg.norm(vec))
    if norm == 0.0:
        return vec
    return vec / norm


def activation_array(activated: Mapping[Dimension, float]) -> np.ndarray:
    """Activation map laid out in dimension order, before normalisation."""

    vec = _zeros()
    for dim, intensity in activated.items():
        vec[dim.offset] = float(intensity)
    return vec


def dense_activation(session: Session) -> np.ndarray:
    if session.pleasure_vector is None:
        return _zeros()
    return activation_array(session.pleasure_vector.activated_dimensions)


def embed_session(session: Session) -> np.ndarray:
    return normalize(dense_activation(session))


def embed_profile(profile: PleasureProfile) -> np.ndarray:
    return normalize(profile.to_vector())


def embed_dimensions(dimensions: Iterable[Dimension]) -> np.ndarray:
    vec = _zeros()
    for dim in dimensions:
        vec[Dimension.from_any(dim).offset] = 1.0
    return normalize(vec)


def session_embedding(session: Session) -> Optional[np.ndarray]:
    """Stored embedding, or ``None`` when it is absent or malformed."""

    raw = session.embedding
    if not raw or len(raw) != EMBEDDING_DIM:
        return None
    return np.asarray(raw, dtype=float)


# ---------------------------------------------------------------------------
# Metrics
# ---------------------------------------------------------------------------


def cosine_similarity(a: Sequence[float] | np.ndarray, b: Sequence[float] | np.ndarray) -> float:
    v1 = _as_vector(a)
    v2 = _as_vector(b)
    if v1.size == 0 or v1.shape != v2.shape:
        return 0.0
    denominator = float(np.linalg.norm(v1)) * float(np.linalg.norm(v2))
    if denominator <= 0.0:
        return 0.0
    return float(np.dot(v1, v2) / denominator)


def euclidean_distance(a: Sequence[float] | np.ndarray, b: Sequence[float] | np.ndarray) -> float:
    """Euclidean distance; ``inf`` marks vectors of different length as incomparable."""

    v1 = _as_vector(a)
    v2 = _as_vector(b)
    if v1.shape != v2.shape:
        return float("inf")
    return float(np.linalg.norm(v1 - v2))


def find_similar(
    query: Sequence[float] | np.ndarray,
    sessions: Sequence[Session],
    k: int = 5,
) -> List[Session]:
    scored: List[Tuple[Session, float]] = []
    for session in sessions:
        embedding = session_embedding(session)
        if embedding is None:
            continue
        scored.append((session, cosine_similarity(query, embedding)))
    scored.sort(key=lambda item: item[1], reverse=True)
    return [session for session, _ in scored[: max(0, int(k))]]


def _stack_embeddings(sessions: Iterable[Session]) -> Optional[np.ndarray]:
    rows = [emb for emb in (session_embedding(s) for s in sessions) if emb is not None]
    if not rows:
        return None
    return np.stack(rows)


def centroid(sessions: Iterable[Session]) -> np.ndarray:
    data = _stack_embeddings(sessions)
    if data is None:
        return _zeros()
    return data.mean(axis=0)


def dimension_variance(sessions: Iterable[Session]) -> np.ndarray:
    """Per-dimension population variance around the centroid."""

    data = _stack_embeddings(sessions)
    if data is None:
        return _zeros()
    center = data.mean(axis=0)
    return ((data - center) ** 2).mean(axis=0)


def dominant_dimensions_in(
    vector: Sequence[float] | np.ndarray,
    threshold: float = VECTOR_DOMINANT_THRESHOLD,
) -> List[Dimension]:
    """Dimensions meeting ``threshold`` in fixed dimension order (not ranked)."""

    vec = _as_vector(vector)
    return [dim for idx, dim in enumerate(DIMENSIONS) if idx < vec.size and vec[idx] >= threshold]


# ---------------------------------------------------------------------------
# 2D projections for the pleasure-space view
# ---------------------------------------------------------------------------


def legacy_projection(vector: Sequence[float] | np.ndarray) -> Tuple[float, float]:
    """Legacy two-bucket projection: mean of dims 0-6 vs mean of dims 7-15.

    This is a placeholder carried over for visual compatibility; it is not PCA.
    """

    vec = _as_vector(vector)
    if vec.size < EMBEDDING_DIM:
        return (0.0, 0.0)
    return (float(vec[:7].mean()), float(vec[7:EMBEDDING_DIM].mean()))


def axis_projection(
    vector: Sequence[float] | np.ndarray,
    x: Dimension,
    y: Dimension,
) -> Tuple[float, float]:
    vec = _as_vector(vector)
    if vec.size < EMBEDDING_DIM:
        return (0.0, 0.0)
    return (float(vec[x.offset]), float(vec[y.offset]))


# ---------------------------------------------------------------------------
# Service facade
# ---------------------------------------------------------------------------


class VectorSpace:
    """Stateless analytics facade; one instance per user scope is enough.

    ``seed`` makes clustering reproducible: each call builds its own generator,
    so concurrent runs never share sampling state.
    """

    def __init__(
        self,
        *,
        cluster_iterations: int = 10,
        default_clusters: int = 4,
        seed: Optional[int] = None,
    ) -> None:
        self.cluster_iterations = int(cluster_iterations)
        self.default_clusters = int(default_clusters)
        self.seed = seed

    def embed(
        self,
        source: Session | PleasureVector | PleasureProfile | Iterable[Dimension],
    ) -> np.ndarray:
        if isinstance(source, Session):
            return embed_session(source)
        if isinstance(source, PleasureVector):
            return normalize(activation_array(source.activated_dimensions))
        if isinstance(source, PleasureProfile):
            return embed_profile(source)
        return embed_dimensions(source)

    normalize = staticmethod(normalize)
    cosine_similarity = staticmethod(cosine_similarity)
    euclidean_distance = staticmethod(euclidean_distance)
    find_similar = staticmethod(find_similar)
    centroid = staticmethod(centroid)
    dimension_variance = staticmethod(dimension_variance)
    dominant_dimensions_in = staticmethod(dominant_dimensions_in)
    legacy_projection = staticmethod(legacy_projection)
    axis_projection = staticmethod(axis_projection)

    def cluster(
        self,
        sessions: Sequence[Session],
        k: Optional[int] = None,
        *,
        rng: Optional[np.random.Generator] = None,
    ) -> List["Cluster"]:
        from .clustering import cluster_sessions

        generator = rng if rng is not None else np.random.default_rng(self.seed)
        return cluster_sessions(
            sessions,
            k if k is not None else self.default_clusters,
            iterations=self.cluster_iterations,
            rng=generator,
        )

    async def backfill_embeddings(self, store, user_id: str, limit: int = 50) -> List[Session]:
        """Compute and persist embeddings for stored sessions that lack one."""

        sessions = await store.fetch_sessions(user_id, limit)
        updated: List[Session] = []
        for session in sessions:
            if session.embedding:
                continue
            if session.pleasure_vector is None:
                continue
            session.pleasure_vector.embedding = [float(v) for v in self.embed(session)]
            await store.update_session(session)
            updated.append(session)
        if updated:
            logger.info("backfilled %d embeddings for user %s", len(updated), user_id)
        return updated


__all__ = [
    "EMBEDDING_DIM",
    "VECTOR_DOMINANT_THRESHOLD",
    "VectorSpace",
    "normalize",
    "activation_array",
    "dense_activation",
    "embed_session",
    "embed_profile",
    "embed_dimensions",
    "session_embedding",
    "cosine_similarity",
    "euclidean_distance",
    "find_similar",
    "centroid",
    "dimension_variance",
    "dominant_dimensions_in",
    "legacy_projection",
    "axis_projection",
]
