"""Vector space analytics and session storage helpers."""

from .clustering import Cluster, cluster_sessions, summarize_clusters
from .store import InMemorySessionStore, JsonlSessionStore, load_sessions_jsonl
from .vector_space import (
    EMBEDDING_DIM,
    VectorSpace,
    axis_projection,
    centroid,
    cosine_similarity,
    dimension_variance,
    dominant_dimensions_in,
    embed_dimensions,
    embed_profile,
    embed_session,
    euclidean_distance,
    find_similar,
    legacy_projection,
    normalize,
)

__all__ = [
    "Cluster",
    "cluster_sessions",
    "summarize_clusters",
    "InMemorySessionStore",
    "JsonlSessionStore",
    "load_sessions_jsonl",
    "EMBEDDING_DIM",
    "VectorSpace",
    "axis_projection",
    "centroid",
    "cosine_similarity",
    "dimension_variance",
    "dominant_dimensions_in",
    "embed_dimensions",
    "embed_profile",
    "embed_session",
    "euclidean_distance",
    "find_similar",
    "legacy_projection",
    "normalize",
]
