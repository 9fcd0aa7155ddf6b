"""Bounded k-means over session embeddings."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence

import numpy as np

from grain_core.models.session import Session

from .vector_space import EMBEDDING_DIM, legacy_projection, session_embedding

DEFAULT_ITERATIONS = 10


@dataclass
class Cluster:
    """Transient group of sessions; never persisted."""

    sessions: List[Session] = field(default_factory=list)
    centroid: np.ndarray = field(default_factory=lambda: np.zeros(EMBEDDING_DIM, dtype=float))

    def __len__(self) -> int:
        return len(self.sessions)

    @property
    def size(self) -> int:
        return len(self.sessions)

    @property
    def session_ids(self) -> List[Optional[str]]:
        return [s.id for s in self.sessions]


def cluster_sessions(
    sessions: Sequence[Session],
    k: int = 4,
    *,
    iterations: int = DEFAULT_ITERATIONS,
    rng: Optional[np.random.Generator] = None,
) -> List[Cluster]:
    """Group sessions by embedding proximity.

    Sessions without a valid embedding take no part. With fewer qualifying
    sessions than ``k`` a single cluster holding all of them is returned.
    Otherwise ``k`` seeds are sampled without replacement and assignment runs a
    fixed number of rounds; empty clusters keep their previous centroid and are
    dropped from the result.
    """

    if k < 1:
        raise ValueError("k must be >= 1")
    members: List[Session] = []
    rows: List[np.ndarray] = []
    for session in sessions:
        embedding = session_embedding(session)
        if embedding is None:
            continue
        members.append(session)
        rows.append(embedding)
    if not rows:
        return []
    data = np.stack(rows)
    if len(members) < k:
        return [Cluster(sessions=list(members), centroid=data.mean(axis=0))]

    generator = rng if rng is not None else np.random.default_rng()
    seeds = generator.choice(data.shape[0], size=k, replace=False)
    centroids = data[seeds].copy()
    labels = np.zeros(data.shape[0], dtype=int)

    for _ in range(max(1, int(iterations))):
        distances = np.linalg.norm(data[:, None, :] - centroids[None, :, :], axis=2)
        labels = np.argmin(distances, axis=1)
        for idx in range(k):
            mask = labels == idx
            if mask.any():
                centroids[idx] = data[mask].mean(axis=0)

    clusters: List[Cluster] = []
    for idx in range(k):
        picked = [members[i] for i in np.flatnonzero(labels == idx)]
        if picked:
            clusters.append(Cluster(sessions=picked, centroid=centroids[idx].copy()))
    return clusters


def summarize_clusters(clusters: Sequence[Cluster]) -> List[Dict[str, Any]]:
    """View-level cluster metadata for the pleasure-space plot."""

    summary: List[Dict[str, Any]] = []
    for idx, cluster in enumerate(clusters):
        x, y = legacy_projection(cluster.centroid)
        summary.append(
            {
                "cluster_id": idx,
                "size": cluster.size,
                "centroid": [float(v) for v in cluster.centroid],
                "projection": [x, y],
                "session_ids": cluster.session_ids,
            }
        )
    return summary


__all__ = ["Cluster", "cluster_sessions", "summarize_clusters", "DEFAULT_ITERATIONS"]
