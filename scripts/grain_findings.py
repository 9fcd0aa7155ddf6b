#!/usr/bin/env python
# -*- coding: utf-8 -*-
"""Compute structured weekly / cluster findings from a JSONL session dump.

No AI rendering happens here; the output is the structured context that the
insight renderer would receive.
"""

from __future__ import annotations

import argparse
import json
import logging
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

from grain_core.models.dimension import Dimension
from grain_core.models.session import Session

from grain.hub.insight import EMPTY_WEEK_SUMMARY, build_weekly_context
from grain.memory.clustering import summarize_clusters
from grain.memory.store import load_sessions_jsonl
from grain.memory.vector_space import VectorSpace, axis_projection, session_embedding
from grain.runtime.config import InsightCfg, load_engine_cfg

_LOGGER = logging.getLogger(__name__)


def _select_sessions(
    sessions: Sequence[Session],
    *,
    user_id: Optional[str],
    days: int,
    now: Optional[datetime],
) -> List[Session]:
    rows = [s for s in sessions if user_id is None or s.user_id == user_id]
    if days > 0 and rows:
        anchor = now or max(s.timestamp_start for s in rows)
        cutoff = anchor - timedelta(days=days)
        rows = [s for s in rows if s.timestamp_start >= cutoff]
    rows.sort(key=lambda s: s.timestamp_start, reverse=True)
    return rows


def _weekly_payload(sessions: Sequence[Session], space: VectorSpace, cfg: InsightCfg) -> Dict[str, Any]:
    if not sessions:
        return {"summary": EMPTY_WEEK_SUMMARY, "context": None}
    context = build_weekly_context(sessions, vector_space=space, config=cfg)
    return {"summary": None, "context": context.to_payload()}


def _cluster_payload(
    sessions: Sequence[Session],
    space: VectorSpace,
    *,
    k: int,
    x: Optional[Dimension],
    y: Optional[Dimension],
) -> Dict[str, Any]:
    clusters = space.cluster(sessions, k)
    summary = summarize_clusters(clusters)
    points = []
    for session in sessions:
        embedding = session_embedding(session)
        if embedding is None:
            continue
        if x is not None and y is not None:
            px, py = axis_projection(embedding, x, y)
        else:
            px, py = space.legacy_projection(embedding)
        points.append({"id": session.id, "x": px, "y": py})
    return {"clusters": summary, "points": points}


def _parse_now(raw: str) -> Optional[datetime]:
    if not raw:
        return None
    value = datetime.fromisoformat(raw)
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value


def main(argv: Optional[Sequence[str]] = None) -> int:
    ap = argparse.ArgumentParser(description=__doc__)
    ap.add_argument("command", choices=("weekly", "clusters"))
    ap.add_argument("--sessions", required=True, help="JSONL session dump")
    ap.add_argument("--config", default="configs/grain_engine.yaml")
    ap.add_argument("--user", default=None, help="Restrict to one user id")
    ap.add_argument("--days", type=int, default=None, help="Window size in days (0=all)")
    ap.add_argument("--now", default="", help="ISO timestamp anchoring the window (default: newest session)")
    ap.add_argument("--k", type=int, default=None, help="Cluster count")
    ap.add_argument("--seed", type=int, default=None, help="Cluster seeding RNG seed")
    ap.add_argument("--x", default=None, help="Custom projection x dimension")
    ap.add_argument("--y", default=None, help="Custom projection y dimension")
    ap.add_argument("--out-json", default="")
    args = ap.parse_args(argv)

    cfg = load_engine_cfg(args.config)
    logging.basicConfig(level=getattr(logging, str(cfg.telemetry.log_level).upper(), logging.INFO))

    seed = args.seed if args.seed is not None else cfg.clustering.seed
    space = VectorSpace(
        cluster_iterations=cfg.clustering.iterations,
        default_clusters=cfg.clustering.default_clusters,
        seed=seed,
    )
    days = args.days if args.days is not None else (cfg.insight.weekly_days if args.command == "weekly" else 0)
    sessions = _select_sessions(
        load_sessions_jsonl(Path(args.sessions)),
        user_id=args.user,
        days=int(days),
        now=_parse_now(args.now),
    )
    _LOGGER.info("grain_findings: %s over %d sessions", args.command, len(sessions))

    if args.command == "weekly":
        payload = _weekly_payload(sessions, space, cfg.insight)
    else:
        x = Dimension.from_any(args.x) if args.x else None
        y = Dimension.from_any(args.y) if args.y else None
        if (x is None) != (y is None):
            ap.error("--x and --y must be given together")
        k = args.k if args.k is not None else cfg.clustering.default_clusters
        payload = _cluster_payload(sessions, space, k=int(k), x=x, y=y)

    text = json.dumps(payload, ensure_ascii=False, indent=2)
    if args.out_json:
        out = Path(args.out_json)
        out.parent.mkdir(parents=True, exist_ok=True)
        out.write_text(text, encoding="utf-8")
        print(f"[info] {args.command} findings json: {out}")
    else:
        print(text)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
