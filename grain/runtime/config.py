from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional

import yaml

DEFAULT_CONFIG_PATH = "configs/grain_engine.yaml"

DEFAULT_SYSTEM_ROLE = (
    "You are The Scribe, an insight generator within the grain hedonic operating system. "
    "Identify patterns in pleasure experiences across the 16 pleasure dimensions and offer "
    "concise phenomenological observations (2-4 sentences). Focus on patterns, not judgments."
)


@dataclass
class LifecycleCfg:
    trace_path: Optional[str] = field(default=None)


@dataclass
class ClusteringCfg:
    iterations: int = field(default=10)
    default_clusters: int = field(default=4)
    seed: Optional[int] = field(default=None)


@dataclass
class InsightCfg:
    neighbor_k: int = field(default=5)
    weekly_clusters: int = field(default=4)
    extremes_count: int = field(default=3)
    recent_window: int = field(default=10)
    underexplored_threshold: float = field(default=0.2)
    suggestion_dims: int = field(default=2)
    weekly_days: int = field(default=7)
    fetch_limit: int = field(default=50)
    system_role: str = field(default=DEFAULT_SYSTEM_ROLE)


@dataclass
class TelemetryCfg:
    log_level: str = field(default="INFO")


@dataclass
class EngineCfg:
    lifecycle: LifecycleCfg = field(default_factory=LifecycleCfg)
    clustering: ClusteringCfg = field(default_factory=ClusteringCfg)
    insight: InsightCfg = field(default_factory=InsightCfg)
    telemetry: TelemetryCfg = field(default_factory=TelemetryCfg)


def load_engine_cfg(path: str | Path = DEFAULT_CONFIG_PATH) -> EngineCfg:
    """Load engine settings from YAML, falling back to defaults when absent."""

    cfg_path = Path(path)
    if not cfg_path.exists():
        return EngineCfg()
    payload = yaml.safe_load(cfg_path.read_text(encoding="utf-8")) or {}
    if not isinstance(payload, dict):
        raise ValueError(f"engine config must be a mapping: {cfg_path}")
    return EngineCfg(
        lifecycle=_merge_dataclass(LifecycleCfg(), payload.get("lifecycle", {})),
        clustering=_merge_dataclass(ClusteringCfg(), payload.get("clustering", {})),
        insight=_merge_dataclass(InsightCfg(), payload.get("insight", {})),
        telemetry=_merge_dataclass(TelemetryCfg(), payload.get("telemetry", {})),
    )


def _merge_dataclass(instance, overrides: dict[str, Any] | None):
    data = instance.__dict__.copy()
    if not isinstance(overrides, dict):
        return instance
    for key, value in overrides.items():
        if key not in data:
            continue
        data[key] = value
    return instance.__class__(**data)


__all__ = [
    "load_engine_cfg",
    "EngineCfg",
    "LifecycleCfg",
    "ClusteringCfg",
    "InsightCfg",
    "TelemetryCfg",
    "DEFAULT_CONFIG_PATH",
    "DEFAULT_SYSTEM_ROLE",
]
