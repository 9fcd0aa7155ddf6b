"""Collaborator contracts and insight analytics."""

from .contracts import InsightContext, InsightRenderer, ProfileSource, RenderedText, SessionStore
from .engine import GrainEngine, build_engine
from .insight import Finding, InsightAnalytics, InsightType

__all__ = [
    "InsightContext",
    "InsightRenderer",
    "ProfileSource",
    "RenderedText",
    "SessionStore",
    "GrainEngine",
    "build_engine",
    "Finding",
    "InsightAnalytics",
    "InsightType",
]
