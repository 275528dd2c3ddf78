"""
Company intelligence: domain resolution, payload compaction and briefs.

Compactors turn heterogeneous tool-server payloads into small, stable
structures suitable for an LLM prompt.
"""

from .compact import build_compact_payload
from .models import CompanyAnalysis, RawPayloadBundle, ResolutionStrategy, ResolvedDomain

__all__ = [
    "build_compact_payload",
    "CompanyAnalysis",
    "RawPayloadBundle",
    "ResolutionStrategy",
    "ResolvedDomain",
]
