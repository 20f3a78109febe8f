# ═══════════════════════════════════════════════════════════════════════════════
# FRAMEWORK STATE
# Implementation: I3 (State Management)
# ═══════════════════════════════════════════════════════════════════════════════

"""
I3: "The loop hands its framework state back to the caller, who may hand it
back in next cycle - whole, partial, as a dict, or not at all. Normalize on
the way in, never fail on a missing field."
"""

from __future__ import annotations

import numbers
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Dict, Mapping, Optional

import numpy as np

if TYPE_CHECKING:
    from motif.core.discernment import DiscernmentOutput
    from motif.core.feedback import Feedback


@dataclass
class FrameworkSummary:
    """Framework-level view of the engine after a refinement step."""
    complexity: float = 0.0
    coherence: float = 0.0
    adaptability: float = 0.0
    plasticity: float = 0.0
    stability: float = 0.0
    object_count: int = 0
    funnel_count: int = 0
    state_distribution: Dict[str, int] = field(default_factory=dict)


@dataclass
class FrameworkState:
    """Result of one refinement; the caller may feed it back as external state."""
    framework: FrameworkSummary
    plasticity: float
    quality: float
    coherence: float
    adaptability: float
    last_output: Optional[DiscernmentOutput] = None
    last_feedback: Optional[Feedback] = None


@dataclass(frozen=True)
class ExternalState:
    """
    Caller-supplied state, normalized.

    Every field is optional; consumers apply their own defaults. has_framework
    is False when the caller supplied no framework block at all.
    """
    quality: Optional[float] = None
    plasticity: Optional[float] = None
    has_framework: bool = False
    framework_coherence: Optional[float] = None
    framework_adaptability: Optional[float] = None
    framework_complexity: Optional[float] = None

    @classmethod
    def from_value(cls, value: Any) -> ExternalState:
        """
        Build from a FrameworkState, a mapping of the same shape, or None.

        Non-numeric or non-finite fields are treated as missing.
        """
        if value is None:
            return cls()
        if isinstance(value, ExternalState):
            return value

        framework = _get(value, "framework")
        return cls(
            quality=_number(_get(value, "quality")),
            plasticity=_number(_get(value, "plasticity")),
            has_framework=framework is not None,
            framework_coherence=_number(_get(framework, "coherence")),
            framework_adaptability=_number(_get(framework, "adaptability")),
            framework_complexity=_number(_get(framework, "complexity")),
        )


# ── Internal ────────────────────────────────────────────────────────────────


def _get(obj: Any, name: str) -> Any:
    if obj is None:
        return None
    if isinstance(obj, Mapping):
        return obj.get(name)
    return getattr(obj, name, None)


def _number(value: Any) -> Optional[float]:
    if isinstance(value, bool) or not isinstance(value, numbers.Real):
        return None
    value = float(value)
    if not np.isfinite(value):
        return None
    return value
