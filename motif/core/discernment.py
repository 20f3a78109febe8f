# ═══════════════════════════════════════════════════════════════════════════════
# PART 5: DISCERNMENT
# Design: P3 (Information Theory) + H3 (Enactivism)
# Implementation: I1 (Systems Architect)
# ═══════════════════════════════════════════════════════════════════════════════

"""
H3: "Discernment is an act, not a lookup. Every input leaves a trace in the
dynamics - a new object with its own energy - and the judgment is read off
that trace."

P3: "Complexity says how much structure the input carries. Novelty says how
far it is from what we just saw. Coherence says how ready the framework is to
take it in."
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional

import numpy as np

from motif.core.funnels import DynamicalEngine, ObjectState, TrackedObject
from motif.core.history import BoundedHistory
from motif.core.inputs import canonical, input_complexity
from motif.core.numeric import clamp
from motif.core.similarity import string_similarity
from motif.core.state import ExternalState

COMPLEXITY_THRESHOLD = 0.7
COHERENCE_BASELINE = 0.5
STRENGTH_BASELINE = 0.5
NOVELTY_WINDOW = 5
INITIAL_ENERGY_MIN = 0.6
INITIAL_ENERGY_RANGE = 0.4


class JudgmentLevel(Enum):
    BASIC = "basic"
    DEVELOPING = "developing"
    REFINED = "refined"


class Nuance(Enum):
    DIRECT = "direct"
    NUANCED = "nuanced"


@dataclass(frozen=True)
class Judgment:
    level: JudgmentLevel
    nuance: Nuance
    confidence: float
    rationale: str


@dataclass(frozen=True)
class DiscernmentOutput:
    """What discernment hands to feedback and refinement."""
    judgment: Judgment
    confidence: float   # Discernment strength
    type: str           # "simple" | "complex"
    complexity: float
    novelty: float


# ── Pure helpers ────────────────────────────────────────────────────────────


def framework_coherence(state: ExternalState) -> float:
    """
    Readiness of the caller's framework, in [0, 1].

    Baseline 0.5 without a framework block; otherwise the product of its
    coherence, adaptability and complexity (each 0.5 if missing).
    """
    if not state.has_framework:
        return COHERENCE_BASELINE

    def field_or_default(v: Optional[float]) -> float:
        return COHERENCE_BASELINE if v is None else v

    product = (
        field_or_default(state.framework_coherence)
        * field_or_default(state.framework_adaptability)
        * field_or_default(state.framework_complexity)
    )
    return clamp(product)


def input_novelty(value: Any, history: BoundedHistory, window: int = NOVELTY_WINDOW) -> float:
    """
    1 - max similarity to the last `window` inputs.

    Fewer than two remembered inputs counts as maximally novel.
    """
    if len(history) < 2:
        return 1.0

    current = canonical(value)
    best = 0.0
    for record in history.recent(window):
        best = max(best, string_similarity(current, canonical(record.input)))
    return clamp(1.0 - best)


def extract_judgment(obj: TrackedObject) -> Judgment:
    """Judgment read off a tracked object. No side effects."""
    strength = obj.metadata.get("discernment_strength", STRENGTH_BASELINE)
    complexity = obj.metadata.get("input_complexity", 0.3)

    if obj.state == ObjectState.OSCILLATING:
        level = JudgmentLevel.REFINED
    elif obj.state == ObjectState.ASCENDING:
        level = JudgmentLevel.DEVELOPING
    else:
        level = JudgmentLevel.BASIC

    nuance = Nuance.NUANCED if complexity > COMPLEXITY_THRESHOLD else Nuance.DIRECT

    return Judgment(
        level=level,
        nuance=nuance,
        confidence=clamp(strength * (1 + obj.energy * 0.5)),
        rationale=f"Discernment with {obj.type} processing at {strength * 100:.1f}% strength",
    )


# ── Stage ───────────────────────────────────────────────────────────────────


class Discerner:
    """
    Turns each input into a fresh tracked object and a judgment.

    One funnel is added to the engine per call, named drv-<n> with a counter
    that is never reused.
    """

    def __init__(self, engine: DynamicalEngine, rng: np.random.Generator) -> None:
        self.engine = engine
        self._rng = rng
        self._count = 0

    def discern(
        self,
        value: Any,
        state: ExternalState,
        history: BoundedHistory,
    ) -> DiscernmentOutput:
        complexity = input_complexity(value)
        coherence = framework_coherence(state)
        strength = (complexity + coherence) / 2

        obj = TrackedObject(
            energy=INITIAL_ENERGY_MIN + float(self._rng.random()) * INITIAL_ENERGY_RANGE,
            state=ObjectState.DESCENDING,
            speed=complexity * 0.2 + 0.1,
            type="complex" if complexity > COMPLEXITY_THRESHOLD else "simple",
            oscillation_phase=float(self._rng.random()) * 2 * np.pi,
            metadata={
                "input_complexity": complexity,
                "framework_coherence": coherence,
                "discernment_strength": strength,
            },
        )

        # Judge the object as created, before the engine touches it
        judgment = extract_judgment(obj)

        self.engine.add_funnel(f"drv-{self._count}", [obj])
        self._count += 1

        return DiscernmentOutput(
            judgment=judgment,
            confidence=strength,
            type=obj.type,
            complexity=complexity,
            novelty=input_novelty(value, history),
        )
