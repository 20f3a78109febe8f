# ═══════════════════════════════════════════════════════════════════════════════
# PART 8: MOTIF DETECTION
# Design: P1 (Dynamical Systems) + N7 (Developmental Neuro)
# Implementation: I3 (State Management)
# ═══════════════════════════════════════════════════════════════════════════════

"""
P1: "A motif is an object that keeps coming back to the same place: enough
energy, enough encounters, and either oscillating or still climbing hard.
That is a stable loop."

I3: "Motifs are keyed by funnel + object, updated in place while they keep
qualifying, and aged out on a TTL whether or not they qualified this cycle.
Lifespan only ever counts up; eviction is the only reset."
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Dict, List, Optional

from motif.core.funnels import DynamicalEngine, Interaction, ObjectState, TrackedObject
from motif.core.numeric import clamp, mean, std, variance

logger = logging.getLogger("motif.detector")

STATE_HISTORY_LIMIT = 10
MIN_INTERACTIONS = 3
GROWTH_ENERGY = 0.8
PARTNER_SATURATION = 5
INTERACTION_SATURATION = 8

# Quality weights
ENERGY_WEIGHT = 0.3
INTERACTION_WEIGHT = 0.2
STABILITY_WEIGHT = 0.3
STATE_QUALITY_WEIGHT = 0.2


class MotifType(Enum):
    RUT = "rut"
    TASTE = "taste"
    GROWTH = "growth"
    EMERGING = "emerging"


_STATE_TO_TYPE = {
    ObjectState.DESCENDING: MotifType.RUT,
    ObjectState.OSCILLATING: MotifType.TASTE,
    ObjectState.ASCENDING: MotifType.GROWTH,
}

_STATE_QUALITY = {
    ObjectState.OSCILLATING: 1.0,
    ObjectState.ASCENDING: 0.7,
}


@dataclass
class StateSample:
    state: ObjectState
    energy: float
    timestamp: float


@dataclass
class Motif:
    """A recognized stable pattern, tied to one tracked object by id."""
    id: str
    funnel_id: str
    object_id: str
    type: MotifType
    quality: float
    plasticity: float
    stability: float
    coherence: float
    lifespan: int
    first_detected: float
    last_updated: float
    interactions: int
    state_history: List[StateSample] = field(default_factory=list)


def motif_type_for(state: ObjectState) -> MotifType:
    return _STATE_TO_TYPE.get(state, MotifType.EMERGING)


def interaction_stability(history: List[Interaction], now: float, ttl: float) -> float:
    """
    Consistency of interaction energies, blended with how recent they are.

    0 below three interactions.
    """
    if len(history) < MIN_INTERACTIONS:
        return 0.0

    energies = [h.energy for h in history]
    consistency = 1 - min(1.0, variance(energies))

    recent = sum(1 for h in history if now - h.timestamp < ttl / 2)
    recency = min(1.0, recent / 3)

    return clamp(consistency * 0.6 + recency * 0.4)


def interaction_coherence(history: List[Interaction]) -> float:
    """Partner diversity blended with relative energy steadiness."""
    if not history:
        return 0.0

    partners = {h.with_id for h in history}
    diversity = min(1.0, len(partners) / PARTNER_SATURATION)

    energies = [h.energy for h in history]
    avg = mean(energies)
    steadiness = 1 - std(energies) / (avg or 1.0)

    return clamp(diversity * 0.4 + steadiness * 0.6)


class MotifDetector:
    """Owns the motif map. Only scan() mutates it."""

    def __init__(
        self,
        plasticity_threshold: float,
        stability_threshold: float,
        quality_threshold: float,
        ttl: float,
        clock: Callable[[], float],
    ) -> None:
        self.plasticity_threshold = plasticity_threshold
        self.stability_threshold = stability_threshold
        self.quality_threshold = quality_threshold
        self.ttl = ttl
        self._clock = clock
        self.motifs: Dict[str, Motif] = {}

    # ── Public Methods ───────────────────────────────────────────────────────

    def is_stable_loop(self, obj: TrackedObject) -> bool:
        if len(obj.interaction_history) < MIN_INTERACTIONS:
            return False
        if obj.energy <= self.plasticity_threshold:
            return False
        return obj.state == ObjectState.OSCILLATING or (
            obj.state == ObjectState.ASCENDING and obj.energy > GROWTH_ENERGY
        )

    def scan(self, engine: DynamicalEngine) -> None:
        """Upsert every qualifying object, then evict everything past its TTL."""
        now = self._clock()

        for funnel_id, snapshot in engine.funnel_states().items():
            for obj in snapshot.objects:
                if self.is_stable_loop(obj):
                    self._upsert(funnel_id, obj, now)

        self._evict(now)

    def motif_quality(self, obj: TrackedObject, now: float) -> float:
        stability = interaction_stability(obj.interaction_history, now, self.ttl)
        interaction_quality = min(1.0, len(obj.interaction_history) / INTERACTION_SATURATION)
        state_quality = _STATE_QUALITY.get(obj.state, 0.4)

        return clamp(
            obj.energy * ENERGY_WEIGHT
            + interaction_quality * INTERACTION_WEIGHT
            + stability * STABILITY_WEIGHT
            + state_quality * STATE_QUALITY_WEIGHT
        )

    def active_motifs(
        self,
        stability_threshold: Optional[float] = None,
        quality_threshold: Optional[float] = None,
    ) -> List[Motif]:
        """Motifs above both thresholds, in detection order."""
        if stability_threshold is None:
            stability_threshold = self.stability_threshold
        if quality_threshold is None:
            quality_threshold = self.quality_threshold
        return [
            m for m in self.motifs.values()
            if m.stability > stability_threshold and m.quality > quality_threshold
        ]

    def get_state(self) -> dict:
        """Serialize current state."""
        return {
            "ttl": self.ttl,
            "total": len(self.motifs),
            "active": len(self.active_motifs()),
            "motifs": {
                motif_id: {
                    "type": m.type.value,
                    "lifespan": m.lifespan,
                    "quality": m.quality,
                    "stability": m.stability,
                }
                for motif_id, m in self.motifs.items()
            },
        }

    # ── Internal ─────────────────────────────────────────────────────────────

    def _upsert(self, funnel_id: str, obj: TrackedObject, now: float) -> None:
        motif_id = f"{funnel_id}-{obj.id}"
        history = obj.interaction_history
        sample = StateSample(state=obj.state, energy=obj.energy, timestamp=now)

        existing = self.motifs.get(motif_id)
        if existing is None:
            self.motifs[motif_id] = Motif(
                id=motif_id,
                funnel_id=funnel_id,
                object_id=obj.id,
                type=motif_type_for(obj.state),
                quality=self.motif_quality(obj, now),
                plasticity=clamp(obj.energy),
                stability=interaction_stability(history, now, self.ttl),
                coherence=interaction_coherence(history),
                lifespan=1,
                first_detected=now,
                last_updated=now,
                interactions=len(history),
                state_history=[sample],
            )
            logger.debug("New motif %s (%s)", motif_id, obj.state.value)
            return

        existing.type = motif_type_for(obj.state)
        existing.quality = self.motif_quality(obj, now)
        existing.plasticity = clamp(obj.energy)
        existing.stability = interaction_stability(history, now, self.ttl)
        existing.coherence = interaction_coherence(history)
        existing.lifespan += 1
        existing.last_updated = now
        existing.interactions = len(history)
        existing.state_history.append(sample)
        del existing.state_history[:-STATE_HISTORY_LIMIT]

    def _evict(self, now: float) -> None:
        expired = [
            motif_id for motif_id, m in self.motifs.items()
            if now - m.last_updated > self.ttl
        ]
        for motif_id in expired:
            m = self.motifs.pop(motif_id)
            logger.info("Evicted motif %s after %d cycles", motif_id, m.lifespan)
