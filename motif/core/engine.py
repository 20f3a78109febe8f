# ═══════════════════════════════════════════════════════════════════════════════
# PART 9: MOTIF ENGINE (putting it all together)
# Design: Full team
# Implementation: I1 (Systems Architect)
# ═══════════════════════════════════════════════════════════════════════════════


"""
I1: "This is the main class that wires everything together. One call, one
cycle: discern, feedback, refine, log, detect."
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

import numpy as np

from motif.core.detector import Motif, MotifDetector
from motif.core.discernment import Discerner, DiscernmentOutput
from motif.core.feedback import synthesize_feedback
from motif.core.funnels import DynamicalEngine, FunnelConfig, FunnelEngine, wall_clock_ms
from motif.core.history import BoundedHistory, EvolutionEntry, EvolutionLog, InputRecord
from motif.core.refinement import Refiner
from motif.core.state import ExternalState, FrameworkState

logger = logging.getLogger("motif.engine")

FUNNEL_COUNT = 3
FUNNEL_GRAVITY = 0.008
FUNNEL_FLOOR = 0.05


class ConfigurationError(ValueError):
    """Raised when a MotifConfig is out of range."""


@dataclass
class MotifConfig:
    """Top-level configuration for a motif engine."""
    # Detection thresholds, all in [0, 1]
    plasticity_threshold: float = 0.7
    stability_threshold: float = 0.8
    quality_threshold: float = 0.6
    input_sensitivity: float = 0.5

    # Seeds for the funnel engine's tunable parameters
    plasticity_regeneration: float = 0.02    # -> energy_regeneration
    discernment_sensitivity: float = 0.1     # -> oscillation_strength
    refinement_strength: float = 0.5         # -> bayesian_influence

    # Aging and capacity
    ttl: float = 60000.0       # ms a motif may go undetected before eviction
    history_limit: int = 100
    evolution_limit: int = 50

    # Random seed (None = OS entropy)
    seed: Optional[int] = None

    def validate(self) -> None:
        """Fail eagerly instead of clamping bad settings."""
        unit_fields = (
            "plasticity_threshold",
            "stability_threshold",
            "quality_threshold",
            "input_sensitivity",
            "plasticity_regeneration",
            "discernment_sensitivity",
            "refinement_strength",
        )
        for name in unit_fields:
            value = getattr(self, name)
            if not np.isfinite(value) or not 0.0 <= value <= 1.0:
                raise ConfigurationError(f"{name} must be in [0, 1], got {value}")

        if not np.isfinite(self.ttl) or self.ttl <= 0:
            raise ConfigurationError(f"ttl must be positive, got {self.ttl}")
        for name in ("history_limit", "evolution_limit"):
            if getattr(self, name) < 1:
                raise ConfigurationError(f"{name} must be positive, got {getattr(self, name)}")

    def funnel_config(self) -> FunnelConfig:
        return FunnelConfig(
            energy_regeneration=self.plasticity_regeneration,
            oscillation_strength=self.discernment_sensitivity,
            bayesian_influence=self.refinement_strength,
            floor_threshold=FUNNEL_FLOOR,
            gravity=FUNNEL_GRAVITY,
            min_funnel_count=FUNNEL_COUNT,
            max_funnel_count=FUNNEL_COUNT,
        )


@dataclass
class CycleResult:
    output: DiscernmentOutput
    state: FrameworkState
    motifs: List[Motif]
    evolution: List[EvolutionEntry]


@dataclass
class SystemSummary:
    total_motifs: int
    motif_distribution: Dict[str, int] = field(default_factory=dict)
    avg_plasticity: float = 0.0
    avg_quality: float = 0.0
    system_age: int = 0
    current_state: Optional[EvolutionEntry] = None


class MotifEngine:
    """
    Online behavioral-scoring loop.

    Each update() runs one full cycle:
    1. Discern: score the input, add a tracked object, judge it
    2. Feedback: synthesize the environment's answer
    3. Refine: tune the dynamical engine, step it, score the framework
    4. Log: append to the evolution ring
    5. Detect: upsert stable loops as motifs, evict stale ones

    Randomness and time are injected (rng, clock) so cycles can be replayed.
    """

    def __init__(
        self,
        config: Optional[MotifConfig] = None,
        engine: Optional[DynamicalEngine] = None,
        rng: Optional[np.random.Generator] = None,
        clock: Optional[Callable[[], float]] = None,
    ) -> None:
        self.config = config or MotifConfig()
        self.config.validate()
        cfg = self.config

        self._rng = rng or np.random.default_rng(cfg.seed)
        self._clock = clock or wall_clock_ms

        self.engine = engine or FunnelEngine(cfg.funnel_config(), self._rng, self._clock)

        self.input_history = BoundedHistory(cfg.history_limit)
        self.evolution = EvolutionLog(cfg.evolution_limit)

        self.discerner = Discerner(self.engine, self._rng)
        self.refiner = Refiner(self.engine)
        self.detector = MotifDetector(
            plasticity_threshold=cfg.plasticity_threshold,
            stability_threshold=cfg.stability_threshold,
            quality_threshold=cfg.quality_threshold,
            ttl=cfg.ttl,
            clock=self._clock,
        )

    # ── Public Methods ───────────────────────────────────────────────────────

    def update(
        self,
        value: Any,
        external_state: Any = None,
        delta_time: float = 1.0,
    ) -> CycleResult:
        """
        Run one discern -> feedback -> refine -> detect cycle.

        Args:
            value: Any input (mapping, sequence, text or scalar).
            external_state: Previous FrameworkState, a dict of the same shape,
                or None. Feeding back consistent state is up to the caller.
            delta_time: Simulated time to advance the engine by.

        Returns:
            CycleResult with this cycle's discernment output, framework state,
            active motifs and the evolution log.
        """
        state = ExternalState.from_value(external_state)

        output = self.discerner.discern(value, state, self.input_history)
        self.input_history.append(
            InputRecord(input=value, state=external_state, timestamp=self._clock())
        )

        feedback = synthesize_feedback(output, self._rng, self._clock)
        framework_state = self.refiner.refine(output, feedback, state, delta_time)

        entry = self.evolution.record(
            plasticity=framework_state.plasticity,
            quality=framework_state.quality,
            complexity=framework_state.framework.complexity,
        )

        self.detector.scan(self.engine)

        logger.debug(
            "Cycle %d: judgment=%s plasticity=%.3f quality=%.3f motifs=%d",
            entry.time,
            output.judgment.level.value,
            framework_state.plasticity,
            framework_state.quality,
            len(self.detector.motifs),
        )

        return CycleResult(
            output=output,
            state=framework_state,
            motifs=self.get_active_motifs(),
            evolution=self.get_framework_evolution(),
        )

    def get_active_motifs(self) -> List[Motif]:
        return self.detector.active_motifs()

    def get_framework_evolution(self) -> List[EvolutionEntry]:
        return self.evolution.to_list()

    def get_system_summary(self) -> SystemSummary:
        active = self.get_active_motifs()

        distribution: Dict[str, int] = {}
        for m in active:
            distribution[m.type.value] = distribution.get(m.type.value, 0) + 1

        n = len(active)
        return SystemSummary(
            total_motifs=n,
            motif_distribution=distribution,
            avg_plasticity=sum(m.plasticity for m in active) / n if n else 0.0,
            avg_quality=sum(m.quality for m in active) / n if n else 0.0,
            system_age=len(self.evolution),
            current_state=self.evolution.latest,
        )

    def get_state(self) -> dict:
        """Serialize current state."""
        summary = self.get_system_summary()
        return {
            "inputs": len(self.input_history),
            "cycles": len(self.evolution),
            "total_motifs": summary.total_motifs,
            "motif_distribution": summary.motif_distribution,
            "detector": self.detector.get_state(),
        }
