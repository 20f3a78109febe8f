# ═══════════════════════════════════════════════════════════════════════════════
# PART 7: REFINEMENT
# Design: P1 (Dynamical Systems) + N7 (Developmental Neuro)
# Implementation: I2 (Numerics)
# ═══════════════════════════════════════════════════════════════════════════════

"""
N7: "Learning is parameter drift under pressure. Confident judgments
strengthen the prior, good feedback speeds regeneration, challenges stir up
turbulence, and a high-quality caller tightens the spiral."

P1: "Tune first, then step, then measure. Framework quality is read from the
population after it has moved, never before."
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict

from motif.core.discernment import COMPLEXITY_THRESHOLD, DiscernmentOutput, JudgmentLevel
from motif.core.feedback import Feedback
from motif.core.funnels import ENERGY_MAX, DynamicalEngine, FunnelSnapshot, GlobalState, ObjectState
from motif.core.numeric import clamp
from motif.core.state import ExternalState, FrameworkState, FrameworkSummary

MAX_STATES = len(ObjectState)
BASE_INTERACTION_RADIUS = 0.3
BAYESIAN_CAP = 0.9
SENSITIVITY_BASE = 0.5
COHERENT_FRAMEWORK = 0.8

# Quality weights
ENERGY_QUALITY_WEIGHT = 0.4
INTERACTION_WEIGHT = 0.2
ADAPTABILITY_WEIGHT = 0.3


@dataclass
class AggregateMetrics:
    """Population-wide metrics over every tracked object."""
    complexity: float
    coherence: float
    adaptability: float
    interaction_density: float
    state_variety: float


def aggregate_metrics(funnels: Dict[str, FunnelSnapshot], global_state: GlobalState) -> AggregateMetrics:
    total_objects = 0
    total_interactions = 0
    states = set()

    for snapshot in funnels.values():
        total_objects += snapshot.object_count
        for obj in snapshot.objects:
            total_interactions += len(obj.interaction_history)
            states.add(obj.state)

    density = total_interactions / total_objects if total_objects > 0 else 0.0
    variety = len(states) / MAX_STATES

    return AggregateMetrics(
        complexity=min(1.0, total_objects / 20),
        coherence=clamp(1 - global_state.energy_variance),
        adaptability=variety * density,
        interaction_density=density,
        state_variety=clamp(variety),
    )


class Refiner:
    """Applies one cycle's signals to the engine and scores the result."""

    def __init__(self, engine: DynamicalEngine) -> None:
        self.engine = engine

    def refine(
        self,
        output: DiscernmentOutput,
        feedback: Feedback,
        state: ExternalState,
        delta_time: float,
    ) -> FrameworkState:
        self._apply_output_influence(output)
        self._apply_feedback_influence(feedback)
        self._apply_state_guidance(state)

        self.engine.step(delta_time)

        global_state = self.engine.global_state()
        metrics = aggregate_metrics(self.engine.funnel_states(), global_state)

        return FrameworkState(
            framework=self._framework_summary(global_state, metrics, output, feedback),
            plasticity=self._plasticity(global_state.energy_mean, output, feedback),
            quality=self._state_quality(global_state, metrics, output, feedback),
            coherence=metrics.coherence,
            adaptability=metrics.adaptability,
            last_output=output,
            last_feedback=feedback,
        )

    # ── Tuning ──────────────────────────────────────────────────────────────

    def _apply_output_influence(self, output: DiscernmentOutput) -> None:
        cfg = self.engine.config
        self.engine.tune(
            bayesian_influence=min(BAYESIAN_CAP, cfg.bayesian_influence + output.confidence * 0.3),
            interaction_radius=BASE_INTERACTION_RADIUS + output.complexity * 0.2,
        )
        if output.judgment.level == JudgmentLevel.REFINED:
            self.engine.tune(oscillation_strength=cfg.oscillation_strength * 1.1)

    def _apply_feedback_influence(self, feedback: Feedback) -> None:
        cfg = self.engine.config
        regeneration = cfg.energy_regeneration + feedback.quality * 0.1
        self.engine.tune(energy_regeneration=clamp(regeneration, 0.01, 0.1))

        if feedback.learning_potential > COMPLEXITY_THRESHOLD:
            self.engine.tune(friction=cfg.friction * 0.95)

        if feedback.reinforces:
            self.engine.tune(turbulence=cfg.turbulence * 0.9)
        elif feedback.challenges:
            self.engine.tune(turbulence=cfg.turbulence * 1.2)

    def _apply_state_guidance(self, state: ExternalState) -> None:
        cfg = self.engine.config
        if state.quality is not None and state.quality > COMPLEXITY_THRESHOLD:
            self.engine.tune(spiral_tightness=cfg.spiral_tightness * 1.05)
        else:
            self.engine.tune(gravity=cfg.gravity * 0.95)

        plasticity = SENSITIVITY_BASE if state.plasticity is None else state.plasticity
        self.engine.tune(bayesian_influence=cfg.bayesian_influence * (SENSITIVITY_BASE + plasticity))

        coherence = state.framework_coherence
        if coherence is not None and coherence > COHERENT_FRAMEWORK:
            self.engine.tune(interaction_radius=cfg.interaction_radius * 0.9)

    # ── Scoring ─────────────────────────────────────────────────────────────

    @staticmethod
    def _plasticity(energy_mean: float, output: DiscernmentOutput, feedback: Feedback) -> float:
        confidence_boost = output.confidence * 0.1
        feedback_boost = feedback.quality * feedback.learning_potential * 0.15
        novelty_boost = output.novelty * (0.2 if feedback.challenges else 0.05)
        return clamp(energy_mean + confidence_boost + feedback_boost + novelty_boost, 0.0, ENERGY_MAX)

    @staticmethod
    def _framework_summary(
        global_state: GlobalState,
        metrics: AggregateMetrics,
        output: DiscernmentOutput,
        feedback: Feedback,
    ) -> FrameworkSummary:
        coherence = metrics.coherence
        adaptability = metrics.adaptability
        stability = 1 - global_state.energy_variance

        if output.judgment.level == JudgmentLevel.REFINED:
            coherence *= 1.1
            stability *= 1.05

        if feedback.reinforces:
            stability *= 1.1
        elif feedback.challenges:
            adaptability *= 1.15

        return FrameworkSummary(
            complexity=metrics.complexity,
            coherence=clamp(coherence),
            adaptability=adaptability,
            plasticity=global_state.energy_mean,
            stability=clamp(stability),
            object_count=global_state.total_objects,
            funnel_count=global_state.total_funnels,
            state_distribution=dict(global_state.state_distribution),
        )

    @staticmethod
    def _state_quality(
        global_state: GlobalState,
        metrics: AggregateMetrics,
        output: DiscernmentOutput,
        feedback: Feedback,
    ) -> float:
        energy_quality = global_state.energy_mean * (1 - global_state.energy_variance)
        interaction_quality = metrics.interaction_density * metrics.coherence
        adaptive_quality = metrics.adaptability * metrics.state_variety

        quality = (
            energy_quality * ENERGY_QUALITY_WEIGHT
            + interaction_quality * INTERACTION_WEIGHT
            + adaptive_quality * ADAPTABILITY_WEIGHT
            + output.confidence * 0.1
            + feedback.quality * 0.1
            + feedback.learning_potential * 0.05
        )
        return clamp(quality)
