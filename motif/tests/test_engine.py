"""Tests for MotifEngine (full discern -> feedback -> refine -> detect cycle)."""

import numpy as np
import pytest

from motif.core.detector import MotifType
from motif.core.discernment import JudgmentLevel
from motif.core.engine import ConfigurationError, MotifConfig, MotifEngine
from motif.core.funnels import FunnelEngine, ObjectState
from motif.core.state import FrameworkState

SAMPLE_INPUTS = [
    {"type": "simple", "complexity": 0.3, "novelty": 0.2, "content": "basic pattern"},
    {"type": "complex", "complexity": 0.8, "content": "nuanced observation", "tags": ["a", "b"]},
    {"type": "mixed", "nested": {"deep": {"deeper": [1, 2, 3]}}},
    "a plain text observation of moderate length",
    42,
    None,
    [1, [2, [3]]],
]


@pytest.fixture
def engine(clock):
    return MotifEngine(MotifConfig(seed=11), clock=clock)


def _run(engine, clock, cycles, inputs=SAMPLE_INPUTS):
    results = []
    state = None
    for i in range(cycles):
        result = engine.update(inputs[i % len(inputs)], state, 1.0)
        state = result.state
        results.append(result)
        clock.advance(800)
    return results


# ── Construction ────────────────────────────────────────────────────────────


def test_default_construction():
    engine = MotifEngine()
    assert isinstance(engine.engine, FunnelEngine)
    assert engine.config.ttl == 60000.0
    assert engine.input_history.capacity == 100
    assert engine.evolution.capacity == 50


def test_config_feeds_funnel_engine():
    engine = MotifEngine(MotifConfig(
        plasticity_regeneration=0.05,
        discernment_sensitivity=0.2,
        refinement_strength=0.6,
    ))
    cfg = engine.engine.config
    assert cfg.energy_regeneration == 0.05
    assert cfg.oscillation_strength == 0.2
    assert cfg.bayesian_influence == 0.6
    assert cfg.min_funnel_count == cfg.max_funnel_count == 3


@pytest.mark.parametrize("field,value", [
    ("plasticity_threshold", 1.5),
    ("stability_threshold", -0.1),
    ("quality_threshold", float("nan")),
    ("input_sensitivity", 2.0),
    ("refinement_strength", 1.1),
])
def test_threshold_out_of_range(field, value):
    with pytest.raises(ConfigurationError, match=field):
        MotifEngine(MotifConfig(**{field: value}))


@pytest.mark.parametrize("field,value", [
    ("ttl", 0),
    ("ttl", -5.0),
    ("history_limit", 0),
    ("evolution_limit", -1),
])
def test_non_positive_capacities(field, value):
    with pytest.raises(ConfigurationError, match=field):
        MotifEngine(MotifConfig(**{field: value}))


def test_configuration_error_is_value_error():
    with pytest.raises(ValueError):
        MotifEngine(MotifConfig(ttl=0))


# ── Single cycle ────────────────────────────────────────────────────────────


def test_update_result_shape(engine):
    result = engine.update({"content": "hello"}, None, 1.0)

    assert result.output.judgment.level == JudgmentLevel.BASIC
    assert isinstance(result.state, FrameworkState)
    assert result.state.last_output is result.output
    assert len(result.evolution) == 1
    assert result.evolution[0].time == 0
    assert result.motifs == []


def test_first_two_inputs_maximally_novel(engine):
    """Novelty is 1.0 until two inputs have been remembered."""
    first = engine.update({"a": 1}, None, 1.0)
    second = engine.update("something else entirely", None, 1.0)

    assert first.output.novelty == 1.0
    assert second.output.novelty == 1.0


def test_repeated_input_not_novel(engine):
    for _ in range(3):
        result = engine.update({"a": 1}, None, 1.0)
    assert result.output.novelty == pytest.approx(0.0)


def test_empty_record_is_simple(engine):
    result = engine.update({}, None, 1.0)
    assert result.output.complexity == 0.0
    assert result.output.type == "simple"


def test_input_history_bounded(clock):
    engine = MotifEngine(MotifConfig(seed=1, history_limit=5), clock=clock)
    for i in range(12):
        engine.update({"i": i}, None, 1.0)

    remembered = [r.input for r in engine.input_history]
    assert remembered == [{"i": i} for i in range(7, 12)]


def test_dict_external_state_accepted(engine):
    """A hand-built partial state is defaulted field by field."""
    state = {"framework": {"complexity": 0.6, "coherence": 0.9}, "plasticity": 0.5}
    result = engine.update("input", state, 1.0)
    assert 0.0 <= result.state.quality <= 1.0


def test_feeding_back_framework_state(engine, clock):
    results = _run(engine, clock, 5)
    assert len(engine.get_framework_evolution()) == 5
    assert [e.time for e in results[-1].evolution] == [0, 1, 2, 3, 4]


def test_zero_delta_time(engine):
    """delta_time 0 scores the framework without moving the engine."""
    result = engine.update("input", None, 0.0)
    assert engine.engine.time == 0.0
    assert np.isfinite(result.state.plasticity)


# ── Properties over many cycles ─────────────────────────────────────────────


def test_scores_stay_in_range(engine, clock):
    """Every [0, 1] score holds across a long run with feedback."""
    for result in _run(engine, clock, 60):
        out = result.output
        fs = result.state
        unit_scores = [
            out.complexity,
            out.novelty,
            out.confidence,
            out.judgment.confidence,
            fs.quality,
            fs.coherence,
            fs.framework.coherence,
            fs.framework.stability,
            fs.framework.complexity,
            fs.last_feedback.quality,
            fs.last_feedback.learning_potential,
        ]
        for m in result.motifs:
            unit_scores += [m.quality, m.plasticity, m.stability, m.coherence]

        for score in unit_scores:
            assert 0.0 <= score <= 1.0
        assert 0.0 <= fs.plasticity <= 2.0
        assert np.isfinite(fs.adaptability)


def test_evolution_capped(engine, clock):
    results = _run(engine, clock, 55)
    evolution = results[-1].evolution
    assert len(evolution) == 50
    assert evolution[0].time == 5
    assert evolution[-1].time == 54


def test_deterministic_replay(clock_factory):
    """Same seed and clock, same trajectory."""
    runs = []
    for _ in range(2):
        clock = clock_factory()
        engine = MotifEngine(MotifConfig(seed=5), clock=clock)
        runs.append([e.plasticity for e in (r.evolution[-1] for r in _run(engine, clock, 10))])

    assert runs[0] == runs[1]


# ── Motif scenarios ─────────────────────────────────────────────────────────


def _loop_engine(stub_engine, clock, interactions):
    """A forced oscillating object with steady, recent interactions."""
    stub_engine.force(
        "loop", 0.9, ObjectState.OSCILLATING,
        interactions(clock.now, [0.9, 0.91, 0.9], partners=["x", "y", "z"]),
    )
    config = MotifConfig(
        plasticity_threshold=0.6,
        stability_threshold=0.5,
        quality_threshold=0.4,
        seed=3,
    )
    return MotifEngine(config, engine=stub_engine, clock=clock)


def test_taste_motif_emerges(stub_engine, clock, interactions):
    """Three near-identical inputs over a forced oscillating loop give a taste motif."""
    engine = _loop_engine(stub_engine, clock, interactions)

    for i in range(3):
        result = engine.update({"content": "repeated observation", "n": 1 + i % 2}, None, 1.0)
        clock.advance(1)

    tastes = [m for m in result.motifs if m.type == MotifType.TASTE]
    assert tastes
    assert tastes[0].lifespan >= 3
    assert stub_engine.steps == [1.0, 1.0, 1.0]


def test_lifespan_resets_after_eviction(stub_engine, clock, interactions):
    engine = _loop_engine(stub_engine, clock, interactions)
    engine.update("x", None, 1.0)
    engine.update("x", None, 1.0)
    assert engine.detector.motifs["loop-0"].lifespan == 2

    loop = stub_engine.funnels["loop"][0]
    loop.state = ObjectState.DESCENDING
    clock.advance(engine.config.ttl + 1)
    engine.update("x", None, 1.0)
    assert "loop-0" not in engine.detector.motifs

    loop.state = ObjectState.OSCILLATING
    engine.update("x", None, 1.0)
    motif = engine.detector.motifs["loop-0"]
    assert motif.lifespan == 1
    assert motif.first_detected == clock.now


# ── Summary ─────────────────────────────────────────────────────────────────


def test_summary_without_motifs():
    """No motifs: zeros and an empty distribution, no division error."""
    summary = MotifEngine().get_system_summary()

    assert summary.total_motifs == 0
    assert summary.avg_plasticity == 0
    assert summary.avg_quality == 0
    assert summary.motif_distribution == {}
    assert summary.system_age == 0
    assert summary.current_state is None


def test_summary_with_motifs(stub_engine, clock, interactions):
    engine = _loop_engine(stub_engine, clock, interactions)
    for _ in range(3):
        engine.update("x", None, 1.0)

    summary = engine.get_system_summary()
    active = engine.get_active_motifs()

    assert summary.total_motifs == len(active) == 1
    assert summary.motif_distribution == {"taste": 1}
    assert summary.avg_plasticity == pytest.approx(0.9)
    assert summary.avg_quality == pytest.approx(active[0].quality)
    assert summary.system_age == 3
    assert summary.current_state.time == 2


def test_get_state(engine):
    engine.update("x", None, 1.0)
    state = engine.get_state()
    assert state["inputs"] == 1
    assert state["cycles"] == 1
    assert "detector" in state
