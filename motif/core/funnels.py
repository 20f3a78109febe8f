# ═══════════════════════════════════════════════════════════════════════════════
# PART 3: FUNNEL DYNAMICS ENGINE
# Design: P1 (Dynamical Systems) | Implementation: I2 (Numerics)
# ═══════════════════════════════════════════════════════════════════════════════

"""
P1: "Each input leaves behind a small dynamical object. Its energy is pulled
down by gravity, pushed up by regeneration, rocked by its own oscillation and
dragged toward the population by a Bayesian prior. What survives that, and
keeps meeting its neighbours, is a pattern."

I1: "The scoring loop only needs a narrow surface: add a group, step, read
state, tune parameters. Put that behind an ABC so tests can force states
without fighting the physics."
"""

from __future__ import annotations

import itertools
import logging
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Callable, Dict, Iterator, List, Optional

import numpy as np

from motif.core.numeric import clamp

logger = logging.getLogger("motif.funnels")

ENERGY_MAX = 2.0

# Valid range for every tunable parameter; tune() clamps into these
PARAMETER_RANGES: Dict[str, tuple] = {
    "energy_regeneration": (0.01, 0.1),
    "oscillation_strength": (0.01, 1.0),
    "bayesian_influence": (0.0, 1.0),
    "floor_threshold": (0.0, 0.5),
    "gravity": (0.001, 0.05),
    "friction": (0.001, 0.5),
    "turbulence": (0.001, 0.5),
    "spiral_tightness": (0.5, 2.0),
    "interaction_radius": (0.05, 1.0),
}


def wall_clock_ms() -> float:
    """Milliseconds since the epoch."""
    return time.time() * 1000.0


class ObjectState(Enum):
    """Discrete motion state of a tracked object."""
    ASCENDING = "ascending"
    DESCENDING = "descending"
    OSCILLATING = "oscillating"


@dataclass
class FunnelConfig:
    """Configuration for the funnel engine."""
    energy_regeneration: float = 0.02
    oscillation_strength: float = 0.1
    bayesian_influence: float = 0.5
    floor_threshold: float = 0.05
    gravity: float = 0.008
    min_funnel_count: int = 3
    max_funnel_count: int = 3

    # Mutable between steps
    friction: float = 0.02
    turbulence: float = 0.02
    spiral_tightness: float = 1.0
    interaction_radius: float = 0.3


@dataclass
class Interaction:
    """One encounter with another object, seen from this object's side."""
    with_id: str
    energy: float       # Own energy at the time of the encounter
    timestamp: float    # ms


@dataclass
class TrackedObject:
    """A single simulated entity inside a funnel."""
    energy: float
    state: ObjectState = ObjectState.DESCENDING
    speed: float = 0.1
    type: str = "simple"
    oscillation_phase: float = 0.0
    last_energy_change: float = 0.0
    interaction_history: List[Interaction] = field(default_factory=list)
    metadata: Dict[str, float] = field(default_factory=dict)

    # Assigned by the engine on registration
    id: str = ""
    funnel_id: str = ""

    @property
    def key(self) -> str:
        """Engine-wide identifier: funnel id + object id."""
        return f"{self.funnel_id}-{self.id}"

    def snapshot(self) -> TrackedObject:
        """Copy safe to hand to readers."""
        return replace(
            self,
            interaction_history=list(self.interaction_history),
            metadata=dict(self.metadata),
        )


@dataclass
class GlobalState:
    energy_mean: float
    energy_variance: float
    state_distribution: Dict[str, int]
    total_objects: int
    total_funnels: int


@dataclass
class FunnelSnapshot:
    funnel_id: str
    object_count: int
    avg_energy: float
    objects: List[TrackedObject]


# ── Contract ────────────────────────────────────────────────────────────────


class DynamicalEngine(ABC):
    """The state surface the scoring loop relies on."""

    @property
    @abstractmethod
    def config(self) -> FunnelConfig:
        """Current (tunable) configuration."""

    @abstractmethod
    def add_funnel(self, funnel_id: str, objects: List[TrackedObject]) -> None:
        """Register a new group of tracked objects."""

    @abstractmethod
    def step(self, dt: float) -> None:
        """Advance simulated time by dt."""

    @abstractmethod
    def tune(self, **params: float) -> None:
        """Set configuration parameters, clamped to their valid ranges."""

    @abstractmethod
    def global_state(self) -> GlobalState:
        """Population-wide energy statistics and state counts."""

    @abstractmethod
    def funnel_states(self) -> Dict[str, FunnelSnapshot]:
        """Per-funnel object snapshots, in registration order."""


# ── Default implementation ──────────────────────────────────────────────────


class FunnelEngine(DynamicalEngine):
    """
    Population of tracked objects grouped into funnels.

    Per step, every object:
    1. Advances its oscillation phase (speed * spiral tightness)
    2. Feels regeneration - gravity + oscillation + prior pull + turbulence
    3. Loses a friction fraction of the change, then clamps to [floor, 2.0]
    4. Takes a state from the sign of its energy change

    Objects whose energies lie within the interaction radius of each other
    record an interaction on both sides. Funnels beyond max_funnel_count are
    retired oldest-first.
    """

    def __init__(
        self,
        config: Optional[FunnelConfig] = None,
        rng: Optional[np.random.Generator] = None,
        clock: Optional[Callable[[], float]] = None,
    ) -> None:
        self._config = config or FunnelConfig()
        cfg = self._config

        if cfg.min_funnel_count < 1 or cfg.max_funnel_count < 1:
            raise ValueError("Funnel count bounds must be positive")
        if cfg.min_funnel_count > cfg.max_funnel_count:
            raise ValueError(
                f"min_funnel_count ({cfg.min_funnel_count}) exceeds "
                f"max_funnel_count ({cfg.max_funnel_count})"
            )

        self._rng = rng or np.random.default_rng()
        self._clock = clock or wall_clock_ms
        self._funnels: Dict[str, List[TrackedObject]] = {}
        self.time: float = 0.0

    # ── Properties ──────────────────────────────────────────────────────────

    @property
    def config(self) -> FunnelConfig:
        return self._config

    @property
    def n_objects(self) -> int:
        return sum(len(objs) for objs in self._funnels.values())

    # ── Methods ─────────────────────────────────────────────────────────────

    def add_funnel(self, funnel_id: str, objects: List[TrackedObject]) -> None:
        if funnel_id in self._funnels:
            raise ValueError(f"Funnel already exists: {funnel_id}")

        for i, obj in enumerate(objects):
            obj.id = obj.id or str(i)
            obj.funnel_id = funnel_id
        self._funnels[funnel_id] = list(objects)

        while len(self._funnels) > self._config.max_funnel_count:
            oldest = next(iter(self._funnels))
            del self._funnels[oldest]
            logger.debug("Retired funnel %s", oldest)

    def step(self, dt: float) -> None:
        cfg = self._config
        objects = list(self._iter_objects())

        if not np.isfinite(dt) or dt <= 0 or not objects:
            return

        population_mean = float(np.mean([o.energy for o in objects]))
        noise = self._rng.normal(0.0, 1.0, len(objects))

        for obj, eps in zip(objects, noise):
            obj.oscillation_phase = (
                obj.oscillation_phase
                + 2 * np.pi * obj.speed * cfg.spiral_tightness * dt
            ) % (2 * np.pi)

            force = (
                cfg.energy_regeneration
                - cfg.gravity
                + cfg.oscillation_strength * np.sin(obj.oscillation_phase)
                + cfg.bayesian_influence * 0.1 * (population_mean - obj.energy)
                + cfg.turbulence * eps
            )
            change = (1 - cfg.friction) * obj.last_energy_change + force * dt

            new_energy = float(np.clip(obj.energy + change, cfg.floor_threshold, ENERGY_MAX))
            actual = new_energy - obj.energy

            obj.state = self._next_state(obj.last_energy_change, actual)
            obj.last_energy_change = actual
            obj.energy = new_energy

        self._record_interactions(objects)
        self.time += dt

    def tune(self, **params: float) -> None:
        for name, value in params.items():
            if name not in PARAMETER_RANGES:
                raise KeyError(f"Unknown engine parameter: {name}")
            low, high = PARAMETER_RANGES[name]
            setattr(self._config, name, clamp(value, low, high))

    def global_state(self) -> GlobalState:
        objects = list(self._iter_objects())
        energies = np.array([o.energy for o in objects], dtype=float)

        distribution = {s.value: 0 for s in ObjectState}
        for obj in objects:
            distribution[obj.state.value] += 1

        return GlobalState(
            energy_mean=float(np.mean(energies)) if len(energies) else 0.0,
            energy_variance=float(np.var(energies)) if len(energies) else 0.0,
            state_distribution=distribution,
            total_objects=len(objects),
            total_funnels=len(self._funnels),
        )

    def funnel_states(self) -> Dict[str, FunnelSnapshot]:
        states = {}
        for funnel_id, objects in self._funnels.items():
            energies = [o.energy for o in objects]
            states[funnel_id] = FunnelSnapshot(
                funnel_id=funnel_id,
                object_count=len(objects),
                avg_energy=float(np.mean(energies)) if energies else 0.0,
                objects=[o.snapshot() for o in objects],
            )
        return states

    def get_state(self) -> dict:
        """Serialize current state."""
        g = self.global_state()
        return {
            "time": self.time,
            "config": dict(vars(self._config)),
            "funnels": list(self._funnels),
            "energy_mean": g.energy_mean,
            "energy_variance": g.energy_variance,
            "state_distribution": g.state_distribution,
        }

    # ── Internal ────────────────────────────────────────────────────────────

    def _iter_objects(self) -> Iterator[TrackedObject]:
        for objects in self._funnels.values():
            yield from objects

    @staticmethod
    def _next_state(previous_change: float, change: float) -> ObjectState:
        """Direction reversal = oscillating; otherwise follow the sign."""
        if previous_change * change < 0:
            return ObjectState.OSCILLATING
        if change > 0:
            return ObjectState.ASCENDING
        return ObjectState.DESCENDING

    def _record_interactions(self, objects: List[TrackedObject]) -> None:
        """Every pair within interaction_radius meets once per step."""
        radius = self._config.interaction_radius
        now = self._clock()

        for a, b in itertools.combinations(objects, 2):
            if abs(a.energy - b.energy) < radius:
                a.interaction_history.append(Interaction(b.key, a.energy, now))
                b.interaction_history.append(Interaction(a.key, b.energy, now))
