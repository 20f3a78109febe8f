"""Shared fixtures: a controllable clock and a dynamical engine with forced states."""

from typing import Dict, List

import pytest

from motif.core.funnels import (
    PARAMETER_RANGES,
    DynamicalEngine,
    FunnelConfig,
    FunnelSnapshot,
    GlobalState,
    Interaction,
    ObjectState,
    TrackedObject,
)
from motif.core.numeric import clamp, mean, variance


class FakeClock:
    """Millisecond clock that only moves when told to."""

    def __init__(self, start: float = 1_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, ms: float) -> None:
        self.now += ms


class StubEngine(DynamicalEngine):
    """Engine whose objects never move unless a test moves them."""

    def __init__(self, config: FunnelConfig = None):
        self._config = config or FunnelConfig()
        self.funnels: Dict[str, List[TrackedObject]] = {}
        self.steps: List[float] = []

    @property
    def config(self) -> FunnelConfig:
        return self._config

    def add_funnel(self, funnel_id, objects):
        for i, obj in enumerate(objects):
            obj.id = obj.id or str(i)
            obj.funnel_id = funnel_id
        self.funnels[funnel_id] = list(objects)

    def step(self, dt):
        self.steps.append(dt)

    def tune(self, **params):
        for name, value in params.items():
            low, high = PARAMETER_RANGES[name]
            setattr(self._config, name, clamp(value, low, high))

    def global_state(self):
        objects = [o for objs in self.funnels.values() for o in objs]
        energies = [o.energy for o in objects]
        distribution = {s.value: 0 for s in ObjectState}
        for obj in objects:
            distribution[obj.state.value] += 1
        return GlobalState(
            energy_mean=mean(energies),
            energy_variance=variance(energies),
            state_distribution=distribution,
            total_objects=len(objects),
            total_funnels=len(self.funnels),
        )

    def funnel_states(self):
        return {
            fid: FunnelSnapshot(
                funnel_id=fid,
                object_count=len(objs),
                avg_energy=mean([o.energy for o in objs]),
                objects=[o.snapshot() for o in objs],
            )
            for fid, objs in self.funnels.items()
        }

    # ── Test helpers ────────────────────────────────────────────────────────

    def force(
        self,
        funnel_id: str,
        energy: float,
        state: ObjectState,
        interactions: List[Interaction],
    ) -> TrackedObject:
        """Plant a single-object funnel with a fixed state and history."""
        obj = TrackedObject(energy=energy, state=state, interaction_history=list(interactions))
        self.add_funnel(funnel_id, [obj])
        return obj


def make_interactions(now: float, energies, partners=None) -> List[Interaction]:
    partners = partners or [f"p{i}" for i in range(len(energies))]
    return [Interaction(with_id=p, energy=e, timestamp=now) for p, e in zip(partners, energies)]


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def clock_factory():
    return FakeClock


@pytest.fixture
def stub_engine():
    return StubEngine()


@pytest.fixture
def interactions():
    """Factory for interaction histories stamped at a given time."""
    return make_interactions
