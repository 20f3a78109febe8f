# ═══════════════════════════════════════════════════════════════════════════════
# PART 6: ENVIRONMENTAL FEEDBACK
# Implementation: I1 (Systems Architect)
# ═══════════════════════════════════════════════════════════════════════════════

"""
H3: "The environment answers every judgment. Confident judgments get
reinforced, novel ones get challenged, and the answer is never exactly the
same twice."
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable

import numpy as np

from motif.core.discernment import DiscernmentOutput
from motif.core.numeric import clamp

CONFIDENCE_THRESHOLD = 0.6
NOVELTY_THRESHOLD = 0.7


@dataclass(frozen=True)
class Feedback:
    quality: float
    learning_potential: float
    reinforces: bool
    challenges: bool
    timestamp: float


def synthesize_feedback(
    output: DiscernmentOutput,
    rng: np.random.Generator,
    clock: Callable[[], float],
) -> Feedback:
    """Feedback for one discernment, jittered by a single uniform draw."""
    quality = clamp(output.confidence * (0.8 + float(rng.random()) * 0.4))
    return Feedback(
        quality=quality,
        learning_potential=clamp(output.complexity * quality),
        reinforces=output.confidence > CONFIDENCE_THRESHOLD,
        challenges=output.novelty > NOVELTY_THRESHOLD,
        timestamp=clock(),
    )
