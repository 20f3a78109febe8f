# ═══════════════════════════════════════════════════════════════════════════════
# PART 2: INPUT REPRESENTATION & COMPLEXITY
# Design: P3 (Information Theory) | Implementation: I2 (Numerics)
# ═══════════════════════════════════════════════════════════════════════════════

"""
P3: "An input is either a record, a piece of text, or something opaque.
Records are complex in proportion to their breadth and nesting, text in
proportion to its length, and opaque values get a flat baseline."
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Union

import numpy as np

COMPLEXITY_BASELINE = 0.3
FIELD_WEIGHT = 0.1
DEPTH_WEIGHT = 0.3
NESTED_WEIGHT = 0.2
TEXT_SCALE = 100.0


@dataclass(frozen=True)
class Structured:
    """A record: named fields mapped to arbitrary values."""
    fields: Dict[str, Any]


@dataclass(frozen=True)
class Text:
    value: str


@dataclass(frozen=True)
class Scalar:
    """Anything that is neither a record nor text."""
    value: Any = None


Input = Union[Structured, Text, Scalar]


def as_input(value: Any) -> Input:
    """
    Convert a raw Python value into the tagged input union.

    Mappings become records keyed by their (stringified) keys. Lists and
    tuples are records too, keyed by position. Strings are text. Everything
    else, None included, is a scalar.
    """
    if isinstance(value, (Structured, Text, Scalar)):
        return value
    if isinstance(value, Mapping):
        return Structured({str(k): v for k, v in value.items()})
    if isinstance(value, (list, tuple)):
        return Structured({str(i): v for i, v in enumerate(value)})
    if isinstance(value, str):
        return Text(value)
    return Scalar(value)


def is_structured(value: Any) -> bool:
    """True for values that nest: mappings, lists and tuples."""
    return isinstance(value, (Mapping, list, tuple, Structured))


def structure_depth(value: Any, depth: int = 0) -> int:
    """
    Maximum nesting depth below a value.

    A non-structured value has the depth of its container. A record has
    1 + the deepest of its structured fields, or its container's depth if
    it has none. {} is depth 0.
    """
    if not is_structured(value):
        return depth

    deepest = depth
    for child in _fields(value).values():
        if is_structured(child):
            deepest = max(deepest, structure_depth(child, depth + 1))
    return deepest


def input_complexity(value: Any) -> float:
    """Complexity score in [0, 1] for an arbitrary input value."""
    item = as_input(value)

    if isinstance(item, Structured):
        nested = sum(1 for v in item.fields.values() if is_structured(v))
        score = (
            len(item.fields) * FIELD_WEIGHT
            + structure_depth(item) * DEPTH_WEIGHT
            + nested * NESTED_WEIGHT
        )
        return min(1.0, score)

    if isinstance(item, Text):
        return min(1.0, len(item.value) / TEXT_SCALE)

    return COMPLEXITY_BASELINE


# ── Canonical serialization ─────────────────────────────────────────────────


class _CanonicalEncoder(json.JSONEncoder):
    """JSON encoder that handles numpy types and falls back to str()."""

    def default(self, obj: Any) -> Any:
        if isinstance(obj, np.integer):
            return int(obj)
        if isinstance(obj, np.floating):
            return float(obj)
        if isinstance(obj, np.bool_):
            return bool(obj)
        if isinstance(obj, np.ndarray):
            return obj.tolist()
        if isinstance(obj, (Structured, Text, Scalar)):
            return _plain(obj)
        return str(obj)


def canonical(value: Any) -> str:
    """Compact, key-sorted JSON text used for similarity comparisons."""
    return json.dumps(
        _plain(value),
        cls=_CanonicalEncoder,
        sort_keys=True,
        separators=(",", ":"),
    )


# ── Internal ────────────────────────────────────────────────────────────────


def _fields(value: Any) -> Dict[str, Any]:
    if isinstance(value, Structured):
        return value.fields
    if isinstance(value, Mapping):
        return {str(k): v for k, v in value.items()}
    return {str(i): v for i, v in enumerate(value)}


def _plain(value: Any) -> Any:
    """Recursively stringify mapping keys so sort_keys never compares mixed types."""
    if isinstance(value, Structured):
        return {k: _plain(v) for k, v in value.fields.items()}
    if isinstance(value, (Text, Scalar)):
        return _plain(value.value)
    if isinstance(value, Mapping):
        return {str(k): _plain(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_plain(v) for v in value]
    return value
