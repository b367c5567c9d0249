from __future__ import annotations

import hashlib
import json
import math
import random
from typing import Any, Mapping


def _canonical(value: Any) -> Any:
    if isinstance(value, Mapping):
        return {str(key): _canonical(item) for key, item in sorted(value.items(), key=lambda pair: str(pair[0]))}
    if isinstance(value, (list, tuple)):
        return [_canonical(item) for item in value]
    if isinstance(value, (set, frozenset)):
        rows = [_canonical(item) for item in value]
        return sorted(rows, key=lambda item: json.dumps(item, sort_keys=True, separators=(",", ":")))
    if isinstance(value, float) and not math.isfinite(value):
        raise ValueError("Seed context cannot contain non-finite floats.")
    return value


def derive_seed(namespace: str, context: Mapping[str, Any]) -> int:
    payload = {"namespace": namespace, "context": _canonical(context)}
    serialized = json.dumps(payload, sort_keys=True, separators=(",", ":"), default=str)
    return int(hashlib.sha256(serialized.encode("utf-8")).hexdigest(), 16) % (2**32)


def derive_rng(namespace: str, context: Mapping[str, Any]) -> random.Random:
    return random.Random(derive_seed(namespace, context))


def check_rng(session_seed: int, *, year: int, month: int, turn_index: int, choice_id: str) -> random.Random:
    """Draw source for one check interaction; the same turn and choice always replay the same dice."""

    return derive_rng(
        "check.draw",
        {"seed": int(session_seed), "year": int(year), "month": int(month), "turn": int(turn_index), "choice": choice_id},
    )
