from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Mapping


ATTRIBUTE_NAMES = ("physique", "intelligence", "spirit", "agility", "charisma", "politics")

ATTRIBUTE_MIN = 0
ATTRIBUTE_MAX = 20


def normalize_attribute_name(value: Any) -> str | None:
    raw = str(value or "").strip().lower()
    return raw if raw in ATTRIBUTE_NAMES else None


@dataclass(frozen=True)
class AttributeSet:
    physique: int = 5
    intelligence: int = 5
    spirit: int = 5
    agility: int = 5
    charisma: int = 5
    politics: int = 5

    def get(self, name: str | None) -> int:
        key = normalize_attribute_name(name)
        if key is None:
            return 0
        return int(getattr(self, key))

    def as_dict(self) -> Dict[str, int]:
        return {name: int(getattr(self, name)) for name in ATTRIBUTE_NAMES}

    def with_modifiers(self, modifiers: Mapping[str, int] | None) -> "AttributeSet":
        """Return a new set with ``modifiers`` added per dimension; unknown keys are ignored."""

        values = self.as_dict()
        for key, delta in (modifiers or {}).items():
            name = normalize_attribute_name(key)
            if name is None:
                continue
            values[name] += int(delta)
        return AttributeSet(**values)


def balanced_default_attributes() -> AttributeSet:
    return AttributeSet(physique=5, intelligence=5, spirit=5, agility=5, charisma=7, politics=7)


def attribute_set_from_mapping(attributes: Mapping[str, Any] | None, *, default: AttributeSet | None = None) -> AttributeSet:
    fallback = default or balanced_default_attributes()
    attrs = attributes if isinstance(attributes, Mapping) else {}

    def _score(name: str) -> int:
        raw = attrs.get(name)
        if raw is None or isinstance(raw, bool):
            return fallback.get(name)
        try:
            value = int(float(raw))
        except Exception:
            return fallback.get(name)
        return max(ATTRIBUTE_MIN, min(ATTRIBUTE_MAX, value))

    return AttributeSet(**{name: _score(name) for name in ATTRIBUTE_NAMES})
