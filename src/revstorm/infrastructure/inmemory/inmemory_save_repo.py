from __future__ import annotations

import copy
from typing import Dict, List, Optional

from revstorm.domain.repositories import SaveRepository


class InMemorySaveRepository(SaveRepository):
    def __init__(self) -> None:
        self._slots: Dict[str, dict] = {}

    def get(self, slot: str) -> Optional[dict]:
        document = self._slots.get(slot)
        return copy.deepcopy(document) if document is not None else None

    def save(self, slot: str, document: dict) -> None:
        self._slots[slot] = copy.deepcopy(document)

    def list_slots(self) -> List[str]:
        return sorted(self._slots)

    def delete(self, slot: str) -> bool:
        return self._slots.pop(slot, None) is not None
