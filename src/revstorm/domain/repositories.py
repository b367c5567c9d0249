from abc import ABC, abstractmethod
from typing import Any, List, Mapping, Optional

from revstorm.domain.models.request import NarrativeRequest


class SaveRepository(ABC):
    @abstractmethod
    def get(self, slot: str) -> Optional[dict]:
        raise NotImplementedError

    @abstractmethod
    def save(self, slot: str, document: dict) -> None:
        raise NotImplementedError

    @abstractmethod
    def list_slots(self) -> List[str]:
        raise NotImplementedError

    @abstractmethod
    def delete(self, slot: str) -> bool:
        raise NotImplementedError


class NarrativeCollaborator(ABC):
    """External content generator. Implementations may raise transport or malformed-proposal errors."""

    @abstractmethod
    def request_opening(self, request: NarrativeRequest) -> Mapping[str, Any]:
        raise NotImplementedError

    @abstractmethod
    def request_turn(self, request: NarrativeRequest) -> Mapping[str, Any]:
        raise NotImplementedError
