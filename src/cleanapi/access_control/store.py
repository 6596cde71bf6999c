from abc import ABC, abstractmethod
from typing import List, Optional

from cleanapi.access_control.models import PolicyDocument


class PolicyStore(ABC):
    """Durable storage for policy documents and their statements."""

    @abstractmethod
    def create(self, policy: PolicyDocument) -> PolicyDocument:
        """Persist a document and all of its statements in one transaction."""
        pass

    @abstractmethod
    def get(self, policy_id: str) -> Optional[PolicyDocument]:
        pass

    @abstractmethod
    def get_by_role(self, role: str) -> List[PolicyDocument]:
        """Active documents with a statement for ``role:<role>`` or ``*``."""
        pass

    @abstractmethod
    def get_active(self) -> List[PolicyDocument]:
        pass

    @abstractmethod
    def get_all(self) -> List[PolicyDocument]:
        """Every document, active or not."""
        pass

    @abstractmethod
    def update(self, policy: PolicyDocument) -> PolicyDocument:
        """Replace the document fields and its full statement set atomically."""
        pass

    @abstractmethod
    def delete(self, policy_id: str) -> None:
        pass

    @abstractmethod
    def count_active(self) -> int:
        pass
