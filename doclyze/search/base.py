from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class SearchMatch:
    """One retrieved passage with its similarity score (higher is closer)."""

    score: float
    metadata: dict[str, Any] = field(default_factory=dict)


class BaseSimilaritySearch(ABC):
    """Contract for vector similarity search adapters."""

    @abstractmethod
    def query(
        self,
        vector: list[float],
        top_k: int,
        filter: dict[str, Any] | None = None,  # noqa: A002
    ) -> list[SearchMatch]:
        """Return at most ``top_k`` matches, best first.

        Raises:
            SearchError: on any failure.
        """
