from doclyze.config.settings import Settings
from doclyze.search.base import BaseSimilaritySearch
from doclyze.search.pgvector_adapter import PgVectorSearch


class SearchFactory:
    """Creates the similarity search adapter based on settings."""

    ADAPTERS: dict[str, type[BaseSimilaritySearch]] = {
        "pgvector": PgVectorSearch,
    }

    @classmethod
    def create(cls, settings: Settings) -> BaseSimilaritySearch | None:
        """Return the configured adapter, or None when retrieval is switched off."""
        backend = settings.search_backend.lower()
        if backend == "none":
            return None
        adapter_cls = cls.ADAPTERS.get(backend)
        if adapter_cls is None:
            raise ValueError(
                f"Unknown search backend '{backend}'. Choose from: {['none', *cls.ADAPTERS]}"
            )
        return adapter_cls()
