class SearchError(Exception):
    """Raised when a similarity search cannot be served."""
