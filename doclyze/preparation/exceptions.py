class IngestError(Exception):
    """Raised when a document cannot be made available for processing."""
