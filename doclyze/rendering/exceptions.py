class RenderError(Exception):
    """Raised when markup cannot be converted to a document."""
