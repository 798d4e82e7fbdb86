from doclyze.backend.base import BaseAIBackend
from doclyze.backend.factory import BackendFactory
from doclyze.backend.openai_adapter import OpenAIBackend

__all__ = ["BackendFactory", "BaseAIBackend", "OpenAIBackend"]
