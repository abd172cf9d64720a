"""Assistant module."""

from .generator import IResponseGenerator, LLMResponseGenerator

__all__ = ["IResponseGenerator", "LLMResponseGenerator"]
