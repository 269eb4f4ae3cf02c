"""Language-model extraction backends."""

from .client import Extractor, OpenAIExtractor

__all__ = ["Extractor", "OpenAIExtractor"]
