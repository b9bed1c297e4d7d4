"""Data layer utilities for loading story documents and save storage."""

from .errors import DataError, DataLoadError, DataValidationError
from .story_normalizer import StoryNormalizer, load_story_file, normalize_story

__all__ = [
    "DataError",
    "DataLoadError",
    "DataValidationError",
    "StoryNormalizer",
    "load_story_file",
    "normalize_story",
]
