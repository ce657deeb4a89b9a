"""Generation tracking and cooperative cancellation."""

from .cancel import CancelToken
from .tracker import GenerationTracker

__all__ = ["CancelToken", "GenerationTracker"]
