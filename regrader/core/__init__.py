"""
Core module for configuration and the exam analysis engine.

The analysis modules are not imported at package level; import them
directly: from regrader.core.regrading import compute_results
"""
from .config import settings

__all__ = ["settings"]
