"""
Utility functions for crime analytics pipelines.
"""

from .logging import PipelineLog, console
from .artifacts import ArtifactStore

__all__ = ["PipelineLog", "console", "ArtifactStore"]
