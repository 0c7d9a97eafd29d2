"""Template steps and the file bodies they write."""

from .steps import DEFAULT_STEPS, PipelineStep

__all__ = ["DEFAULT_STEPS", "PipelineStep"]
