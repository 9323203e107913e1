"""Build pipeline components for presta."""

from presta.pipeline.hooks import BUILD_FILE, POST_BUILD, BuildHooks

__all__ = ["BUILD_FILE", "POST_BUILD", "BuildHooks"]
