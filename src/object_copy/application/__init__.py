"""Application layer for object copy."""

from object_copy.application.copy_orchestrator import CopyOrchestrator, copy_object

__all__ = ["CopyOrchestrator", "copy_object"]
