"""Collaborators that drive the external heyu CLI."""

from .monitor import HeyuMonitor
from .runner import HeyuCommandRunner

__all__ = ["HeyuCommandRunner", "HeyuMonitor"]
