"""Plugin system for the weaver operator."""

from .base import PluginBase
from .registry import PluginRegistry

__all__ = ["PluginBase", "PluginRegistry"]
