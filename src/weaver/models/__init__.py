"""Pydantic models for all CRDs."""

# Import all models to ensure they're registered
from . import references
from . import libraries
from . import pages
from . import translations

__all__ = ["references", "libraries", "pages", "translations"]
