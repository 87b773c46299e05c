"""Weaver: a Kubernetes operator composing pages from declarative resources."""

__version__ = "0.1.0"
