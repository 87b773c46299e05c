"""Services used by the weaver reconcilers."""

from . import content
from . import kube_accessor
from . import package_registry
from . import render

__all__ = ["content", "kube_accessor", "package_registry", "render"]
