"""Client boundary detection over the module import graph."""

from nextclient.boundary.extractor import ModuleExtractor
from nextclient.boundary.graph import ModuleGraph
from nextclient.boundary.propagation import BoundaryPropagator, is_boundary_blocking
from nextclient.boundary.resolver import ResolveResult, SpecifierResolver, canonical_path

__all__ = [
    "BoundaryPropagator",
    "ModuleExtractor",
    "ModuleGraph",
    "ResolveResult",
    "SpecifierResolver",
    "canonical_path",
    "is_boundary_blocking",
]
