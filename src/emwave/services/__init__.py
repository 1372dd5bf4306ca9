"""Services for emwave."""

from .assembly import AssemblyEngine, ElementJob

__all__ = ["AssemblyEngine", "ElementJob"]
