"""Service wiring."""

from questline.core.services.container import ServiceContainer

__all__ = ["ServiceContainer"]
