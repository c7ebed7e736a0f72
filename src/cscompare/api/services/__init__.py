"""Service layer for the cscompare API."""

from .compare import CompareService

__all__ = ["CompareService"]
