"""API route registration for cscompare."""

from fastapi import APIRouter

from . import compare, meta

router = APIRouter()
router.include_router(meta.router)
router.include_router(compare.router)

__all__ = ["router"]
