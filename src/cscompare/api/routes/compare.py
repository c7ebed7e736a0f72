"""Compare routes for cscompare API."""

import logging
from typing import Any, Dict

from fastapi import APIRouter, HTTPException

from ..models import CompareRequest
from ..services import CompareService

router = APIRouter(tags=["compare"])

logger = logging.getLogger(__name__)

compare_service = CompareService()


@router.post("/compare")
def create_comparison(request: CompareRequest) -> Dict[str, Any]:
    """Compare two change-sets replayed onto a common target."""
    logger.info(
        "Received compare request",
        extra={"repo": request.repo_path, "target": request.target},
    )

    try:
        result = compare_service.process_compare_request(
            repo_path=request.repo_path,
            refs=request.refs(),
            find_renames_threshold=request.find_renames_threshold,
            context_lines=request.context_lines,
        )
        logger.info(
            "Compare request completed",
            extra={
                "repo": request.repo_path,
                "ok": result.get("ok"),
                "files": len(result.get("data", {}).get("files", [])),
            },
        )
        return result

    except Exception as exc:
        logger.exception("Compare request failed", extra={"repo": request.repo_path})
        raise HTTPException(
            status_code=500,
            detail={
                "ok": False,
                "error": {
                    "code": "INTERNAL_ERROR",
                    "message": f"Failed to compare change-sets: {str(exc)}",
                    "details": {"exception_type": type(exc).__name__},
                },
            },
        ) from exc
