"""Service layer for cscompare API."""

import logging
from typing import Any, Dict, List

from ...config import CompareConfig
from ...errors import CompareError
from ...main import build_payload, process_compare
from ...serialize import DeterministicSerializer

logger = logging.getLogger(__name__)


class CompareService:
    """Service class that encapsulates the comparison workflow."""

    def process_compare_request(
        self,
        repo_path: str,
        refs: List[str],
        find_renames_threshold: int = 50,
        context_lines: int = 3,
    ) -> Dict[str, Any]:
        """Process a compare request and return the complete JSON response."""
        logger.info(
            "Processing compare request",
            extra={"repo": repo_path, "refs": refs},
        )

        try:
            config = CompareConfig(
                repo_path=repo_path,
                find_renames_threshold=find_renames_threshold,
                context_lines=context_lines,
                output_format="json",
            )

            result, git_version = process_compare(config, refs)
            payload = build_payload(config, result, git_version)

            serializer = DeterministicSerializer(config)
            envelope = serializer.create_success_envelope(payload)

            logger.info(
                "Compare request succeeded",
                extra={
                    "repo": repo_path,
                    "files": len(payload.get("files", [])),
                    "notes": len(payload.get("notes", [])),
                },
            )
            return envelope

        except CompareError as exc:
            logger.warning(
                "Known comparison error",
                extra={"repo": repo_path, "code": exc.code},
            )
            return DeterministicSerializer().create_error_envelope(
                exc.code, exc.message, exc.details
            )
