"""Deterministic serialization for cscompare."""

import hashlib
import json
import logging
from typing import Any, Dict, List, Optional

from .comparator import DiffResult
from .config import CompareConfig
from .diffpack import ProcessedFile

logger = logging.getLogger(__name__)


class DeterministicSerializer:
    """Handles deterministic JSON serialization with stable ordering."""

    def __init__(self, config: Optional[CompareConfig] = None):
        """Initialize with configuration."""
        self.config = config or CompareConfig()

    def serialize_output(
        self,
        result: DiffResult,
        files: List[ProcessedFile],
        notes: List[str],
        git_version: str,
    ) -> Dict[str, Any]:
        """Serialize a comparison to a deterministic dictionary."""
        logger.debug(
            "Serializing output",
            extra={"files": len(files), "notes": len(notes)},
        )

        provenance = self.config.to_provenance_dict()
        provenance.update(result.to_provenance_dict())
        provenance["git_version"] = git_version
        provenance["diff_returncode"] = result.returncode

        files_data = [self._serialize_file(file) for file in files]
        files_data.sort(key=self._file_sort_key)

        payload = {
            "provenance": provenance,
            "files": files_data,
            "notes": sorted(notes),
        }

        checksum = self._compute_checksum(payload)
        payload["provenance"]["checksum"] = checksum

        logger.debug("Serialization finished", extra={"checksum": checksum})
        return payload

    def _serialize_file(self, file: ProcessedFile) -> Dict[str, Any]:
        """Serialize a single file to dictionary."""
        file_data = {
            "status": file.status,
            "path_old": file.path_old,
            "path_new": file.path_new,
            "mode_old": file.mode_old,
            "mode_new": file.mode_new,
            "is_binary": file.is_binary,
        }

        if file.rename_score is not None:
            file_data["rename_score"] = file.rename_score

        if file.eol_only_change:
            file_data["eol_only_change"] = True

        if file.whitespace_only_change:
            file_data["whitespace_only_change"] = True

        if file.hunks:
            hunks_data = []
            for hunk in file.hunks:
                hunk_data = {
                    "header": hunk.header,
                    "old_start": hunk.old_start,
                    "old_lines": hunk.old_lines,
                    "new_start": hunk.new_start,
                    "new_lines": hunk.new_lines,
                    "added": hunk.added,
                    "deleted": hunk.deleted,
                    "patch": hunk.patch,
                }
                hunks_data.append(hunk_data)

            hunks_data.sort(key=lambda h: (h["old_start"], h["new_start"]))
            file_data["hunks"] = hunks_data

        return file_data

    def _file_sort_key(self, file_data: Dict[str, Any]) -> tuple:
        """Generate sort key for file ordering."""
        effective_path = file_data.get("path_new") or file_data.get("path_old") or ""
        status = file_data.get("status", "")
        return (effective_path, status)

    def _normalize_structure(self, obj: Any) -> Any:
        """Return a copy of the object with deterministic ordering applied."""
        if isinstance(obj, dict):
            normalized: Dict[str, Any] = {}
            for key, value in obj.items():
                normalized_value = self._normalize_structure(value)
                if key == "files" and isinstance(normalized_value, list):
                    normalized_value = sorted(normalized_value, key=self._file_sort_key)
                elif key == "hunks" and isinstance(normalized_value, list):
                    normalized_value = sorted(
                        normalized_value,
                        key=lambda h: (h.get("old_start", 0), h.get("new_start", 0)),
                    )
                elif key == "notes" and isinstance(normalized_value, list):
                    normalized_value = sorted(normalized_value)
                normalized[key] = normalized_value
            return normalized
        if isinstance(obj, list):
            return [self._normalize_structure(item) for item in obj]
        return obj

    def _compute_checksum(self, payload: Dict[str, Any]) -> str:
        """Compute SHA-256 checksum of the payload, excluding the checksum itself."""
        payload_copy = dict(payload)
        payload_copy["provenance"] = {
            key: value
            for key, value in payload["provenance"].items()
            if key != "checksum"
        }
        json_bytes = self._to_deterministic_json_bytes(payload_copy)
        return hashlib.sha256(json_bytes).hexdigest()

    def _to_deterministic_json_bytes(self, obj: Any) -> bytes:
        """Convert object to deterministic JSON bytes."""
        json_str = json.dumps(
            self._normalize_structure(obj),
            ensure_ascii=False,
            sort_keys=True,
            separators=(",", ":"),
            indent=None,
        )
        return json_str.encode("utf-8", errors="replace")

    def to_json_string(self, payload: Dict[str, Any]) -> str:
        """Convert payload to pretty-printed JSON string."""
        normalized = self._normalize_structure(payload)
        return json.dumps(
            normalized,
            ensure_ascii=False,
            sort_keys=True,
            indent=2,
        )

    def create_success_envelope(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        """Create success envelope around payload."""
        return {"ok": True, "data": payload}

    def create_error_envelope(
        self, error_code: str, error_message: str, details: Optional[Dict[str, Any]] = None
    ) -> Dict[str, Any]:
        """Create error envelope."""
        logger.debug("Creating error envelope", extra={"code": error_code})
        error_data = {
            "code": error_code,
            "message": error_message,
        }
        if details:
            error_data["details"] = details

        return {"ok": False, "error": error_data}
