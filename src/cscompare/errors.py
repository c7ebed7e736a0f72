"""Error definitions and handling for cscompare."""

from typing import Any, Dict, List, Optional


class CompareError(Exception):
    """Base exception for cscompare errors."""

    def __init__(self, code: str, message: str, details: Optional[Dict[str, Any]] = None):
        """Initialize error with code, message, and optional details."""
        super().__init__(message)
        self.code = code
        self.message = message
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        """Convert error to dictionary for JSON serialization."""
        result = {
            "code": self.code,
            "message": self.message,
        }
        if self.details:
            result["details"] = self.details
        return result


class InvalidArgumentCountError(CompareError):
    """Wrong number of refs supplied to a comparison."""

    def __init__(self, received: int, expected: int = 5):
        super().__init__(
            code="INVALID_ARGUMENT_COUNT",
            message=f"Expected {expected} refs, got {received}",
            details={"received": received, "expected": expected},
        )


class GitVersionUnsupportedError(CompareError):
    """Git version is not supported."""

    def __init__(self, detected_version: str, required_version: str = "2.38"):
        super().__init__(
            code="GIT_VERSION_UNSUPPORTED",
            message=f"Git version {detected_version} is not supported. "
            f"Minimum required: {required_version}",
            details={
                "detected_version": detected_version,
                "required_version": required_version,
            },
        )


class GitTimeoutError(CompareError):
    """Git operation timed out."""

    def __init__(self, operation: str, timeout_seconds: int):
        super().__init__(
            code="GIT_TIMEOUT",
            message=f"Timeout during {operation} after {timeout_seconds}s",
            details={"operation": operation, "timeout_seconds": timeout_seconds},
        )


class BackendError(CompareError):
    """Git exited with a failure status.

    The backend's stderr and exit status are kept verbatim so callers can
    pass them through unchanged.
    """

    def __init__(
        self,
        operation: str,
        returncode: int,
        stderr: str,
        code: str = "BACKEND_ERROR",
        message: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        merged = {"operation": operation, "returncode": returncode, "stderr": stderr}
        merged.update(details or {})
        super().__init__(
            code=code,
            message=message or stderr.strip() or f"git {operation} failed with status {returncode}",
            details=merged,
        )
        self.operation = operation
        self.returncode = returncode
        self.stderr = stderr


class UnresolvableRefError(BackendError):
    """A ref could not be resolved to an object by git."""

    def __init__(self, operation: str, returncode: int, stderr: str, refs: List[str]):
        super().__init__(
            operation,
            returncode,
            stderr,
            code="UNRESOLVABLE_REF",
            details={"refs": refs},
        )


class MergeConflictError(BackendError):
    """The three-way merge hit conflicts it could not auto-resolve."""

    def __init__(
        self,
        returncode: int,
        conflicted_paths: List[str],
        messages: str,
        merge_base: str,
        ours: str,
        theirs: str,
    ):
        super().__init__(
            "merge-tree",
            returncode,
            messages,
            code="MERGE_CONFLICT",
            message=f"Merge of {theirs} onto {ours} (base {merge_base}) has conflicts in "
            f"{len(conflicted_paths)} path(s)",
            details={
                "conflicted_paths": conflicted_paths,
                "merge_base": merge_base,
                "ours": ours,
                "theirs": theirs,
            },
        )
        self.conflicted_paths = conflicted_paths
