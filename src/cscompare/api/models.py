"""Pydantic models for cscompare API requests and responses."""

from typing import Optional

from pydantic import BaseModel, Field, field_validator


class CompareRequest(BaseModel):
    """Request model for compare endpoint."""

    repo_path: str = Field(
        ...,
        description="Absolute path of the local repository",
        examples=["/srv/git/webapp"],
    )
    target: str = Field(..., description="Branch the change-sets are replayed onto", examples=["main"])
    base_a: str = Field(..., description="Base of the first change-set", examples=["production"])
    tip_a: str = Field(..., description="Tip of the first change-set", examples=["production-login-ui"])
    base_b: str = Field(..., description="Base of the second change-set", examples=["main"])
    tip_b: str = Field(..., description="Tip of the second change-set", examples=["login-ui"])
    find_renames_threshold: int = Field(
        50,
        description="Rename detection threshold percentage",
        ge=0,
        le=100,
    )
    context_lines: int = Field(
        3,
        description="Number of context lines in diffs",
        ge=0,
        le=100,
    )

    @field_validator("repo_path")
    @classmethod
    def repo_path_must_be_absolute(cls, v):
        """Only absolute local paths are accepted."""
        v = v.strip()
        if not v:
            raise ValueError("repo_path cannot be empty")
        if not (v.startswith("/") or (len(v) > 2 and v[1] == ":")):
            raise ValueError("repo_path must be an absolute path")
        return v

    @field_validator("target", "base_a", "tip_a", "base_b", "tip_b")
    @classmethod
    def ref_must_not_be_empty(cls, v):
        """Refs are passed to git as-is; only emptiness is rejected."""
        v = v.strip()
        if not v:
            raise ValueError("ref cannot be empty")
        if v.startswith("-"):
            raise ValueError("ref cannot start with '-'")
        return v

    def refs(self) -> list:
        return [self.target, self.base_a, self.tip_a, self.base_b, self.tip_b]


class HealthResponse(BaseModel):
    """Response model for health check endpoint."""

    status: str = Field(..., examples=["healthy"])
    version: str = Field(..., examples=["1.0.0"])
    git_available: bool = Field(..., examples=[True])
    git_version: Optional[str] = Field(None, examples=["2.43.0"])
    merge_strategy: Optional[str] = Field(
        None,
        description="How synthetic trees get their merge base; null when git cannot synthesize",
        examples=["merge-base-option", "surrogate-commit"],
    )


class VersionResponse(BaseModel):
    """Response model for version endpoint."""

    version: str = Field(..., examples=["1.0.0"])
    git_version: Optional[str] = Field(None, examples=["2.43.0"])
    minimum_git_version: str = Field(..., examples=["2.38"])
