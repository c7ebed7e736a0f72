"""Changeset comparison via synthetic merge trees."""

import logging
from dataclasses import dataclass
from typing import Any, Dict, Sequence

from .errors import InvalidArgumentCountError
from .vcs import TreeDiff

logger = logging.getLogger(__name__)

REF_NAMES = ("target", "base_a", "tip_a", "base_b", "tip_b")


@dataclass(frozen=True)
class ChangesetRefs:
    """The five refs naming a target and two change-sets."""

    target: str
    base_a: str
    tip_a: str
    base_b: str
    tip_b: str

    @classmethod
    def from_sequence(cls, refs: Sequence[str]) -> "ChangesetRefs":
        """Build from positional refs, rejecting anything but exactly five."""
        if len(refs) != len(REF_NAMES):
            raise InvalidArgumentCountError(len(refs), len(REF_NAMES))
        return cls(*refs)

    def to_dict(self) -> Dict[str, str]:
        return {name: getattr(self, name) for name in REF_NAMES}


@dataclass(frozen=True)
class DiffResult:
    """Outcome of a comparison: both synthetic trees and their diff."""

    refs: ChangesetRefs
    tree_a: str
    tree_b: str
    patch: bytes
    returncode: int

    @property
    def text(self) -> str:
        """Patch decoded as UTF-8, undecodable bytes replaced."""
        return self.patch.decode("utf-8", errors="replace")

    def to_provenance_dict(self) -> Dict[str, Any]:
        """Refs and tree ids for output provenance."""
        return {
            "refs": self.refs.to_dict(),
            "trees": {"a": self.tree_a, "b": self.tree_b},
        }


class ChangesetComparator:
    """Compares two change-sets by replaying each onto a shared target.

    Each change-set ``base_x..tip_x`` is merged onto ``target`` with
    ``base_x`` forced as the merge base, giving one synthetic tree per
    side. Diffing the two trees cancels every patch the change-sets have
    in common and leaves only what is unique to either side.

    The backend must provide ``synthesize(merge_base, ours, theirs)``
    returning a tree id and ``diff(tree_a, tree_b)`` returning a
    :class:`~cscompare.vcs.TreeDiff`. Backend errors propagate unchanged.
    """

    def __init__(self, backend):
        """Initialize with the backend that merges and diffs trees."""
        self.backend = backend

    def compare(self, *refs: str) -> DiffResult:
        """Compare ``target, base_a, tip_a, base_b, tip_b``."""
        changeset = ChangesetRefs.from_sequence(refs)
        logger.info("Comparing changesets", extra=changeset.to_dict())

        tree_a = self.backend.synthesize(
            merge_base=changeset.base_a, ours=changeset.target, theirs=changeset.tip_a
        )
        tree_b = self.backend.synthesize(
            merge_base=changeset.base_b, ours=changeset.target, theirs=changeset.tip_b
        )
        logger.info("Synthetic trees ready", extra={"tree_a": tree_a, "tree_b": tree_b})

        tree_diff: TreeDiff = self.backend.diff(tree_a, tree_b)
        logger.info(
            "Changeset comparison complete",
            extra={"bytes": len(tree_diff.patch), "returncode": tree_diff.returncode},
        )
        return DiffResult(
            refs=changeset,
            tree_a=tree_a,
            tree_b=tree_b,
            patch=tree_diff.patch,
            returncode=tree_diff.returncode,
        )
