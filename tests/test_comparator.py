"""Tests for the changeset comparator."""

from unittest.mock import MagicMock, call

import pytest

from cscompare.comparator import ChangesetComparator, ChangesetRefs, DiffResult
from cscompare.errors import (
    InvalidArgumentCountError,
    MergeConflictError,
    UnresolvableRefError,
)
from cscompare.vcs import TreeDiff

REFS = ("main", "production", "production-login-ui", "main", "login-ui")


@pytest.fixture
def backend():
    """Backend double recording every call."""
    mock = MagicMock()
    mock.synthesize.side_effect = lambda merge_base, ours, theirs: f"tree-{theirs}"
    mock.diff.side_effect = lambda tree_a, tree_b: TreeDiff(
        tree_a=tree_a, tree_b=tree_b, patch=b"diff --git a/x b/x\n", returncode=0
    )
    return mock


class TestChangesetRefs:
    """Test ChangesetRefs construction."""

    def test_from_sequence(self):
        """Refs are assigned positionally."""
        refs = ChangesetRefs.from_sequence(REFS)

        assert refs.target == "main"
        assert refs.base_a == "production"
        assert refs.tip_a == "production-login-ui"
        assert refs.base_b == "main"
        assert refs.tip_b == "login-ui"

    @pytest.mark.parametrize("count", [0, 1, 4, 6, 10])
    def test_from_sequence_wrong_count(self, count):
        """Anything but five refs is rejected."""
        with pytest.raises(InvalidArgumentCountError) as exc_info:
            ChangesetRefs.from_sequence(["ref"] * count)

        assert exc_info.value.code == "INVALID_ARGUMENT_COUNT"
        assert exc_info.value.details == {"received": count, "expected": 5}

    def test_to_dict(self):
        """Dictionary keys follow argument order names."""
        assert ChangesetRefs.from_sequence(REFS).to_dict() == {
            "target": "main",
            "base_a": "production",
            "tip_a": "production-login-ui",
            "base_b": "main",
            "tip_b": "login-ui",
        }


class TestChangesetComparator:
    """Test ChangesetComparator against a mock backend."""

    @pytest.mark.parametrize("count", [0, 4, 6])
    def test_wrong_argument_count_makes_no_backend_calls(self, backend, count):
        """The argument guard runs before any backend interaction."""
        comparator = ChangesetComparator(backend)

        with pytest.raises(InvalidArgumentCountError):
            comparator.compare(*(["main"] * count))

        assert backend.synthesize.call_count == 0
        assert backend.diff.call_count == 0
        assert backend.mock_calls == []

    def test_compare_call_sequence(self, backend):
        """Two syntheses with explicit merge bases, then one diff."""
        result = ChangesetComparator(backend).compare(*REFS)

        assert backend.mock_calls == [
            call.synthesize(merge_base="production", ours="main", theirs="production-login-ui"),
            call.synthesize(merge_base="main", ours="main", theirs="login-ui"),
            call.diff("tree-production-login-ui", "tree-login-ui"),
        ]
        assert isinstance(result, DiffResult)
        assert result.tree_a == "tree-production-login-ui"
        assert result.tree_b == "tree-login-ui"
        assert result.patch == b"diff --git a/x b/x\n"
        assert result.returncode == 0
        assert result.refs == ChangesetRefs.from_sequence(REFS)

    def test_conflict_aborts_before_diff(self, backend):
        """A merge conflict on the first side stops the comparison."""
        backend.synthesize.side_effect = MergeConflictError(
            1, ["login.py"], "CONFLICT (content): Merge conflict in login.py\n",
            "production", "main", "production-login-ui",
        )

        with pytest.raises(MergeConflictError) as exc_info:
            ChangesetComparator(backend).compare(*REFS)

        assert exc_info.value.conflicted_paths == ["login.py"]
        assert backend.synthesize.call_count == 1
        assert backend.diff.call_count == 0

    def test_unresolvable_ref_propagates_unchanged(self, backend):
        """Backend errors are not caught or translated."""
        error = UnresolvableRefError(
            "merge-tree", 128, "fatal: not something we can merge\n", ["login-ui"]
        )
        backend.synthesize.side_effect = ["tree-a", error]

        with pytest.raises(UnresolvableRefError) as exc_info:
            ChangesetComparator(backend).compare(*REFS)

        assert exc_info.value is error
        assert exc_info.value.stderr == "fatal: not something we can merge\n"
        assert exc_info.value.returncode == 128
        assert backend.diff.call_count == 0

    def test_diff_result_provenance(self, backend):
        """Provenance carries refs and both tree ids."""
        result = ChangesetComparator(backend).compare(*REFS)

        provenance = result.to_provenance_dict()
        assert provenance["refs"]["tip_a"] == "production-login-ui"
        assert provenance["trees"] == {
            "a": "tree-production-login-ui",
            "b": "tree-login-ui",
        }

    def test_diff_result_text_replaces_undecodable_bytes(self):
        """Text view never raises on non UTF-8 content."""
        result = DiffResult(
            refs=ChangesetRefs.from_sequence(REFS),
            tree_a="a",
            tree_b="b",
            patch=b"+caf\xe9\n",
            returncode=0,
        )

        assert result.text == "+caf�\n"
