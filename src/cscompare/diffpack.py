"""Patch parsing and hunk splitting for cscompare."""

import logging
import re
from dataclasses import dataclass, field
from typing import List, Optional

logger = logging.getLogger(__name__)

_FILE_HEADER = "diff --git "

_OCTAL_ESCAPE = re.compile(rb"\\([0-7]{3})")
_SIMPLE_ESCAPES = {
    b"\\\\": b"\\",
    b'\\"': b'"',
    b"\\t": b"\t",
    b"\\n": b"\n",
    b"\\a": b"\a",
    b"\\b": b"\b",
    b"\\f": b"\f",
    b"\\r": b"\r",
    b"\\v": b"\v",
}


@dataclass
class DiffHunk:
    """Represents a single diff hunk."""

    header: str
    old_start: int
    old_lines: int
    new_start: int
    new_lines: int
    added: int
    deleted: int
    patch: str


@dataclass
class ProcessedFile:
    """One file entry of a tree-to-tree diff with its hunks."""

    status: str  # A, M, D, R, C, T
    path_old: Optional[str]
    path_new: Optional[str]
    mode_old: Optional[str] = None
    mode_new: Optional[str] = None
    rename_score: Optional[int] = None
    is_binary: bool = False

    # Change flags
    eol_only_change: bool = False
    whitespace_only_change: bool = False

    hunks: List[DiffHunk] = field(default_factory=list)


def unquote_path(path: str) -> str:
    """Undo git's C-style quoting of a path, if present."""
    if not (len(path) >= 2 and path.startswith('"') and path.endswith('"')):
        return path

    raw = path[1:-1].encode("utf-8")
    out = bytearray()
    index = 0
    while index < len(raw):
        if raw[index:index + 1] == b"\\":
            octal = _OCTAL_ESCAPE.match(raw, index)
            if octal:
                out.append(int(octal.group(1), 8))
                index = octal.end()
                continue
            pair = raw[index:index + 2]
            if pair in _SIMPLE_ESCAPES:
                out += _SIMPLE_ESCAPES[pair]
                index += 2
                continue
        out += raw[index:index + 1]
        index += 1
    return out.decode("utf-8", errors="replace")


def _strip_prefix(path: str, prefix: str) -> Optional[str]:
    path = unquote_path(path.rstrip("\t"))
    if path == "/dev/null":
        return None
    if path.startswith(prefix):
        return path[len(prefix):]
    return path


class DiffProcessor:
    """Processes a full ``git diff`` patch into structured files and hunks."""

    def __init__(self):
        """Initialize diff processor."""
        self.hunk_header_pattern = re.compile(
            r"^@@ -(\d+)(?:,(\d+))? \+(\d+)(?:,(\d+))? @@"
        )

    def process_patch(self, patch: str) -> List[ProcessedFile]:
        """Split a multi-file patch and process each file section."""
        files = []
        for section in self._split_file_sections(patch):
            processed = self.process_file_section(section)
            if processed:
                files.append(processed)

        files.sort(key=self._file_sort_key)
        logger.debug("Processed patch", extra={"files": len(files)})
        return files

    def _split_file_sections(self, patch: str) -> List[List[str]]:
        """Group patch lines by their ``diff --git`` header."""
        sections: List[List[str]] = []
        current: Optional[List[str]] = None

        for line in patch.split("\n"):
            if line.startswith(_FILE_HEADER):
                current = [line]
                sections.append(current)
            elif current is not None:
                current.append(line)

        return sections

    def process_file_section(self, lines: List[str]) -> Optional[ProcessedFile]:
        """Process the header and body of one file's patch."""
        if not lines or not lines[0].startswith(_FILE_HEADER):
            return None

        path_old, path_new = self._paths_from_header(lines[0][len(_FILE_HEADER):])
        processed = ProcessedFile(status="M", path_old=path_old, path_new=path_new)

        body_start = len(lines)
        for index, line in enumerate(lines[1:], start=1):
            if self.hunk_header_pattern.match(line):
                body_start = index
                break
            self._apply_extended_header(processed, line)

        self._finalize_status(processed)

        body = "\n".join(lines[body_start:])
        if not processed.is_binary and body:
            processed.hunks = self._split_into_hunks(body)
            processed.eol_only_change = self._detect_eol_only_change(body)
            processed.whitespace_only_change = self._detect_whitespace_only_change(body)

        logger.debug(
            "Processed file",
            extra={
                "path": processed.path_new or processed.path_old,
                "status": processed.status,
                "hunks": len(processed.hunks),
                "binary": processed.is_binary,
            },
        )
        return processed

    def _paths_from_header(self, rest: str):
        """Best-effort paths from ``a/<old> b/<new>``.

        Ambiguous when paths contain spaces; later header lines override.
        """
        if rest.startswith('"'):
            end = rest.find('" ', 1)
            if end != -1:
                return (
                    _strip_prefix(rest[:end + 1], "a/"),
                    _strip_prefix(rest[end + 2:], "b/"),
                )

        # Same path on both sides: "a/P b/P"
        if (len(rest) - 5) % 2 == 0:
            size = (len(rest) - 5) // 2
            old, sep, new = rest[:2 + size], rest[2 + size:5 + size], rest[5 + size:]
            if sep == " b/" and old[2:] == new:
                return old[2:], new

        old, _, new = rest.partition(" b/")
        return _strip_prefix(old, "a/"), new or None

    def _apply_extended_header(self, processed: ProcessedFile, line: str) -> None:
        """Fold one extended header line into the file record."""
        if line.startswith("new file mode "):
            processed.status = "A"
            processed.path_old = None
            processed.mode_new = line[len("new file mode "):].strip()
        elif line.startswith("deleted file mode "):
            processed.status = "D"
            processed.path_new = None
            processed.mode_old = line[len("deleted file mode "):].strip()
        elif line.startswith("old mode "):
            processed.mode_old = line[len("old mode "):].strip()
        elif line.startswith("new mode "):
            processed.mode_new = line[len("new mode "):].strip()
        elif line.startswith("similarity index "):
            score = re.search(r"(\d+)", line)
            if score:
                processed.rename_score = int(score.group(1))
        elif line.startswith("rename from "):
            processed.status = "R"
            processed.path_old = unquote_path(line[len("rename from "):])
        elif line.startswith("rename to "):
            processed.path_new = unquote_path(line[len("rename to "):])
        elif line.startswith("copy from "):
            processed.status = "C"
            processed.path_old = unquote_path(line[len("copy from "):])
        elif line.startswith("copy to "):
            processed.path_new = unquote_path(line[len("copy to "):])
        elif line.startswith("index "):
            # "index <old>..<new> <mode>" when the mode is unchanged
            parts = line.split()
            if len(parts) == 3:
                processed.mode_old = processed.mode_old or parts[2]
                processed.mode_new = processed.mode_new or parts[2]
        elif line.startswith("Binary files ") or line == "GIT binary patch":
            processed.is_binary = True
        elif line.startswith("--- "):
            if processed.status != "A":
                processed.path_old = _strip_prefix(line[4:], "a/")
        elif line.startswith("+++ "):
            if processed.status != "D":
                processed.path_new = _strip_prefix(line[4:], "b/")

    def _finalize_status(self, processed: ProcessedFile) -> None:
        """Detect type changes once all header lines are seen."""
        if processed.status != "M":
            return
        if processed.mode_old and processed.mode_new:
            # 100644 -> 120000 etc.: the object type changed
            if processed.mode_old[:2] != processed.mode_new[:2]:
                processed.status = "T"

    def _file_sort_key(self, processed: ProcessedFile) -> tuple:
        """Generate sort key for deterministic ordering."""
        effective_path = processed.path_new or processed.path_old or ""
        return (effective_path, processed.status)

    def _split_into_hunks(self, unified_diff: str) -> List[DiffHunk]:
        """Split unified diff into individual hunks."""
        hunks = []
        lines = unified_diff.split("\n")

        current_hunk_lines: List[str] = []
        current_header = None
        current_header_match = None

        for line in lines:
            header_match = self.hunk_header_pattern.match(line)
            if header_match:
                if current_header and current_hunk_lines:
                    hunks.append(
                        self._create_hunk(current_header, current_header_match, current_hunk_lines)
                    )

                current_header = line
                current_header_match = header_match
                current_hunk_lines = []
            elif current_header:
                current_hunk_lines.append(line)

        if current_header and current_hunk_lines:
            hunks.append(
                self._create_hunk(current_header, current_header_match, current_hunk_lines)
            )

        logger.debug("Split unified diff into %s hunks", len(hunks))
        return hunks

    def _create_hunk(
        self, header: str, header_match: re.Match, lines: List[str]
    ) -> DiffHunk:
        """Create a DiffHunk from header and lines."""
        old_start = int(header_match.group(1))
        old_lines = int(header_match.group(2) or "1")
        new_start = int(header_match.group(3))
        new_lines = int(header_match.group(4) or "1")

        # The patch text ends with a newline, leaving one empty trailing line
        while lines and lines[-1] == "":
            lines = lines[:-1]

        added = 0
        deleted = 0
        patch_lines = [header]

        for line in lines:
            if line.startswith("+"):
                added += 1
            elif line.startswith("-"):
                deleted += 1
            patch_lines.append(line)

        return DiffHunk(
            header=header,
            old_start=old_start,
            old_lines=old_lines,
            new_start=new_start,
            new_lines=new_lines,
            added=added,
            deleted=deleted,
            patch="\n".join(patch_lines),
        )

    def _changed_lines(self, unified_diff: str):
        removed, added = [], []
        for line in unified_diff.split("\n"):
            if self.hunk_header_pattern.match(line):
                continue
            if line.startswith("-"):
                removed.append(line[1:])
            elif line.startswith("+"):
                added.append(line[1:])
        return removed, added

    def _detect_eol_only_change(self, unified_diff: str) -> bool:
        """Detect if change is only end-of-line differences."""
        removed, added = self._changed_lines(unified_diff)

        if not removed and not added:
            return False

        if len(removed) != len(added):
            return False

        result = all(
            old.rstrip("\r") == new.rstrip("\r") for old, new in zip(removed, added)
        )
        if result:
            logger.debug("Detected EOL-only change")
        return result

    def _detect_whitespace_only_change(self, unified_diff: str) -> bool:
        """Detect if change is only whitespace differences."""
        old_content, new_content = self._changed_lines(unified_diff)

        if not old_content and not new_content:
            return False

        old_normalized = "".join("".join(line.split()) for line in old_content)
        new_normalized = "".join("".join(line.split()) for line in new_content)

        result = old_normalized == new_normalized and old_content != new_content
        if result:
            logger.debug("Detected whitespace-only change")
        return result
