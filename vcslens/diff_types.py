"""Structured data types for parsed file diffs.

A FileDiff holds ordered hunks, each hunk holds ordered line records that carry
both the old and the new line number where they exist.
"""

from dataclasses import dataclass, field
from typing import Literal, Optional

# Path to nobody file, marks a created or removed file side
NULL_PATH = "/dev/null"

LineKind = Literal["context", "added", "removed"]


@dataclass(frozen=True)
class LineRecord:
  """One body line of a hunk.

  Attributes:
      kind: "context", "added" or "removed"
      old_line_no: Line number in the previous file version (unset for added)
      new_line_no: Line number in the new file version (unset for removed)
      text: Line content without the leading diff marker
      metadata: Marker lines attached to this line (e.g. no newline at end of file)
  """

  kind: LineKind
  old_line_no: Optional[int]
  new_line_no: Optional[int]
  text: str
  metadata: tuple[str, ...] = ()

  @property
  def is_added(self) -> bool:
    return self.kind == "added"

  @property
  def is_removed(self) -> bool:
    return self.kind == "removed"

  @property
  def is_context(self) -> bool:
    return self.kind == "context"

  def to_dict(self):
    return {
      "kind": self.kind,
      "oldLineNo": self.old_line_no,
      "newLineNo": self.new_line_no,
      "text": self.text,
      "metadata": list(self.metadata),
    }


@dataclass(frozen=True)
class DiffHunk:
  """A contiguous changed region.

  Attributes:
      begin_a: First line of the region in the previous version
      count_a: Number of removed and context lines
      begin_b: First line of the region in the new version
      count_b: Number of added and context lines
      lines: Ordered line records
      header: Raw "@@ ... @@" line
  """

  begin_a: int
  count_a: int
  begin_b: int
  count_b: int
  lines: tuple[LineRecord, ...] = ()
  header: str = ""

  @property
  def added(self) -> int:
    return sum(1 for line in self.lines if line.is_added)

  @property
  def removed(self) -> int:
    return sum(1 for line in self.lines if line.is_removed)

  def to_dict(self):
    return {
      "beginA": self.begin_a,
      "countA": self.count_a,
      "beginB": self.begin_b,
      "countB": self.count_b,
      "header": self.header,
      "lines": [line.to_dict() for line in self.lines],
    }


@dataclass(frozen=True)
class FileDiff:
  """Parsed diff of a single file.

  Attributes:
      previous_path: Path of the previous version, or NULL_PATH
      new_path: Path of the new version, or NULL_PATH
      is_binary: True if the tool reported a binary diff
      hunks: Ordered hunks
      description: Raw header lines preceding the first hunk
  """

  previous_path: str
  new_path: str
  is_binary: bool = False
  hunks: tuple[DiffHunk, ...] = ()
  description: str = ""

  def file_is_new(self) -> bool:
    """Returns True if the file was created."""
    return self.previous_path == NULL_PATH

  def file_removed(self) -> bool:
    """Returns True if the file was removed."""
    return self.new_path == NULL_PATH

  @property
  def path(self) -> str:
    """Most relevant path: the new one unless the file was removed."""
    return self.previous_path if self.file_removed() else self.new_path

  @property
  def additions(self) -> int:
    return sum(hunk.added for hunk in self.hunks)

  @property
  def deletions(self) -> int:
    return sum(hunk.removed for hunk in self.hunks)

  def line_status(self, new_line_no: int) -> Optional[LineKind]:
    """Look up how a line of the new version appears in the diff.

    Returns "added" or "context" when the line is shown by a hunk, None when
    the line lies outside every hunk.
    """
    for hunk in self.hunks:
      if not hunk.begin_b <= new_line_no < hunk.begin_b + hunk.count_b:
        continue
      for line in hunk.lines:
        if line.new_line_no == new_line_no:
          return line.kind
    return None

  def to_dict(self):
    """Convert to dict for JSON serialization."""
    return {
      "previousPath": self.previous_path,
      "newPath": self.new_path,
      "isBinary": self.is_binary,
      "isNew": self.file_is_new(),
      "isRemoved": self.file_removed(),
      "additions": self.additions,
      "deletions": self.deletions,
      "hunks": [hunk.to_dict() for hunk in self.hunks],
    }


@dataclass(frozen=True)
class ParsedFileDiff:
  """Parser output: the FileDiff plus the recoverable errors met on the way."""

  file_diff: FileDiff
  errors: tuple = field(default=())

  @property
  def ok(self) -> bool:
    return not self.errors

  def to_dict(self):
    return {
      **self.file_diff.to_dict(),
      "errors": [error.to_report().model_dump() for error in self.errors],
    }
