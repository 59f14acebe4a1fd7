"""Parser for unified diff text.

Header and hunk grammar come from unidiff. The walk over hunk bodies is done
here so that a bad hunk only drops that hunk instead of failing the whole patch.
"""

import re
from dataclasses import dataclass, field, replace
from typing import Iterable, Optional, Union

from unidiff import PatchSet
from unidiff.constants import (
  LINE_TYPE_ADDED,
  LINE_TYPE_CONTEXT,
  LINE_TYPE_REMOVED,
  RE_BINARY_DIFF,
  RE_HUNK_HEADER,
  RE_SOURCE_FILENAME,
  RE_TARGET_FILENAME,
)

from .diff_types import NULL_PATH, DiffHunk, FileDiff, LineRecord, ParsedFileDiff
from .exceptions import MalformedDiffError, UnsupportedInputError

DEFAULT_PREFIXES = ("a/", "b/")

DIFF_GIT = "diff --git "
RE_RENAME_FROM = re.compile(r"^rename from (?P<path>.+)$")
RE_RENAME_TO = re.compile(r"^rename to (?P<path>.+)$")
GIT_BINARY_PATCH = "GIT binary patch"


def strip_path_prefix(path: str, prefixes: Iterable[str] = DEFAULT_PREFIXES) -> str:
  """Remove quoting and the tool-specific prefix from a header path.

  The null path is returned unchanged.
  """
  path = path.strip()
  if len(path) > 1 and path.startswith('"') and path.endswith('"'):
    path = path[1:-1]
  if path == NULL_PATH:
    return path
  for prefix in prefixes:
    if path.startswith(prefix):
      return path[len(prefix) :]
  return path


def split_git_header_paths(
  tail: str, prefixes: Iterable[str] = DEFAULT_PREFIXES
) -> Optional[tuple[str, str]]:
  """Split the "a/... b/..." part of a "diff --git" line into its two paths.

  Git leaves paths with spaces unquoted, so the split point is the space whose
  halves name the same file. Renames fall back to the first space followed by
  the second prefix. Returns None when no split point is found.
  """
  prefixes = tuple(prefixes)
  for index, char in enumerate(tail):
    if char != " ":
      continue
    source, target = tail[:index], tail[index + 1 :]
    if strip_path_prefix(source, prefixes) == strip_path_prefix(target, prefixes):
      return source, target

  if len(prefixes) > 1:
    index = tail.find(" " + prefixes[1])
    if index > 0:
      return tail[:index], tail[index + 1 :]
  return None


def _is_binary_marker(line: str) -> bool:
  return bool(RE_BINARY_DIFF.match(line)) or line.startswith(GIT_BINARY_PATCH)


@dataclass
class _FileHeader:
  """Mutable header state collected before the first hunk."""

  prefixes: tuple[str, ...]
  previous_path: Optional[str] = None
  new_path: Optional[str] = None
  recognized: bool = False
  lines: list[str] = field(default_factory=list)

  def feed(self, line: str) -> None:
    self.lines.append(line)

    if line.startswith(DIFF_GIT):
      self.recognized = True
      paths = split_git_header_paths(line[len(DIFF_GIT) :], self.prefixes)
      if paths is not None:
        self.previous_path = strip_path_prefix(paths[0], self.prefixes)
        self.new_path = strip_path_prefix(paths[1], self.prefixes)
    elif line.startswith("new file mode"):
      self.recognized = True
      self.previous_path = NULL_PATH
    elif line.startswith("deleted file mode"):
      self.recognized = True
      self.new_path = NULL_PATH
    elif match := RE_RENAME_FROM.match(line):
      # Rename paths carry no prefix
      self.recognized = True
      self.previous_path = strip_path_prefix(match.group("path"), ())
    elif match := RE_RENAME_TO.match(line):
      self.recognized = True
      self.new_path = strip_path_prefix(match.group("path"), ())
    elif match := RE_SOURCE_FILENAME.match(line):
      self.recognized = True
      self.previous_path = strip_path_prefix(match.group("filename"), self.prefixes)
    elif match := RE_TARGET_FILENAME.match(line):
      self.recognized = True
      self.new_path = strip_path_prefix(match.group("filename"), self.prefixes)

  def feed_binary(self, line: str) -> None:
    """Take paths from a "Binary files ... differ" line if the header had none."""
    self.lines.append(line)
    if match := RE_BINARY_DIFF.match(line):
      self.recognized = True
      if self.previous_path is None and match.group("source_filename"):
        self.previous_path = strip_path_prefix(
          match.group("source_filename"), self.prefixes
        )
      if self.new_path is None and match.group("target_filename"):
        self.new_path = strip_path_prefix(
          match.group("target_filename"), self.prefixes
        )

  def to_file_diff(self, hunks=(), is_binary: bool = False) -> FileDiff:
    return FileDiff(
      previous_path=self.previous_path or "",
      new_path=self.new_path or "",
      is_binary=is_binary,
      hunks=tuple(hunks),
      description="\n".join(self.lines),
    )


class _HunkBuilder:
  """Walks the body of one hunk, numbering lines with two running counters."""

  def __init__(self, header: str, match: re.Match):
    begin_a, count_a, begin_b, count_b = match.group(1, 2, 3, 4)
    self.header = header
    self.begin_a = int(begin_a)
    self.count_a = int(count_a) if count_a is not None else 1
    self.begin_b = int(begin_b)
    self.count_b = int(count_b) if count_b is not None else 1
    self.line_a = self.begin_a
    self.line_b = self.begin_b
    self.records: list[LineRecord] = []

  @property
  def end_a(self) -> int:
    return self.begin_a + self.count_a

  @property
  def end_b(self) -> int:
    return self.begin_b + self.count_b

  @property
  def expects_more(self) -> bool:
    """True while the header counts still announce body lines."""
    return self.line_a < self.end_a or self.line_b < self.end_b

  def feed(self, line: str) -> None:
    if not line:
      # Blank separators past the announced counts are not part of the hunk
      if self.line_a < self.end_a and self.line_b < self.end_b:
        self._context("")
      return

    marker, text = line[0], line[1:]
    if marker == LINE_TYPE_ADDED:
      self.records.append(LineRecord("added", None, self.line_b, text))
      self.line_b += 1
    elif marker == LINE_TYPE_REMOVED:
      self.records.append(LineRecord("removed", self.line_a, None, text))
      self.line_a += 1
    elif marker == LINE_TYPE_CONTEXT:
      self._context(text)
    elif self.records:
      previous = self.records[-1]
      self.records[-1] = replace(previous, metadata=previous.metadata + (line,))

  def _context(self, text: str) -> None:
    self.records.append(LineRecord("context", self.line_a, self.line_b, text))
    self.line_a += 1
    self.line_b += 1

  def build(self) -> DiffHunk:
    """Return the hunk, or raise MalformedDiffError if the counts do not add up."""
    if self.line_a != self.end_a or self.line_b != self.end_b:
      raise MalformedDiffError(
        f"Hunk {self.header!r} expects {self.count_a} old and {self.count_b} new "
        f"lines, body has {self.line_a - self.begin_a} old and "
        f"{self.line_b - self.begin_b} new lines",
        name="HUNK_COUNT_MISMATCH",
        unit=self.header,
      )
    return DiffHunk(
      begin_a=self.begin_a,
      count_a=self.count_a,
      begin_b=self.begin_b,
      count_b=self.count_b,
      lines=tuple(self.records),
      header=self.header,
    )


def parse_file_diff(
  lines: Union[str, Iterable[str]], prefixes: Iterable[str] = DEFAULT_PREFIXES
) -> ParsedFileDiff:
  """Parse the diff section of exactly one file.

  Args:
      lines: Raw diff text, or its lines, for one file (header and hunks)
      prefixes: Path prefixes to strip from header paths

  Returns:
      ParsedFileDiff with the FileDiff and the hunk or file errors met
  """
  if isinstance(lines, str):
    lines = lines.splitlines()

  header = _FileHeader(prefixes=tuple(prefixes))
  hunks: list[DiffHunk] = []
  errors: list = []
  current: Optional[_HunkBuilder] = None
  in_body = False

  def finish_current():
    if current is None:
      return
    try:
      hunks.append(current.build())
    except MalformedDiffError as e:
      errors.append(e)

  for raw_line in lines:
    line = raw_line.rstrip("\r\n")

    if line.startswith("@@"):
      finish_current()
      in_body = True
      match = RE_HUNK_HEADER.match(line)
      if match is None:
        errors.append(
          MalformedDiffError(
            f"Unparsable hunk header {line!r}", name="BAD_HUNK_HEADER", unit=line
          )
        )
        current = None
      else:
        current = _HunkBuilder(line, match)
      continue

    if _is_binary_marker(line):
      if in_body:
        errors.append(
          UnsupportedInputError(
            "Binary marker found where a hunk was expected",
            name="UNEXPECTED_BINARY_MARKER",
            unit=header.new_path or header.previous_path,
          )
        )
        return ParsedFileDiff(header.to_file_diff(is_binary=True), tuple(errors))
      header.feed_binary(line)
      return ParsedFileDiff(header.to_file_diff(is_binary=True), tuple(errors))

    if not in_body:
      header.feed(line)
    elif current is not None:
      current.feed(line)

  finish_current()

  if not header.recognized:
    errors.append(
      UnsupportedInputError(
        "No file header found in diff section", name="MISSING_FILE_HEADER"
      )
    )
    return ParsedFileDiff(header.to_file_diff(is_binary=True), tuple(errors))

  return ParsedFileDiff(header.to_file_diff(hunks), tuple(errors))


def _plain_section_starts(lines: list[str]) -> list[int]:
  starts = []
  current: Optional[_HunkBuilder] = None
  for i, line in enumerate(lines):
    if line.startswith("@@"):
      match = RE_HUNK_HEADER.match(line)
      current = _HunkBuilder(line, match) if match else None
    elif current is not None and current.expects_more:
      # "--- x" / "+++ y" here are a removed and an added body line
      current.feed(line)
    elif (
      line.startswith("--- ")
      and i + 1 < len(lines)
      and lines[i + 1].startswith("+++ ")
    ):
      starts.append(i)
      current = None
  return starts


def split_file_sections(text: str) -> list[list[str]]:
  """Split a multi-file diff into per-file line lists.

  Sections start at "diff --git" lines. Output without them (plain "diff -u")
  is split at each "---" line directly followed by a "+++" line, except inside
  a hunk body whose announced counts are not used up yet.
  """
  lines = text.splitlines()
  if any(line.startswith(DIFF_GIT) for line in lines):
    starts = [i for i, line in enumerate(lines) if line.startswith(DIFF_GIT)]
  else:
    starts = _plain_section_starts(lines)

  if not starts:
    return [lines] if any(line.strip() for line in lines) else []

  # Anything before the first header (e.g. commit message) is not a file section
  bounds = starts + [len(lines)]
  return [lines[begin:end] for begin, end in zip(bounds, bounds[1:])]


def parse_diff(
  text: str, prefixes: Iterable[str] = DEFAULT_PREFIXES
) -> list[ParsedFileDiff]:
  """Parse every file section of a diff. Files are parsed independently."""
  prefixes = tuple(prefixes)
  return [
    parse_file_diff(section, prefixes) for section in split_file_sections(text)
  ]


def file_diffs_from_patch_set(
  patch_set: PatchSet, prefixes: Iterable[str] = DEFAULT_PREFIXES
) -> list[FileDiff]:
  """Convert an already parsed unidiff PatchSet into FileDiff values."""
  prefixes = tuple(prefixes)
  file_diffs = []
  for patched_file in patch_set:
    hunks = []
    for hunk in patched_file:
      records: list[LineRecord] = []
      for line in hunk:
        text = line.value.rstrip("\r\n")
        if line.line_type == LINE_TYPE_ADDED:
          records.append(LineRecord("added", None, line.target_line_no, text))
        elif line.line_type == LINE_TYPE_REMOVED:
          records.append(LineRecord("removed", line.source_line_no, None, text))
        elif line.line_type == LINE_TYPE_CONTEXT:
          records.append(
            LineRecord("context", line.source_line_no, line.target_line_no, text)
          )
        elif records:
          marker = line.line_type + text
          records[-1] = replace(
            records[-1], metadata=records[-1].metadata + (marker,)
          )
      hunks.append(
        DiffHunk(
          begin_a=hunk.source_start,
          count_a=hunk.source_length,
          begin_b=hunk.target_start,
          count_b=hunk.target_length,
          lines=tuple(records),
          header=f"@@ -{hunk.source_start},{hunk.source_length} "
          f"+{hunk.target_start},{hunk.target_length} @@",
        )
      )

    file_diffs.append(
      FileDiff(
        previous_path=strip_path_prefix(patched_file.source_file, prefixes),
        new_path=strip_path_prefix(patched_file.target_file, prefixes),
        is_binary=patched_file.is_binary_file,
        hunks=tuple(hunks),
      )
    )
  return file_diffs
