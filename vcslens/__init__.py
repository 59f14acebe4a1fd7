"""vcslens: structured diffs and history graphs from version-control output.

The parser and graph builder are pure functions of their input; GitSource is
the only part that talks to git.
"""

from .commit import Branch, Commit, History, build_history
from .diff_parser import (
  file_diffs_from_patch_set,
  parse_diff,
  parse_file_diff,
  split_file_sections,
)
from .diff_types import NULL_PATH, DiffHunk, FileDiff, LineRecord, ParsedFileDiff
from .exceptions import (
  ConstructionError,
  ErrorReport,
  MalformedDiffError,
  SourceError,
  UnsupportedInputError,
  VcsLensError,
)
from .graph import GraphBuilder, GraphRow, build_graph, paginate, render_graph

__all__ = [
  "Branch",
  "Commit",
  "History",
  "build_history",
  "file_diffs_from_patch_set",
  "parse_diff",
  "parse_file_diff",
  "split_file_sections",
  "NULL_PATH",
  "DiffHunk",
  "FileDiff",
  "LineRecord",
  "ParsedFileDiff",
  "ConstructionError",
  "ErrorReport",
  "MalformedDiffError",
  "SourceError",
  "UnsupportedInputError",
  "VcsLensError",
  "GraphBuilder",
  "GraphRow",
  "build_graph",
  "paginate",
  "render_graph",
]
