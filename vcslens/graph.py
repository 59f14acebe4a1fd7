"""
Graph history builder
Assigns each commit of a reverse-chronological window to a lane and produces
the row of symbols needed to draw a "log --graph" style history
"""

from dataclasses import dataclass
from itertools import islice
from typing import Iterable, Literal, Optional

from .commit import Commit

# Graph piece types
RIGHT = "/"
LEFT = "\\"
DIRECT = "|"
SPACE = " "
COMMIT = "*"

LaneSymbol = Literal["/", "\\", "|", " ", "*"]


@dataclass(frozen=True)
class GraphRow:
  """One row of the graph: the commit and the symbol of every lane"""

  commit: Optional[Commit]
  lanes: tuple[LaneSymbol, ...]

  def has_commit_piece(self) -> bool:
    return COMMIT in self.lanes

  def to_dict(self):
    return {
      "commit": self.commit.to_dict() if self.commit is not None else None,
      "lanes": list(self.lanes),
    }


class GraphBuilder:
  """
  Levels commits one row at a time

  Lane state maps a lane index to the commit id expected to occupy it next.
  A builder covers exactly one window; lane numbers are relative to it.
  """

  def __init__(self):
    self._lanes: list[Optional[str]] = []
    self.rows: list[GraphRow] = []

  @property
  def open_lanes(self) -> dict[int, str]:
    """Lanes still waiting for a commit, usually parents outside the window"""
    return {i: awaited for i, awaited in enumerate(self._lanes) if awaited}

  def _free_index(self, reserved: set[int]) -> int:
    for i, awaited in enumerate(self._lanes):
      if awaited is None and i not in reserved:
        return i
    index = len(self._lanes)
    while index in reserved:
      index += 1
    return index

  def _set_lane(self, index: int, awaited: Optional[str]) -> None:
    if index >= len(self._lanes):
      self._lanes.extend([None] * (index + 1 - len(self._lanes)))
    self._lanes[index] = awaited

  def add(self, commit: Commit) -> GraphRow:
    """Place the next (older) commit and return its row"""
    before = list(self._lanes)
    matches = [i for i, awaited in enumerate(before) if awaited == commit.id]
    pieces: dict[int, LaneSymbol] = {}

    if matches:
      level = matches[0]
      # Several lanes waited for this commit: they converge into its lane
      for i in matches[1:]:
        self._set_lane(i, None)
        pieces[i] = RIGHT
    else:
      level = self._free_index(reserved=set())

    self._set_lane(level, commit.primary_parent)

    for parent in commit.parent_ids[1:]:
      if parent in self._lanes:
        joined = self._lanes.index(parent)
        if joined != level:
          pieces[joined] = LEFT if joined > level else RIGHT
        continue
      opened = self._free_index(reserved=set(matches) | {level})
      self._set_lane(opened, parent)
      pieces[opened] = LEFT if opened > level else RIGHT

    symbols: list[LaneSymbol] = []
    for i in range(max(len(before), len(self._lanes))):
      if i == level:
        symbols.append(COMMIT)
      elif i in pieces:
        symbols.append(pieces[i])
      elif _is_open(before, i) and _is_open(self._lanes, i):
        symbols.append(DIRECT)
      else:
        symbols.append(SPACE)
    while symbols and symbols[-1] == SPACE:
      symbols.pop()

    while self._lanes and self._lanes[-1] is None:
      self._lanes.pop()

    row = GraphRow(commit=commit.with_graph_level(level), lanes=tuple(symbols))
    self.rows.append(row)
    return row

  def build(self, commits: Iterable[Commit]) -> list[GraphRow]:
    """Place every commit in order and return all rows built so far"""
    for commit in commits:
      self.add(commit)
    return list(self.rows)


def _is_open(lanes: list[Optional[str]], index: int) -> bool:
  return index < len(lanes) and lanes[index] is not None


def paginate(
  commits: Iterable[Commit], skip: int = 0, limit: Optional[int] = None
) -> list[Commit]:
  """Cut the window of commits the builder will see"""
  stop = skip + limit if limit is not None else None
  return list(islice(commits, skip, stop))


def build_graph(
  commits: Iterable[Commit], skip: int = 0, limit: Optional[int] = None
) -> list[GraphRow]:
  """Level a window of commits (newest first) with a fresh builder"""
  return GraphBuilder().build(paginate(commits, skip, limit))


def render_graph(rows: Iterable[GraphRow], id_length: int = 7) -> list[str]:
  """Render rows as text lines: lanes, short id and subject"""
  rows = list(rows)
  width = max((len(row.lanes) for row in rows), default=0)
  lines = []
  for row in rows:
    graph = "".join(row.lanes).ljust(width)
    if row.commit is None:
      lines.append(graph.rstrip())
      continue
    lines.append(f"{graph} {row.commit.id[:id_length]} {row.commit.subject}")
  return lines
