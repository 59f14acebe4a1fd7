"""Git collaborator that supplies raw diff text and commit records.

Everything here runs git through GitPython. The parser and graph builder never
import this module; they only consume what it returns.
"""

import logging
from typing import Iterator, Optional

from git import Repo
from git.exc import (
  BadName,
  GitCommandError,
  InvalidGitRepositoryError,
  NoSuchPathError,
)

from .commit import Branch, Commit
from .config import AppConfig
from .exceptions import SourceError


class GitSource:
  """Raw text and records from one git repository.

  Args:
      repo_path: Path inside the repository
      logger: Receives a debug line for every git command
      context_lines: Context lines requested for diffs
      chunk_size: Size of the chunks yielded by iter_raw_binary
  """

  def __init__(
    self,
    repo_path: str = ".",
    logger: Optional[logging.Logger] = None,
    context_lines: int = AppConfig.DIFF_CONTEXT_LINES,
    chunk_size: int = AppConfig.BINARY_CHUNK_SIZE,
  ):
    self.logger = logger or logging.getLogger(__name__)
    self.context_lines = context_lines
    self.chunk_size = chunk_size
    try:
      self.repo = Repo(repo_path, search_parent_directories=True)
    except (InvalidGitRepositoryError, NoSuchPathError) as e:
      raise SourceError.from_exception(
        e, name="REPOSITORY_NOT_FOUND", context=f"Repository not found at {repo_path}"
      ) from e

  def _git(self, command: str, *args, **kwargs) -> str:
    self.logger.debug(f"* Execute command: git {command} {args} {kwargs}")
    try:
      result = getattr(self.repo.git, command)(*args, **kwargs)
    except GitCommandError as e:
      self.logger.debug(f"* Non-zero status code: {e.status}")
      raise SourceError.from_exception(e, context=f"git {command} failed") from e
    self.logger.debug(f"* Result is:\n{result}")
    return result

  def _commit(self, rev: str):
    try:
      return self.repo.commit(rev)
    except (BadName, ValueError, GitCommandError) as e:
      raise SourceError.from_exception(
        e, name="UNKNOWN_REVISION", unit=rev, context=f"Unknown revision {rev}"
      ) from e

  def file_diff_text(self, rev: str = "HEAD", path: Optional[str] = None) -> str:
    """Unified diff of a commit against its primary parent (or the empty tree)."""
    commit = self._commit(rev)
    paths = ["--", path] if path else []
    # --no-ext-diff bypasses external diff tools (e.g. difftastic)
    if commit.parents:
      return self._git(
        "diff",
        commit.parents[0].hexsha,
        commit.hexsha,
        *paths,
        unified=self.context_lines,
        no_ext_diff=True,
      )
    return self._git(
      "show",
      commit.hexsha,
      *paths,
      format="",
      unified=self.context_lines,
      no_ext_diff=True,
    )

  def commit_records(
    self,
    rev: str = "HEAD",
    limit: Optional[int] = None,
    skip: int = 0,
    path: Optional[str] = None,
  ) -> list[dict]:
    """Raw commit records, newest first."""
    self.logger.debug(
      f"* Read history of {rev} (limit={limit}, skip={skip}, path={path})"
    )
    try:
      commits = list(
        self.repo.iter_commits(rev, paths=path or "", max_count=limit, skip=skip)
      )
    except (BadName, ValueError, GitCommandError) as e:
      raise SourceError.from_exception(
        e, unit=rev, context=f"Cannot read history of {rev}"
      ) from e

    return [
      {
        "id": commit.hexsha,
        "parentIds": [parent.hexsha for parent in commit.parents],
        "author": commit.author.name,
        "authorEmail": commit.author.email,
        "date": commit.authored_datetime.isoformat(),
        "message": commit.message,
      }
      for commit in commits
    ]

  def get_commit(self, rev: str = "HEAD") -> Commit:
    """One validated commit.

    Raises:
        SourceError: the revision does not exist
        ConstructionError: git returned a record that is not a valid commit
    """
    records = self.commit_records(rev, limit=1)
    if not records:
      raise SourceError(
        f"No commit found for {rev}", name="UNKNOWN_REVISION", unit=rev
      )
    return Commit.from_record(records[0])

  def changed_files(self, rev: str = "HEAD") -> dict[str, str]:
    """Map of changed path to status letter (A, M, D, R, ...) at a commit."""
    output = self._git(
      "diff_tree", "--no-commit-id", "--name-status", "-r", "--root", rev
    )
    changed = {}
    for line in output.splitlines():
      status, *paths = line.split("\t")
      if paths:
        changed[paths[-1]] = status[:1]
    return changed

  def file_status(self, rev: str, path: str) -> Optional[str]:
    """Status letter of one path at a commit, None if the commit left it alone.

    A leading "/" is ignored, paths are relative to the repository root.
    """
    return self.changed_files(rev).get(path.lstrip("/"))

  def raw_file(self, rev: str, path: str) -> str:
    """File contents at a revision."""
    data = b"".join(self.iter_raw_binary(rev, path))
    return data.decode("utf-8", errors="replace")

  def previous_raw_file(self, rev: str, path: str) -> str:
    """File contents at the primary parent of a commit."""
    commit = self._commit(rev)
    if not commit.parents:
      raise SourceError(
        f"Commit {commit.hexsha} has no parent", name="NO_PARENT", unit=rev
      )
    return self.raw_file(commit.parents[0].hexsha, path)

  def iter_raw_binary(self, rev: str, path: str) -> Iterator[bytes]:
    """Yield the file at a revision in chunks.

    The iterator is single pass; the caller is expected to drain it.
    """
    commit = self._commit(rev)
    try:
      blob = commit.tree / path
    except KeyError as e:
      raise SourceError(
        f"Path {path} not found at {rev}", name="PATH_NOT_FOUND", unit=path
      ) from e

    self.logger.debug(f"* Stream {path} at {commit.hexsha}")
    stream = blob.data_stream
    while chunk := stream.read(self.chunk_size):
      yield chunk

  def branches(self) -> list[Branch]:
    current = None if self.repo.head.is_detached else self.repo.active_branch.name
    return [
      Branch(id=head.name, head=head.commit.hexsha, is_current=head.name == current)
      for head in self.repo.heads
    ]
