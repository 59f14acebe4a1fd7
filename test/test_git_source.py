#!/usr/bin/env python3
"""Tests for the GitPython-backed source and the command line entry point."""

import json
import logging
import shutil
from types import SimpleNamespace

import pytest
from git import Actor, Repo

from vcslens.commit import build_history
from vcslens.diff_parser import parse_diff
from vcslens.exceptions import SourceError
from vcslens.git_source import GitSource
from vcslens.graph import build_graph
from vcslens.main import main

pytestmark = pytest.mark.skipif(
  shutil.which("git") is None, reason="git executable not available"
)

AUTHOR = Actor("Test Author", "test@example.com")
START = 1704067200


def commit_at(repo, message, offset, parents=None, head=True):
  """Commit the current index at a fixed time so history order is stable."""
  date = f"{START + offset} +0000"
  return repo.index.commit(
    message,
    parent_commits=parents,
    head=head,
    author=AUTHOR,
    committer=AUTHOR,
    author_date=date,
    commit_date=date,
  )


@pytest.fixture
def repo(tmp_path):
  """Repository with a side branch merged back: M(c2, side), c2(c1), side(c1), c1."""
  repo = Repo.init(tmp_path)
  root = tmp_path

  (root / "hello.txt").write_text("line1\nline2\nline3\n")
  (root / "logo.bin").write_bytes(bytes(range(256)) * 4)
  repo.index.add(["hello.txt", "logo.bin"])
  c1 = commit_at(repo, "Initial commit", 0)

  (root / "side.txt").write_text("side\n")
  repo.index.add(["side.txt"])
  side = commit_at(repo, "Side work", 200, parents=[c1], head=False)
  repo.index.remove(["side.txt"])

  (root / "hello.txt").write_text("line1\nline2 changed\nline3\n")
  (root / "new.txt").write_text("fresh\n")
  repo.index.add(["hello.txt", "new.txt"])
  c2 = commit_at(repo, "Change hello", 100, parents=[c1])

  repo.index.add(["side.txt"])
  merge = commit_at(repo, "Merge side", 300, parents=[c2, side])

  return SimpleNamespace(
    path=str(tmp_path), c1=c1, c2=c2, side=side, merge=merge
  )


@pytest.fixture
def source(repo):
  return GitSource(repo.path)


class TestDiffText:
  """Tests for raw diff retrieval feeding the parser."""

  def test_commit_diff_parses(self, repo, source):
    text = source.file_diff_text(repo.c2.hexsha)
    parsed = {result.file_diff.path: result for result in parse_diff(text)}

    assert set(parsed) == {"hello.txt", "new.txt"}
    assert all(result.ok for result in parsed.values())

    hello = parsed["hello.txt"].file_diff
    assert [line.kind for line in hello.hunks[0].lines] == [
      "context",
      "removed",
      "added",
      "context",
    ]
    assert parsed["new.txt"].file_diff.file_is_new()

  def test_root_commit_diff(self, repo, source):
    text = source.file_diff_text(repo.c1.hexsha)
    parsed = {result.file_diff.path: result.file_diff for result in parse_diff(text)}

    assert parsed["hello.txt"].file_is_new()
    assert parsed["logo.bin"].is_binary

  def test_single_path(self, repo, source):
    text = source.file_diff_text(repo.c2.hexsha, path="new.txt")

    assert [r.file_diff.path for r in parse_diff(text)] == ["new.txt"]

  def test_changed_files(self, repo, source):
    changed = source.changed_files(repo.c2.hexsha)

    assert changed == {"hello.txt": "M", "new.txt": "A"}

  def test_file_status(self, repo, source):
    """Test the status of single paths, with or without a leading slash."""
    assert source.file_status(repo.c2.hexsha, "new.txt") == "A"
    assert source.file_status(repo.c2.hexsha, "/hello.txt") == "M"
    assert source.file_status(repo.c2.hexsha, "logo.bin") is None

  def test_unknown_revision(self, source):
    with pytest.raises(SourceError) as exc_info:
      source.file_diff_text("does-not-exist")

    assert exc_info.value.source == "source"


class TestHistory:
  """Tests for commit records feeding the graph builder."""

  def test_records_build_a_graph(self, repo, source):
    history = build_history(source.commit_records())
    rows = build_graph(history.commits)

    assert history.errors == []
    assert [row.commit.subject for row in rows] == [
      "Merge side",
      "Side work",
      "Change hello",
      "Initial commit",
    ]
    assert [row.commit.graph_level for row in rows] == [0, 1, 0, 0]
    assert ["".join(row.lanes) for row in rows] == ["*\\", "|*", "*|", "*/"]

  def test_limit_and_skip(self, repo, source):
    records = source.commit_records(limit=2, skip=1)

    assert [r["message"].strip() for r in records] == ["Side work", "Change hello"]
    assert records[0]["parentIds"] == [repo.c1.hexsha]

  def test_get_commit(self, repo, source):
    commit = source.get_commit(repo.merge.hexsha)

    assert commit.id == repo.merge.hexsha
    assert commit.parent_ids == (repo.c2.hexsha, repo.side.hexsha)
    assert commit.is_merge
    assert commit.author == "Test Author"
    assert commit.subject == "Merge side"

  def test_get_unknown_commit(self, source):
    with pytest.raises(SourceError):
      source.get_commit("does-not-exist")

  def test_branches(self, repo, source):
    branches = source.branches()

    assert len(branches) == 1
    assert branches[0].is_current
    assert branches[0].head == repo.merge.hexsha


class TestRawFiles:
  """Tests for file contents at a revision."""

  def test_binary_chunks(self, repo):
    source = GitSource(repo.path, chunk_size=100)
    chunks = list(source.iter_raw_binary("HEAD", "logo.bin"))

    assert len(chunks) > 1
    assert all(len(chunk) <= 100 for chunk in chunks)
    assert b"".join(chunks) == bytes(range(256)) * 4

  def test_raw_file(self, repo, source):
    assert source.raw_file(repo.c1.hexsha, "hello.txt") == (
      "line1\nline2\nline3\n"
    )

  def test_previous_raw_file(self, repo, source):
    """Test the file is read at the primary parent of the commit."""
    assert source.previous_raw_file(repo.c2.hexsha, "hello.txt") == (
      "line1\nline2\nline3\n"
    )
    assert source.previous_raw_file(repo.merge.hexsha, "hello.txt") == (
      "line1\nline2 changed\nline3\n"
    )

  def test_previous_raw_file_of_root_commit(self, repo, source):
    with pytest.raises(SourceError) as exc_info:
      source.previous_raw_file(repo.c1.hexsha, "hello.txt")

    assert exc_info.value.name == "NO_PARENT"

  def test_missing_path(self, source):
    with pytest.raises(SourceError) as exc_info:
      list(source.iter_raw_binary("HEAD", "missing.txt"))

    assert exc_info.value.name == "PATH_NOT_FOUND"


class TestSourceSetup:
  """Tests for repository lookup and logging."""

  def test_not_a_repository(self, tmp_path):
    with pytest.raises(SourceError) as exc_info:
      GitSource(str(tmp_path / "missing"))

    assert exc_info.value.name == "REPOSITORY_NOT_FOUND"

  def test_injected_logger_receives_commands(self, repo, caplog):
    logger = logging.getLogger("test.vcslens.git")
    caplog.set_level(logging.DEBUG, logger="test.vcslens.git")

    GitSource(repo.path, logger=logger).changed_files("HEAD")

    assert any("Execute command" in r.message for r in caplog.records)


class TestMain:
  """Tests for the command line entry point."""

  def test_log_json(self, repo, capsys):
    assert main(["--repo", repo.path, "log", "--json"]) == 0

    output = json.loads(capsys.readouterr().out)
    assert [row["lanes"] for row in output["rows"]] == [
      ["*", "\\"],
      ["|", "*"],
      ["*", "|"],
      ["*", "/"],
    ]
    assert output["openLanes"] == {}

  def test_log_window_text(self, repo, capsys):
    assert main(["--repo", repo.path, "log", "--skip", "2"]) == 0

    lines = capsys.readouterr().out.splitlines()
    assert len(lines) == 2
    assert lines[0].endswith("Change hello")

  def test_diff_json(self, repo, capsys):
    rev = repo.c2.hexsha
    assert main(["--repo", repo.path, "diff", rev]) == 0

    output = json.loads(capsys.readouterr().out)
    assert {f["newPath"] for f in output["files"]} == {"hello.txt", "new.txt"}

  def test_bad_repository_exit_code(self, tmp_path):
    assert main(["--repo", str(tmp_path / "missing"), "log"]) == 1
