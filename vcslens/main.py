#!/usr/bin/env python3
"""Command line entry point.

  vcslens diff [REV] [--path PATH]      print the parsed diff of a commit as JSON
  vcslens log [REV] [--limit N] [--skip N] [--json]
                                        print the commit graph of a window
"""

import argparse
import json
import logging
import sys

from .commit import build_history
from .config import AppConfig
from .diff_parser import parse_diff
from .exceptions import VcsLensError
from .git_source import GitSource
from .graph import GraphBuilder, render_graph

logger = logging.getLogger(__name__)

# Command line argument parser
parser = argparse.ArgumentParser(
  prog="vcslens", description="Structured diffs and history graphs from git"
)
parser.add_argument("--repo", default=".", help="Path to the git repository")
parser.add_argument("--debug", action="store_true", help="Log every git command")
subparsers = parser.add_subparsers(dest="command", required=True)

diff_cmd = subparsers.add_parser("diff", help="Parsed diff of a commit")
diff_cmd.add_argument("rev", nargs="?", default="HEAD")
diff_cmd.add_argument("--path", help="Only diff this file")

log_cmd = subparsers.add_parser("log", help="History graph")
log_cmd.add_argument("rev", nargs="?", default="HEAD")
log_cmd.add_argument("--limit", type=int, default=AppConfig.GRAPH_PAGE_SIZE)
log_cmd.add_argument("--skip", type=int, default=0)
log_cmd.add_argument("--path", help="Only commits touching this path")
log_cmd.add_argument("--json", action="store_true", help="Print rows as JSON")


def diff_command(source: GitSource, args) -> dict:
  text = source.file_diff_text(args.rev, args.path)
  parsed = parse_diff(text, prefixes=AppConfig.PATH_PREFIXES)
  for result in parsed:
    for error in result.errors:
      logger.warning(f"{result.file_diff.path}: {error.description}")
  return {"rev": args.rev, "files": [result.to_dict() for result in parsed]}


def log_command(source: GitSource, args) -> dict:
  records = source.commit_records(args.rev, args.limit, args.skip, args.path)
  history = build_history(records)
  for error in history.errors:
    logger.warning(f"Skipped commit {error.unit}: {error.description}")

  builder = GraphBuilder()
  rows = builder.build(history.commits)
  return {
    "rows": [row.to_dict() for row in rows],
    "openLanes": builder.open_lanes,
    "lines": render_graph(rows),
    "errors": [error.to_report().model_dump() for error in history.errors],
  }


def main(argv=None):
  """Run a command and print its result."""
  args = parser.parse_args(argv)
  logging.basicConfig(
    level=logging.DEBUG if args.debug else AppConfig.LOG_LEVEL,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
  )

  try:
    source = GitSource(args.repo, logger=logger)
    if args.command == "diff":
      print(json.dumps(diff_command(source, args), indent=2))
    else:
      result = log_command(source, args)
      if args.json:
        print(json.dumps(result, indent=2))
      else:
        print("\n".join(result["lines"]))
    return 0

  except VcsLensError as e:
    logger.error(f"{e.name}: {e.description}")
    return 1


if __name__ == "__main__":
  sys.exit(main())
