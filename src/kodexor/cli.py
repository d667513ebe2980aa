"""
kodexor: export the current project directory as one markdown document.

Overview
--------
Every readable file under the current directory is written into a single
markdown file: one fenced section per file, followed by a tree showing which
files were exported and which could not be read. The result is convenient to
hand to a Large Language Model or to a reviewer.

Configuration comes from three layers, highest precedence first:

1) command-line flags,
2) the project config file (``package.json`` ``"kodexor"`` key,
   ``[tool.kodexor]`` in ``pyproject.toml``, ``.kodexorrc``, ...),
3) the user dotfile ``~/.kodexorrc`` (JSON).

Usage
-----
    kodexor
    kodexor --exclude=node_modules,.git,dist --output=docs/export.md
    kodexor --output-dir=exports
"""

from __future__ import annotations

import argparse
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING

from kodexor import __version__
from kodexor.config_loading import load_user_config, search_project_config
from kodexor.exceptions import OutputWriteError
from kodexor.file_manipulation import (
    collect_files,
    pick_output_path,
    read_project_name,
    walk,
    with_self_exclusion,
)
from kodexor.logging import logger, setup_logging
from kodexor.output_construction import build_markdown
from kodexor.settings import ConfigFragment, resolve_config

if TYPE_CHECKING:
    from collections.abc import Sequence

HELP_FLAGS = ("-h", "--help")
VERSION_FLAGS = ("-v", "--version")

HELP_TEXT = """\
kodexor - export every readable file of a project into one markdown document

Usage:
  kodexor [options]

Options:
  --exclude=a,b,c     Paths or names to exclude (comma separated)
  --output=path       Output file
  --output-dir=dir    Output directory; the file name is derived from the package name
  --log-file=path     Write logs to a file instead of stderr
  -h, --help          Show this help
  -v, --version       Show the version

Config files (lowest to highest precedence):
  ~/.kodexorrc                       JSON: {"exclude": [...], "output": "...", "outputDir": "..."}
  package.json "kodexor" key, [tool.kodexor] in pyproject.toml, .kodexorrc, ...
  command-line flags

Exclusion entries match an exact relative path, any path below a directory,
or a file/directory name at any depth.
"""


@dataclass(frozen=True)
class HelpRequest:
    """The user asked for the help text."""


@dataclass(frozen=True)
class VersionRequest:
    """The user asked for the version."""


@dataclass(frozen=True)
class RunRequest:
    """Run an export with the command-line configuration layer."""

    config: ConfigFragment = field(default_factory=ConfigFragment)
    log_file: str = ""


CliRequest = HelpRequest | VersionRequest | RunRequest


def split_exclude(value: str) -> list[str]:
    """Split a comma separated ``--exclude`` value, dropping empty items."""
    return [item.strip() for item in value.split(",") if item.strip()]


class StoreIfGiven(argparse.Action):
    """Store the value only when the flag carries one; a bare flag is ignored."""

    def __call__(
        self,
        parser: argparse.ArgumentParser,
        namespace: argparse.Namespace,
        values: object,
        option_string: str | None = None,
    ) -> None:
        if values is not None:
            setattr(namespace, self.dest, values)


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="kodexor",
        description="Export a project directory as one markdown document.",
        add_help=False,
        allow_abbrev=False,
    )
    p.add_argument("--exclude", type=split_exclude, nargs="?", action=StoreIfGiven, default=None)
    p.add_argument("--output", type=str.strip, nargs="?", action=StoreIfGiven, default=None)
    p.add_argument("--output-dir", type=str.strip, nargs="?", action=StoreIfGiven, default=None)
    p.add_argument("--log-file", type=str, nargs="?", action=StoreIfGiven, default="")
    return p


def parse_args(argv: Sequence[str] | None = None) -> CliRequest:
    """Turn the command line into a request.

    Help and version flags are honored in the order they appear and win over
    everything else. Unknown arguments are ignored.

    Args:
        argv (Sequence[str] | None): arguments without the program name; None reads ``sys.argv``

    Returns:
        CliRequest: the help, version or run request
    """
    args = list(sys.argv[1:] if argv is None else argv)
    for arg in args:
        if arg in HELP_FLAGS:
            return HelpRequest()
        if arg in VERSION_FLAGS:
            return VersionRequest()

    ns, unknown = build_parser().parse_known_args(args)
    if unknown:
        logger.warning("Ignoring unknown arguments: %s", " ".join(unknown))
    return RunRequest(
        config=ConfigFragment(exclude=ns.exclude, output=ns.output, output_dir=ns.output_dir),
        log_file=ns.log_file,
    )


def write_export(path: Path, document: str) -> None:
    """Write the document, creating parent directories as needed.

    Raises:
        OutputWriteError: if the directory cannot be created or the file cannot be written
    """
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(document, encoding="utf-8")
    except OSError as e:
        raise OutputWriteError(path=path, reason=str(e)) from e


def run(request: RunRequest, root: Path | None = None) -> Path:
    """Run a full export of ``root`` and return the path written.

    Args:
        request (RunRequest): the command-line layer
        root (Path | None): directory to export, defaults to the cwd

    Raises:
        OutputWriteError: if the document cannot be written

    Returns:
        Path: the output file
    """
    root = root or Path.cwd()
    config = resolve_config(
        request.config,
        search_project_config(root),
        load_user_config(),
    )
    output_file = pick_output_path(config.output, config.output_dir, root)
    exclude = with_self_exclusion(config.exclude, output_file, root)

    results = collect_files(walk(root, exclude))
    document = build_markdown(read_project_name(root), results)

    out_path = Path(output_file)
    if not out_path.is_absolute():
        out_path = root / out_path
    write_export(out_path, document)
    failed = sum(1 for r in results if not r.ok)
    logger.info("Exported %d files (%d unreadable) to %s", len(results), failed, out_path)
    return Path(output_file)


def main(argv: Sequence[str] | None = None) -> int:
    request = parse_args(argv)
    if isinstance(request, HelpRequest):
        print(HELP_TEXT, end="")
        return 0
    if isinstance(request, VersionRequest):
        print(f"kodexor {__version__}")
        return 0

    if request.log_file:
        setup_logging(request.log_file)

    output_file = run(request)
    print(f"[kodexor] export complete => {output_file}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
