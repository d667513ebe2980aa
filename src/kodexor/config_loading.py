"""Load configuration fragments from the user dotfile and the project config file."""

from __future__ import annotations

import json
from pathlib import Path
from typing import TYPE_CHECKING, Any

import tomlkit
import yaml
from pydantic import ValidationError

from kodexor.config import PROJECT_CONFIG_PLACES, TOOL_NAME, USER_RC_NAME
from kodexor.exceptions import MalformedConfigError
from kodexor.logging import logger
from kodexor.settings import ConfigFragment

if TYPE_CHECKING:
    from collections.abc import Iterator


def fragment_from_mapping(data: Any, path: Path) -> ConfigFragment:  # noqa: ANN401
    """Validate raw parsed data into a configuration fragment.

    Args:
        data (Any): the parsed file content (expected to be a mapping)
        path (Path): the file the data came from, for error reporting

    Raises:
        MalformedConfigError: if the data is not a mapping or has invalid field types

    Returns:
        ConfigFragment: the validated fragment
    """
    if not isinstance(data, dict):
        raise MalformedConfigError(path=path, reason=f"expected a mapping, got {type(data).__name__}")
    try:
        return ConfigFragment.model_validate(data)
    except ValidationError as e:
        raise MalformedConfigError(path=path, reason=str(e)) from e


def user_rc_path() -> Path:
    return Path.home() / USER_RC_NAME


def load_user_config(path: Path | None = None) -> ConfigFragment:
    """Load the user-level JSON dotfile (``~/.kodexorrc``).

    A missing file yields an empty fragment. A malformed one is reported as a
    warning and also yields an empty fragment.

    Args:
        path (Path | None): dotfile location, defaults to ``~/.kodexorrc``

    Returns:
        ConfigFragment: the user configuration fragment
    """
    rc = path or user_rc_path()
    if not rc.is_file():
        return ConfigFragment()
    try:
        try:
            data = json.loads(rc.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            raise MalformedConfigError(path=rc, reason=str(e)) from e
        return fragment_from_mapping(data, rc)
    except MalformedConfigError as e:
        logger.warning("Malformed user config %s: %s", rc, e.reason)
        return ConfigFragment()


def _read_place(path: Path) -> Any:  # noqa: ANN401
    """Parse one search place, returning None when it holds no kodexor config."""
    text = path.read_text(encoding="utf-8")
    if path.name == "package.json":
        return json.loads(text).get(TOOL_NAME)
    if path.name == "pyproject.toml":
        table = tomlkit.parse(text).get("tool", {}).get(TOOL_NAME)
        return table.unwrap() if table is not None else None
    if path.suffix == ".json":
        return json.loads(text)
    # extensionless rc files and .yaml/.yml; YAML also accepts JSON
    return yaml.safe_load(text)


def _candidate_dirs(start: Path, stop: Path | None) -> Iterator[Path]:
    cur = start
    while True:
        yield cur
        if cur == stop or cur.parent == cur:
            return
        cur = cur.parent


def search_project_config(start: Path | None = None, stop: Path | None = None) -> ConfigFragment:
    """Search upward from ``start`` for the project configuration.

    Each directory is checked for the places in ``PROJECT_CONFIG_PLACES``, in
    order. Places that exist but hold nothing for kodexor (e.g. a
    ``package.json`` without a ``kodexor`` key) are skipped. The search stops
    after ``stop`` (the home directory by default) or at the filesystem root.

    Any failure during the search is swallowed: the project layer is optional.

    Args:
        start (Path | None): directory to start from, defaults to the cwd
        stop (Path | None): last directory to inspect, defaults to the home directory

    Returns:
        ConfigFragment: the first configuration found, or an empty fragment
    """
    try:
        origin = (start or Path.cwd()).resolve()
        limit = (stop or Path.home()).resolve()
        for directory in _candidate_dirs(origin, limit):
            for place in PROJECT_CONFIG_PLACES:
                candidate = directory / place
                if not candidate.is_file():
                    continue
                data = _read_place(candidate)
                if not data:
                    continue
                logger.debug("Project config found: %s", candidate)
                return fragment_from_mapping(data, candidate)
    except Exception as e:  # noqa: BLE001
        logger.debug("Project config search failed: %s", e)
    return ConfigFragment()
