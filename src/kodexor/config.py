from __future__ import annotations

from pathlib import Path
from typing import Self

from pydantic import BaseModel, ConfigDict, Field, model_validator

TOOL_NAME = "kodexor"
USER_RC_NAME = ".kodexorrc"
DEFAULT_OUTPUT = "kodexor-export.md"
DEFAULT_PROJECT_NAME = "Project"
MANIFEST_NAMES = ("package.json", "pyproject.toml")

# Ordered search places for the project configuration, checked in each directory.
PROJECT_CONFIG_PLACES = (
    "package.json",
    "pyproject.toml",
    ".kodexorrc",
    ".kodexorrc.json",
    ".kodexorrc.yaml",
    ".kodexorrc.yml",
    ".config/kodexorrc",
    "kodexor.config.json",
)

EXT2FENCE: dict[str, str] = {
    "json": "json",
    "ts": "ts",
    "js": "js",
    "md": "md",
    "sh": "bash",
    "yml": "yaml",
    "yaml": "yaml",
}

FENCE = "```"
ESCAPED_FENCE = "``\u200b`"

SUCCESS_MARKER = "✅ ok"
FAILURE_MARKER = "❌ failed"
READ_FAILED_TEXT = "read failed"
TREE_SECTION_TITLE = "File output status (tree)"


def guess_fence_language(filename: str) -> str:
    """Get the code fence language for a file, from its extension only.

    Args:
        filename (str): file name or relative path

    Returns:
        str: the fence language, or an empty string when the extension is not recognized
    """
    if "." not in filename:
        return ""
    ext = filename.rsplit(".", 1)[1]
    return EXT2FENCE.get(ext, "")


class FileEntry(BaseModel):
    """A regular file found by the walker."""

    model_config = ConfigDict(arbitrary_types_allowed=True, frozen=True)

    rel_path: str = Field(..., description="Path relative to the scan root, platform separators")
    abs_path: Path = Field(..., description="Path used to open the file")


class FileResult(BaseModel):
    """Outcome of reading one file: content on success, an error description otherwise.

    Attributes:
        rel_path: Path relative to the scan root.
        ok: Whether the file was read as text.
        content: Raw file content, present iff ``ok``.
        error: Failure description, present iff not ``ok``.
    """

    model_config = ConfigDict(frozen=True)

    rel_path: str
    ok: bool
    content: str | None = None
    error: str | None = None

    @model_validator(mode="after")
    def _check_outcome(self) -> Self:
        if self.ok and (self.content is None or self.error is not None):
            msg = "a successful result carries content and no error"
            raise ValueError(msg)
        if not self.ok and (self.error is None or self.content is not None):
            msg = "a failed result carries an error and no content"
            raise ValueError(msg)
        return self

    @classmethod
    def success(cls, rel_path: str, content: str) -> FileResult:
        return cls(rel_path=rel_path, ok=True, content=content)

    @classmethod
    def failure(cls, rel_path: str, error: str) -> FileResult:
        return cls(rel_path=rel_path, ok=False, error=error)


class TreeNode(BaseModel):
    """One path segment of the file-status tree.

    ``children`` keeps first-seen order. ``rel_path`` and ``ok`` are only set on
    nodes that terminate a result path.
    """

    name: str = ""
    rel_path: str | None = None
    ok: bool | None = None
    children: dict[str, TreeNode] | None = None

    def child(self, name: str) -> TreeNode:
        """Return the child named ``name``, creating it on first use."""
        if self.children is None:
            self.children = {}
        node = self.children.get(name)
        if node is None:
            node = TreeNode(name=name)
            self.children[name] = node
        return node
