from __future__ import annotations

import io
import os
from typing import TYPE_CHECKING

from kodexor.config import (
    ESCAPED_FENCE,
    FAILURE_MARKER,
    FENCE,
    READ_FAILED_TEXT,
    SUCCESS_MARKER,
    TREE_SECTION_TITLE,
    TreeNode,
    guess_fence_language,
)

if TYPE_CHECKING:
    from collections.abc import Sequence

    from kodexor.config import FileResult


def escape_fences(content: str) -> str:
    """Break every triple backtick in ``content`` with a zero-width space.

    The escaped text can no longer close the surrounding code fence.
    """
    return content.replace(FENCE, ESCAPED_FENCE)


def unescape_fences(content: str) -> str:
    """Undo `escape_fences`."""
    return content.replace(ESCAPED_FENCE, FENCE)


def build_tree(results: Sequence[FileResult]) -> TreeNode:
    """Fold the flat result list into a tree keyed by path segment.

    Children keep the order in which their segment was first seen. The node
    reached by the last segment of a path carries that result's ``rel_path``
    and ``ok``; if two results land on the same node, the later one wins.

    Args:
        results (Sequence[FileResult]): file results in traversal order

    Returns:
        TreeNode: the unnamed root node
    """
    root = TreeNode()
    for res in results:
        cur = root
        for part in res.rel_path.split(os.sep):
            cur = cur.child(part)
        cur.rel_path = res.rel_path
        cur.ok = res.ok
    return root


def render_tree(node: TreeNode, prefix: str = "") -> str:
    """Render the descendants of ``node`` with ``tree``-style branch glyphs.

    Args:
        node (TreeNode): the node whose children are drawn (never drawn itself)
        prefix (str): indentation inherited from the ancestors

    Returns:
        str: one line per descendant, each terminated by a newline
    """
    out = io.StringIO()
    children = list(node.children.values()) if node.children else []
    for idx, child in enumerate(children):
        last = idx == len(children) - 1
        line = prefix + ("└── " if last else "├── ") + child.name
        if child.rel_path is not None:
            line += " " + (SUCCESS_MARKER if child.ok else FAILURE_MARKER)
        out.write(line + "\n")
        if child.children:
            out.write(render_tree(child, prefix + ("    " if last else "│   ")))
    return out.getvalue()


def build_markdown(project_name: str, results: Sequence[FileResult]) -> str:
    """Build the export document.

    The document holds a title, one fenced section per file in traversal order
    and a final section with the file-status tree. Failed reads show their
    error text in an untagged fence.

    Args:
        project_name (str): title of the document
        results (Sequence[FileResult]): file results in traversal order

    Returns:
        str: the markdown document
    """
    out = io.StringIO()
    out.write(f"# {project_name}\n\n")
    for res in results:
        out.write(f"## {res.rel_path}\n")
        if res.ok:
            lang = guess_fence_language(res.rel_path)
            body = escape_fences(res.content or "")
        else:
            lang = ""
            body = res.error or READ_FAILED_TEXT
        out.write(f"{FENCE}{lang}\n{body}\n{FENCE}\n\n")
    out.write(f"# {TREE_SECTION_TITLE}\n")
    out.write(f"{FENCE}\n")
    out.write(render_tree(build_tree(results)))
    out.write(f"{FENCE}\n")
    return out.getvalue()
