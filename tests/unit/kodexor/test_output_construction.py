from __future__ import annotations

import os

import pytest

from kodexor.config import FileResult, TreeNode, guess_fence_language
from kodexor.output_construction import (
    build_markdown,
    build_tree,
    escape_fences,
    render_tree,
    unescape_fences,
)


def _p(*parts: str) -> str:
    return os.path.join(*parts)


def _results() -> list[FileResult]:
    return [
        FileResult.success("a.txt", "hello"),
        FileResult.success(_p("sub", "b.ts"), "const x=1;"),
        FileResult.failure(_p("sub", "c.txt"), "UnicodeDecodeError: invalid start byte"),
    ]


def _leaves(node: TreeNode) -> list[tuple[str, bool | None]]:
    found: list[tuple[str, bool | None]] = []
    if node.rel_path is not None:
        found.append((node.rel_path, node.ok))
    for child in (node.children or {}).values():
        found.extend(_leaves(child))
    return found


@pytest.mark.unit
def test_file_result_enforces_content_xor_error() -> None:
    with pytest.raises(ValueError, match="successful result"):
        FileResult(rel_path="a", ok=True)
    with pytest.raises(ValueError, match="failed result"):
        FileResult(rel_path="a", ok=False, content="x", error="boom")


@pytest.mark.unit
def test_build_tree_keeps_first_seen_order() -> None:
    results = [
        FileResult.success(_p("z", "1.txt"), ""),
        FileResult.success("a.txt", ""),
        FileResult.success(_p("z", "0.txt"), ""),
    ]

    root = build_tree(results)

    assert root.name == ""
    assert root.rel_path is None
    assert root.ok is None
    assert root.children is not None
    assert list(root.children) == ["z", "a.txt"]
    assert list(root.children["z"].children or {}) == ["1.txt", "0.txt"]
    assert root.children["a.txt"].children is None
    assert root.children["z"].rel_path is None


@pytest.mark.unit
def test_build_tree_leaves_match_results() -> None:
    results = [
        *_results(),
        FileResult.success(_p("sub", "deeper", "d.md"), "d"),
        FileResult.failure(_p("x", "y", "z", "w.sh"), "PermissionError"),
    ]

    leaves = _leaves(build_tree(results))

    assert sorted(leaves) == sorted((r.rel_path, r.ok) for r in results)
    assert len(leaves) == len(results)


@pytest.mark.unit
def test_build_tree_tolerates_a_path_that_is_also_a_directory() -> None:
    results = [
        FileResult.success(_p("pkg", "mod.py"), ""),
        FileResult.failure("pkg", "IsADirectoryError"),
        FileResult.success("pkg", ""),
    ]

    root = build_tree(results)

    assert root.children is not None
    pkg = root.children["pkg"]
    assert pkg.rel_path == "pkg"
    assert pkg.ok is True
    assert list(pkg.children or {}) == ["mod.py"]


@pytest.mark.unit
def test_render_tree_draws_branches_and_markers() -> None:
    results = [
        *_results(),
        FileResult.success(_p("sub", "deep", "e.js"), ""),
        FileResult.success("z.md", ""),
    ]

    rendered = render_tree(build_tree(results))

    assert rendered == (
        "├── a.txt ✅ ok\n"
        "├── sub\n"
        "│   ├── b.ts ✅ ok\n"
        "│   ├── c.txt ❌ failed\n"
        "│   └── deep\n"
        "│       └── e.js ✅ ok\n"
        "└── z.md ✅ ok\n"
    )


@pytest.mark.unit
def test_render_tree_uses_blank_continuation_under_last_branch() -> None:
    rendered = render_tree(build_tree([FileResult.success(_p("only", "inner", "f.txt"), "")]))

    assert rendered == "└── only\n    └── inner\n        └── f.txt ✅ ok\n"


@pytest.mark.unit
def test_render_tree_of_empty_root_is_empty() -> None:
    assert render_tree(build_tree([])) == ""


@pytest.mark.unit
@pytest.mark.parametrize(
    ("filename", "expected"),
    [
        ("package.json", "json"),
        (_p("src", "index.ts"), "ts"),
        ("types.d.ts", "ts"),
        ("app.js", "js"),
        ("README.md", "md"),
        ("README.MD", ""),
        ("run.sh", "bash"),
        ("ci.yml", "yaml"),
        ("ci.yaml", "yaml"),
        ("main.py", ""),
        ("Makefile", ""),
    ],
)
def test_guess_fence_language(filename: str, expected: str) -> None:
    assert guess_fence_language(filename) == expected


@pytest.mark.unit
def test_build_markdown_renders_sections_and_tree() -> None:
    document = build_markdown("demo", _results())

    assert document == (
        "# demo\n\n"
        "## a.txt\n```\nhello\n```\n\n"
        f"## {_p('sub', 'b.ts')}\n```ts\nconst x=1;\n```\n\n"
        f"## {_p('sub', 'c.txt')}\n```\nUnicodeDecodeError: invalid start byte\n```\n\n"
        "# File output status (tree)\n"
        "```\n"
        "├── a.txt ✅ ok\n"
        "└── sub\n"
        "    ├── b.ts ✅ ok\n"
        "    └── c.txt ❌ failed\n"
        "```\n"
    )


@pytest.mark.unit
def test_build_markdown_failed_read_is_untagged() -> None:
    document = build_markdown("demo", [FileResult.failure("conf.json", "PermissionError: denied")])

    assert "## conf.json\n```\nPermissionError: denied\n```" in document
    assert "```json" not in document


@pytest.mark.unit
def test_build_markdown_escapes_inner_fences() -> None:
    content = "# Notes\n```python\nprint('x')\n```\nend ```` done\n"

    document = build_markdown("demo", [FileResult.success("notes.md", content)])

    section = document.split("## notes.md\n```md\n", 1)[1]
    body = section.split("\n```\n", 1)[0]
    assert "```" not in body
    assert unescape_fences(body) == content


@pytest.mark.unit
def test_escape_fences_round_trip() -> None:
    content = "a ``` b ``` c `` d"

    escaped = escape_fences(content)

    assert escaped.count("```") == 0
    assert "``\u200b`" in escaped
    assert unescape_fences(escaped) == content
