from __future__ import annotations

import ast

from ._utils import iter_source_files, package_root, parse_imports, read_tree

# Every external command (git, gh, gate stages) goes through platform.process.run.
ALLOWLIST = {"platform/process.py"}


def _subprocess_calls(tree: ast.AST) -> list[int]:
    lines: list[int] = []
    for node in ast.walk(tree):
        if not isinstance(node, ast.Call):
            continue
        func = node.func
        if not isinstance(func, ast.Attribute) or not isinstance(func.value, ast.Name):
            continue
        if func.value.id in {"subprocess", "os"} and func.attr in {
            "run",
            "check_output",
            "check_call",
            "Popen",
            "system",
            "popen",
        }:
            lines.append(node.lineno)
    return lines


def test_subprocess_is_only_used_by_the_process_module() -> None:
    root = package_root()
    offenders: list[str] = []
    for file_path in iter_source_files(root):
        rel = file_path.relative_to(root).as_posix()
        if rel in ALLOWLIST:
            continue
        for item in parse_imports(file_path):
            if item.module == "subprocess":
                offenders.append(f"{rel}:{item.line}: imports subprocess")
        for line in _subprocess_calls(read_tree(file_path)):
            offenders.append(f"{rel}:{line}: direct process call")

    assert not offenders, "Subprocess policy violations:\n" + "\n".join(offenders)
