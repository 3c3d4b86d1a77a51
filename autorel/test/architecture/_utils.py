from __future__ import annotations

import ast
from dataclasses import dataclass
from pathlib import Path


@dataclass(frozen=True, slots=True)
class ImportRef:
    module: str
    line: int


def package_root() -> Path:
    return Path(__file__).resolve().parents[2]


def iter_source_files(base: Path) -> list[Path]:
    """Python files under ``base``, excluding tests and caches."""
    root = package_root()
    files: list[Path] = []
    for path in sorted(base.rglob("*.py")):
        rel = path.relative_to(root)
        if rel.parts and rel.parts[0] == "test":
            continue
        if any(part.startswith(".") or part == "__pycache__" for part in rel.parts):
            continue
        files.append(path)
    return files


def read_tree(path: Path) -> ast.AST:
    return ast.parse(path.read_text(encoding="utf-8"), filename=str(path))


def parse_imports(path: Path) -> list[ImportRef]:
    imports: list[ImportRef] = []
    for node in ast.walk(read_tree(path)):
        if isinstance(node, ast.Import):
            imports.extend(ImportRef(module=alias.name, line=node.lineno) for alias in node.names)
        elif isinstance(node, ast.ImportFrom) and not node.level and node.module is not None:
            imports.append(ImportRef(module=node.module, line=node.lineno))
    return imports


def matches_prefix(module: str, prefix: str) -> bool:
    return module == prefix or module.startswith(prefix + ".")
