"""Import policy for the inner layers of the walkin package.

The domain layer may only use the standard library. The application layer may
add pydantic DTOs and prometheus metrics, but never reaches the web framework,
the database, Redis or the payment SDK directly.
"""

from __future__ import annotations

import argparse
import ast
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Sequence

PACKAGE_ROOT = Path(__file__).resolve().parents[1] / "src" / "walkin"

DOMAIN_FORBIDDEN = frozenset(
    {
        "fastapi",
        "pydantic",
        "sqlalchemy",
        "redis",
        "httpx",
        "requests",
        "opentelemetry",
        "prometheus_client",
        "stripe",
        "walkin.api",
        "walkin.application",
        "walkin.infrastructure",
    }
)

APPLICATION_FORBIDDEN = frozenset(
    {
        "fastapi",
        "starlette",
        "sqlalchemy",
        "redis",
        "httpx",
        "requests",
        "stripe",
        "walkin.api",
        "walkin.infrastructure",
    }
)

LAYERS: dict[str, tuple[Path, frozenset[str]]] = {
    "domain": (PACKAGE_ROOT / "domain", DOMAIN_FORBIDDEN),
    "application": (PACKAGE_ROOT / "application", APPLICATION_FORBIDDEN),
}


@dataclass(frozen=True)
class Violation:
    file_path: Path
    line: int
    module: str


def _python_files(root: Path) -> Iterable[Path]:
    if root.is_file() and root.suffix == ".py":
        yield root
        return
    if root.is_dir():
        yield from sorted(root.rglob("*.py"))


def _matches_forbidden(module: str, forbidden: frozenset[str]) -> bool:
    return any(module == name or module.startswith(f"{name}.") for name in forbidden)


def _scan_file(file_path: Path, forbidden: frozenset[str]) -> list[Violation]:
    tree = ast.parse(file_path.read_text(encoding="utf-8"), filename=str(file_path))
    violations: list[Violation] = []

    for node in ast.walk(tree):
        if isinstance(node, ast.Import):
            modules = [alias.name for alias in node.names]
        elif isinstance(node, ast.ImportFrom) and node.module and node.level == 0:
            modules = [node.module]
        else:
            continue
        violations.extend(
            Violation(file_path=file_path, line=node.lineno, module=module)
            for module in modules
            if _matches_forbidden(module, forbidden)
        )

    return violations


def find_violations(
    paths: Sequence[Path],
    forbidden: frozenset[str] = DOMAIN_FORBIDDEN,
) -> list[Violation]:
    violations: list[Violation] = []
    for path in paths:
        for file_path in _python_files(path):
            violations.extend(_scan_file(file_path, forbidden))
    return violations


def _parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Dependency policy check for the walkin domain and application layers."
    )
    parser.add_argument(
        "--path",
        action="append",
        default=[],
        help="Path to scan with the domain rules (repeatable). Overrides --layer.",
    )
    parser.add_argument(
        "--layer",
        action="append",
        choices=sorted(LAYERS),
        default=[],
        help="Layer to check (repeatable). Defaults to every layer.",
    )
    return parser.parse_args(argv)


def main(argv: Sequence[str] | None = None) -> int:
    args = _parse_args(argv)
    if args.path:
        violations = find_violations([Path(item) for item in args.path])
    else:
        violations = []
        for layer in args.layer or sorted(LAYERS):
            layer_path, forbidden = LAYERS[layer]
            violations.extend(find_violations([layer_path], forbidden))

    if not violations:
        print("depcheck passed")
        return 0

    print("depcheck failed: forbidden imports detected")
    for violation in violations:
        print(f"{violation.file_path}:{violation.line} -> {violation.module}")
    return 1


if __name__ == "__main__":
    raise SystemExit(main(sys.argv[1:]))
