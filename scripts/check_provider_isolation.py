#!/usr/bin/env python3
"""Check that push provider plugins stay behind the plugin loader.

Rules:
- Outside ``plugins/``, modules may import ``inbox_targeting.plugins`` and
  its ``discovery``/``loader`` modules, never a provider package such as
  ``inbox_targeting.plugins.expo``.
- ``core/``, ``types/``, ``utils/`` and ``storage/`` never spell a provider
  identifier in names, strings or comments. The Expo token shape
  (``ExponentPushToken[...]``) is not an identifier and stays allowed.

Provider identifiers are the plugin sub-packages found on disk, so a new
plugin is covered without editing this script.

Exit codes:
    0: No violations found
    1: Violations found, or the package could not be located
"""

from __future__ import annotations

import argparse
import ast
import io
import re
import sys
import tokenize
from dataclasses import dataclass
from pathlib import Path
from typing import Final

PACKAGE: Final[str] = "inbox_targeting"
PLUGIN_INFRASTRUCTURE: Final[frozenset[str]] = frozenset({"discovery", "loader"})
NAME_CHECKED_DIRS: Final[tuple[str, ...]] = ("core", "types", "utils", "storage")
# identifiers too generic to grep for; still covered by the import rule
GENERIC_IDENTIFIERS: Final[frozenset[str]] = frozenset({"log"})
_SCANNED_TOKENS: Final[frozenset[int]] = frozenset({tokenize.NAME, tokenize.STRING, tokenize.COMMENT})


@dataclass(slots=True, frozen=True)
class Violation:
    path: Path
    line: int
    rule: str
    detail: str

    def render(self, root: Path) -> str:
        try:
            shown = self.path.relative_to(root)
        except ValueError:
            shown = self.path
        return f"{shown}:{self.line}: [{self.rule}] {self.detail}"


def provider_identifiers(package_dir: Path) -> frozenset[str]:
    """Return plugin sub-package names under ``plugins/``."""
    plugins_dir = package_dir / "plugins"
    return frozenset(
        entry.name
        for entry in plugins_dir.iterdir()
        if entry.is_dir() and (entry / "__init__.py").is_file() and entry.name not in PLUGIN_INFRASTRUCTURE
    )


def _imported_modules(tree: ast.AST) -> list[tuple[int, str]]:
    modules: list[tuple[int, str]] = []
    for node in ast.walk(tree):
        if isinstance(node, ast.Import):
            modules.extend((node.lineno, alias.name) for alias in node.names)
        elif isinstance(node, ast.ImportFrom) and node.module is not None and node.level == 0:
            modules.append((node.lineno, node.module))
            # from inbox_targeting.plugins import expo
            modules.extend((node.lineno, f"{node.module}.{alias.name}") for alias in node.names)
    return modules


def check_imports(path: Path, source: str, providers: frozenset[str]) -> list[Violation]:
    """Flag imports that reach into a provider package."""
    forbidden = tuple(f"{PACKAGE}.plugins.{provider}" for provider in sorted(providers))
    violations: list[Violation] = []
    for line, module in _imported_modules(ast.parse(source, filename=str(path))):
        if any(module == prefix or module.startswith(f"{prefix}.") for prefix in forbidden):
            violations.append(Violation(path, line, "import", f"imports provider module {module}"))
    return violations


def check_names(path: Path, source: str, providers: frozenset[str]) -> list[Violation]:
    """Flag provider identifiers spelled in names, strings or comments."""
    named = sorted(providers - GENERIC_IDENTIFIERS)
    if not named:
        return []
    pattern = re.compile(r"\b(?:" + "|".join(map(re.escape, named)) + r")\b", re.IGNORECASE)
    violations: list[Violation] = []
    for token in tokenize.generate_tokens(io.StringIO(source).readline):
        if token.type not in _SCANNED_TOKENS:
            continue
        match = pattern.search(token.string)
        if match is not None:
            violations.append(
                Violation(path, token.start[0], "name", f"mentions provider '{match.group(0)}'")
            )
    return violations


def scan(package_dir: Path) -> list[Violation]:
    providers = provider_identifiers(package_dir)
    violations: list[Violation] = []
    for path in sorted(package_dir.rglob("*.py")):
        relative = path.relative_to(package_dir)
        if "__pycache__" in relative.parts or relative.parts[0] == "plugins":
            continue
        source = path.read_text(encoding="utf-8")
        violations.extend(check_imports(path, source, providers))
        if relative.parts[0] in NAME_CHECKED_DIRS:
            violations.extend(check_names(path, source, providers))
    return violations


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0] if __doc__ else None)
    _ = parser.add_argument(
        "--root",
        type=Path,
        default=Path(__file__).resolve().parent.parent,
        help="Project root containing src/ (default: repository root)",
    )
    args = parser.parse_args(argv)
    root: Path = args.root  # pyright: ignore[reportAny]  # argparse boundary

    package_dir = root / "src" / PACKAGE
    if not (package_dir / "plugins").is_dir():
        print(f"Error: no plugin package under {package_dir}", file=sys.stderr)
        return 1

    violations = scan(package_dir)
    if not violations:
        print(f"Provider isolation OK ({', '.join(sorted(provider_identifiers(package_dir)))})")
        return 0

    for violation in violations:
        print(violation.render(root))
    print(f"\n{len(violations)} provider isolation violation(s)", file=sys.stderr)
    return 1


if __name__ == "__main__":
    sys.exit(main())
