#!/usr/bin/env python3
"""Check hexagonal architecture import boundaries of the modal_context package.

Layering rules:
- domain/: Transition rules, attempts, results, errors. NO imports from
  other package layers
- config/: Engine settings, NO imports from other package layers
- application/: Rule store, validator, coordinator, ports. May import
  domain/ and config/
- infrastructure/: Adapters (rule sources, PostgreSQL, stubs, metrics,
  logging). May import domain/, application/ and config/
- bootstrap/: Wiring. May import everything except api/
- api/: HTTP surface. May import application/, domain/, bootstrap/ and
  only the observability/monitoring parts of infrastructure/

Usage:
    python scripts/check_imports.py [package_directory]

Exit codes:
    0: No violations found
    1: Violations found
"""
import ast
import sys
from pathlib import Path

PACKAGE = "modal_context"

LAYERS: frozenset[str] = frozenset(
    {"domain", "config", "application", "infrastructure", "bootstrap", "api"}
)

ALLOWED_IMPORTS: dict[str, set[str]] = {
    "domain": set(),
    "config": set(),
    "application": {"domain", "config"},
    "infrastructure": {"domain", "application", "config"},
    "bootstrap": {"domain", "application", "infrastructure", "config"},
    "api": {"application", "domain", "bootstrap"},
}

# Sub-packages reachable from a layer that may not import the whole parent
ALLOWED_SUBPACKAGES: dict[str, set[str]] = {
    "api": {"infrastructure.observability", "infrastructure.monitoring"},
}


def get_import_modules(node: ast.Import | ast.ImportFrom) -> list[str]:
    """Extract the absolute module names of an import statement."""
    if isinstance(node, ast.ImportFrom):
        # Relative imports stay inside their own layer
        if node.level or not node.module:
            return []
        return [node.module]
    return [alias.name for alias in node.names]


def get_file_layer(py_file: Path, package_dir: Path) -> str | None:
    """Determine the architectural layer of a file (None for top-level modules)."""
    try:
        parts = py_file.relative_to(package_dir).parts
    except ValueError:
        return None
    if len(parts) < 2:
        return None
    return parts[0] if parts[0] in LAYERS else None


def check_import_violation(module: str, file_layer: str) -> str | None:
    """Return an error message if importing module from file_layer is forbidden."""
    parts = module.split(".")
    if parts[0] != PACKAGE or len(parts) < 2:
        return None

    target_layer = parts[1]
    if target_layer not in LAYERS or target_layer == file_layer:
        return None
    if target_layer in ALLOWED_IMPORTS.get(file_layer, set()):
        return None

    subpackage = ".".join(parts[1:3])
    if subpackage in ALLOWED_SUBPACKAGES.get(file_layer, set()):
        return None
    return f"{file_layer} layer cannot import from {subpackage}"


def check_file_imports(py_file: Path, package_dir: Path) -> list[tuple[str, int, str]]:
    """Check a single file for import boundary violations."""
    file_layer = get_file_layer(py_file, package_dir)
    if file_layer is None:
        return []

    try:
        tree = ast.parse(py_file.read_text(encoding="utf-8"), filename=str(py_file))
    except (SyntaxError, UnicodeDecodeError) as e:
        print(f"Warning: Could not parse {py_file}: {e}", file=sys.stderr)
        return []

    violations: list[tuple[str, int, str]] = []
    for node in ast.walk(tree):
        if isinstance(node, (ast.Import, ast.ImportFrom)):
            for module in get_import_modules(node):
                message = check_import_violation(module, file_layer)
                if message:
                    violations.append((str(py_file), node.lineno, message))
    return violations


def check_import_boundaries(package_dir: Path) -> list[tuple[str, int, str]]:
    """Check every module under package_dir."""
    if not package_dir.exists():
        print(f"Error: Package directory '{package_dir}' does not exist", file=sys.stderr)
        return []

    violations: list[tuple[str, int, str]] = []
    for py_file in sorted(package_dir.rglob("*.py")):
        violations.extend(check_file_imports(py_file, package_dir))
    return violations


def format_violations(violations: list[tuple[str, int, str]]) -> str:
    """Format violations for human-readable output."""
    if not violations:
        return ""

    lines = ["Import boundary violations found:", ""]
    for file_path, line_no, message in sorted(violations):
        lines.append(f"  {file_path}:{line_no}: {message}")
    lines.append("")
    lines.append(f"Total: {len(violations)} violation(s)")
    return "\n".join(lines)


def main() -> int:
    if len(sys.argv) > 1:
        package_dir = Path(sys.argv[1])
    else:
        package_dir = Path(__file__).parent.parent / PACKAGE

    violations = check_import_boundaries(package_dir)
    if violations:
        print(format_violations(violations))
        return 1
    print("No import boundary violations found.")
    return 0


if __name__ == "__main__":
    sys.exit(main())
