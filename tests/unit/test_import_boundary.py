"""Unit tests for the import boundary checking script.

Layer rules:
- domain/ and config/ import NOTHING from other package layers
- application/ imports from domain/ and config/
- infrastructure/ imports from domain/, application/ and config/
- api/ imports from application/, domain/, bootstrap/ and the
  observability/monitoring parts of infrastructure/
"""

import ast
import sys
from collections.abc import Iterator
from pathlib import Path

import pytest

PROJECT_ROOT = Path(__file__).parent.parent.parent

sys.path.insert(0, str(PROJECT_ROOT / "scripts"))

from check_imports import (  # noqa: E402
    ALLOWED_IMPORTS,
    check_file_imports,
    check_import_boundaries,
    get_import_modules,
)


@pytest.fixture
def package_dir(tmp_path: Path) -> Iterator[Path]:
    """Create a throwaway modal_context package with every layer."""
    root = tmp_path / "modal_context"
    root.mkdir()
    (root / "__init__.py").write_text("")
    for layer in ["domain", "config", "application", "infrastructure", "bootstrap", "api"]:
        (root / layer).mkdir()
        (root / layer / "__init__.py").write_text("")
    yield root


def _write(package_dir: Path, layer: str, source: str) -> Path:
    path = package_dir / layer / "module_under_test.py"
    path.write_text(source)
    return path


class TestAllowedImports:
    """Tests for the declared layer rules."""

    def test_domain_imports_nothing(self) -> None:
        assert ALLOWED_IMPORTS["domain"] == set()

    def test_application_imports_domain_and_config(self) -> None:
        assert ALLOWED_IMPORTS["application"] == {"domain", "config"}

    def test_api_does_not_import_infrastructure_wholesale(self) -> None:
        assert "infrastructure" not in ALLOWED_IMPORTS["api"]


class TestGetImportModules:
    """Tests for get_import_modules."""

    def test_import_from(self) -> None:
        node = ast.parse("from modal_context.domain.models import RuleSnapshot").body[0]
        assert get_import_modules(node) == ["modal_context.domain.models"]  # type: ignore[arg-type]

    def test_import_multiple(self) -> None:
        node = ast.parse("import os, modal_context.api").body[0]
        assert get_import_modules(node) == ["os", "modal_context.api"]  # type: ignore[arg-type]

    def test_relative_import_ignored(self) -> None:
        node = ast.parse("from . import models").body[0]
        assert get_import_modules(node) == []  # type: ignore[arg-type]


class TestCheckFileImports:
    """Tests for check_file_imports."""

    @pytest.mark.parametrize(
        ("layer", "source"),
        [
            ("domain", "import os\nfrom typing import Any"),
            ("domain", "from modal_context.domain.errors import RuleSourceError"),
            ("application", "from modal_context.domain.models import RuleSnapshot"),
            ("application", "from modal_context.config import TransitionEngineConfig"),
            ("infrastructure", "from modal_context.application.ports import TransactionLogPort"),
            ("bootstrap", "from modal_context.infrastructure.stubs import InMemoryTransactionLog"),
            ("api", "from modal_context.bootstrap.coordinator import get_coordinator"),
            ("api", "from modal_context.infrastructure.observability import set_correlation_id"),
            ("api", "from modal_context.infrastructure.monitoring import get_transition_metrics_collector"),
        ],
    )
    def test_allowed(self, package_dir: Path, layer: str, source: str) -> None:
        assert check_file_imports(_write(package_dir, layer, source), package_dir) == []

    @pytest.mark.parametrize(
        ("layer", "source", "message"),
        [
            ("domain", "from modal_context.application.services import RuleStore",
             "domain layer cannot import from application"),
            ("domain", "import modal_context.config", "domain layer cannot import from config"),
            ("application", "from modal_context.infrastructure.stubs import InMemoryTransactionLog",
             "application layer cannot import from infrastructure.stubs"),
            ("infrastructure", "from modal_context.api.routes import transitions_router",
             "infrastructure layer cannot import from api"),
            ("api", "from modal_context.infrastructure.adapters.persistence import PostgresTransactionLog",
             "api layer cannot import from infrastructure.adapters"),
        ],
    )
    def test_violations(
        self, package_dir: Path, layer: str, source: str, message: str
    ) -> None:
        path = _write(package_dir, layer, source)

        violations = check_file_imports(path, package_dir)

        assert len(violations) == 1
        assert violations[0][0] == str(path)
        assert violations[0][1] == 1
        assert message in violations[0][2]

    def test_top_level_module_is_unchecked(self, package_dir: Path) -> None:
        path = package_dir / "cli.py"
        path.write_text("from modal_context.infrastructure.stubs import InMemoryTransactionLog")

        assert check_file_imports(path, package_dir) == []


class TestRealPackage:
    """The shipped package must respect its own boundaries."""

    def test_no_violations(self) -> None:
        assert check_import_boundaries(PROJECT_ROOT / "modal_context") == []
