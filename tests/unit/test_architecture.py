"""Tests to verify hexagonal architecture structure."""

from pathlib import Path

import pytest

PROJECT_ROOT = Path(__file__).parent.parent.parent


@pytest.fixture
def package_path() -> Path:
    """Return the modal_context package path."""
    return PROJECT_ROOT / "modal_context"


def test_main_layers_exist(package_path: Path) -> None:
    """Verify all layer packages exist."""
    for layer in ["domain", "application", "infrastructure", "api", "bootstrap", "config"]:
        assert (package_path / layer / "__init__.py").is_file(), f"Missing layer: {layer}"


def test_application_has_ports_and_services(package_path: Path) -> None:
    for subdir in ["ports", "services"]:
        assert (package_path / "application" / subdir / "__init__.py").is_file()


def test_domain_is_pure(package_path: Path) -> None:
    """Domain modules import no other package layer and no third-party stack."""
    forbidden = [
        "modal_context.application",
        "modal_context.infrastructure",
        "modal_context.api",
        "modal_context.bootstrap",
        "import sqlalchemy",
        "from sqlalchemy",
        "from fastapi",
        "import structlog",
        "from structlog",
    ]
    for py_file in (package_path / "domain").rglob("*.py"):
        content = py_file.read_text()
        for forbidden_import in forbidden:
            assert forbidden_import not in content, (
                f"{py_file} contains forbidden import: {forbidden_import}"
            )


def test_base_exception_exists() -> None:
    """Every package error derives from ModalContextError."""
    from modal_context.domain.errors import (
        ComplianceLogError,
        InvalidTransitionError,
        RuleSourceError,
        TransactionLogError,
    )
    from modal_context.domain.exceptions import ModalContextError

    for error in (
        ComplianceLogError,
        InvalidTransitionError,
        RuleSourceError,
        TransactionLogError,
    ):
        assert issubclass(error, ModalContextError)
