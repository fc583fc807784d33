"""
Pytest configuration and fixtures for bundle path tests.

Provides fixtures for:
- A temporary project tree with a core directory and an "acme" bundle
- Settings pointing at that project root
- A PathContext for the "acme" bundle
- Automatic reset of global settings and the config cache
"""
import sys
from pathlib import Path
from typing import Generator

import pytest

# Add src/ to path so the package imports without an editable install
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT / "src"))

from bundle_paths.core.bundle_config import clear_config_cache  # noqa: E402
from bundle_paths.core.path_context import PathContext, create_path_context  # noqa: E402
from bundle_paths.core.settings import (  # noqa: E402
    PathResolverSettings,
    reset_settings,
    set_settings,
)


def pytest_configure(config: pytest.Config) -> None:
    """Register custom markers."""
    config.addinivalue_line(
        "markers",
        "unit: marks tests as unit tests (fast, no external dependencies)"
    )
    config.addinivalue_line(
        "markers",
        "security: marks sandbox confinement tests"
    )


@pytest.fixture(autouse=True)
def reset_global_state() -> Generator[None, None, None]:
    """Reset settings and the config cache around every test."""
    reset_settings()
    clear_config_cache()
    yield
    reset_settings()
    clear_config_cache()


@pytest.fixture
def project_root(tmp_path: Path) -> Path:
    """Create a project tree with core and bundle directories."""
    root = tmp_path / "project"
    (root / "bmad" / "core" / "tasks").mkdir(parents=True)
    (root / "bmad" / "custom" / "bundles" / "acme" / "workflows").mkdir(parents=True)
    (root / "data" / "conversations").mkdir(parents=True)
    return root


@pytest.fixture
def settings(project_root: Path) -> PathResolverSettings:
    """Settings rooted at the temporary project, installed globally."""
    settings = PathResolverSettings(project_root=project_root)
    set_settings(settings)
    return settings


@pytest.fixture
def bundle_root(project_root: Path) -> Path:
    return project_root / "bmad" / "custom" / "bundles" / "acme"


@pytest.fixture
def outside_dir(tmp_path: Path) -> Path:
    """A directory outside every allowed root."""
    outside = tmp_path / "outside"
    outside.mkdir()
    (outside / "secret.txt").write_text("top secret")
    return outside


@pytest.fixture
def context(settings: PathResolverSettings) -> PathContext:
    """PathContext for the "acme" bundle without config variables."""
    return create_path_context("acme", settings=settings)
