"""
Shared test fixtures — fake machines built under ``tmp_path``.
"""

from pathlib import Path

import pytest

from devswitch.adapters.mock import MockCommandRunner
from devswitch.core.config.loader import Settings
from tests.fakes import make_install


@pytest.fixture
def home(tmp_path: Path) -> Path:
    path = tmp_path / "home"
    path.mkdir()
    return path


@pytest.fixture
def cellar(tmp_path: Path) -> Path:
    path = tmp_path / "homebrew" / "Cellar"
    path.mkdir(parents=True)
    return path


@pytest.fixture
def settings(tmp_path: Path, home: Path, cellar: Path) -> Settings:
    """Settings isolated from the real machine: no brew, no java_home, no PATH scan."""
    return Settings(
        config_dir=str(tmp_path / "config"),
        home=str(home),
        cellar_roots=[str(cellar)],
        brew_path=str(tmp_path / "missing" / "brew"),
        java_home_helper=str(tmp_path / "missing" / "java_home"),
        scan_system=False,
    )


@pytest.fixture
def brew(tmp_path: Path, settings: Settings) -> str:
    """A fake ``brew`` executable, configured in ``settings``."""
    path = make_install(tmp_path / "homebrew", "bin/brew") / "bin" / "brew"
    settings.brew_path = str(path)
    return str(path)


@pytest.fixture
def mock_runner() -> MockCommandRunner:
    return MockCommandRunner()
