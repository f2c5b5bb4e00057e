"""Shared fixtures for cargo-manifest tests."""

import pytest

from cargo_manifest import config as config_module
from cargo_manifest import error_handling

SAMPLE_CARGO_TOML = """[package]
name = "hello"
version = "0.1.0"

[dependencies]
serde = "1.0"
toml = { version = "0.5" }
hyle = { git = "https://example.org/hyle", tag = "0.12" }
"""


@pytest.fixture(autouse=True)
def isolated_environment(tmp_path, monkeypatch):
    """Keep config files and CARGO_MANIFEST_* variables of the host out of tests."""
    home = tmp_path / "home"
    home.mkdir()
    monkeypatch.setenv("HOME", str(home))
    monkeypatch.chdir(tmp_path)
    for key in ("CARGO_MANIFEST_LOG_LEVEL", "CARGO_MANIFEST_MAX_FILE_SIZE_MB", "CARGO_MANIFEST_OUTPUT_FORMAT"):
        monkeypatch.delenv(key, raising=False)

    config_module.reset_config()
    error_handling.setup_error_handling()
    yield
    config_module.reset_config()


@pytest.fixture
def temp_dir(tmp_path):
    """Directory for manifests written by a test."""
    manifests = tmp_path / "manifests"
    manifests.mkdir()
    return manifests


@pytest.fixture
def sample_cargo_toml(temp_dir):
    """A Cargo.toml with string, version-table and git-tag dependencies."""
    path = temp_dir / "Cargo.toml"
    path.write_text(SAMPLE_CARGO_TOML, encoding="utf-8")
    return path


@pytest.fixture
def sample_cargo_text():
    """Contents of the sample Cargo.toml."""
    return SAMPLE_CARGO_TOML
