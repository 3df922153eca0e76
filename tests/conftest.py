"""Shared fixtures for localpm tests."""
import json

import pytest

from constants import Constants


@pytest.fixture(autouse=True)
def _restore_constants():
    """Undo config overrides applied to Constants during a test."""
    saved = {k: v for k, v in vars(Constants).items() if k.isupper()}
    yield
    for key, value in saved.items():
        setattr(Constants, key, value)


def write_project(directory, dependencies=None, dev=None, peer=None, installed=(), raw=None):
    """Create ``directory/package.json`` and ``node_modules/<name>`` dirs.

    Returns the manifest path.
    """
    directory.mkdir(parents=True, exist_ok=True)
    manifest = directory / "package.json"
    if raw is not None:
        manifest.write_text(raw, encoding="utf-8")
    else:
        data = {"name": directory.name, "version": "1.0.0"}
        if dependencies is not None:
            data["dependencies"] = dependencies
        if dev is not None:
            data["devDependencies"] = dev
        if peer is not None:
            data["peerDependencies"] = peer
        manifest.write_text(json.dumps(data, indent=2), encoding="utf-8")
    for name in installed:
        pkg_dir = directory / "node_modules" / name
        pkg_dir.mkdir(parents=True, exist_ok=True)
        (pkg_dir / "index.js").write_text(f"module.exports = '{name}';\n", encoding="utf-8")
    return manifest


@pytest.fixture
def project_factory():
    return write_project
