"""End-to-end tests for the localpm install pass."""
import json
import shutil
from unittest.mock import MagicMock, patch

import pytest

from constants import ExitCodes
from install.cancellation import CancellationToken
from localpm import run


@pytest.fixture
def fake_pm():
    """Patch the fallback subprocess; yields the Popen mock."""
    proc = MagicMock()
    proc.pid = 1234
    proc.wait.return_value = 0
    proc.poll.return_value = None
    with patch("install.fallback.shutil.which", side_effect=lambda name: f"/usr/bin/{name}"), \
            patch("install.fallback.subprocess.Popen", return_value=proc) as popen:
        yield popen


def _run(app, cache, *packages, extra=()):
    argv = [*packages, "--root-path", str(cache), *extra]
    return run(argv, project_dir=str(app), token=CancellationToken())


def _local_manifest(app):
    return json.loads((app / "package.json").read_text(encoding="utf-8"))


class TestInstallPass:
    """Request scenarios from the command line."""

    def test_left_pad_from_cache(self, tmp_path, project_factory, fake_pm):
        app, cache = tmp_path / "app", tmp_path / "cache"
        app.mkdir()
        project_factory(cache / "proj", dependencies={"left-pad": "^1.3.0"}, installed=["left-pad"])

        assert _run(app, cache, "left-pad") == ExitCodes.SUCCESS.value
        assert _local_manifest(app)["dependencies"] == {"left-pad": "1.3.0"}
        assert (app / "node_modules" / "left-pad" / "index.js").is_file()
        fake_pm.assert_not_called()

    def test_exact_version_selected(self, tmp_path, project_factory, fake_pm):
        app, cache = tmp_path / "app", tmp_path / "cache"
        app.mkdir()
        project_factory(cache / "a-old", dependencies={"react": "16.0.0"}, installed=["react"])
        project_factory(cache / "b-new", dependencies={"react": "17.0.2"}, installed=["react"])
        (cache / "b-new" / "node_modules" / "react" / "marker").write_text("17", encoding="utf-8")

        assert _run(app, cache, "react@17.0.2") == ExitCodes.SUCCESS.value
        assert _local_manifest(app)["dependencies"] == {"react": "17.0.2"}
        assert (app / "node_modules" / "react" / "marker").read_text(encoding="utf-8") == "17"

    def test_highest_version_for_unconstrained(self, tmp_path, project_factory, fake_pm):
        app, cache = tmp_path / "app", tmp_path / "cache"
        app.mkdir()
        project_factory(cache / "a", dependencies={"lodash": "^4.17.21"}, installed=["lodash"])
        project_factory(cache / "b", dependencies={"lodash": "~3.10.1"}, installed=["lodash"])

        assert _run(app, cache, "lodash") == ExitCodes.SUCCESS.value
        assert _local_manifest(app)["dependencies"] == {"lodash": "4.17.21"}

    def test_partial_resolution_falls_back_for_remainder(self, tmp_path, project_factory, fake_pm):
        app, cache = tmp_path / "app", tmp_path / "cache"
        app.mkdir()
        project_factory(cache / "proj", dependencies={"left-pad": "1.3.0"}, installed=["left-pad"])

        assert _run(app, cache, "left-pad", "unknown-pkg") == ExitCodes.SUCCESS.value
        assert (app / "node_modules" / "left-pad").is_dir()
        fake_pm.assert_called_once()
        assert fake_pm.call_args[0][0] == ["/usr/bin/npm", "install", "unknown-pkg"]

    def test_nothing_found_hands_full_request_to_fallback(self, tmp_path, fake_pm):
        app, cache = tmp_path / "app", tmp_path / "cache"
        app.mkdir()
        cache.mkdir()

        with patch("localpm.CacheInstaller") as installer:
            code = _run(app, cache, "a", "b@2.0.0", extra=["-p", "pnpm"])
        assert code == ExitCodes.SUCCESS.value
        installer.assert_not_called()
        assert fake_pm.call_args[0][0] == ["/usr/bin/pnpm", "add", "a", "b@2.0.0"]

    def test_fallback_failure_is_fatal(self, tmp_path, fake_pm):
        app, cache = tmp_path / "app", tmp_path / "cache"
        app.mkdir()
        cache.mkdir()
        fake_pm.return_value.wait.return_value = 1

        assert _run(app, cache, "a") == ExitCodes.FALLBACK_ERROR.value

    def test_second_run_is_idempotent(self, tmp_path, project_factory, fake_pm):
        app, cache = tmp_path / "app", tmp_path / "cache"
        app.mkdir()
        project_factory(cache / "proj", dependencies={"left-pad": "^1.3.0"}, installed=["left-pad"])

        assert _run(app, cache, "left-pad") == ExitCodes.SUCCESS.value
        before = (app / "package.json").read_bytes()
        with patch("install.installer.shutil.copytree", wraps=shutil.copytree) as copytree:
            assert _run(app, cache, "left-pad") == ExitCodes.SUCCESS.value
        copytree.assert_not_called()
        assert (app / "package.json").read_bytes() == before
        fake_pm.assert_not_called()

    def test_satisfied_dependency_never_reaches_fallback(self, tmp_path, project_factory, fake_pm):
        app, cache = tmp_path / "app", tmp_path / "cache"
        project_factory(app, dependencies={"left-pad": "1.3.0"}, installed=["left-pad"])
        cache.mkdir()

        assert _run(app, cache, "left-pad", "other") == ExitCodes.SUCCESS.value
        assert fake_pm.call_args[0][0] == ["/usr/bin/npm", "install", "other"]

    def test_excluded_locations_never_contribute(self, tmp_path, project_factory, fake_pm):
        app, cache = tmp_path / "app", tmp_path / "cache"
        app.mkdir()
        project_factory(cache / "build" / "p", dependencies={"a": "1.0.0"}, installed=["a"])
        project_factory(cache / ".hidden", dependencies={"a": "1.0.0"}, installed=["a"])
        project_factory(
            cache / "x" / "node_modules" / "y" / "node_modules" / "z",
            dependencies={"a": "1.0.0"}, installed=["a"],
        )

        assert _run(app, cache, "a") == ExitCodes.SUCCESS.value
        assert not (app / "node_modules").exists()
        assert fake_pm.call_args[0][0] == ["/usr/bin/npm", "install", "a"]


class TestManifestInput:
    """Requests read from the local package.json."""

    def test_no_manifest_and_no_packages(self, tmp_path, fake_pm):
        app = tmp_path / "app"
        app.mkdir()
        assert run(["--root-path", str(tmp_path)], project_dir=str(app),
                   token=CancellationToken()) == ExitCodes.FILE_ERROR.value
        fake_pm.assert_not_called()

    def test_manifest_without_dependencies(self, tmp_path, project_factory, fake_pm):
        app = tmp_path / "app"
        project_factory(app)
        assert run(["--root-path", str(tmp_path)], project_dir=str(app),
                   token=CancellationToken()) == ExitCodes.SUCCESS.value
        fake_pm.assert_not_called()

    def test_manifest_dependencies_are_requested(self, tmp_path, project_factory, fake_pm):
        app, cache = tmp_path / "app", tmp_path / "cache"
        project_factory(app, dependencies={"left-pad": "^1.0.0", "react": "17.0.2"})
        project_factory(cache / "proj", dependencies={"left-pad": "1.3.0"}, installed=["left-pad"])

        assert run(["--root-path", str(cache)], project_dir=str(app),
                   token=CancellationToken()) == ExitCodes.SUCCESS.value
        assert _local_manifest(app)["dependencies"]["left-pad"] == "1.3.0"
        assert fake_pm.call_args[0][0] == ["/usr/bin/npm", "install", "react@17.0.2"]

    def test_git_and_alias_versions_already_installed(self, tmp_path, project_factory, fake_pm):
        app = tmp_path / "app"
        project_factory(
            app,
            dependencies={"mylib": "git+ssh://git@github.com/o/mylib.git", "alias": "npm:left-pad@1.3.0"},
            installed=["mylib", "alias"],
        )
        assert run(["--root-path", str(tmp_path)], project_dir=str(app),
                   token=CancellationToken()) == ExitCodes.SUCCESS.value
        fake_pm.assert_not_called()

    def test_alias_version_found_in_cache(self, tmp_path, project_factory, fake_pm):
        app, cache = tmp_path / "app", tmp_path / "cache"
        app.mkdir()
        project_factory(cache / "proj", dependencies={"alias": "npm:left-pad@1.3.0"}, installed=["alias"])

        assert _run(app, cache, "alias@npm:left-pad@1.3.0") == ExitCodes.SUCCESS.value
        assert _local_manifest(app)["dependencies"] == {"alias": "npm:left-pad@1.3.0"}
        assert (app / "node_modules" / "alias" / "index.js").is_file()
        fake_pm.assert_not_called()
