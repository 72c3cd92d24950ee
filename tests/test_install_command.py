"""End-to-end tests for the install command against a fake registry."""

import asyncio
import json
import threading
from unittest.mock import patch

import pytest
import semantic_version

from lnpm.commands.install import classify_packages, install, resolve_versions, summary_order
from lnpm.installer import InstallerError
from lnpm.versioning.models import PackageRequest, ResolvedPackage

TS_PROJECT = {
    "name": "app",
    "dependencies": {"express": "^4.18.0"},
    "devDependencies": {"typescript": "^5.0.0"},
    "peerDependencies": {"react": ">=17"},
    "optionalDependencies": {"fsevents": "^2.3.0"},
}


def read_manifest(tmp_path):
    return json.loads((tmp_path / "package.json").read_text(encoding="utf-8"))


@pytest.fixture
def mock_run_install():
    with patch("lnpm.commands.install.run_install") as mocked:
        yield mocked


class TestInstallHappyPath:
    """Tests for successful installs."""

    def test_untyped_dependency_gets_companion(self, tmp_path, registry, write_package_json, mock_run_install, capsys):
        write_package_json(TS_PROJECT)
        registry.publish("foo", ["2.0.0", "2.1.0"], latest="2.1.0")
        registry.publish("@types/foo", ["1.0.0", "2.4.1", "3.0.0"], latest="3.0.0")

        asyncio.run(install(["foo"], client=registry, cwd=tmp_path))

        content = read_manifest(tmp_path)
        assert content["dependencies"] == {"express": "^4.18.0", "foo": "2.1.0"}
        assert content["devDependencies"] == {"typescript": "^5.0.0", "@types/foo": "2.4.1"}
        assert content["peerDependencies"] == TS_PROJECT["peerDependencies"]
        assert content["optionalDependencies"] == TS_PROJECT["optionalDependencies"]
        mock_run_install.assert_called_once_with(tmp_path)

        out = capsys.readouterr().out
        assert "i) Resolving 1 packages..." in out
        assert "i) Installing 1 + 1 packages..." in out
        assert "i)   foo@2.1.0 + @types/foo@2.4.1" in out

    def test_missing_companion_still_succeeds(self, tmp_path, registry, write_package_json, mock_run_install, capsys):
        write_package_json(TS_PROJECT)
        registry.publish("foo", ["2.1.0"], latest="2.1.0")

        asyncio.run(install(["foo"], client=registry, cwd=tmp_path))

        content = read_manifest(tmp_path)
        assert content["dependencies"]["foo"] == "2.1.0"
        assert content["devDependencies"] == {"typescript": "^5.0.0"}
        out = capsys.readouterr().out
        assert "!) foo is not typed, but @types/foo is not found" in out
        assert "!)   foo@2.1.0 (not typed)" in out
        mock_run_install.assert_called_once()

    def test_typed_package_needs_no_companion(self, tmp_path, registry, write_package_json, mock_run_install, capsys):
        write_package_json(TS_PROJECT)
        registry.publish("zod", ["3.22.4"], latest="3.22.4", typed=["3.22.4"])

        asyncio.run(install(["zod"], client=registry, cwd=tmp_path))

        assert ("packument", "@types/zod") not in registry.calls
        assert "i)   zod@3.22.4" in capsys.readouterr().out

    def test_plain_js_project_skips_companions(self, tmp_path, registry, write_package_json, mock_run_install, capsys):
        write_package_json({"name": "app"})
        registry.publish("foo", ["1.0.0"], latest="1.0.0")

        asyncio.run(install(["foo"], client=registry, cwd=tmp_path))

        assert read_manifest(tmp_path) == {"name": "app", "dependencies": {"foo": "1.0.0"}}
        assert all(call[1] != "@types/foo" for call in registry.calls)
        # the typed check still runs for every package
        assert ("manifest", "foo", "1.0.0") in registry.calls
        assert "i)   foo@1.0.0" in capsys.readouterr().out

    def test_dev_flag_and_prefix(self, tmp_path, registry, write_package_json, mock_run_install):
        write_package_json(TS_PROJECT)
        registry.publish("vitest", ["1.0.0"], latest="1.0.0")
        registry.publish("eslint", ["8.57.0"], latest="8.57.0")

        asyncio.run(install(["vitest", "dev:eslint@^8"], client=registry, is_dev_option=True, cwd=tmp_path))

        content = read_manifest(tmp_path)
        assert content["dependencies"] == {"express": "^4.18.0"}
        assert content["devDependencies"] == {"typescript": "^5.0.0", "vitest": "1.0.0", "eslint": "8.57.0"}
        # dev packages never get companions
        assert ("packument", "@types/vitest") not in registry.calls

    def test_summary_lists_dev_last(self, tmp_path, registry, write_package_json, mock_run_install, capsys):
        write_package_json({"name": "app"})
        for name in ("zeta", "alpha", "beta"):
            registry.publish(name, ["1.0.0"], latest="1.0.0")

        asyncio.run(install(["dev:alpha", "zeta", "beta"], client=registry, cwd=tmp_path))

        lines = [line for line in capsys.readouterr().out.splitlines() if line.startswith("i)   ")]
        assert lines == ["i)   beta@1.0.0", "i)   zeta@1.0.0", "i)   alpha@1.0.0"]

    def test_project_found_in_ancestor(self, tmp_path, registry, write_package_json, mock_run_install):
        write_package_json({"name": "app"})
        nested = tmp_path / "packages" / "web"
        nested.mkdir(parents=True)
        registry.publish("foo", ["1.0.0"], latest="1.0.0")

        asyncio.run(install(["foo"], client=registry, cwd=nested))

        assert read_manifest(tmp_path)["dependencies"] == {"foo": "1.0.0"}
        mock_run_install.assert_called_once_with(tmp_path)


class TestInstallFailures:
    """Tests for fatal failures and their reporting."""

    def test_no_packages(self, tmp_path, registry, write_package_json, mock_run_install, capsys):
        path = write_package_json(TS_PROJECT)
        before = path.read_text(encoding="utf-8")

        with pytest.raises(SystemExit) as exc:
            asyncio.run(install([], client=registry, cwd=tmp_path))

        assert exc.value.code == 1
        assert "!) No packages specified" in capsys.readouterr().out
        assert path.read_text(encoding="utf-8") == before
        assert registry.calls == []
        mock_run_install.assert_not_called()

    def test_package_json_not_found(self, tmp_path, registry, mock_run_install, capsys):
        with patch("lnpm.commands.install.find_package_json_dir", return_value=None):
            with pytest.raises(SystemExit) as exc:
                asyncio.run(install(["foo"], client=registry, cwd=tmp_path))
        assert exc.value.code == 1
        assert "!) package.json not found" in capsys.readouterr().out
        mock_run_install.assert_not_called()

    def test_parse_failure_stops_before_resolution(self, tmp_path, registry, write_package_json, mock_run_install, capsys):
        write_package_json(TS_PROJECT)
        with pytest.raises(SystemExit) as exc:
            asyncio.run(install(["foo", ""], client=registry, cwd=tmp_path))
        assert exc.value.code == 1
        assert "!) Invalid package name: " in capsys.readouterr().out
        assert registry.calls == []

    def test_resolution_failures_are_aggregated(self, tmp_path, registry, write_package_json, mock_run_install, capsys):
        path = write_package_json(TS_PROJECT)
        before = path.read_text(encoding="utf-8")
        registry.publish("foo", ["1.0.0"], latest="1.0.0")
        registry.publish("bar", ["1.0.0"], latest="1.0.0")

        with pytest.raises(SystemExit) as exc:
            asyncio.run(install(["foo@canary", "bar@^2.0.0", "missing"], client=registry, cwd=tmp_path))

        assert exc.value.code == 1
        out = capsys.readouterr().out
        assert "!) Tag canary not found for foo" in out
        assert "!) Version ^2.0.0 not found for bar" in out
        assert "!) Package missing not found" in out
        assert path.read_text(encoding="utf-8") == before
        mock_run_install.assert_not_called()

    def test_typed_check_failures_are_aggregated(self, tmp_path, registry, write_package_json, mock_run_install, capsys):
        path = write_package_json(TS_PROJECT)
        before = path.read_bytes()
        registry.publish("foo", ["1.0.0"], latest="1.0.0")
        registry.publish("bar", ["2.0.0"], latest="2.0.0")
        del registry.manifests[("foo", "1.0.0")]
        del registry.manifests[("bar", "2.0.0")]

        with pytest.raises(SystemExit) as exc:
            asyncio.run(install(["foo", "bar"], client=registry, cwd=tmp_path))

        assert exc.value.code == 1
        out = capsys.readouterr().out
        assert "!) Package foo@1.0.0 not found" in out
        assert "!) Package bar@2.0.0 not found" in out
        assert "Installing" not in out
        assert path.read_bytes() == before
        mock_run_install.assert_not_called()

    def test_installer_failure_exits_non_zero(self, tmp_path, registry, write_package_json, mock_run_install, capsys):
        write_package_json({"name": "app"})
        registry.publish("foo", ["1.0.0"], latest="1.0.0")
        mock_run_install.side_effect = InstallerError(["npm", "install"], 2)

        with pytest.raises(SystemExit) as exc:
            asyncio.run(install(["foo"], client=registry, cwd=tmp_path))

        assert exc.value.code == 2
        assert "!) npm install exited with code 2" in capsys.readouterr().out
        # manifest was already updated before the installer ran
        assert read_manifest(tmp_path)["dependencies"] == {"foo": "1.0.0"}


class TestStageConcurrency:
    """Tests for the per-stage fan-out of registry lookups."""

    @staticmethod
    def requests(*names):
        return [PackageRequest(name=name, is_dev=False, version="*") for name in names]

    def test_version_lookups_overlap(self, slow_registry):
        for name in ("a", "b", "c"):
            slow_registry.publish(name, ["1.0.0"], latest="1.0.0")

        versions = asyncio.run(resolve_versions(slow_registry, self.requests("a", "b", "c")))

        assert versions == [semantic_version.Version("1.0.0")] * 3
        assert slow_registry.peak == 3

    def test_typed_checks_overlap(self, slow_registry):
        for name in ("a", "b", "c"):
            slow_registry.publish(name, ["1.0.0"], latest="1.0.0", typed=["1.0.0"] if name == "b" else ())
        versions = [semantic_version.Version("1.0.0")] * 3

        resolved = asyncio.run(classify_packages(slow_registry, self.requests("a", "b", "c"), versions))

        assert [pkg.typed for pkg in resolved] == [False, True, False]
        assert slow_registry.peak == 3

    def test_failed_lookup_does_not_cancel_siblings(self, slow_registry, capsys):
        slow_registry.publish("a", ["1.0.0"], latest="1.0.0")
        slow_registry.publish("c", ["1.0.0"], latest="1.0.0")

        with pytest.raises(SystemExit) as exc:
            asyncio.run(resolve_versions(slow_registry, self.requests("a", "missing", "c")))

        assert exc.value.code == 1
        assert sorted(slow_registry.calls) == [("packument", "a"), ("packument", "c"), ("packument", "missing")]
        assert slow_registry.in_flight == 0
        assert "!) Package missing not found" in capsys.readouterr().out

    def test_installer_runs_off_the_event_loop(self, tmp_path, registry, write_package_json, mock_run_install):
        write_package_json({"name": "app"})
        registry.publish("foo", ["1.0.0"], latest="1.0.0")
        threads = []
        mock_run_install.side_effect = lambda directory: threads.append(threading.get_ident())

        asyncio.run(install(["foo"], client=registry, cwd=tmp_path))

        assert threads and threads[0] != threading.get_ident()


class TestSummaryOrder:
    """Tests for summary sorting."""

    def test_runtime_first_then_alphabetical(self):
        def pkg(name, is_dev):
            return ResolvedPackage(name=name, is_dev=is_dev, version=semantic_version.Version("1.0.0"), typed=True)

        ordered = summary_order([pkg("b", True), pkg("c", False), pkg("a", True), pkg("a", False)])
        assert [(p.name, p.is_dev) for p in ordered] == [("a", False), ("c", False), ("a", True), ("b", True)]
