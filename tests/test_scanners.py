"""
Tests for the source scanners and the merge policy.
"""

import os
import plistlib
from pathlib import Path

import pytest

from devswitch.adapters.shell.filesystem import FilesystemProbe
from devswitch.core.data.ecosystems import get_descriptor
from devswitch.core.models.toolchain import Ecosystem, InstalledVersion, Provenance
from devswitch.core.services.toolchains.scanners import (
    merge_installations,
    normalize_version,
    read_jdk_release_version,
    scan_cellar,
    scan_custom_paths,
    scan_ecosystem,
    scan_jdk_registry,
    scan_system,
    scan_version_managers,
)
from tests.fakes import make_install

PROBE = FilesystemProbe()
JDK_HOME = "libexec/openjdk.jdk/Contents/Home"


def _entry(root: str, provenance: Provenance, eco: Ecosystem = Ecosystem.NODE) -> InstalledVersion:
    return InstalledVersion(ecosystem=eco, install_root=root, version="1", provenance=provenance)


class TestNormalizeVersion:
    def test_strips_revision(self):
        assert normalize_version("18.16.0_1") == "18.16.0"

    def test_plain_version_unchanged(self):
        assert normalize_version("24.9.0") == "24.9.0"

    def test_only_trailing_numeric_revision(self):
        assert normalize_version("1.0_beta") == "1.0_beta"


# ── Homebrew cellar ─────────────────────────────────────────────────


class TestScanCellar:
    def test_node_versions_and_revision_suffix(self, cellar: Path):
        make_install(cellar / "node" / "24.9.0", "bin/node")
        make_install(cellar / "node@18" / "18.16.0_1", "bin/node")

        found = scan_cellar(get_descriptor(Ecosystem.NODE), [str(cellar)], PROBE)

        assert sorted(v.version for v in found) == ["18.16.0", "24.9.0"]
        assert all(v.provenance is Provenance.HOMEBREW for v in found)
        roots = {v.install_root for v in found}
        assert str(cellar / "node@18" / "18.16.0_1") in roots

    @pytest.mark.parametrize("eco, valid, empty, invalid", [
        (
            Ecosystem.NODE,
            [("node/22.1.0", "bin/node"), ("node@20/20.11.1", "bin/node"), ("node@18/18.19.0", "bin/node")],
            ["node/21.0.0"],
            [("node/.staging", "bin/node"), ("nodenv/1.4.1", "bin/node")],
        ),
        (
            Ecosystem.JDK,
            [("openjdk/21.0.2", f"{JDK_HOME}/bin/java"), ("openjdk@17/17.0.9_1", f"{JDK_HOME}/bin/java")],
            ["openjdk@11/11.0.21"],
            [
                ("openjdk/.staging", f"{JDK_HOME}/bin/java"),
                ("openjfx/21.0.1", f"{JDK_HOME}/bin/java"),
                ("openjdk@8/1.8.0", "bin/java"),
            ],
        ),
        (
            Ecosystem.PYTHON,
            [("python@3.12/3.12.1", "bin/python3.12"), ("python@3.11/3.11.9", "bin/python3")],
            ["python@3.13/3.13.0"],
            [
                ("python@3.12/.staging", "bin/python3"),
                ("python/3.10.0", "bin/python3"),
                ("python-tk@3.12/3.12.1", "bin/python3"),
            ],
        ),
        (
            Ecosystem.GO,
            [("go/1.22.1", "libexec/bin/go"), ("go@1.19/1.19.5", "bin/go")],
            ["go/1.23.0"],
            [("go/.tmp", "bin/go"), ("gopls/0.15.0", "bin/go")],
        ),
    ])
    def test_n_valid_m_invalid(self, cellar: Path, eco, valid, empty, invalid):
        for keg, binary in valid + invalid:
            make_install(cellar / keg, binary)
        for keg in empty:
            (cellar / keg).mkdir(parents=True)

        found = scan_cellar(get_descriptor(eco), [str(cellar)], PROBE)

        assert len(found) == len(valid)
        assert all(v.provenance is Provenance.HOMEBREW for v in found)
        assert all(v.ecosystem is eco for v in found)

    def test_missing_cellar_root(self, tmp_path: Path):
        found = scan_cellar(get_descriptor(Ecosystem.NODE), [str(tmp_path / "nope")], PROBE)
        assert found == []

    def test_go_prefers_libexec_root(self, cellar: Path):
        make_install(cellar / "go" / "1.22.1", "libexec/bin/go", "bin/go")
        make_install(cellar / "go@1.19" / "1.19.5", "bin/go")

        found = scan_cellar(get_descriptor(Ecosystem.GO), [str(cellar)], PROBE)
        roots = {v.version: v.install_root for v in found}

        assert roots["1.22.1"] == str(cellar / "go" / "1.22.1" / "libexec")
        assert roots["1.19.5"] == str(cellar / "go@1.19" / "1.19.5")

    def test_python_versioned_formulas_only(self, cellar: Path):
        make_install(cellar / "python@3.12" / "3.12.1", "bin/python3.12")
        make_install(cellar / "python" / "3.11.0", "bin/python3")

        found = scan_cellar(get_descriptor(Ecosystem.PYTHON), [str(cellar)], PROBE)

        assert [v.version for v in found] == ["3.12.1"]
        assert found[0].source == "Homebrew (python@3.12)"

    def test_jdk_release_file_overrides_directory_name(self, cellar: Path):
        keg = cellar / "openjdk@17" / "17.0.9_1"
        home = make_install(keg / JDK_HOME, "bin/java")
        (home / "release").write_text('IMPLEMENTOR="Homebrew"\nJAVA_VERSION="17.0.10"\n')
        make_install(cellar / "openjdk" / "21.0.2" / JDK_HOME, "bin/java")

        found = scan_cellar(get_descriptor(Ecosystem.JDK), [str(cellar)], PROBE)
        versions = {v.install_root: v.version for v in found}

        assert versions[str(home)] == "17.0.10"
        assert versions[str(cellar / "openjdk" / "21.0.2" / JDK_HOME)] == "21.0.2"

    def test_multiple_cellar_roots(self, tmp_path: Path):
        arm = tmp_path / "arm" / "Cellar"
        intel = tmp_path / "intel" / "Cellar"
        make_install(arm / "node" / "22.0.0", "bin/node")
        make_install(intel / "node" / "20.0.0", "bin/node")

        found = scan_cellar(get_descriptor(Ecosystem.NODE), [str(arm), str(intel)], PROBE)

        assert [v.version for v in found] == ["22.0.0", "20.0.0"]


class TestReadReleaseVersion:
    def test_missing_file(self, tmp_path: Path):
        assert read_jdk_release_version(str(tmp_path), PROBE) is None

    def test_no_java_version_line(self, tmp_path: Path):
        (tmp_path / "release").write_text('IMPLEMENTOR="x"\n')
        assert read_jdk_release_version(str(tmp_path), PROBE) is None


# ── Version managers ────────────────────────────────────────────────


class TestScanVersionManagers:
    def test_nvm(self, settings, home: Path):
        nvm = home / ".nvm" / "versions" / "node"
        make_install(nvm / "v20.11.0", "bin/node")
        (nvm / "v18.0.0").mkdir(parents=True)  # no binary

        found = scan_version_managers(get_descriptor(Ecosystem.NODE), settings, PROBE)

        assert len(found) == 1
        assert found[0].version == "v20.11.0"  # verbatim
        assert found[0].provenance is Provenance.NVM
        assert found[0].manager_root == str(nvm)

    def test_pyenv_and_asdf_python(self, settings, home: Path):
        make_install(home / ".pyenv" / "versions" / "3.11.7", "bin/python3")
        make_install(home / ".asdf" / "installs" / "python" / "3.10.13", "bin/python")

        found = scan_version_managers(get_descriptor(Ecosystem.PYTHON), settings, PROBE)

        assert [(v.version, v.provenance) for v in found] == [
            ("3.11.7", Provenance.PYENV),
            ("3.10.13", Provenance.ASDF),
        ]

    def test_asdf_go_nested_root(self, settings, home: Path):
        asdf = home / ".asdf" / "installs" / "golang"
        make_install(asdf / "1.21.5" / "go", "bin/go")
        make_install(home / ".gvm" / "gos" / "go1.20", "bin/go")

        found = scan_version_managers(get_descriptor(Ecosystem.GO), settings, PROBE)
        roots = {v.version: v.install_root for v in found}

        assert roots["1.21.5"] == str(asdf / "1.21.5" / "go")
        assert roots["go1.20"] == str(home / ".gvm" / "gos" / "go1.20")

    def test_no_manager_directories(self, settings):
        assert scan_version_managers(get_descriptor(Ecosystem.GO), settings, PROBE) == []


# ── JDK registry ────────────────────────────────────────────────────


class TestScanJdkRegistry:
    def _helper(self, settings) -> str:
        helper = Path(settings.java_home_helper)
        make_install(helper.parent.parent, f"{helper.parent.name}/{helper.name}")
        return str(helper)

    def test_parses_plist(self, settings, mock_runner):
        helper = self._helper(settings)
        plist = plistlib.dumps([
            {
                "JVMHomePath": "/Library/Java/JavaVirtualMachines/temurin-21.jdk/Contents/Home",
                "JVMName": "OpenJDK 21.0.2",
                "JVMVersion": "21.0.2",
            },
            {"JVMName": "broken entry"},
        ]).decode()
        mock_runner.set_output([helper, "-X"], plist)

        found = scan_jdk_registry(get_descriptor(Ecosystem.JDK), settings, mock_runner, PROBE)

        assert len(found) == 1
        assert found[0].version == "21.0.2"
        assert found[0].provenance is Provenance.JAVA_HOME
        assert found[0].source == "OpenJDK 21.0.2"

    def test_malformed_output(self, settings, mock_runner):
        helper = self._helper(settings)
        mock_runner.set_output([helper, "-X"], "<plist><array><dict>")

        assert scan_jdk_registry(get_descriptor(Ecosystem.JDK), settings, mock_runner, PROBE) == []

    def test_helper_missing(self, settings, mock_runner):
        assert scan_jdk_registry(get_descriptor(Ecosystem.JDK), settings, mock_runner, PROBE) == []
        assert mock_runner.call_count == 0

    def test_not_used_for_other_ecosystems(self, settings, mock_runner):
        self._helper(settings)
        assert scan_jdk_registry(get_descriptor(Ecosystem.NODE), settings, mock_runner, PROBE) == []
        assert mock_runner.call_count == 0


# ── Custom paths ────────────────────────────────────────────────────


class TestScanCustomPaths:
    def test_parent_of_jdk_bundles(self, settings, tmp_path: Path):
        jvms = tmp_path / "jvms"
        home = make_install(jvms / "zulu-21.jdk" / "Contents" / "Home", "bin/java")
        (home / "release").write_text('JAVA_VERSION="21.0.3"\n')
        make_install(jvms / "plain-jdk-17", "bin/java")
        (jvms / "empty").mkdir()
        settings.custom_scan_paths = {"jdk": [str(jvms)]}

        found = scan_custom_paths(get_descriptor(Ecosystem.JDK), settings, PROBE)
        versions = {v.install_root: v.version for v in found}

        assert versions == {
            str(home): "21.0.3",
            str(jvms / "plain-jdk-17"): "plain-jdk-17",
        }
        assert all(v.provenance is Provenance.CUSTOM for v in found)

    def test_path_is_itself_an_installation(self, settings, home: Path):
        make_install(home / "tools" / "node-22", "bin/node")
        settings.custom_scan_paths = {"node": ["~/tools/node-22"]}

        found = scan_custom_paths(get_descriptor(Ecosystem.NODE), settings, PROBE)

        assert [v.install_root for v in found] == [str(home / "tools" / "node-22")]
        assert found[0].source == "Custom (~/tools/node-22)"


# ── System ──────────────────────────────────────────────────────────


class TestScanSystem:
    def test_node_root_from_resolved_binary(self, settings, mock_runner, tmp_path: Path):
        binary = make_install(tmp_path / "usr", "bin/node") / "bin" / "node"
        mock_runner.set_which("node", str(binary))
        mock_runner.set_output([str(binary), "--version"], "v20.10.0\n")

        found = scan_system(get_descriptor(Ecosystem.NODE), settings, mock_runner, PROBE)

        assert len(found) == 1
        assert found[0].version == "20.10.0"
        assert found[0].provenance is Provenance.SYSTEM
        assert found[0].install_root == os.path.dirname(os.path.dirname(os.path.realpath(binary)))

    def test_go_root_from_goroot(self, settings, mock_runner):
        mock_runner.set_which("go", "/usr/local/go/bin/go")
        mock_runner.set_output(["/usr/local/go/bin/go", "version"], "go version go1.22.1 darwin/arm64\n")
        mock_runner.set_output(["/usr/local/go/bin/go", "env", "GOROOT"], "/usr/local/go\n")

        found = scan_system(get_descriptor(Ecosystem.GO), settings, mock_runner, PROBE)

        assert [(v.version, v.install_root) for v in found] == [("1.22.1", "/usr/local/go")]

    def test_unexpected_output_is_skipped(self, settings, mock_runner):
        mock_runner.set_which("python3", "/usr/bin/python3")
        mock_runner.set_output(["/usr/bin/python3", "--version"], "xcode-select: note: no developer tools\n")

        assert scan_system(get_descriptor(Ecosystem.PYTHON), settings, mock_runner, PROBE) == []

    def test_failing_binary_is_skipped(self, settings, mock_runner):
        mock_runner.set_which("node", "/usr/local/bin/node")
        mock_runner.set_failure(["/usr/local/bin/node", "--version"])

        assert scan_system(get_descriptor(Ecosystem.NODE), settings, mock_runner, PROBE) == []

    def test_missing_binary_runs_nothing(self, settings, mock_runner):
        assert scan_system(get_descriptor(Ecosystem.NODE), settings, mock_runner, PROBE) == []
        assert mock_runner.call_count == 0

    def test_jdk_has_no_system_probe(self, settings, mock_runner):
        assert scan_system(get_descriptor(Ecosystem.JDK), settings, mock_runner, PROBE) == []


# ── Merge ───────────────────────────────────────────────────────────


class TestMergeInstallations:
    def test_identical_roots_keep_first(self):
        brew = _entry("/opt/homebrew/Cellar/node/24.9.0", Provenance.HOMEBREW)
        system = _entry("/opt/homebrew/Cellar/node/24.9.0", Provenance.SYSTEM)

        merged = merge_installations([[brew], [], [system]])

        assert merged == [brew]

    def test_trailing_slash_is_same_root(self):
        a = _entry("/x/node/20", Provenance.NVM)
        b = _entry("/x/node/20/", Provenance.CUSTOM)

        assert merge_installations([[a], [b]]) == [a]

    def test_system_inside_managed_root_dropped(self):
        brew = _entry("/opt/homebrew/Cellar/go/1.22.1", Provenance.HOMEBREW, Ecosystem.GO)
        system = _entry("/opt/homebrew/Cellar/go/1.22.1/libexec", Provenance.SYSTEM, Ecosystem.GO)

        assert merge_installations([[brew], [system]]) == [brew]

    def test_distinct_roots_all_kept(self):
        entries = [_entry(f"/x/{i}", Provenance.NVM) for i in range(3)]
        system = _entry("/usr/local", Provenance.SYSTEM)

        assert merge_installations([entries, [system]]) == entries + [system]


class TestScanEcosystem:
    def test_priority_order(self, settings, cellar: Path, home: Path, tmp_path: Path):
        make_install(cellar / "node" / "24.9.0", "bin/node")
        make_install(home / ".nvm" / "versions" / "node" / "v20.0.0", "bin/node")
        make_install(tmp_path / "custom-node", "bin/node")
        settings.custom_scan_paths = {"node": [str(tmp_path / "custom-node")]}

        found = scan_ecosystem(get_descriptor(Ecosystem.NODE), settings, None, PROBE)

        assert [v.provenance for v in found] == [
            Provenance.HOMEBREW, Provenance.NVM, Provenance.CUSTOM,
        ]

    @pytest.mark.parametrize("scan_system_flag", [True, False])
    def test_system_scan_toggle(self, settings, mock_runner, scan_system_flag):
        settings.scan_system = scan_system_flag
        mock_runner.set_which("node", "/usr/local/bin/node")
        mock_runner.set_output(["/usr/local/bin/node", "--version"], "v20.1.0")

        found = scan_ecosystem(get_descriptor(Ecosystem.NODE), settings, mock_runner, PROBE)

        assert len(found) == (1 if scan_system_flag else 0)
