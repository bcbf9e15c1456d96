"""
Tests for environment fragments — writer, reader, and active resolution.
"""

from pathlib import Path

from devswitch.core.data.ecosystems import get_descriptor
from devswitch.core.models.toolchain import Ecosystem, InstalledVersion, Provenance
from devswitch.core.persistence.env_fragment import (
    read_fragment,
    render_fragment,
    write_active,
    write_fragment,
)
from devswitch.core.services.toolchains.selection import match_active, resolve_active


def _v(root: str, eco: Ecosystem = Ecosystem.NODE, provenance: Provenance = Provenance.HOMEBREW) -> InstalledVersion:
    return InstalledVersion(ecosystem=eco, install_root=root, version=root.rsplit("/", 1)[-1], provenance=provenance)


# ── Writer ──────────────────────────────────────────────────────────


class TestRenderFragment:
    def test_node_prepends_bin_to_path(self):
        text = render_fragment(get_descriptor(Ecosystem.NODE), "/opt/homebrew/Cellar/node/24.9.0")
        assert 'export PATH="/opt/homebrew/Cellar/node/24.9.0/bin:$PATH"' in text
        assert "JAVA_HOME" not in text

    def test_jdk_sets_java_home(self):
        text = render_fragment(get_descriptor(Ecosystem.JDK), "/jdk/Contents/Home")
        assert 'export JAVA_HOME="/jdk/Contents/Home"' in text
        assert 'export PATH="$JAVA_HOME/bin:$PATH"' in text

    def test_go_sets_goroot(self):
        text = render_fragment(get_descriptor(Ecosystem.GO), "/usr/local/go")
        assert 'export GOROOT="/usr/local/go"' in text
        assert 'export PATH="$GOROOT/bin:$PATH"' in text

    def test_special_characters_escaped(self):
        text = render_fragment(get_descriptor(Ecosystem.PYTHON), '/odd/$dir "x"')
        assert 'export PATH="/odd/\\$dir \\"x\\"/bin:$PATH"' in text


class TestWriteFragment:
    def test_creates_directory(self, tmp_path: Path):
        path = tmp_path / "a" / "b" / "node_env.sh"
        write_fragment(path, "export X=1\n")
        assert path.read_text() == "export X=1\n"

    def test_overwrites_and_leaves_no_temp_files(self, tmp_path: Path):
        path = tmp_path / "node_env.sh"
        write_fragment(path, "first\n")
        write_fragment(path, "second\n")

        assert path.read_text() == "second\n"
        assert [p.name for p in tmp_path.iterdir()] == ["node_env.sh"]

    def test_write_active(self, settings):
        ok = write_active(settings, get_descriptor(Ecosystem.GO), "/usr/local/go")

        assert ok is True
        path = settings.fragment_path(Ecosystem.GO)
        assert path.name == "go_env.sh"
        assert 'GOROOT="/usr/local/go"' in path.read_text()

    def test_write_active_failure_returns_false(self, settings, tmp_path: Path):
        blocker = tmp_path / "blocker"
        blocker.write_text("not a directory")
        settings.config_dir = str(blocker / "config")

        assert write_active(settings, get_descriptor(Ecosystem.NODE), "/x") is False


class TestReadFragment:
    def test_missing(self, tmp_path: Path):
        assert read_fragment(tmp_path / "nope.sh") is None

    def test_directory_in_place_of_file(self, tmp_path: Path):
        (tmp_path / "node_env.sh").mkdir()
        assert read_fragment(tmp_path / "node_env.sh") is None


# ── Resolver ────────────────────────────────────────────────────────


class TestResolveActive:
    def test_no_fragment_means_none(self, settings):
        versions = [_v("/opt/homebrew/Cellar/node/24.9.0")]
        assert resolve_active(settings, get_descriptor(Ecosystem.NODE), versions) is None

    def test_path_prepend_fragment(self, settings):
        target = _v("/opt/homebrew/Cellar/node/24.9.0")
        other = _v("/opt/homebrew/Cellar/node@18/18.16.0_1")
        path = settings.fragment_path(Ecosystem.NODE)
        write_fragment(path, 'export PATH="/opt/homebrew/Cellar/node/24.9.0/bin:$PATH"\n')

        assert resolve_active(settings, get_descriptor(Ecosystem.NODE), [other, target]) is target

    def test_idempotent_then_none_after_delete(self, settings):
        target = _v("/opt/homebrew/Cellar/node/24.9.0")
        descriptor = get_descriptor(Ecosystem.NODE)
        write_active(settings, descriptor, target.install_root)

        first = resolve_active(settings, descriptor, [target])
        second = resolve_active(settings, descriptor, [target])
        assert first is second is target

        settings.fragment_path(Ecosystem.NODE).unlink()
        assert resolve_active(settings, descriptor, [target]) is None

    def test_write_then_resolve_round_trip_every_ecosystem(self, settings):
        for eco in Ecosystem:
            descriptor = get_descriptor(eco)
            a = _v(f"/tools/{eco.value}/1.0", eco)
            b = _v(f"/tools/{eco.value}/2.0", eco)
            assert write_active(settings, descriptor, b.install_root)
            assert resolve_active(settings, descriptor, [a, b]) is b

    def test_unknown_root_means_none(self, settings):
        descriptor = get_descriptor(Ecosystem.NODE)
        write_active(settings, descriptor, "/somewhere/else")
        assert resolve_active(settings, descriptor, [_v("/opt/node/20")]) is None


class TestMatchActiveDelimiting:
    """Roots that prefix each other must not be confused."""

    def test_nested_root_prefers_longest(self):
        outer = _v("/home/u/.asdf/installs/golang/1.21", Ecosystem.GO, Provenance.ASDF)
        inner = _v("/home/u/.asdf/installs/golang/1.21/go", Ecosystem.GO, Provenance.ASDF)
        text = render_fragment(get_descriptor(Ecosystem.GO), inner.install_root)

        assert match_active(text, [outer, inner]) is inner
        assert match_active(text, [inner, outer]) is inner

    def test_nested_root_outer_selected(self):
        outer = _v("/home/u/.asdf/installs/golang/1.21", Ecosystem.GO, Provenance.ASDF)
        inner = _v("/home/u/.asdf/installs/golang/1.21/go", Ecosystem.GO, Provenance.ASDF)
        text = render_fragment(get_descriptor(Ecosystem.GO), outer.install_root)

        assert match_active(text, [inner, outer]) is outer

    def test_version_prefix_is_not_a_match(self):
        short = _v("/opt/homebrew/Cellar/node/24")
        full = _v("/opt/homebrew/Cellar/node/24.9.0")
        text = render_fragment(get_descriptor(Ecosystem.NODE), full.install_root)

        assert match_active(text, [short, full]) is full
        assert match_active(text, [short]) is None

    def test_sibling_with_shared_prefix(self):
        a = _v("/x/jdk-17")
        text = 'export JAVA_HOME="/x/jdk-17.0.2"\n'
        assert match_active(text, [a]) is None

    def test_unquoted_and_colon_separated(self):
        a = _v("/x/node/20")
        assert match_active("PATH=/x/node/20/bin:/usr/bin", [a]) is a
        assert match_active("PATH=/usr/bin:/x/node/20", [a]) is a

    def test_escaped_root_matches(self):
        odd = _v("/opt/we$ird/node")
        text = render_fragment(get_descriptor(Ecosystem.NODE), odd.install_root)
        assert match_active(text, [odd]) is odd

    def test_first_in_list_wins_on_identical_length(self):
        a = _v("/a/node/20")
        b = _v("/a/node/20")
        assert match_active('export PATH="/a/node/20/bin:$PATH"', [a, b]) is a
