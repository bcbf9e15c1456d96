"""
Ecosystem descriptor — everything that differs between toolchains.

One generic manager drives all four ecosystems. The differences
(where installations live, which binary proves an installation is
real, how the environment fragment is phrased) are declared here
as data, and the concrete table lives in ``core/data/ecosystems.py``.
"""

from __future__ import annotations

from pydantic import BaseModel, Field

from devswitch.core.models.toolchain import Ecosystem, Provenance


class CellarLayout(BaseModel):
    """Where the installation root sits inside one cellar version directory.

    ``home`` is relative to ``<cellar>/<formula>/<version>``; ``binaries``
    are relative to the home. A binary may contain ``{suffix}``, which is
    replaced by the formula's ``@`` suffix (``python@3.13`` → ``3.13``).
    Any one binary existing is enough.
    """

    home: str = ""
    binaries: list[str]


class VersionManagerSource(BaseModel):
    """A per-user version manager directory, e.g. ``~/.nvm/versions/node``.

    Each child directory is a candidate; ``nested`` lists sub-paths tried
    in order for the installation root (``""`` is the child itself).
    """

    provenance: Provenance
    path: str
    binaries: list[str]
    nested: list[str] = Field(default_factory=lambda: [""])


class SystemProbe(BaseModel):
    """How to detect the toolchain reachable through ``PATH``.

    The version command's output must start with ``expected_prefix``.
    The root comes from ``root_args`` when set (``go env GOROOT``);
    otherwise it is the parent of the resolved binary's ``bin`` dir.
    """

    binary: str
    version_args: list[str]
    expected_prefix: str
    version_regex: str
    root_args: list[str] | None = None


class EcosystemDescriptor(BaseModel):
    """Static description of one ecosystem."""

    id: Ecosystem
    display_name: str
    catalog_label: str
    order: int = 0
    env_file: str

    # ── Package manager ─────────────────────────────────────────
    formula_base: str
    versioned_formulas_only: bool = False
    formula_pattern: str
    cellar_layouts: list[CellarLayout]
    read_release_version: bool = False

    # ── Other sources ───────────────────────────────────────────
    version_managers: list[VersionManagerSource] = Field(default_factory=list)
    system_probe: SystemProbe | None = None
    uses_jdk_registry: bool = False
    binaries: list[str]                                  # validity check for custom paths
    custom_homes: list[str] = Field(default_factory=lambda: [""])
    reserved_paths: list[str] = Field(default_factory=list)

    # ── Environment fragment ────────────────────────────────────
    home_var: str | None = None

    def matches_formula(self, name: str) -> bool:
        """Whether a cellar directory name belongs to this ecosystem."""
        if name == self.formula_base:
            return not self.versioned_formulas_only
        return name.startswith(f"{self.formula_base}@")

    def render_exports(self, install_root: str) -> str:
        """Shell export text that puts ``install_root`` first on PATH."""
        root = shell_escape(install_root)
        if self.home_var:
            return (
                f'export {self.home_var}="{root}"\n'
                f'export PATH="${self.home_var}/bin:$PATH"\n'
            )
        return f'export PATH="{root}/bin:$PATH"\n'


def shell_escape(value: str) -> str:
    """Escape a value for embedding inside a double-quoted shell string."""
    for ch in ("\\", '"', "$", "`"):
        value = value.replace(ch, "\\" + ch)
    return value
