"""
Ecosystem table — the four supported toolchains.

Pure data, no logic. Keys are ``Ecosystem`` members; order within the
table is presentation order.
"""

from __future__ import annotations

from devswitch.core.models.ecosystem import (
    CellarLayout,
    EcosystemDescriptor,
    SystemProbe,
    VersionManagerSource,
)
from devswitch.core.models.toolchain import Ecosystem, Provenance

_PYTHON_BINARIES = ["bin/python3", "bin/python"]


ECOSYSTEMS: dict[Ecosystem, EcosystemDescriptor] = {

    # ── Java ────────────────────────────────────────────────────

    Ecosystem.JDK: EcosystemDescriptor(
        id=Ecosystem.JDK,
        display_name="Java JDK",
        catalog_label="OpenJDK",
        order=1,
        env_file="java_env.sh",
        formula_base="openjdk",
        formula_pattern=r"^openjdk(@[0-9]+)?$",
        cellar_layouts=[
            CellarLayout(home="libexec/openjdk.jdk/Contents/Home", binaries=["bin/java"]),
        ],
        read_release_version=True,
        uses_jdk_registry=True,
        binaries=["bin/java"],
        custom_homes=["Contents/Home", ""],
        reserved_paths=[
            "/Library/Java/JavaVirtualMachines",
            "/System/Library/Java",
        ],
        home_var="JAVA_HOME",
    ),

    # ── Node.js ─────────────────────────────────────────────────

    Ecosystem.NODE: EcosystemDescriptor(
        id=Ecosystem.NODE,
        display_name="Node.js",
        catalog_label="Node.js",
        order=2,
        env_file="node_env.sh",
        formula_base="node",
        formula_pattern=r"^node(@[0-9]+)?$",
        cellar_layouts=[CellarLayout(binaries=["bin/node"])],
        version_managers=[
            VersionManagerSource(
                provenance=Provenance.NVM,
                path="~/.nvm/versions/node",
                binaries=["bin/node"],
            ),
        ],
        system_probe=SystemProbe(
            binary="node",
            version_args=["--version"],
            expected_prefix="v",
            version_regex=r"^v(\S+)",
        ),
        binaries=["bin/node"],
    ),

    # ── Python ──────────────────────────────────────────────────

    Ecosystem.PYTHON: EcosystemDescriptor(
        id=Ecosystem.PYTHON,
        display_name="Python",
        catalog_label="Python",
        order=3,
        env_file="python_env.sh",
        formula_base="python",
        versioned_formulas_only=True,
        formula_pattern=r"^python@3\.[0-9]+$",
        cellar_layouts=[
            CellarLayout(binaries=["bin/python{suffix}"] + _PYTHON_BINARIES),
        ],
        version_managers=[
            VersionManagerSource(
                provenance=Provenance.PYENV,
                path="~/.pyenv/versions",
                binaries=_PYTHON_BINARIES,
            ),
            VersionManagerSource(
                provenance=Provenance.ASDF,
                path="~/.asdf/installs/python",
                binaries=_PYTHON_BINARIES,
            ),
        ],
        system_probe=SystemProbe(
            binary="python3",
            version_args=["--version"],
            expected_prefix="Python ",
            version_regex=r"^Python\s+(\S+)",
        ),
        binaries=_PYTHON_BINARIES,
        reserved_paths=["/System/Library/Frameworks/Python.framework"],
    ),

    # ── Go ──────────────────────────────────────────────────────

    Ecosystem.GO: EcosystemDescriptor(
        id=Ecosystem.GO,
        display_name="Go",
        catalog_label="Go",
        order=4,
        env_file="go_env.sh",
        formula_base="go",
        formula_pattern=r"^go(@[0-9.]+)?$",
        # GOROOT lives under libexec; older kegs put bin/ at the top.
        cellar_layouts=[
            CellarLayout(home="libexec", binaries=["bin/go"]),
            CellarLayout(binaries=["bin/go"]),
        ],
        version_managers=[
            VersionManagerSource(
                provenance=Provenance.GVM,
                path="~/.gvm/gos",
                binaries=["bin/go"],
            ),
            VersionManagerSource(
                provenance=Provenance.ASDF,
                path="~/.asdf/installs/golang",
                binaries=["bin/go"],
                nested=["", "go"],
            ),
        ],
        system_probe=SystemProbe(
            binary="go",
            version_args=["version"],
            expected_prefix="go version",
            version_regex=r"^go version go(\S+)",
            root_args=["env", "GOROOT"],
        ),
        binaries=["bin/go"],
        home_var="GOROOT",
    ),
}


def get_descriptor(ecosystem: Ecosystem) -> EcosystemDescriptor:
    """Look up the descriptor for an ecosystem."""
    return ECOSYSTEMS[ecosystem]


def ordered_descriptors() -> list[EcosystemDescriptor]:
    """All descriptors in presentation order."""
    return sorted(ECOSYSTEMS.values(), key=lambda d: d.order)
