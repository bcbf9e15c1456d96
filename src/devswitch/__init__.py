"""devswitch — discover, switch, and prune language toolchain installations."""

__version__ = "0.1.0"
