"""forestry-ci: build, gate and release automation for the forestry binaries."""

__version__ = "0.1.0"
