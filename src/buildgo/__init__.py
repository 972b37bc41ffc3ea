"""Task automation for Go repositories: build, lint, test and tidy every module."""

__version__ = "0.1.0"
