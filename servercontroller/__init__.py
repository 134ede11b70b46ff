"""Dashboard controller: projects, applications and entrypoints over HTTP, with migrations."""

__version__ = "0.1.0"
__all__ = ["__version__"]