"""HTTP server platform for publishing built web applications, with layered settings and a CLI."""

__version__ = "0.0.0"