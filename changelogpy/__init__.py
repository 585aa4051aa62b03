"""Command-line entry point for changelog generation."""

__version__ = "0.1.0"

# Lazy import to avoid loading GitPython just to read the version
def __getattr__(name):
    if name == "main":
        from .cli import main
        return main
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")

__all__ = ['main', '__version__']
