"""HTTP surface for the options audit screen."""

__version__ = "1.0.0"

__all__ = ["__version__"]
