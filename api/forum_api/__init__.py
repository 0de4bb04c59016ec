"""Forum API: themes, discussions and search."""

__version__ = "0.1.0"
