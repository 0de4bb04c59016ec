"""Theming: themes, revisions, assets and variable providers."""
