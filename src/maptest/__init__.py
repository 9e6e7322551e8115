"""Visual regression runner for map style documents."""

__version__ = "0.3.0"
