"""IOBIC marketing site shared package."""

__version__ = "0.1.0"
