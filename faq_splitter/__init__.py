"""Split a FAQ sheet into keyword categories, one sheet and one report per category."""

__version__ = "0.1.0"
