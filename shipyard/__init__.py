"""Install, manage and launch game ports distributed as GitHub releases."""

__version__ = "0.1.0"