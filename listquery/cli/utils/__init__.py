"""CLI output helpers."""

from listquery.cli.utils.formatters import error, header, info, success

__all__ = ["error", "header", "info", "success"]
