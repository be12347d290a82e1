"""Utility functions and helpers."""

from .file_utils import FileHelper
from .logging import resolve_log_directory, setup_logging

__all__ = ["FileHelper", "resolve_log_directory", "setup_logging"]
