"""Utility functions and helpers for cnc-integrations."""

from .logging import setup_logging
from .validation import validate_config, validate_request

__all__ = ["setup_logging", "validate_request", "validate_config"]
