"""Utility functions for nekoweb-deploy."""

from nekoweb_deploy.utils.logging import configure_logging, get_logger

__all__ = [
    "configure_logging",
    "get_logger",
]
