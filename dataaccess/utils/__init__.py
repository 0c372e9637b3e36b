"""
Utilities package for the data-access layer.

Exports shared helpers for logging and value classification. Keep this
package lightweight and free of model logic.
"""

from dataaccess.utils.logging import configure_logging, get_logger
from dataaccess.utils.values import is_empty, loosely_equal

__all__ = [
    "configure_logging",
    "get_logger",
    "is_empty",
    "loosely_equal",
]
