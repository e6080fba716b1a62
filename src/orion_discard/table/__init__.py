"""
Discard table: indexed record view and its renderers.
"""

from .renderer import TableRenderer, TextTableRenderer, VISIBLE_COLUMNS
from .synchronizer import TableSynchronizer

__all__ = ["TableRenderer", "TextTableRenderer", "TableSynchronizer", "VISIBLE_COLUMNS"]
