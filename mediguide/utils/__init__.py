"""
Utility package exports.
"""

from mediguide.utils.logger import get_logger, configure_logging
from mediguide.utils.prompts import load_prompts, load_catalog

__all__ = ["get_logger", "configure_logging", "load_prompts", "load_catalog"]
