"""
Core module for shared configuration, schemas and errors.
"""

from startup_search.core.config import Config, settings

__all__ = ["Config", "settings"]
