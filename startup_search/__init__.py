"""
Hybrid structured and semantic search over startup companies.
"""

__version__ = "0.1.0"
