"""
Lead intake service for multi-brand legal lead generation sites.
"""

__version__ = "1.0.0"
