"""Engagement-likelihood ranking for social posts."""

__version__ = "0.1.0"
