"""
Utility functions for the sendmail front end.

This package contains reusable service functions for message parsing and
gateway configuration.
"""

__all__ = ['email', 'config']
