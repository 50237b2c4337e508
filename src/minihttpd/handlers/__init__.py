"""
Responders: callables that map a RequestData to a Reply.
"""

from .static import StaticFileResponder

__all__ = ["StaticFileResponder"]
