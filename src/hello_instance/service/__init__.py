"""HTTP surface of the instance."""

from .app import DEFAULT_RESPONSE_DELAY, create_app, make_hello_handler

__all__ = ["DEFAULT_RESPONSE_DELAY", "create_app", "make_hello_handler"]
