"""Preparation of HTTP requests: client builder, middleware, cookies, bodies and DNS over TLS."""

__version__ = "0.1.0"

__all__ = ["body", "builder", "client", "cookies", "defaults", "dnsovertls", "errors"]