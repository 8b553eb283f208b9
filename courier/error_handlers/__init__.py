"""
Error handlers package for Courier.

    from courier.error_handlers import register_error_handlers
"""

from .standardized_responses import StandardizedErrorResponse, register_error_handlers

__all__ = ["StandardizedErrorResponse", "register_error_handlers"]
