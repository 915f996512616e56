"""
Shared exceptions for AI service modules.
"""


class AIServiceError(Exception):
    """Raised when the AI gateway cannot be reached or rejects a request."""

    pass
