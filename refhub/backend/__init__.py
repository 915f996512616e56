"""
Reference Library Backend Application.

A FastAPI service for storing bibliographic references extracted
from uploaded PDF documents with an AI gateway.
"""

__version__ = "1.0.0"
