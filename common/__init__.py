"""
Common library for reusable infrastructure components.

This package provides generic modules shared by the service packages:

- utils: Standard responses and API exceptions
- config: Base settings class
"""

from common.utils import (
    success_response,
    APIException,
    NotFoundException,
    ValidationException,
)
from common.config import BaseAppSettings

__all__ = [
    # Utils
    "success_response",
    "APIException",
    "NotFoundException",
    "ValidationException",
    # Config
    "BaseAppSettings",
]
