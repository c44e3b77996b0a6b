# SPDX-License-Identifier: MIT
# Copyright (c) 2026 Ourochronos Contributors

"""Exception hierarchy for wotgraph.

Network and payload problems never surface as exceptions; they degrade to
"no data". The types here cover invalid input at the graph boundary,
configuration errors, and lookups that must name an existing node.
"""

from __future__ import annotations

from typing import Any


class WotGraphException(Exception):  # noqa: N818
    """Base exception for all wotgraph errors."""

    def __init__(self, message: str, details: dict | None = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "error": self.__class__.__name__,
            "message": self.message,
            "details": self.details,
        }


class ValidationException(WotGraphException):
    """Exception for validation errors.

    Raised when:
    - An edge references a node that is not in the graph
    - An identity is not a 64-char hex key or a valid npub
    - A scoring config holds out-of-range values
    """

    def __init__(self, message: str, field: str | None = None, value: Any = None):
        details = {}
        if field:
            details["field"] = field
        if value is not None:
            details["value"] = str(value)
        super().__init__(message, details)
        self.field = field
        self.value = value


class ConfigException(WotGraphException):
    """Exception for configuration errors."""

    def __init__(self, message: str, missing_vars: list[str] | None = None):
        details = {}
        if missing_vars:
            details["missing_vars"] = missing_vars
        super().__init__(message, details)
        self.missing_vars = missing_vars or []


class NotFoundError(WotGraphException):
    """Exception for resource not found errors."""

    def __init__(self, resource_type: str, resource_id: str):
        message = f"{resource_type} not found: {resource_id}"
        details = {
            "resource_type": resource_type,
            "resource_id": resource_id,
        }
        super().__init__(message, details)
        self.resource_type = resource_type
        self.resource_id = resource_id
