# SPDX-License-Identifier: MIT
# Copyright (c) 2026 Ourochronos Contributors

"""Output formatting for CLI commands."""

from __future__ import annotations

import json
import sys
from typing import Any


def output_result(data: dict[str, Any] | list[Any], output_format: str = "json") -> None:
    """Print a result as pretty JSON, or its ``formatted`` text in text mode."""
    if output_format == "text" and isinstance(data, dict) and "formatted" in data:
        print(data["formatted"])
    else:
        print(json.dumps(data, indent=2, default=str))


def output_error(message: str) -> None:
    """Print error message to stderr."""
    print(f"Error: {message}", file=sys.stderr)
