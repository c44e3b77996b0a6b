# SPDX-License-Identifier: MIT
# Copyright (c) 2026 Ourochronos Contributors

"""wotgraph CLI - Web of Trust exploration from the terminal."""

from .main import app, main

__all__ = ["main", "app"]
