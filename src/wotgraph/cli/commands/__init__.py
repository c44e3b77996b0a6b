# SPDX-License-Identifier: MIT
# Copyright (c) 2026 Ourochronos Contributors

"""CLI command modules for wotgraph.

Each module exposes a ``register(subparsers)`` function that wires up
its argparse sub-commands and sets ``parser.set_defaults(func=handler)``.
"""

from . import graph, profile, score
from .graph import cmd_graph
from .profile import cmd_notes, cmd_profile
from .score import cmd_score

# All command modules with register() functions, in registration order.
COMMAND_MODULES = [graph, score, profile]

__all__ = [
    "COMMAND_MODULES",
    "cmd_graph",
    "cmd_score",
    "cmd_profile",
    "cmd_notes",
]
