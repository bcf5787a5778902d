"""CLI command modules for lorekeeper.

Each module holds the handlers for one command group.
"""

from lorekeeper.cli.commands.learn import cmd_context, cmd_learn, cmd_runs
from lorekeeper.cli.commands.memory import cmd_memory
from lorekeeper.cli.commands.topic import cmd_topic

__all__ = ["cmd_context", "cmd_learn", "cmd_memory", "cmd_runs", "cmd_topic"]
