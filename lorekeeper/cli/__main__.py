"""
Lorekeeper CLI - Command-line interface for self-learning long-term memory.

Usage:
    lorekeeper topic add NAME [--hint HINT]
    lorekeeper topic list [--json]
    lorekeeper topic enable|disable|remove ID
    lorekeeper memory add CONTENT [--tag T]...
    lorekeeper memory list [--limit N] [--json]
    lorekeeper memory edit ID CONTENT [--tag T]...
    lorekeeper memory delete|boost ID
    lorekeeper memory clear --yes
    lorekeeper memory decay [--rate R] [--prune-below P]
    lorekeeper learn run [--force]
    lorekeeper learn due
    lorekeeper learn status
    lorekeeper learn recover [--all]
    lorekeeper runs [--limit N] [--json]
    lorekeeper context [--max N]
"""

import argparse
import logging
import re
import sys

from lorekeeper import Lorekeeper
from lorekeeper.cli.commands import cmd_context, cmd_learn, cmd_memory, cmd_runs, cmd_topic
from lorekeeper.memory import DEFAULT_BOOST, DEFAULT_DECAY_RATE, DEFAULT_PRUNE_BELOW
from lorekeeper.protocols import ConfigurationError, LorekeeperError

# Set up logging
logging.basicConfig(level=logging.WARNING)
logger = logging.getLogger(__name__)


def validate_input(value: str, field_name: str, max_length: int = 1000) -> str:
    """Validate and sanitize CLI text inputs."""
    if len(value) > max_length:
        raise ValueError(f"{field_name} too long (max {max_length} characters)")
    # Remove null bytes and control characters except newlines
    return re.sub(r"[\x00-\x08\x0b\x0c\x0e-\x1f\x7f]", "", value)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="lorekeeper",
        description="Self-learning long-term memory for conversational agents",
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Show progress logging")

    subparsers = parser.add_subparsers(dest="command", required=True)

    # topic
    p_topic = subparsers.add_parser("topic", help="Manage learning topics")
    topic_sub = p_topic.add_subparsers(dest="topic_action", required=True)
    t_add = topic_sub.add_parser("add", help="Add a learning topic")
    t_add.add_argument("name", help="Topic name, used as the search query")
    t_add.add_argument("--hint", help="Extra words appended to the search query")
    t_list = topic_sub.add_parser("list", help="List learning topics")
    t_list.add_argument("--json", "-j", action="store_true")
    for action in ("enable", "disable", "remove"):
        t_act = topic_sub.add_parser(action, help=f"{action.capitalize()} a topic")
        t_act.add_argument("id", help="Topic ID (or unique prefix)")

    # memory
    p_memory = subparsers.add_parser("memory", help="Manage long-term memories")
    mem_sub = p_memory.add_subparsers(dest="memory_action", required=True)
    m_add = mem_sub.add_parser("add", help="Store a fact")
    m_add.add_argument("content", help="The fact to remember")
    m_add.add_argument("--tag", "-t", action="append", help="Tag (repeatable)")
    m_list = mem_sub.add_parser("list", help="List memories, best first")
    m_list.add_argument("--limit", "-l", type=int, default=0)
    m_list.add_argument("--json", "-j", action="store_true")
    m_edit = mem_sub.add_parser("edit", help="Change a memory's content")
    m_edit.add_argument("id", help="Memory ID (or unique prefix)")
    m_edit.add_argument("content", help="New content")
    m_edit.add_argument("--tag", "-t", action="append", help="Replace tags (repeatable)")
    m_delete = mem_sub.add_parser("delete", help="Delete a memory")
    m_delete.add_argument("id", help="Memory ID (or unique prefix)")
    m_clear = mem_sub.add_parser("clear", help="Delete every memory")
    m_clear.add_argument("--yes", "-y", action="store_true", help="Confirm")
    m_boost = mem_sub.add_parser("boost", help="Reinforce a memory")
    m_boost.add_argument("id", help="Memory ID (or unique prefix)")
    m_boost.add_argument("--delta", type=float, default=DEFAULT_BOOST)
    m_decay = mem_sub.add_parser("decay", help="Age memories and prune weak ones")
    m_decay.add_argument("--rate", type=float, default=DEFAULT_DECAY_RATE,
                         help="Confidence lost per week since last use")
    m_decay.add_argument("--prune-below", dest="prune_below", type=float,
                         default=DEFAULT_PRUNE_BELOW)

    # learn
    p_learn = subparsers.add_parser("learn", help="Run the self-learning loop")
    learn_sub = p_learn.add_subparsers(dest="learn_action", required=True)
    l_run = learn_sub.add_parser("run", help="Run the loop now over enabled topics")
    l_run.add_argument("--force", "-f", action="store_true",
                       help="Run even when learning is disabled in settings")
    learn_sub.add_parser("due", help="Run the loop only if the schedule says so")
    learn_sub.add_parser("status", help="Show learning status")
    l_recover = learn_sub.add_parser("recover", help="Mark a stuck running run as failed")
    l_recover.add_argument("--all", action="store_true",
                           help="Fail every running run, not only stale ones")

    # runs
    p_runs = subparsers.add_parser("runs", help="Show recent learning runs")
    p_runs.add_argument("--limit", "-l", type=int, default=10)
    p_runs.add_argument("--json", "-j", action="store_true")

    # context
    p_context = subparsers.add_parser("context", help="Print the injected memory context")
    p_context.add_argument("--max", type=int, default=None,
                           help="Entries to include (0 = all)")

    return parser


def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.verbose:
        logging.getLogger("lorekeeper").setLevel(logging.INFO)

    for field_name in ("name", "hint", "content"):
        value = getattr(args, field_name, None)
        if value is not None:
            try:
                setattr(args, field_name, validate_input(value, field_name))
            except ValueError as e:
                logger.error(f"Input validation error: {e}")
                sys.exit(1)

    try:
        lk = Lorekeeper()
    except LorekeeperError as e:
        logger.error(f"Failed to initialize Lorekeeper: {e}")
        sys.exit(1)

    # Dispatch with error handling
    try:
        if args.command == "topic":
            cmd_topic(args, lk)
        elif args.command == "memory":
            cmd_memory(args, lk)
        elif args.command == "learn":
            cmd_learn(args, lk)
        elif args.command == "runs":
            cmd_runs(args, lk)
        elif args.command == "context":
            cmd_context(args, lk)
    except ConfigurationError as e:
        logger.error(f"Configuration error: {e}")
        sys.exit(1)
    except (ValueError, TypeError) as e:
        logger.error(f"Input validation error: {e}")
        sys.exit(1)
    except Exception as e:
        logger.error(f"Command failed: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
