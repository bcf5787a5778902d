"""Learning topic commands for lorekeeper CLI."""

import json
import logging
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from lorekeeper import Lorekeeper

logger = logging.getLogger(__name__)


def _find_topic(lk: "Lorekeeper", prefix: str):
    """Resolve a topic by id or unique id prefix."""
    matches = [t for t in lk.topics.topics if t.id.startswith(prefix)]
    if len(matches) != 1:
        raise ValueError(f"No unique topic matches '{prefix}'")
    return matches[0]


def cmd_topic(args, lk: "Lorekeeper"):
    """Handle topic subcommands."""
    action = args.topic_action

    if action == "add":
        topic = lk.topics.add_topic(args.name, args.hint or "")
        print(f"✓ Topic added: {topic.name} ({topic.id[:8]})")

    elif action == "list":
        topics = lk.topics.topics
        if args.json:
            print(json.dumps([t.to_dict() for t in topics], indent=2))
            return
        if not topics:
            print("No learning topics yet. Add one with: lorekeeper topic add NAME")
            return
        for t in topics:
            mark = "●" if t.enabled else "○"
            hint = f" - {t.hint}" if t.hint else ""
            print(f"{mark} {t.id[:8]}  {t.name}{hint}")

    elif action in ("enable", "disable"):
        topic = _find_topic(lk, args.id)
        lk.topics.update_topic(topic.id, enabled=(action == "enable"))
        print(f"✓ Topic {action}d: {topic.name}")

    elif action == "remove":
        topic = _find_topic(lk, args.id)
        lk.topics.delete_topic(topic.id)
        print(f"✓ Topic removed: {topic.name}")
