"""Long-term memory commands for lorekeeper CLI."""

import json
import logging
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from lorekeeper import Lorekeeper

logger = logging.getLogger(__name__)


def _find_entry(lk: "Lorekeeper", prefix: str):
    """Resolve a memory entry by id or unique id prefix."""
    matches = [e for e in lk.memory.entries if e.id.startswith(prefix)]
    if len(matches) != 1:
        raise ValueError(f"No unique memory entry matches '{prefix}'")
    return matches[0]


def _confidence_bar(confidence: float) -> str:
    filled = int(confidence * 5)
    return "█" * filled + "░" * (5 - filled)


def cmd_memory(args, lk: "Lorekeeper"):
    """Handle memory subcommands."""
    action = args.memory_action

    if action == "add":
        entry = lk.memory.add_entry(args.content, args.tag or [])
        print(f"✓ Memory saved ({entry.id[:8]}, confidence {entry.confidence:.2f})")

    elif action == "list":
        entries = lk.memory.sorted_entries()
        if args.limit:
            entries = entries[: args.limit]
        if args.json:
            print(json.dumps([e.to_dict() for e in entries], indent=2))
            return
        if not entries:
            print("No long-term memories stored.")
            return
        for e in entries:
            tags = f" [{', '.join(e.tags)}]" if e.tags else ""
            print(f"[{_confidence_bar(e.confidence)}] {e.confidence:.2f} {e.id[:8]}  {e.content}{tags}")

    elif action == "edit":
        entry = _find_entry(lk, args.id)
        lk.memory.update_entry(entry.id, args.content, args.tag if args.tag else None)
        print(f"✓ Memory updated ({entry.id[:8]})")

    elif action == "delete":
        entry = _find_entry(lk, args.id)
        lk.memory.delete_entry(entry.id)
        print(f"✓ Memory deleted ({entry.id[:8]})")

    elif action == "clear":
        if not args.yes:
            print("Refusing to clear all memories without --yes")
            return
        count = len(lk.memory)
        lk.memory.clear_all_entries()
        print(f"✓ Cleared {count} memories")

    elif action == "boost":
        entry = _find_entry(lk, args.id)
        boosted = lk.memory.boost_confidence(entry.id, args.delta)
        print(f"✓ Confidence {entry.confidence:.2f} → {boosted.confidence:.2f}")

    elif action == "decay":
        report = lk.memory.decay_confidence(args.rate, args.prune_below)
        print(
            f"✓ Decay sweep: {report.decayed} decayed, {report.pruned} pruned, "
            f"{report.remaining} remaining"
        )
