"""Learning loop, run history and context commands for lorekeeper CLI."""

import json
import logging
import sys
from datetime import timedelta
from typing import TYPE_CHECKING

from lorekeeper.protocols import ConfigurationError

if TYPE_CHECKING:
    from lorekeeper import Lorekeeper

logger = logging.getLogger(__name__)


def cmd_learn(args, lk: "Lorekeeper"):
    """Handle learn subcommands."""
    action = args.learn_action

    if action == "run":
        if args.force:
            lk.pipeline.enabled = True
        if not lk.pipeline.enabled:
            print("Self-learning is disabled. Set LOREKEEPER_LEARNING_ENABLED=true or use --force.")
            return
        try:
            saved = lk.run_learning_loop()
        except ConfigurationError as e:
            print(f"✗ Cannot start learning run: {e}")
            sys.exit(1)
        report = lk.pipeline.last_report
        if report is None:
            print("A learning run is already in progress.")
        elif lk.settings.verbose_output:
            print(report.summary())
        else:
            print(f"✓ Learning run {report.status.value}: {saved} new insight(s)")

    elif action == "due":
        triggered = lk.check_and_run_if_due()
        if not triggered:
            print(f"Not due (schedule: {lk.settings.schedule.value})")
            return
        latest = lk.ledger.latest_run
        if latest is not None:
            print(f"Ran: {latest.status.value}, {latest.insights_saved} new insight(s)")

    elif action == "status":
        latest = lk.ledger.latest_run
        last = lk.ledger.last_run_at
        print(f"Enabled:   {lk.pipeline.enabled}")
        print(f"Schedule:  {lk.settings.schedule.value} (due: {lk.schedule.is_due()})")
        print(f"Topics:    {len(lk.topics.active_topics)} enabled of {len(lk.topics.topics)}")
        print(f"Last run:  {last.isoformat() if last else 'never'}")
        if latest is not None:
            print(f"Latest:    {latest.status.value}, {latest.insights_saved} insight(s)")

    elif action == "recover":
        if args.all:
            count = lk.ledger.recover_interrupted("Stopped by user", older_than=timedelta(0))
        else:
            count = lk.ledger.recover_interrupted()
        print(f"✓ Marked {count} running run(s) as failed")


def cmd_runs(args, lk: "Lorekeeper"):
    """Show recent learning runs."""
    runs = lk.ledger.history[: args.limit]
    if args.json:
        print(json.dumps([r.to_dict() for r in runs], indent=2))
        return
    if not runs:
        print("No learning runs yet.")
        return
    for r in runs:
        line = f"{r.started_at:%Y-%m-%d %H:%M}  {r.status.value:<7}  {r.insights_saved:>3} saved  "
        line += ", ".join(r.topics_processed)
        if r.error:
            line += f"  ({r.error})"
        print(line)


def cmd_context(args, lk: "Lorekeeper"):
    """Print the context message the chat system would receive."""
    message = lk.context.build_context(args.max)
    if message is None:
        print("(no long-term memories to inject)")
        return
    print(message.text)
