"""Tests for the lorekeeper command-line interface."""

import json
from unittest.mock import patch

import pytest

from conftest import LONG_PAGE, StubFetcher, StubSearch, StubSummarizer, make_hits
from lorekeeper import Lorekeeper
from lorekeeper.cli.__main__ import main, validate_input
from lorekeeper.config import Settings
from lorekeeper.ledger import RunLedger
from lorekeeper.storage import SQLiteKeyValueStore

_ENV_VARS = (
    "ANTHROPIC_API_KEY",
    "CLAUDE_API_KEY",
    "OPENAI_API_KEY",
    "LOREKEEPER_MODEL_PROVIDER",
    "LOREKEEPER_LEARNING_ENABLED",
    "LOREKEEPER_SCHEDULE",
    "LOREKEEPER_VERBOSE",
    "LOREKEEPER_MEMORY_ENABLED",
    "LOREKEEPER_MAX_INJECTED",
    "LOREKEEPER_SEARCH_ENABLED",
)


@pytest.fixture
def cli_home(monkeypatch, tmp_path):
    for var in _ENV_VARS:
        monkeypatch.delenv(var, raising=False)
    monkeypatch.setenv("LOREKEEPER_HOME", str(tmp_path))
    return tmp_path


def _json(capsys, argv):
    capsys.readouterr()
    main(argv)
    return json.loads(capsys.readouterr().out)


class TestTopicCommands:
    def test_add_list_disable_remove(self, cli_home, capsys):
        main(["topic", "add", "Rust async runtimes", "--hint", "tokio"])
        assert "Topic added: Rust async runtimes" in capsys.readouterr().out

        topics = _json(capsys, ["topic", "list", "--json"])
        assert [t["name"] for t in topics] == ["Rust async runtimes"]
        topic_id = topics[0]["id"]

        main(["topic", "disable", topic_id[:8]])
        assert _json(capsys, ["topic", "list", "--json"])[0]["enabled"] is False

        main(["topic", "remove", topic_id])
        assert _json(capsys, ["topic", "list", "--json"]) == []

    def test_list_shows_hint(self, cli_home, capsys):
        main(["topic", "add", "Rust async runtimes", "--hint", "tokio"])
        capsys.readouterr()
        main(["topic", "list"])
        assert "Rust async runtimes - tokio" in capsys.readouterr().out

    def test_unknown_topic_exits(self, cli_home):
        with pytest.raises(SystemExit) as exc_info:
            main(["topic", "enable", "deadbeef"])
        assert exc_info.value.code == 1


class TestMemoryCommands:
    def test_add_list_edit_delete(self, cli_home, capsys):
        main(["memory", "add", "Prefers tea", "--tag", "drinks"])
        entries = _json(capsys, ["memory", "list", "--json"])
        assert entries[0]["content"] == "Prefers tea"
        assert entries[0]["tags"] == ["drinks"]
        assert entries[0]["confidence"] == 0.8
        entry_id = entries[0]["id"]

        main(["memory", "edit", entry_id, "Prefers green tea"])
        assert _json(capsys, ["memory", "list", "--json"])[0]["content"] == "Prefers green tea"

        main(["memory", "boost", entry_id])
        assert _json(capsys, ["memory", "list", "--json"])[0]["use_count"] == 1

        main(["memory", "delete", entry_id])
        assert _json(capsys, ["memory", "list", "--json"]) == []

    def test_clear_requires_confirmation(self, cli_home, capsys):
        main(["memory", "add", "Prefers tea"])
        main(["memory", "clear"])
        assert "--yes" in capsys.readouterr().out
        main(["memory", "clear", "--yes"])
        assert _json(capsys, ["memory", "list", "--json"]) == []

    def test_decay(self, cli_home, capsys):
        main(["memory", "add", "Prefers tea"])
        capsys.readouterr()
        main(["memory", "decay"])
        assert "0 pruned, 1 remaining" in capsys.readouterr().out

    def test_context(self, cli_home, capsys):
        main(["context"])
        assert "no long-term memories" in capsys.readouterr().out
        main(["memory", "add", "Prefers tea", "-t", "drinks"])
        capsys.readouterr()
        main(["context"])
        out = capsys.readouterr().out
        assert "Long-term memories about the user" in out
        assert "1. Prefers tea [drinks]" in out


class TestLearnCommands:
    def test_run_disabled_by_default(self, cli_home, capsys):
        main(["learn", "run"])
        assert "disabled" in capsys.readouterr().out

    def test_forced_run_without_model_exits(self, cli_home, capsys):
        main(["topic", "add", "Rust"])
        with pytest.raises(SystemExit) as exc_info:
            main(["learn", "run", "--force"])
        assert exc_info.value.code == 1
        assert "Cannot start learning run" in capsys.readouterr().out

    def test_run_prints_report(self, cli_home, kv_store, capsys):
        lk = Lorekeeper(
            Settings(home=cli_home, learning_enabled=True, search_enabled=True),
            store=kv_store,
            summarizer=StubSummarizer(["Tokio is the most widely used async runtime for Rust."]),
            search=StubSearch(default=make_hits("https://tokio.rs")),
            fetcher=StubFetcher(default=LONG_PAGE),
        )
        lk.topics.add_topic("Rust async runtimes")

        with patch("lorekeeper.cli.__main__.Lorekeeper", return_value=lk):
            main(["learn", "run"])
            out = capsys.readouterr().out
            assert "done, 1 new insight(s)" in out
            assert "Rust async runtimes" in out

            runs = _json(capsys, ["runs", "--json"])
            assert runs[0]["status"] == "done"
            assert runs[0]["insights_saved"] == 1

            main(["learn", "status"])
            assert "Last run:" in capsys.readouterr().out

    def test_due_on_manual_schedule(self, cli_home, capsys):
        main(["learn", "due"])
        assert "Not due (schedule: manual)" in capsys.readouterr().out

    def test_runs_empty(self, cli_home, capsys):
        main(["runs"])
        assert "No learning runs yet." in capsys.readouterr().out


class TestValidateInput:
    def test_strips_control_characters(self):
        assert validate_input("tea\x00\x07 time\n", "content") == "tea time\n"

    def test_too_long(self):
        with pytest.raises(ValueError, match="too long"):
            validate_input("x" * 20, "content", max_length=10)


class TestRecoverCommand:
    def _start_run(self, cli_home):
        ledger = RunLedger(SQLiteKeyValueStore(Settings(home=cli_home).db_path))
        return ledger.start_run(["Rust"])

    def test_other_commands_leave_live_run_alone(self, cli_home, capsys):
        run = self._start_run(cli_home)
        runs = _json(capsys, ["runs", "--json"])
        assert runs[0]["id"] == run.id
        assert runs[0]["status"] == "running"

    def test_recover_skips_live_run(self, cli_home, capsys):
        self._start_run(cli_home)
        capsys.readouterr()
        main(["learn", "recover"])
        assert "Marked 0 running run(s) as failed" in capsys.readouterr().out

    def test_recover_all_fails_live_run(self, cli_home, capsys):
        self._start_run(cli_home)
        capsys.readouterr()
        main(["learn", "recover", "--all"])
        assert "Marked 1 running run(s) as failed" in capsys.readouterr().out
        runs = _json(capsys, ["runs", "--json"])
        assert runs[0]["status"] == "error"
        assert runs[0]["error"] == "Stopped by user"
