"""
Tests for the local task store and the CLI's reply-to-task hook
"""

import json
from datetime import datetime, timedelta

import pytest

from aistaff.cli import build_parser, merge_reply_tasks
from aistaff.errors import NotFoundError
from aistaff.services.task_extraction import TaskPriority, tasks_from_reply
from aistaff.services.task_store import TaskStore


class TestTaskStore:

    def test_add_prepends(self):
        store = TaskStore()
        first = store.add("Write newsletter")
        second = store.add("Call supplier", priority="high")

        assert [t.id for t in store.tasks] == [second.id, first.id]
        assert second.priority == TaskPriority.HIGH
        assert first.ai_generated is False

    def test_toggle(self):
        store = TaskStore()
        task = store.add("Write newsletter")
        assert store.toggle(task.id).completed is True
        assert store.toggle(task.id).completed is False

    def test_update(self):
        store = TaskStore()
        task = store.add("Write newsletter")
        due = datetime(2026, 5, 1)
        store.update(task.id, title="Write April newsletter", priority="low", due_date=due)

        assert task.title == "Write April newsletter"
        assert task.priority == TaskPriority.LOW
        assert task.due_date == due

    def test_update_rejects_unknown_field(self):
        store = TaskStore()
        task = store.add("Write newsletter")
        with pytest.raises(ValueError):
            store.update(task.id, id="other")

    def test_delete(self):
        store = TaskStore()
        task = store.add("Write newsletter")
        store.delete(task.id)
        assert len(store) == 0

    def test_missing_task(self):
        store = TaskStore()
        with pytest.raises(NotFoundError):
            store.toggle("nope")
        with pytest.raises(NotFoundError):
            store.delete("nope")

    def test_merge_extracted_prepends_batch_in_order(self):
        store = TaskStore()
        manual = store.add("Existing task")
        extracted = tasks_from_reply("I'll draft a plan. I'll review the budget.")

        created = store.merge_extracted(extracted)

        assert created == 2
        assert [t.title for t in store.tasks] == ["draft a plan", "review the budget", "Existing task"]
        assert store.tasks[-1].id == manual.id

    def test_merge_does_not_dedupe_against_existing(self):
        store = TaskStore()
        store.merge_extracted(tasks_from_reply("I'll draft a plan."))
        store.merge_extracted(tasks_from_reply("I'll draft a plan."))
        assert [t.title for t in store.tasks] == ["draft a plan", "draft a plan"]

    def test_merge_nothing(self):
        store = TaskStore()
        assert store.merge_extracted([]) == 0

    def test_pending(self):
        store = TaskStore()
        done = store.add("Done task")
        store.add("Open task")
        store.toggle(done.id)
        assert [t.title for t in store.pending()] == ["Open task"]


class TestPersistence:

    def test_save_and_load(self, tmp_path):
        path = tmp_path / "tasks.json"
        store = TaskStore()
        store.add("Manual task", priority="high")
        store.merge_extracted(tasks_from_reply("I'll draft a proposal.", now=datetime(2026, 1, 1)))
        store.save(path)

        loaded = TaskStore.load(path)
        assert [t.to_dict() for t in loaded.tasks] == [t.to_dict() for t in store.tasks]
        assert loaded.tasks[0].due_date == datetime(2026, 1, 1) + timedelta(days=7)
        assert loaded.tasks[0].ai_generated is True

    def test_load_missing_file(self, tmp_path):
        assert len(TaskStore.load(tmp_path / "missing.json")) == 0

    def test_load_unreadable_file(self, tmp_path):
        path = tmp_path / "tasks.json"
        path.write_text("{oops", encoding="utf-8")
        assert len(TaskStore.load(path)) == 0

    def test_saved_format(self, tmp_path):
        path = tmp_path / "nested" / "tasks.json"
        store = TaskStore()
        store.add("Manual task")
        store.save(path)

        data = json.loads(path.read_text(encoding="utf-8"))
        assert data[0]["title"] == "Manual task"
        assert data[0]["priority"] == "medium"
        assert data[0]["completed"] is False


class TestCliTaskHook:

    def test_merge_reply_tasks(self):
        store = TaskStore()
        created = merge_reply_tasks(store, "I'll schedule three client calls. I'll draft a proposal.")
        assert created == 2
        assert store.tasks[0].title == "schedule three client calls"

    def test_parser_commands(self):
        parser = build_parser()
        args = parser.parse_args(["chat", "agent-1", "Create tasks for this week"])
        assert args.agent_id == "agent-1"
        assert args.message == "Create tasks for this week"
        assert args.no_tasks is False

        args = parser.parse_args(["generate", "agent-1", "post", "Spring sale"])
        assert args.type == "post"

        with pytest.raises(SystemExit):
            parser.parse_args(["generate", "agent-1", "tweet", "Spring sale"])
