#!/usr/bin/env python3
"""
aistaff: command-line client for the AI Staff API.

Usage:
    aistaff register "Jane Doe" jane@example.com secret123
    aistaff login jane@example.com secret123
    aistaff business create "Acme" --goal "Grow sales"
    aistaff agent create <business_id> "Marketing Manager"
    aistaff chat <agent_id> "Create tasks for this week"
    aistaff messages <agent_id>
    aistaff generate <agent_id> post "Spring sale"
    aistaff tasks list

The token and the local task list live in $AISTAFF_HOME (default ~/.aistaff).
"""
import argparse
import json
import os
import sys
import time
from pathlib import Path
from typing import Any, Dict, Optional
from urllib.parse import urljoin

import requests

from aistaff.services.task_extraction import tasks_from_reply
from aistaff.services.task_store import TaskStore


DEFAULT_BASE = os.environ.get("AISTAFF_URL", "http://localhost:8000")
DEFAULT_HOME = os.environ.get("AISTAFF_HOME", str(Path.home() / ".aistaff"))


def _session_file(args) -> Path:
    return Path(args.home) / "session.json"


def _tasks_file(args) -> Path:
    return Path(args.home) / "tasks.json"


def save_token(args, token: str) -> None:
    path = _session_file(args)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps({"token": token, "url": args.url}), encoding="utf-8")


def load_token(args) -> str:
    path = _session_file(args)
    if not path.exists():
        print("❌ Not logged in. Run: aistaff login <email> <password>")
        sys.exit(1)
    return json.loads(path.read_text(encoding="utf-8"))["token"]


def api(args, method: str, path: str, payload: Optional[Dict[str, Any]] = None,
        auth: bool = True, timeout: int = 120) -> Any:
    """Call the API and return decoded JSON; exit with the error body on failure."""
    headers = {"Content-Type": "application/json"}
    if auth:
        headers["Authorization"] = f"Bearer {load_token(args)}"
    try:
        resp = requests.request(
            method,
            urljoin(args.url, f"/api{path}"),
            json=payload,
            headers=headers,
            timeout=timeout,
        )
    except requests.ConnectionError:
        print(f"❌ Cannot connect to {args.url}")
        sys.exit(1)

    if resp.status_code >= 400:
        try:
            body = resp.json()
            detail = body.get("message") or body.get("detail") or body
        except ValueError:
            detail = resp.text[:500]
        print(f"❌ Error {resp.status_code}: {detail}")
        sys.exit(1)
    return resp.json()


def merge_reply_tasks(store: TaskStore, reply: str) -> int:
    """Extract tasks from one completed reply into ``store``; returns how many."""
    return store.merge_extracted(tasks_from_reply(reply))


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------

def cmd_register(args):
    data = api(args, "POST", "/auth/register",
               {"name": args.name, "email": args.email, "password": args.password}, auth=False)
    save_token(args, data["token"])
    print(f"✅ Registered {data['user']['email']}")


def cmd_login(args):
    data = api(args, "POST", "/auth/login",
               {"email": args.email, "password": args.password}, auth=False)
    save_token(args, data["token"])
    print(f"✅ Logged in as {data['user']['email']}")


def cmd_business_create(args):
    payload: Dict[str, Any] = {"name": args.name}
    if args.industry:
        payload["industry"] = args.industry
    if args.description:
        payload["description"] = args.description
    if args.audience:
        payload["targetAudience"] = args.audience
    if args.tone:
        payload["brandTone"] = args.tone
    if args.goal:
        payload["goals"] = args.goal
    data = api(args, "POST", "/business/create", payload)
    print(f"✅ Business created: {data['id']} ({data['name']})")


def cmd_business_list(args):
    for business in api(args, "GET", "/business/all"):
        agents = ", ".join(a["agentName"] for a in business.get("agents", [])) or "no agents"
        print(f"{business['id']}  {business['name']}  [{agents}]")


def cmd_agent_create(args):
    payload = {"businessId": args.business_id, "agentName": args.name}
    if args.persona:
        payload["persona"] = args.persona
    data = api(args, "POST", "/agent/create", payload)
    print(f"✅ Agent created: {data['id']} ({data['agentName']})")


def cmd_chat(args):
    """Send a message; the finished reply is scanned once for tasks."""
    t0 = time.time()
    data = api(args, "POST", f"/agent/{args.agent_id}/chat", {"message": args.message})
    elapsed = time.time() - t0

    reply = data["message"]
    print(reply)
    if data.get("note"):
        print(f"\n⚠️ {data['note']}")
    if args.verbose:
        usage = data.get("usage") or {}
        print(f"\n--- {elapsed:.1f}s | tokens: {usage.get('total_tokens', '?')} ---")

    if args.no_tasks:
        return
    store = TaskStore.load(_tasks_file(args))
    created = merge_reply_tasks(store, reply)
    if created:
        store.save(_tasks_file(args))
        print(f"\n📝 {created} task(s) created")


def cmd_messages(args):
    for msg in api(args, "GET", f"/agent/{args.agent_id}/messages"):
        print(f"[{msg['role']}] {msg['content']}")


def cmd_generate(args):
    data = api(args, "POST", f"/agent/{args.agent_id}/content/create",
               {"type": args.type, "prompt": args.prompt})
    print(data["content"]["data"].get("content", ""))
    if data.get("note"):
        print(f"\n⚠️ {data['note']}")


def cmd_tasks_list(args):
    store = TaskStore.load(_tasks_file(args))
    if not store.tasks:
        print("No tasks")
        return
    for task in store.tasks:
        check = "x" if task.completed else " "
        due = task.due_date.strftime("%Y-%m-%d") if task.due_date else "-"
        marker = " (AI)" if task.ai_generated else ""
        print(f"[{check}] {task.id[:8]}  {task.title}  ({task.priority.value}, due {due}){marker}")


def cmd_tasks_add(args):
    store = TaskStore.load(_tasks_file(args))
    task = store.add(args.title, priority=args.priority)
    store.save(_tasks_file(args))
    print(f"✅ Added {task.id[:8]}")


def _resolve_task_id(store: TaskStore, prefix: str) -> str:
    matches = [t.id for t in store.tasks if t.id.startswith(prefix)]
    if len(matches) != 1:
        print(f"❌ No unique task matches '{prefix}'")
        sys.exit(1)
    return matches[0]


def cmd_tasks_toggle(args):
    store = TaskStore.load(_tasks_file(args))
    task = store.toggle(_resolve_task_id(store, args.task_id))
    store.save(_tasks_file(args))
    print(f"{'✅ Done' if task.completed else '↩️ Reopened'}: {task.title}")


def cmd_tasks_delete(args):
    store = TaskStore.load(_tasks_file(args))
    store.delete(_resolve_task_id(store, args.task_id))
    store.save(_tasks_file(args))
    print("🗑️ Deleted")


def cmd_status(args):
    """Check service health."""
    try:
        resp = requests.get(urljoin(args.url, "/health"), timeout=10)
    except requests.ConnectionError:
        print(f"❌ Cannot connect to {args.url}")
        sys.exit(1)
    data = resp.json()
    print(f"Status: {'✅ OK' if resp.status_code == 200 else '❌ ERROR'}")
    print(f"Database: {data.get('database', '?')}")
    print(f"Provider configured: {data.get('provider_configured', '?')}")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="aistaff",
        description="AI Staff CLI: chat with brand-aware agents and track their tasks",
    )
    parser.add_argument("--url", default=DEFAULT_BASE, help="API base URL")
    parser.add_argument("--home", default=DEFAULT_HOME, help="Directory for token and task list")
    parser.add_argument("--verbose", "-v", action="store_true", help="Verbose output")

    sub = parser.add_subparsers(dest="command", help="Command")

    # register / login
    p_reg = sub.add_parser("register", help="Create an account")
    p_reg.add_argument("name")
    p_reg.add_argument("email")
    p_reg.add_argument("password")
    p_reg.set_defaults(func=cmd_register)

    p_login = sub.add_parser("login", help="Log in and store the token")
    p_login.add_argument("email")
    p_login.add_argument("password")
    p_login.set_defaults(func=cmd_login)

    # business
    p_biz = sub.add_parser("business", help="Manage businesses")
    biz_sub = p_biz.add_subparsers(dest="business_command", required=True)
    p_biz_create = biz_sub.add_parser("create", help="Create a business")
    p_biz_create.add_argument("name")
    p_biz_create.add_argument("--industry")
    p_biz_create.add_argument("--description")
    p_biz_create.add_argument("--audience", help="Target audience")
    p_biz_create.add_argument("--tone", help="Brand tone")
    p_biz_create.add_argument("--goal", action="append", help="Business goal (repeatable)")
    p_biz_create.set_defaults(func=cmd_business_create)
    p_biz_list = biz_sub.add_parser("list", help="List businesses")
    p_biz_list.set_defaults(func=cmd_business_list)

    # agent
    p_agent = sub.add_parser("agent", help="Manage agents")
    agent_sub = p_agent.add_subparsers(dest="agent_command", required=True)
    p_agent_create = agent_sub.add_parser("create", help="Create an agent")
    p_agent_create.add_argument("business_id")
    p_agent_create.add_argument("name")
    p_agent_create.add_argument("--persona", help="Persona script used instead of the brand profile")
    p_agent_create.set_defaults(func=cmd_agent_create)

    # chat / messages
    p_chat = sub.add_parser("chat", help="Send a message to an agent")
    p_chat.add_argument("agent_id")
    p_chat.add_argument("message")
    p_chat.add_argument("--no-tasks", action="store_true", help="Skip task extraction")
    p_chat.set_defaults(func=cmd_chat)

    p_msgs = sub.add_parser("messages", help="Show an agent's conversation")
    p_msgs.add_argument("agent_id")
    p_msgs.set_defaults(func=cmd_messages)

    # generate
    p_gen = sub.add_parser("generate", help="Generate marketing content")
    p_gen.add_argument("agent_id")
    p_gen.add_argument("type", choices=["post", "caption", "ad", "blog", "email"])
    p_gen.add_argument("prompt")
    p_gen.set_defaults(func=cmd_generate)

    # tasks
    p_tasks = sub.add_parser("tasks", help="Local task list")
    tasks_sub = p_tasks.add_subparsers(dest="tasks_command", required=True)
    tasks_sub.add_parser("list", help="List tasks").set_defaults(func=cmd_tasks_list)
    p_add = tasks_sub.add_parser("add", help="Add a task")
    p_add.add_argument("title")
    p_add.add_argument("--priority", choices=["low", "medium", "high"], default="medium")
    p_add.set_defaults(func=cmd_tasks_add)
    p_toggle = tasks_sub.add_parser("toggle", help="Mark a task done / not done")
    p_toggle.add_argument("task_id", help="Task id or unique prefix")
    p_toggle.set_defaults(func=cmd_tasks_toggle)
    p_del = tasks_sub.add_parser("delete", help="Delete a task")
    p_del.add_argument("task_id", help="Task id or unique prefix")
    p_del.set_defaults(func=cmd_tasks_delete)

    # status
    p_status = sub.add_parser("status", help="Check service health")
    p_status.set_defaults(func=cmd_status)

    return parser


def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)
    if not args.command:
        parser.print_help()
        return

    args.func(args)


if __name__ == "__main__":
    main()
