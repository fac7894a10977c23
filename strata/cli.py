"""Command-line interface for Strata"""

import argparse
import asyncio
import logging
import sys

from strata import __version__
from strata.core import StrataCore
from strata.llm import LLMError
from strata.llm.pipeline import describe_error

logger = logging.getLogger(__name__)


def ask_command(core: StrataCore, args):
    """Send one prompt through the guarded pipeline"""
    pending = core.plans.get_pending()
    if pending:
        print(f"Note: the agent is waiting on an answer: {pending.question}")

    try:
        response = asyncio.run(core.pipeline.call(args.prompt))
    except ValueError as e:
        print(f"✗ {e}")
        sys.exit(2)
    except LLMError as e:
        print(f"✗ {describe_error(e)}")
        sys.exit(1)
    print(response)

    status = core.guard.status()
    limit = status.daily_limit if status.daily_limit is not None else "unlimited"
    print(f"\n[{status.used_requests}/{limit} requests today]", file=sys.stderr)


def pending_command(core: StrataCore, args):
    """Show or clear the pending clarification"""
    if args.clear:
        if core.plans.clear_pending():
            print("✓ Pending plan cleared")
        else:
            print("No pending plan")
        return

    plan = core.plans.get_pending()
    if plan is None:
        print("No pending plan")
        return
    print(f"Status:   {plan.status}")
    print(f"Question: {plan.question}")
    if plan.context:
        print(f"Context:  {plan.context}")
    if plan.action_payload:
        print(f"Actions:  {plan.action_payload}")


def memory_command(core: StrataCore, args):
    """List, add or clear long-term memory notes"""
    if args.memory_action == "add":
        text = " ".join(args.text or [])
        if core.memory.add(text):
            print("✓ Remembered")
        else:
            print("✗ Nothing to remember")
            sys.exit(2)
    elif args.memory_action == "clear":
        count = core.memory.clear()
        print(f"✓ Cleared {count} notes")
    else:
        notes = core.memory.list(limit=args.limit)
        if not notes:
            print("No memory notes")
        for note in notes:
            print(f"- {note}")


def main(argv=None):
    """Main CLI entry point"""
    parser = argparse.ArgumentParser(
        prog="strata",
        description="Strata - agent orchestration core"
    )
    parser.add_argument("--config", help="Path to config.yaml")

    subparsers = parser.add_subparsers(dest="command", help="Commands")

    subparsers.add_parser("version", help="Show version")

    ask_parser = subparsers.add_parser("ask", help="Send a prompt to the LLM")
    ask_parser.add_argument("prompt", help="Prompt text")

    pending_parser = subparsers.add_parser("pending", help="Show the pending clarification")
    pending_parser.add_argument("--clear", action="store_true", help="Clear it")

    memory_parser = subparsers.add_parser("memory", help="Long-term memory notes")
    memory_parser.add_argument(
        "memory_action", nargs="?", choices=["list", "add", "clear"], default="list"
    )
    memory_parser.add_argument("text", nargs="*", help="Note text for 'add'")
    memory_parser.add_argument("--limit", type=int, default=20)

    args = parser.parse_args(argv)

    if args.command == "version":
        print(f"Strata v{__version__}")
        return
    if args.command is None:
        parser.print_help()
        return

    core = StrataCore.from_config(args.config)
    if args.command == "ask":
        ask_command(core, args)
    elif args.command == "pending":
        pending_command(core, args)
    elif args.command == "memory":
        memory_command(core, args)


if __name__ == "__main__":
    main()
