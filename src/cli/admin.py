"""
Admin command line: manage destinations, filters, the active model and the ledger.

    newsbot-admin destination add <scope> <id> --channel discord --address <webhook>
    newsbot-admin allow set <scope> <id> futebol base
    newsbot-admin deny add <scope> <id> feminino
    newsbot-admin model set --provider gemini --model gemini-2.5-flash --temperature 0.5
    newsbot-admin ledger count
"""
import argparse
import asyncio
import logging
import sys
from typing import List, Optional

from services.admin import CHANNELS, AdminError, AdminService
from services.config import load_config
from services.logging import setup_logging
from workflows.pipeline_factory import create_pipeline

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="News bot administration")
    parser.add_argument("--config", help="Path to config.yml")
    sub = parser.add_subparsers(dest="group", required=True)

    dest = sub.add_parser("destination", help="Manage destinations").add_subparsers(dest="action", required=True)
    add = dest.add_parser("add")
    add.add_argument("scope")
    add.add_argument("destination_id")
    add.add_argument("--channel", choices=CHANNELS, default="discord")
    add.add_argument("--address", default="")
    remove = dest.add_parser("remove")
    remove.add_argument("scope")
    remove.add_argument("destination_id")
    listing = dest.add_parser("list")
    listing.add_argument("scope", nargs="?")

    allow = sub.add_parser("allow", help="Allow-list categories").add_subparsers(dest="action", required=True)
    allow_set = allow.add_parser("set")
    allow_set.add_argument("scope")
    allow_set.add_argument("destination_id")
    allow_set.add_argument("categories", nargs="+")
    allow_clear = allow.add_parser("clear")
    allow_clear.add_argument("scope")
    allow_clear.add_argument("destination_id")

    deny = sub.add_parser("deny", help="Deny URL patterns").add_subparsers(dest="action", required=True)
    for action in ("add", "remove"):
        p = deny.add_parser(action)
        p.add_argument("scope")
        p.add_argument("destination_id")
        p.add_argument("pattern")

    model = sub.add_parser("model", help="Active model").add_subparsers(dest="action", required=True)
    model.add_parser("show")
    model_set = model.add_parser("set")
    model_set.add_argument("--provider")
    model_set.add_argument("--model")
    model_set.add_argument("--temperature", type=float)
    model_set.add_argument("--max-length", type=int, dest="max_output_length")
    model_set.add_argument("--top-p", type=float, dest="top_p")

    ledger = sub.add_parser("ledger", help="Processed items").add_subparsers(dest="action", required=True)
    ledger.add_parser("count")
    ledger.add_parser("clear")

    return parser


def _describe(destination) -> str:
    allow = ", ".join(sorted(destination.allow_categories)) or "-"
    deny = ", ".join(sorted(destination.deny_url_patterns)) or "-"
    return (
        f"{destination.owner_scope}/{destination.destination_id} [{destination.channel}] "
        f"allow: {allow} | deny: {deny}"
    )


async def execute(admin: AdminService, args: argparse.Namespace) -> str:
    group, action = args.group, args.action

    if group == "destination":
        if action == "add":
            return _describe(await admin.add_destination(args.scope, args.destination_id, args.channel, args.address))
        if action == "remove":
            removed = await admin.remove_destination(args.scope, args.destination_id)
            return "removed" if removed else "not found"
        destinations = await admin.list_destinations(args.scope)
        return "\n".join(_describe(d) for d in destinations) or "no destinations configured"

    if group == "allow":
        if action == "set":
            return _describe(await admin.set_allow_categories(args.scope, args.destination_id, args.categories))
        return _describe(await admin.clear_allow_categories(args.scope, args.destination_id))

    if group == "deny":
        if action == "add":
            return _describe(await admin.add_deny_pattern(args.scope, args.destination_id, args.pattern))
        return _describe(await admin.remove_deny_pattern(args.scope, args.destination_id, args.pattern))

    if group == "model":
        if action == "set":
            config = await admin.set_model(
                provider_id=args.provider,
                model=args.model,
                temperature=args.temperature,
                max_output_length=args.max_output_length,
                top_p=args.top_p,
            )
        else:
            config = await admin.get_model()
        return (
            f"provider={config.provider_id} model={config.model} temperature={config.temperature} "
            f"max_length={config.max_output_length} top_p={config.top_p}"
        )

    if group == "ledger":
        if action == "clear":
            await admin.clear_ledger()
            return "ledger cleared"
        return str(await admin.processed_count())

    raise AdminError(f"Unknown command {group} {action}")


async def run(args: argparse.Namespace) -> int:
    config = load_config(args.config)
    pipeline = create_pipeline(config)
    try:
        print(await execute(pipeline.admin, args))
    except AdminError as e:
        print(f"error: {e}", file=sys.stderr)
        return 1
    return 0


def main(argv: Optional[List[str]] = None) -> None:
    setup_logging(logging.WARNING)
    args = build_parser().parse_args(argv)
    sys.exit(asyncio.run(run(args)))


if __name__ == "__main__":
    main()
