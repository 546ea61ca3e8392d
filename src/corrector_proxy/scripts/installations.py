"""Operator utility to inspect installations and toggle the ban flag."""
from __future__ import annotations

import argparse
import asyncio
import sys
from collections.abc import Sequence

from corrector_proxy.core.settings import ConfigurationError, load_settings
from corrector_proxy.db.session import create_session_factory
from corrector_proxy.services.registry import InstallationRegistry


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Manage corrector proxy installations")
    parser.add_argument(
        "--url",
        default=None,
        help="Override database URL (defaults to DATABASE_URL from settings)",
    )
    sub = parser.add_subparsers(dest="command", required=True)
    sub.add_parser("list", help="List every installation")
    ban = sub.add_parser("ban", help="Ban an installation")
    ban.add_argument("install_id")
    unban = sub.add_parser("unban", help="Lift a ban")
    unban.add_argument("install_id")
    return parser


def _resolve_url(override: str | None) -> str:
    if override:
        return override
    try:
        return load_settings().database_url
    except ConfigurationError as exc:
        print(f"[installations] ERROR: {exc}", file=sys.stderr)
        sys.exit(1)


async def _run(registry: InstallationRegistry, args: argparse.Namespace) -> int:
    if args.command == "list":
        for record in await registry.list_installations():
            flag = "banned" if record.banned else "active"
            print(
                f"{record.install_id}  {flag:<6}  plan={record.plan}  "
                f"created={record.created_at.isoformat()}  "
                f"last_seen={record.last_seen_at.isoformat()}"
            )
        return 0

    banned = args.command == "ban"
    if not await registry.set_banned(args.install_id, banned):
        print(f"[installations] unknown install_id {args.install_id}", file=sys.stderr)
        return 1
    print(f"[installations] {args.install_id} {'banned' if banned else 'unbanned'}")
    return 0


def main(argv: Sequence[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    registry = InstallationRegistry(create_session_factory(_resolve_url(args.url)))
    return asyncio.run(_run(registry, args))


if __name__ == "__main__":
    sys.exit(main())
