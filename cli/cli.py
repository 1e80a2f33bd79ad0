# cli/cli.py
"""
Admin commands for the lead intake service.

Brands and case types have no HTTP surface; this is how they are managed.
"""
from __future__ import annotations

import argparse
import asyncio
import os
import sys
from typing import Callable, Dict, Optional

from sqlalchemy import select

from cli.verification import check_api_health
from intake.db import session as db_session
from intake.db.base import Base
from intake.db.session import transaction_session
from intake.models import CASE_TYPE_STATUSES, Brand, CaseType
from intake.services.brand_resolver import normalize_host


def _supports_color() -> bool:
    if sys.platform == "win32":
        return os.getenv("TERM") == "xterm" or os.getenv("ANSICON") is not None
    return sys.stdout.isatty()


SUPPORTS_COLOR = _supports_color()

GREEN = '\033[92m' if SUPPORTS_COLOR else ''
RED = '\033[91m' if SUPPORTS_COLOR else ''
BLUE = '\033[94m' if SUPPORTS_COLOR else ''
RESET = '\033[0m' if SUPPORTS_COLOR else ''


def print_success(message: str):
    print(f"{GREEN}[✓]{RESET} {message}")


def print_error(message: str):
    print(f"{RED}[✗]{RESET} {message}")


def print_info(message: str):
    print(f"{BLUE}[i]{RESET} {message}")


async def cmd_init_db(args: argparse.Namespace) -> int:
    """Command: create any missing tables."""
    print_info("Creating tables...")
    async with db_session.engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    print_success(f"Tables ready: {', '.join(sorted(Base.metadata.tables))}")
    return 0


async def cmd_add_brand(args: argparse.Namespace) -> int:
    """Command: register a brand and the domain it serves."""
    domain = normalize_host(args.domain)
    if not domain:
        print_error("Domain is required")
        return 1

    async with transaction_session() as session:
        existing = await session.scalar(
            select(Brand).where((Brand.slug == args.slug) | (Brand.domain == domain))
        )
        if existing is not None:
            print_error(f"Brand already exists: {existing.slug} ({existing.domain})")
            return 1

        brand = Brand(slug=args.slug, domain=domain, name=args.name or args.slug, active=True)
        session.add(brand)
        await session.flush()
        brand_id = brand.id

    print_success(f"Brand {args.slug} created (id={brand_id}, domain={domain})")
    return 0


async def cmd_deactivate_brand(args: argparse.Namespace) -> int:
    """Command: stop accepting leads for a brand."""
    async with transaction_session() as session:
        brand = await session.scalar(select(Brand).where(Brand.slug == args.slug))
        if brand is None:
            print_error(f"Brand not found: {args.slug}")
            return 1
        brand.active = False

    print_success(f"Brand {args.slug} deactivated")
    return 0


async def cmd_add_case_type(args: argparse.Namespace) -> int:
    """Command: add a case type under a brand."""
    async with transaction_session() as session:
        brand = await session.scalar(select(Brand).where(Brand.slug == args.brand))
        if brand is None:
            print_error(f"Brand not found: {args.brand}")
            return 1

        case_type = CaseType(
            brand_id=brand.id,
            slug=args.slug,
            name=args.name or args.slug,
            category=args.category,
            status=args.status,
        )
        session.add(case_type)
        await session.flush()
        case_type_id = case_type.id

    print_success(f"Case type {args.brand}/{args.slug} created (id={case_type_id}, status={args.status})")
    return 0


async def cmd_check_api(args: argparse.Namespace) -> int:
    """Command: verify a running API answers its probes."""
    print_info(f"Checking API at {args.api_url}...")
    result = await check_api_health(api_url=args.api_url)

    if result.success:
        print_success(result.message)
        return 0

    print_error(result.message)
    for failure in result.data.get("failures", []):
        print_error(f"  {failure}")
    return 1


COMMANDS: Dict[str, Callable] = {
    'init-db': cmd_init_db,
    'add-brand': cmd_add_brand,
    'deactivate-brand': cmd_deactivate_brand,
    'add-case-type': cmd_add_case_type,
    'check-api': cmd_check_api,
}


def create_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='intake-cli',
        description='Lead intake administration',
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    subparsers = parser.add_subparsers(dest='command', help='Command to execute')

    subparsers.add_parser('init-db', help='Create database tables')

    brand_parser = subparsers.add_parser('add-brand', help='Register a brand')
    brand_parser.add_argument('slug', help='Brand slug')
    brand_parser.add_argument('domain', help='Host the brand is served from, e.g. example.com or localhost:3002')
    brand_parser.add_argument('--name', default=None, help='Display name (defaults to slug)')

    deactivate_parser = subparsers.add_parser('deactivate-brand', help='Deactivate a brand')
    deactivate_parser.add_argument('slug', help='Brand slug')

    case_parser = subparsers.add_parser('add-case-type', help='Add a case type to a brand')
    case_parser.add_argument('brand', help='Brand slug')
    case_parser.add_argument('slug', help='Case type slug')
    case_parser.add_argument('--name', default=None, help='Display name (defaults to slug)')
    case_parser.add_argument('--category', default='other', help='Category')
    case_parser.add_argument('--status', default='active', choices=CASE_TYPE_STATUSES, help='Initial status')

    api_parser = subparsers.add_parser('check-api', help='Verify a running API')
    api_parser.add_argument('--api-url', default='http://localhost:8000', help='API URL')

    return parser


def main(args: Optional[list] = None) -> int:
    """Main CLI entry point."""
    parser = create_parser()
    parsed_args = parser.parse_args(args)

    if not parsed_args.command:
        parser.print_help()
        return 1

    command_func = COMMANDS.get(parsed_args.command)
    if not command_func:
        print_error(f"Unknown command: {parsed_args.command}")
        parser.print_help()
        return 1

    try:
        return asyncio.run(command_func(parsed_args))
    except KeyboardInterrupt:
        print_error("\nInterrupted by user")
        return 130
    except Exception as e:
        print_error(f"Error executing command: {str(e)}")
        if os.getenv('DEBUG'):
            import traceback
            traceback.print_exc()
        return 1


if __name__ == '__main__':
    sys.exit(main())
