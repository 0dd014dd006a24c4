"""Entry point of the cinefeed package. Enables python -m cinefeed."""

import argparse
import asyncio
import sys

from cinefeed.analytics.dashboard import PERIODS


async def _ingest() -> bool:
    """Create tables, then run reference sync and the day-walk."""
    from cinefeed.database import close_database, get_database
    from cinefeed.etl.pipeline import init_services

    db = get_database()
    try:
        await db.create_all()
        outcome = await init_services(
            on_complete=lambda: print("✅ Ingestion complete"),
            db=db,
        )
    finally:
        await close_database()

    print(f"Days ingested : {outcome.days_ingested}")
    if outcome.halted_at is not None:
        print(f"Halted at day : {outcome.halted_at}")
    for error in outcome.errors:
        print(f"  - {error}")
    return outcome.completed


async def _sync_reference() -> bool:
    """Refresh genres and theaters only."""
    from cinefeed.database import DocumentRepository, close_database, get_database
    from cinefeed.etl.extractors import HttpFetcher
    from cinefeed.etl.pipeline import ReferenceSyncer

    db = get_database()
    try:
        await db.create_all()
        async with HttpFetcher() as fetcher:
            results = await ReferenceSyncer(fetcher, DocumentRepository(db)).sync_all()
    finally:
        await close_database()

    for result in results:
        status = "✅" if result.success else "❌"
        detail = f"{result.count} records" if result.success else result.error
        print(f"{status} {result.collection}: {detail}")
    return all(result.success for result in results)


async def _stats(period: str) -> None:
    """Print the usage dashboard for a period."""
    from cinefeed.analytics import UsageService, build_dashboard
    from cinefeed.database import close_database, get_database

    db = get_database()
    try:
        await db.create_all()
        data = await build_dashboard(UsageService(db), period)
    finally:
        await close_database()

    print(f"\n📊 Usage ({data.period})")
    print(f"Calls: {data.total_calls}  Users: {data.total_users}  Endpoints: {data.total_endpoints}")
    print("\nBy user:")
    for stat in data.user_stats:
        print(f"  {stat['username']:<30} {stat['total_calls']:>8}  {stat['last_call']}")
    print("\nBy endpoint:")
    for stat in data.endpoint_stats:
        print(f"  {stat['endpoint']:<30} {stat['total_calls']:>8}  {stat['last_call']}")
    for error in data.errors:
        print(f"⚠️  {error}")


def run_api() -> None:
    """Start the FastAPI reporting API."""
    import uvicorn

    from cinefeed.settings import settings

    print("🌐 Starting cinefeed API...")
    uvicorn.run(
        "cinefeed.api.main:app",
        host=settings.api.host,
        port=settings.api.port,
        reload=settings.api.reload,
    )


def build_parser() -> argparse.ArgumentParser:
    """Build the command line parser."""
    parser = argparse.ArgumentParser(
        prog="cinefeed",
        description="cinefeed - cinema showtimes ingestion and API usage analytics",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m cinefeed ingest                # Reference sync + day-walk
  python -m cinefeed sync-reference        # Genres and theaters only
  python -m cinefeed api                   # Reporting API
  python -m cinefeed stats --period 7d     # Usage summary
        """,
    )

    subparsers = parser.add_subparsers(dest="command", help="Command")
    subparsers.add_parser("ingest", help="Run the full ingestion")
    subparsers.add_parser("sync-reference", help="Refresh genres and theaters")
    subparsers.add_parser("api", help="Start the reporting API")

    stats_parser = subparsers.add_parser("stats", help="Print usage statistics")
    stats_parser.add_argument("--period", choices=list(PERIODS), default="all")

    return parser


def main(argv: list[str] | None = None) -> None:
    """Main CLI."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        sys.exit(1)

    try:
        if args.command in ("ingest", "sync-reference"):
            from cinefeed.settings import settings

            if not settings.showtimes.is_configured:
                print("❌ SHOWTIMES_API_KEY is not set")
                sys.exit(1)

        if args.command == "ingest":
            ok = asyncio.run(_ingest())
            sys.exit(0 if ok else 1)
        elif args.command == "sync-reference":
            ok = asyncio.run(_sync_reference())
            sys.exit(0 if ok else 1)
        elif args.command == "api":
            run_api()
        elif args.command == "stats":
            asyncio.run(_stats(args.period))

    except KeyboardInterrupt:
        print("\n⚠️  Interrupted")
        sys.exit(130)
    except Exception as e:
        print(f"\n❌ ERROR: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
