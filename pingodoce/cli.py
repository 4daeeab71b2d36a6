"""CLI entry point for the pingodoce tool."""

from __future__ import annotations

import argparse
import json
import logging
import sys
from dataclasses import asdict

from dotenv import load_dotenv

from . import __version__
from .analytics import Analytics, PriceTrend, SpendingReport
from .api import PingoDoceClient
from .config import AppConfig, load_config
from .db import Storage
from .errors import AuthenticationError, ConfigurationError, PingoDoceError
from .health import HealthReport, HealthScorer

logger = logging.getLogger(__name__)


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(
        prog="pingodoce",
        description="Pingo Doce receipts: sync, spending analytics and health report",
    )
    parser.add_argument(
        "--config",
        "-c",
        type=str,
        default=None,
        help="Path to a TOML config file",
    )

    sub = parser.add_subparsers(dest="command")

    # fetch
    fetch_parser = sub.add_parser("fetch", help="Fetch the latest transaction with details")
    fetch_parser.add_argument(
        "--no-save", action="store_false", dest="save",
        help="Do not save the transaction to the database",
    )
    fetch_parser.add_argument("--json", action="store_true", help="Output as JSON")

    # transactions
    txn_parser = sub.add_parser("transactions", help="List transactions from the API")
    txn_parser.add_argument("--page", type=int, default=1, help="Page number")
    txn_parser.add_argument("--size", type=int, default=10, help="Page size")
    txn_parser.add_argument("--json", action="store_true", help="Output as JSON")

    # sync
    sync_parser = sub.add_parser("sync", help="Sync transactions into the local database")
    sync_parser.add_argument("--pages", type=int, default=5, help="Number of pages to fetch")
    sync_parser.add_argument("--size", type=int, default=20, help="Page size")

    # analytics
    an_parser = sub.add_parser("analytics", help="Show spending analytics")
    an_parser.add_argument("--days", type=int, default=30, help="Number of days to analyze")
    an_parser.add_argument("--json", action="store_true", help="Output as JSON")

    # prices
    prices_parser = sub.add_parser("prices", help="Show product price trends")
    prices_parser.add_argument("--product", type=str, default=None, help="Filter by product name")
    prices_parser.add_argument("--json", action="store_true", help="Output as JSON")

    # export
    sub.add_parser("export", help="Export transactions and products to CSV")

    # stats
    stats_parser = sub.add_parser("stats", help="Show database statistics")
    stats_parser.add_argument("--json", action="store_true", help="Output as JSON")

    # health
    health_parser = sub.add_parser("health", help="Score shopping habits by food category")
    health_parser.add_argument(
        "--days", type=int, default=None, help="Only analyze the last N days"
    )
    health_parser.add_argument("--json", action="store_true", help="Output as JSON")
    health_parser.add_argument(
        "--pdf", type=str, default=None, metavar="FILE",
        help="Write the report to a PDF file",
    )

    # enrich
    enrich_parser = sub.add_parser("enrich", help="Fetch catalog data for known products")
    enrich_parser.add_argument(
        "--limit", type=int, default=None, help="Maximum products to enrich"
    )
    enrich_parser.add_argument(
        "--delay", type=float, default=None, help="Seconds to wait between products"
    )

    # import
    import_parser = sub.add_parser("import", help="Import a transactions.json archive")
    import_parser.add_argument(
        "directory", nargs="?", default=None,
        help="Directory holding transactions.json (default: data dir)",
    )

    # version
    sub.add_parser("version", help="Show version")

    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        sys.exit(1)

    load_dotenv()
    try:
        config = load_config(args.config)
    except ConfigurationError as e:
        print(f"Configuration Error: {e}", file=sys.stderr)
        sys.exit(1)
    logging.basicConfig(
        level=getattr(logging, config.logging.level.upper(), logging.INFO),
        format="[%(levelname)s] %(message)s",
    )

    try:
        match args.command:
            case "fetch":
                _cmd_fetch(config, args)
            case "transactions":
                _cmd_transactions(config, args)
            case "sync":
                _cmd_sync(config, args)
            case "analytics":
                _cmd_analytics(config, args)
            case "prices":
                _cmd_prices(config, args)
            case "export":
                _cmd_export(config)
            case "stats":
                _cmd_stats(config, args)
            case "health":
                _cmd_health(config, args)
            case "enrich":
                _cmd_enrich(config, args)
            case "import":
                _cmd_import(config, args)
            case "version":
                print(f"PingoDoce CLI v{__version__}")
    except AuthenticationError as e:
        print(f"Authentication Error: {e}", file=sys.stderr)
        sys.exit(1)
    except PingoDoceError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)


def _open_storage(config: AppConfig) -> Storage:
    return Storage(config.db_path)


def _cmd_fetch(config: AppConfig, args) -> None:
    client = PingoDoceClient(config.api)
    try:
        result = client.latest_transaction_with_details()
    finally:
        client.close()

    if result is None:
        print("No transactions found")
        return

    if args.json:
        print(json.dumps(result, ensure_ascii=False, indent=2))
    else:
        _print_transaction(result["summary"])
        _print_details(result["details"])

    if args.save:
        storage = _open_storage(config)
        try:
            storage.ingest(result["summary"], result["details"])
        finally:
            storage.close()
        if not args.json:
            print("\nTransaction saved to database")


def _cmd_transactions(config: AppConfig, args) -> None:
    client = PingoDoceClient(config.api)
    try:
        client.login()
        txns = client.transactions(page=args.page, size=args.size)
    finally:
        client.close()

    if args.json:
        print(json.dumps(txns, ensure_ascii=False, indent=2))
        return
    if not txns:
        print("No transactions found")
        return

    print("\nTransactions:")
    for i, t in enumerate(txns, 1):
        print(
            f"  {i}. {t.get('transactionDate')} | {t.get('storeName')} | "
            f"{t.get('total')} EUR | {t.get('totalItems')} items"
        )


def _cmd_sync(config: AppConfig, args) -> None:
    from .sync import sync_transactions

    client = PingoDoceClient(config.api)
    storage = _open_storage(config)
    try:
        result = sync_transactions(client, storage, pages=args.pages, size=args.size)
    finally:
        client.close()
        storage.close()

    print(
        f"\nSync complete! Synced: {result.synced}, "
        f"Skipped (already exists): {result.skipped}"
    )
    if result.failed:
        print(f"Failed: {', '.join(result.failed)}", file=sys.stderr)


def _cmd_analytics(config: AppConfig, args) -> None:
    storage = _open_storage(config)
    try:
        report = Analytics(storage, config.data_dir).spending_report(days=args.days)
    finally:
        storage.close()

    if args.json:
        print(json.dumps(report.to_dict(), ensure_ascii=False, indent=2))
    else:
        _print_spending_report(report)


def _cmd_prices(config: AppConfig, args) -> None:
    storage = _open_storage(config)
    try:
        trends = Analytics(storage, config.data_dir).price_trends(args.product)
    finally:
        storage.close()

    if args.json:
        print(json.dumps([t.to_dict() for t in trends], ensure_ascii=False, indent=2))
    elif not trends:
        print("No products with multiple purchases found for price analysis")
    else:
        _print_price_trends(trends)


def _cmd_export(config: AppConfig) -> None:
    storage = _open_storage(config)
    try:
        txn_csv, products_csv = Analytics(storage, config.data_dir).export_csv()
    finally:
        storage.close()
    print("Data exported successfully!")
    print(f"  {txn_csv}")
    print(f"  {products_csv}")


def _cmd_stats(config: AppConfig, args) -> None:
    storage = _open_storage(config)
    try:
        stats = storage.stats()
    finally:
        storage.close()

    if args.json:
        print(json.dumps(stats.to_dict(), ensure_ascii=False, indent=2))
        return

    print("Database Statistics:")
    print(f"  Total transactions: {stats.total_transactions}")
    print(f"  Total products: {stats.total_products}")
    print(f"  Total spent: {stats.total_spent} EUR")
    if stats.earliest:
        print(f"  Date range: {stats.earliest} to {stats.latest}")
    else:
        print("  Date range: No data")


def _cmd_health(config: AppConfig, args) -> None:
    storage = _open_storage(config)
    try:
        report = HealthScorer(storage, days=args.days).generate()
    finally:
        storage.close()

    if args.json:
        print(json.dumps(report.to_dict(), ensure_ascii=False, indent=2))
    else:
        _print_health_report(report)

    if args.pdf:
        from .pdf import generate_pdf

        path = generate_pdf(report, args.pdf)
        print(f"\nPDF written to {path}")


def _cmd_enrich(config: AppConfig, args) -> None:
    from .enricher import ProductEnricher

    limit = args.limit or config.enrichment.batch_size
    delay = args.delay if args.delay is not None else config.enrichment.delay

    storage = _open_storage(config)
    client = PingoDoceClient(config.api)
    try:
        products = storage.products_needing_enrichment(limit=limit)
        if not products:
            print("All products are already enriched")
            return
        client.login()
        enricher = ProductEnricher(client, storage, store_id=config.enrichment.store_id)
        results = enricher.enrich_batch(products, delay=delay)
    finally:
        client.close()
        storage.close()

    print(
        f"Enrichment complete: {results['enriched']} enriched, "
        f"{results['not_found']} not found, {results['errors']} errors"
    )


def _cmd_import(config: AppConfig, args) -> None:
    from .importer import JsonImporter

    directory = args.directory or config.data_dir
    storage = _open_storage(config)
    try:
        result = JsonImporter(storage).import_dir(directory)
    finally:
        storage.close()

    print(
        f"Imported {result['transactions']} transactions "
        f"({result['products']} products), skipped {result['skipped']}"
    )


# --- Output helpers ---


def _print_transaction(summary: dict) -> None:
    print("\nLatest Transaction:")
    print(f"  Date: {summary.get('transactionDate')}")
    print(f"  Store: {summary.get('storeName')}")
    print(f"  Total: {summary.get('total')} EUR")
    print(f"  Items: {summary.get('totalItems')}")


def _print_details(details: dict | None) -> None:
    if not details:
        return
    print("\nProducts:")
    for i, product in enumerate(details.get("products") or [], 1):
        print(
            f"  {i}. {product.get('purchaseQuantity')}x {product.get('name')} "
            f"- {product.get('purchasePrice')} EUR"
        )


def _print_spending_report(report: SpendingReport) -> None:
    if report.is_empty:
        print(report.message)
        return

    print(f"\nSpending Report (Last {report.period_days} days):")
    print(f"  Total Spent: {report.total_spent} EUR")
    print(f"  Transactions: {report.transaction_count}")
    print(f"  Average: {report.average_per_transaction} EUR")

    print("\nBy Store:")
    for store, amount in (report.by_store or {}).items():
        print(f"  {store}: {amount} EUR")

    print("\nBy Day of Week:")
    for day, amount in (report.by_day_of_week or {}).items():
        print(f"  {day}: {amount} EUR")

    if report.top_products:
        print("\nTop Products:")
        for i, (name, count) in enumerate(report.top_products.items(), 1):
            print(f"  {i}. {name} ({count}x)")


def _print_price_trends(trends: list[PriceTrend]) -> None:
    print("\nProduct Price Trends:")
    for trend in trends:
        sign = "+" if trend.price_change >= 0 else ""
        print(f"\n  {trend.name}")
        print(f"    First: {trend.first_seen} at {trend.first_price} EUR")
        print(f"    Last: {trend.last_seen} at {trend.last_price} EUR")
        print(
            f"    Change: {sign}{trend.price_change} EUR "
            f"({sign}{trend.percent_change}%)"
        )
        print(f"    Total purchases: {trend.total_purchases}")


def _print_health_report(report: HealthReport) -> None:
    summary = report.summary
    print("\nHealth Report")
    print(f"  Transactions: {summary['transactions']}")
    print(f"  Total spent: {summary['total_spent_eur']} EUR")
    print(f"  Unique products: {summary['unique_products']}")

    print("\nCategories:")
    for category in report.categories.values():
        print(
            f"  {category.name}: {category.total_purchases} purchases, "
            f"{category.total_spent} EUR"
        )

    if report.health_scores is None:
        print("\nNo categorized purchases to score.")
        return

    print("\nScores:")
    for name, value in asdict(report.health_scores).items():
        print(f"  {name}: {value}")

    if report.recommendations:
        print("\nRecommendations:")
        for rec in report.recommendations:
            print(f"  {rec.priority}. {rec.issue}")
            print(f"     {rec.action}")


if __name__ == "__main__":
    main()
