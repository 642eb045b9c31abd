from __future__ import annotations

import argparse
import asyncio
import json
import sys
from collections.abc import Sequence

from scriptflow_supervisor.config import configure_logging, load_config
from scriptflow_supervisor.core.executor import QueryExecutionError
from scriptflow_supervisor.core.models import Session
from scriptflow_supervisor.core.query_parser import get_query_help
from scriptflow_supervisor.runtime import Runtime, build_runtime
from scriptflow_supervisor.tools.alerts import evaluate_alerts_impl
from scriptflow_supervisor.tools.search import parse_query_impl, search_logs_impl


async def _search(runtime: Runtime, args: argparse.Namespace) -> int:
    result = await search_logs_impl(
        runtime,
        Session(user_id=args.user),
        query=" ".join(args.query),
        page=args.page,
        page_size=args.page_size,
        event_type=args.event_type,
        severity=args.severity,
        origin=args.origin,
        start=args.since,
        end=args.until,
    )
    if args.json:
        print(json.dumps(result, ensure_ascii=False, indent=2))
        return 0
    for r in result["records"]:
        print(f"{r['timestamp']} [{r['severity']}] {r['event_type']} {r['origin']}: {r['message']}")
    print(f"\nShowing {result['count']} of {result['total_count']} matching logs (page {result['page']}).")
    return 0


async def _evaluate(runtime: Runtime, args: argparse.Namespace) -> int:
    result = await evaluate_alerts_impl(runtime)
    print(json.dumps(result, ensure_ascii=False, indent=2))
    return 0


def _build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(description="ScriptFlow supervisor: log queries and alerts.")
    sub = p.add_subparsers(dest="command", required=True)

    s = sub.add_parser("search", help="Search the system log")
    s.add_argument("query", nargs="*", help='Query, e.g. type=erro severity=critical date:24h')
    s.add_argument("--user", default="cli", help="Caller user id (default: cli)")
    s.add_argument("--page", type=int, default=1)
    s.add_argument("--page-size", type=int, default=None)
    s.add_argument("--type", dest="event_type", default=None, help="Event type side filter")
    s.add_argument("--severity", default=None, help="Severity side filter")
    s.add_argument("--origin", default=None, help="Origin side filter")
    s.add_argument("--since", default=None, help="ISO8601 inclusive start")
    s.add_argument("--until", default=None, help="ISO8601 inclusive end")
    s.add_argument("--json", action="store_true", help="Print the raw JSON result")

    pa = sub.add_parser("parse", help="Show how a query is interpreted")
    pa.add_argument("query", nargs="*")

    sub.add_parser("help", help="Print the query language cheat-sheet")
    sub.add_parser("evaluate", help="Run one alert evaluation pass")
    return p


def main(argv: Sequence[str] | None = None) -> None:
    args = _build_parser().parse_args(argv)

    if args.command == "help":
        print("\n".join(get_query_help()))
        return

    try:
        config = load_config()
        configure_logging(config.log_level)
        runtime = build_runtime(config)
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        raise SystemExit(2)

    try:
        if args.command == "parse":
            print(json.dumps(parse_query_impl(runtime, " ".join(args.query)), ensure_ascii=False, indent=2))
            code = 0
        elif args.command == "search":
            code = asyncio.run(_search(runtime, args))
        else:
            code = asyncio.run(_evaluate(runtime, args))
    except QueryExecutionError as e:
        print(f"Error: {e}", file=sys.stderr)
        raise SystemExit(1)
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        raise SystemExit(2)
    finally:
        runtime.close()

    if code:
        raise SystemExit(code)


if __name__ == "__main__":
    main()
