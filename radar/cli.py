"""
Radar command line

Usage:
    radar search "Login fails with error G0239422" [--json] [-v]
    radar serve [--port 8080]
"""

import sys
import json
import asyncio
import logging
import argparse
from dataclasses import asdict

from dotenv import load_dotenv


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    # httpx logs every request at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)


async def _search(query: str, as_json: bool) -> int:
    from .common.config import load_config
    from .common.errors import RadarError
    from .service import build_service

    config = load_config()
    service = build_service(config)
    try:
        results = await service.search(query)
    except RadarError as e:
        print(f"[Radar] ERROR: {e}", file=sys.stderr)
        return 1
    finally:
        await service.aclose()

    if as_json:
        print(json.dumps([asdict(r) for r in results], ensure_ascii=False, indent=2))
        return 0

    if not results:
        print("No similar Jira issues were found.")
        return 0

    print("Found the following Jira issues:")
    for result in results:
        print(f"""

Jira ID: {result.key or result.id}
URL: {result.url}
Slack: {result.thread_url or '-'}
Similarity: {result.similarity:.2f}
Summary
{result.generated_summary}""")
    return 0


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(prog="radar", description="Find past Jira issues similar to a request")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    subparsers = parser.add_subparsers(dest="command", required=True)

    search_parser = subparsers.add_parser("search", help="Run a one-shot search")
    search_parser.add_argument("query", help="Natural-language description of the problem")
    search_parser.add_argument("--json", action="store_true", help="Print results as JSON")

    serve_parser = subparsers.add_parser("serve", help="Run the Slack events server")
    serve_parser.add_argument("--port", type=int, default=None, help="Override the configured port")

    args = parser.parse_args(argv)
    _configure_logging(args.verbose)
    load_dotenv()

    if args.command == "search":
        if not args.query.strip():
            parser.error("query must not be empty")
        return asyncio.run(_search(args.query, args.json))

    from .common.config import load_config
    from .bot.server import run_server

    config = load_config()
    if args.port:
        config.server.port = args.port
    run_server(config)
    return 0


if __name__ == "__main__":
    sys.exit(main())
