"""
Terminal client: `fluidity-client https://host:8443 --site north --collector gauge1`

Connects to a server's event stream and prints packets that pass the
filters given on the command line (same semantics as the browser filters:
sites OR-ed, collectors OR-ed, the two groups AND-ed).
"""

from __future__ import annotations

import argparse
import logging
import sys
from typing import List, Optional

import httpx

from .filtering import FilteringEngine
from .render import ConsoleRenderer
from .session import ClientSession
from .store import ClientPacketStore


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="fluidity-client", description="Stream and filter packets from a fluidity server.")
    p.add_argument("url", help="Server base URL, e.g. https://collector.example:8443")
    p.add_argument("--site", action="append", default=[], help="Show only this site (repeatable).")
    p.add_argument("--collector", action="append", default=[], help="Show only this collector (repeatable).")
    p.add_argument("--raw", action="store_true", help="Also print raw payloads when present.")
    p.add_argument("--insecure", action="store_true", help="Skip TLS certificate verification.")
    p.add_argument("-v", "--verbose", action="store_true", help="Debug logging on stderr.")
    return p


def make_session(sites: List[str], collectors: List[str], *, show_raw: bool = False, stream=None) -> ClientSession:
    logger = logging.getLogger("fluidity.client")
    engine = FilteringEngine(logger)
    for site in sites:
        engine.set_site_filter(site, True)
    for collector in collectors:
        engine.set_collector_filter(collector, True)
    renderer = ConsoleRenderer(stream if stream is not None else sys.stdout, show_raw=show_raw)
    return ClientSession(ClientPacketStore(engine, renderer, logger), logger=logger)


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s - %(levelname)s - %(message)s",
        stream=sys.stderr,
    )

    session = make_session(args.site, args.collector, show_raw=args.raw)
    client = httpx.Client(timeout=httpx.Timeout(30.0, read=None), verify=not args.insecure)
    try:
        session.run(args.url, client=client)
    except KeyboardInterrupt:
        pass
    except httpx.HTTPError as e:
        logging.getLogger("fluidity.client").error("Stream failed: %s", e)
        return 1
    finally:
        client.close()
        session.store.refresh()
    return 0


if __name__ == "__main__":
    sys.exit(main())
