"""
Entrypoint: load .env and config, init logging, dispatch one request and print the body.
"""

import argparse
import asyncio
import sys

import structlog
from dotenv import load_dotenv

from .config import Config
from .dispatcher import RequestDispatcher
from .errors import ConstructionError, DispatchError
from .logs import configure_from
from .transport import HttpxTransport


def parse_args(argv=None):
    parser = argparse.ArgumentParser(prog="httpdispatch", description="Send one HTTP request and print the body.")
    parser.add_argument("url")
    parser.add_argument("-X", "--method", default="GET")
    parser.add_argument("-H", "--header", action="append", default=[],
                        help="Header as 'Name: value'; may be repeated")
    parser.add_argument("-d", "--data", default=None, help="Request body")
    parser.add_argument("--pause", type=float, default=None, help="Seconds to wait before sending")
    parser.add_argument("--timeout", type=float, default=None, help="Seconds to wait for the response")
    parser.add_argument("--config", default=None, help="Path to a config.yaml")
    return parser.parse_args(argv)


async def run(args, config: Config) -> int:
    logger = structlog.get_logger(__name__)

    headers = {}
    for raw in args.header:
        name, _, value = raw.partition(":")
        headers[name.strip()] = value.strip()

    async with HttpxTransport.from_config(config.transport) as transport:
        dispatcher = RequestDispatcher.from_config(config, transport=transport)
        try:
            body = await dispatcher.dispatch(args.method, args.url, headers, args.data,
                                             pause=args.pause, timeout=args.timeout)
        except ConstructionError as e:
            logger.error("invalid_request", error=str(e))
            return 2
        except DispatchError as e:
            logger.error("dispatch_failed", kind=e.kind.value, error=str(e))
            return 1

    sys.stdout.write(body)
    if not body.endswith("\n"):
        sys.stdout.write("\n")
    return 0


def main(argv=None) -> int:
    load_dotenv()
    args = parse_args(argv)
    config = Config(args.config)
    configure_from(config.logging, stream=sys.stderr)
    return asyncio.run(run(args, config))


if __name__ == "__main__":
    sys.exit(main())
