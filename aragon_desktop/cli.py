"""
Aragon desktop command line.

    aragon-desktop run              start IPFS, load the client, stay up
    aragon-desktop resolve rinkeby  print the latest client hash
    aragon-desktop classify URL     show how a navigation would be handled
    aragon-desktop purge            pin the latest client, unpin the rest
"""

import argparse
import asyncio
import logging
import signal
import sys
import webbrowser

from loguru import logger

from aragon_desktop.config import DesktopConfig
from aragon_desktop.core.desktop import AragonDesktop
from aragon_desktop.core.navigation import InScope, classify_url
from aragon_desktop.errors import AragonDesktopError


def configure_logging(config: DesktopConfig):
    config.logs_path.mkdir(parents=True, exist_ok=True)
    logger.add(
        str(config.logs_path / "aragon_desktop_{time}.log"),
        rotation="1 day",
        retention="30 days",
        level=config.log_level,
    )
    logging.basicConfig(
        level=config.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


async def run(config: DesktopConfig, open_browser: bool) -> int:
    desktop = AragonDesktop.from_config(config)
    stop = asyncio.Event()

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, stop.set)
        except NotImplementedError:
            # Windows event loops have no signal handlers; Ctrl-C still raises.
            pass

    render = webbrowser.open if open_browser else None
    try:
        client_url = await desktop.start(render=render)
        logger.info("🚀 Aragon client available at {}", client_url)
        print(client_url, flush=True)
        await stop.wait()
    except AragonDesktopError as e:
        logger.error("Startup failed: {}", e)
        return 1
    finally:
        await desktop.shutdown()
    return 0


async def resolve(config: DesktopConfig, network: str) -> int:
    desktop = AragonDesktop.from_config(config)
    try:
        content_hash = await desktop.resolver.resolve_latest(config.client_repo, network)
    except AragonDesktopError as e:
        logger.error("{}", e)
        return 1
    finally:
        desktop.resolver.registry.close()
    print(content_hash)
    return 0


async def purge(config: DesktopConfig) -> int:
    desktop = AragonDesktop.from_config(config)
    try:
        desktop.handle = await desktop.lifecycle.ensure_running()
        await desktop.load_aragon_client(config.default_network)
        removed = await desktop.pin_cache.purge_unused_ipfs_resources()
    except AragonDesktopError as e:
        logger.error("Purge failed: {}", e)
        return 1
    finally:
        await desktop.shutdown()
    for content_hash in removed:
        print(content_hash)
    return 0


def classify(url: str) -> int:
    decision = classify_url(url)
    if isinstance(decision, InScope):
        print(f"in-scope: {decision.network}")
    else:
        print("out-of-scope: external browser")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Aragon client served from IPFS")
    sub = parser.add_subparsers(dest="command")

    run_parser = sub.add_parser("run", help="Start IPFS and load the latest client")
    run_parser.add_argument("--no-browser", action="store_true", help="Only print the client URL")

    resolve_parser = sub.add_parser("resolve", help="Print the latest client hash for a network")
    resolve_parser.add_argument("network", help="Network, e.g. main or rinkeby")

    classify_parser = sub.add_parser("classify", help="Show how a navigation URL is handled")
    classify_parser.add_argument("url")

    sub.add_parser("purge", help="Pin the latest client and unpin unused content")
    return parser


def main(argv=None):
    args = build_parser().parse_args(argv)
    command = args.command or "run"

    if command == "classify":
        sys.exit(classify(args.url))

    config = DesktopConfig.from_env()
    configure_logging(config)

    if command == "resolve":
        code = asyncio.run(resolve(config, args.network))
    elif command == "purge":
        code = asyncio.run(purge(config))
    else:
        code = asyncio.run(run(config, open_browser=not getattr(args, "no_browser", False)))
    sys.exit(code)


if __name__ == "__main__":
    main()
