"""Main entry point for the PhishGuard detection pipeline."""

import argparse
import asyncio
import json
import logging
import signal
import sys

from .analyzer.page_reader import PlaywrightPageReader
from .config import Config, Settings, load_config, validate_config
from .errors import PhishGuardError
from .pipeline.notices import CollectingNoticeSink, notice_to_dict
from .pipeline.requests import TriggerSurface
from .pipeline.scanner import ScanPipeline
from .server import HostApiServer

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    handlers=[
        logging.StreamHandler(sys.stdout),
    ],
)
logger = logging.getLogger(__name__)


def build_pipeline(config: Config, reader: PlaywrightPageReader) -> ScanPipeline:
    pipeline = ScanPipeline(
        reader,
        Settings.from_config(config),
        base_url=config.gemini_base_url,
        timeout=config.gemini_timeout,
    )
    reader.on_navigation = pipeline.handle_navigation
    return pipeline


async def run_scan(config: Config, url: str, tier: str | None, trigger: TriggerSurface) -> int:
    """Open ``url``, scan it once and print the result as JSON."""
    reader = PlaywrightPageReader(timeout=config.page_load_timeout, headless=config.browser_headless)
    pipeline = build_pipeline(config, reader)
    if tier:
        try:
            pipeline.settings.set_default_tier(tier)
        except ValueError as e:
            print(json.dumps({"error": {"code": "unknown_tier", "message": str(e)}}, indent=2))
            return 2

    notices = CollectingNoticeSink()
    try:
        await reader.start()
        session_id = await reader.open_session(url)
        result = await pipeline.scan_page(session_id, url, trigger, notices=notices)
    except PhishGuardError as e:
        print(json.dumps({"error": {"code": e.code, "message": e.user_message}}, indent=2))
        return 1
    finally:
        await reader.stop()

    payload = {
        "result": result.to_dict(),
        "band": pipeline.band_for(result).value,
        "notices": [notice_to_dict(n) for n in notices.notices],
    }
    print(json.dumps(payload, indent=2))
    return 0


async def run_server(config: Config) -> int:
    """Serve the host API until interrupted."""
    reader = PlaywrightPageReader(timeout=config.page_load_timeout, headless=config.browser_headless)
    pipeline = build_pipeline(config, reader)
    server = HostApiServer(
        config.host_api_host,
        config.host_api_port,
        pipeline,
        session_opener=reader.open_session,
        session_closer=reader.close_session,
    )

    stop_event = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, stop_event.set)
        except NotImplementedError:
            pass

    await reader.start()
    await server.start()
    try:
        await stop_event.wait()
    finally:
        logger.info("Shutting down")
        await server.stop()
        await reader.stop()
    return 0


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(prog="phishguard", description="AI-assisted phishing page classifier")
    sub = parser.add_subparsers(dest="command", required=True)

    scan = sub.add_parser("scan", help="Scan a single URL")
    scan.add_argument("url")
    scan.add_argument("--tier", help="Model tier to start from (e.g. flash-lite, flash, pro)")
    scan.add_argument("--trigger", default="manual", choices=[t.value for t in TriggerSurface])

    sub.add_parser("serve", help="Run the host API server")

    args = parser.parse_args(argv)
    config = load_config()

    errors = validate_config(config, require_api_key=args.command == "scan")
    if errors:
        for error in errors:
            logger.error(f"Config error: {error}")
        return 2

    if args.command == "scan":
        return asyncio.run(run_scan(config, args.url, args.tier, TriggerSurface(args.trigger)))
    return asyncio.run(run_server(config))


if __name__ == "__main__":
    sys.exit(main())
