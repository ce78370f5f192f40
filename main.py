"""
NarraForm command line.

Wires the core components together and exposes them as subcommands:
1. ``process``: convert a text file into an audio-drama script
2. ``quota``: show or reset the Gemini rate-limit history
3. ``chapters``: list a project's chapters from Supabase
"""

from __future__ import annotations

import argparse
import asyncio
import sys
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional, Sequence

import httpx

from api.provider_router import ProviderRouter
from api.rate_governor import RateGovernor
from cli.argument_parser import parse_args
from cli.display import (
    display_chapters,
    display_failure,
    display_json,
    display_rate_status,
    display_success,
)
from core.chapter_cache import ChapterCache
from core.chapter_store import SupabaseChapterStore
from modules.app_config import Settings, load_settings
from modules.config_loader import ConfigLoader
from modules.error_handler import ConfigurationError, ProcessingError
from modules.local_storage import JsonFileStore, KeyValueStore
from modules.logger import configure_logging, setup_logger
from modules.user_prompts import print_error, print_info, print_success, prompt_yes_no

logger = setup_logger(__name__)


@dataclass
class Services:
    """The application's long-lived component instances."""
    settings: Settings
    client: httpx.AsyncClient
    governor: RateGovernor
    router: ProviderRouter
    chapter_cache: Optional[ChapterCache] = None

    async def aclose(self) -> None:
        await self.client.aclose()


def build_services(
    settings: Settings,
    *,
    client: Optional[httpx.AsyncClient] = None,
    storage: Optional[KeyValueStore] = None,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> Services:
    """
    Construct one instance of each component from ``settings``.

    The chapter cache is only built when Supabase credentials are present.
    """
    client = client or httpx.AsyncClient(timeout=settings.request_timeout)
    storage = storage if storage is not None else JsonFileStore(settings.storage_path)

    governor = RateGovernor(settings.rate_limits, storage, sleep=sleep)
    router = ProviderRouter(settings, governor, client, sleep=sleep)

    chapter_cache = None
    if settings.supabase_url and settings.supabase_key:
        store = SupabaseChapterStore(
            settings.supabase_url,
            settings.supabase_key,
            client,
            timeout=settings.request_timeout,
        )
        chapter_cache = ChapterCache(store, settings.cache_max_size)

    return Services(
        settings=settings,
        client=client,
        governor=governor,
        router=router,
        chapter_cache=chapter_cache,
    )


def _load_settings(args: argparse.Namespace) -> Settings:
    loader = ConfigLoader(args.config)
    loader.load_configs()
    return load_settings(loader.get_app_config())


async def run_process(args: argparse.Namespace, services: Services) -> int:
    try:
        text = args.input_file.read_text(encoding="utf-8")
        custom_prompt = args.prompt_file.read_text(encoding="utf-8") if args.prompt_file else None
    except (OSError, UnicodeDecodeError) as exc:
        logger.error(f"Could not read input: {exc}")
        print_error(f"Could not read input: {exc}")
        return 1

    result = await services.router.process(
        text,
        args.content_type,
        provider=args.provider,
        custom_prompt=custom_prompt,
    )
    if not result.success:
        if args.json:
            display_json(result.to_dict())
        else:
            display_failure(result)
        return 1

    if args.output:
        args.output.parent.mkdir(parents=True, exist_ok=True)
        args.output.write_text(result.text or "", encoding="utf-8")

    if args.json:
        display_json(result.to_dict())
    else:
        display_success(result, str(args.output) if args.output else None)
    return 0


def run_quota(args: argparse.Namespace, services: Services) -> int:
    governor = services.governor
    model = args.model or services.settings.provider("gemini").model

    if args.quota_command == "status":
        status = governor.get_rate_limit_status(model)
        message = governor.get_status_message(model)
        if args.json:
            display_json({"model": model, **status.to_dict(), "message": message})
        else:
            display_rate_status(model, status, message)
        return 0

    target = args.model or "all models"
    scope = "today's requests" if args.daily else "all recorded requests"
    if not args.yes and not prompt_yes_no(f"Forget {scope} for {target}?"):
        print_info("Nothing reset.")
        return 0

    if args.daily:
        governor.reset_daily_quota(args.model)
    else:
        governor.reset_quota(args.model)
    print_success(f"Reset {scope} for {target}")
    return 0


async def run_chapters(args: argparse.Namespace, services: Services) -> int:
    cache = services.chapter_cache
    if cache is None:
        print_error("Supabase is not configured. Set SUPABASE_URL and SUPABASE_ANON_KEY.")
        return 1

    chapters = await cache.load_metadata(args.project_id)
    display_chapters(chapters, cache.unprocessed_count())
    return 0


async def async_main(args: argparse.Namespace, settings: Settings) -> int:
    services = build_services(settings)
    try:
        if args.command == "process":
            return await run_process(args, services)
        if args.command == "quota":
            return run_quota(args, services)
        if args.command == "chapters":
            return await run_chapters(args, services)
        raise ConfigurationError(f"Unknown command: {args.command}")
    finally:
        await services.aclose()


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = parse_args(argv)
    try:
        settings = _load_settings(args)
    except ConfigurationError as exc:
        print_error(str(exc))
        return 2

    configure_logging(
        verbose=args.verbose or settings.verbose,
        log_file=args.log_file or settings.log_file,
    )

    try:
        return asyncio.run(async_main(args, settings))
    except ProcessingError as exc:
        logger.error(f"{type(exc).__name__}: {exc}")
        print_error(str(exc))
        return 1


if __name__ == "__main__":
    try:
        sys.exit(main())
    except KeyboardInterrupt:
        logger.info("Interrupted by user (Ctrl+C). Exiting.")
        sys.exit(130)
