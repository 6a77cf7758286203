#!/usr/bin/env python3
"""
Run Wikipedia Live Monitor
==========================

Listens to the recent-changes IRC channels, clusters edits across language
editions and writes annotated records for every edit of an active cluster.

Usage:
    python run_monitor.py                    # Monitor + status API
    python run_monitor.py --no-api           # Monitor only
    python run_monitor.py --log-level DEBUG  # Per-event traces

Components (one event loop):
    - feed: IRC client feeding the worker
    - worker: cluster registry owner (single consumer)
    - sweeper: idle cluster eviction
    - api: status API (uvicorn)
"""
import argparse
import asyncio
import logging
from pathlib import Path

# Load .env from project root (one level up from backend/)
from dotenv import load_dotenv
env_path = Path(__file__).parent.parent / '.env'
load_dotenv(env_path)

import uvicorn

from livemonitor.api import create_app
from livemonitor.config import get_settings
from livemonitor.services.breaking_news import BreakingNewsThresholds
from livemonitor.services.cache import SimpleCache
from livemonitor.services.cluster_registry import ClusterRegistry
from livemonitor.services.eviction import EvictionSweeper
from livemonitor.services.irc_feed import IrcFeedClient
from livemonitor.services.output_sink import JsonLinesSink
from livemonitor.services.social_search import NullSocialSearch
from livemonitor.services.version_resolver import VersionResolver
from livemonitor.services.wiki_api import WikiApiClient
from livemonitor.workers import MonitorWorker

log = logging.getLogger('live-monitor')


async def run(args):
    settings = get_settings()
    thresholds = BreakingNewsThresholds.from_settings(settings)

    registry = ClusterRegistry(
        interval_window=settings.breaking_news_threshold,
        max_changes=settings.max_tracked_changes,
    )
    api = WikiApiClient.from_settings(settings)
    resolver = VersionResolver(
        api,
        settings.monitored_languages,
        cache=SimpleCache(default_ttl=settings.langlinks_cache_ttl),
    )
    sink = JsonLinesSink(settings.output_dir)
    social_search = NullSocialSearch()

    worker = MonitorWorker(
        registry=registry,
        resolver=resolver,
        api=api,
        sink=sink,
        thresholds=thresholds,
        social_search=social_search,
        discard_bots=settings.discard_wikipedia_bots,
    )
    sweeper = EvictionSweeper(
        registry,
        idle_seconds=settings.seconds_since_last_edit,
        interval_seconds=settings.sweep_interval_seconds,
        caches=[resolver.cache],
    )
    feed = IrcFeedClient.from_settings(settings, on_event=worker.submit_event)

    log.info(
        f"🚀 Monitoring {len(settings.monitored_languages)} languages "
        f"(threshold={thresholds.edit_threshold} edits, "
        f"max gap={thresholds.max_gap_millis}ms, "
        f"editors>={thresholds.min_concurrent_editors})"
    )

    components = [worker.start(install_signal_handlers=True), sweeper.run(), feed.run()]
    server = None
    if not args.no_api:
        config = uvicorn.Config(
            create_app(registry, thresholds),
            host=settings.api_host,
            port=settings.port,
            log_level=args.log_level.lower(),
        )
        server = uvicorn.Server(config)
        components.append(server.serve())
        log.info(f"Wikipedia Diff Monitor started on port {settings.port}")

    tasks = [asyncio.create_task(component) for component in components]
    try:
        # The worker returns once a shutdown signal flips its running flag
        await tasks[0]
    finally:
        sweeper.stop()
        feed.stop()
        if server is not None:
            server.should_exit = True
        await asyncio.gather(*tasks[1:], return_exceptions=True)
        sink.close()
        await api.close()
        await social_search.close()


def main():
    parser = argparse.ArgumentParser(description='Wikipedia Live Monitor')
    parser.add_argument('--no-api', action='store_true', help='Do not start the status API')
    parser.add_argument('--log-level', default=None, help='Override LOG_LEVEL')
    args = parser.parse_args()
    args.log_level = (args.log_level or get_settings().log_level).upper()

    logging.basicConfig(
        level=args.log_level,
        format='%(asctime)s [%(name)s] %(levelname)s: %(message)s'
    )

    asyncio.run(run(args))


if __name__ == "__main__":
    main()
