#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
harvest_portal_videos.py

Download every video in an authenticated media portal catalog.
Each catalog record is resolved to its media URL through the record's
detail page and saved as "<name> (<author>) - <guid>.mp4" with ffmpeg
(or yt-dlp), copying the streams without re-encoding.

Usage:
    python harvest_portal_videos.py --cookie "$(cat cookie.txt)" --dir ./videos
    python harvest_portal_videos.py --cookie-file cookie.txt --list
    python harvest_portal_videos.py --cookie-file cookie.txt --check-session
"""

import sys
from typing import List, Optional

from portal_harvest import (
    ConfigurationError,
    DownloadLogger,
    ErrorAnalyzer,
    PortalClient,
    apply_environment_defaults,
    build_settings,
    create_downloader,
    harvest_catalog,
    list_catalog,
    parse_args,
    run_health_check,
)
from portal_harvest.errors import HarvestError


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    apply_environment_defaults(args)

    try:
        settings = build_settings(args)
    except ConfigurationError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 2

    client = PortalClient(base_url=settings.base_url, lang=settings.lang, timeout=settings.timeout)

    if settings.check_session:
        return run_health_check(client, settings.credential, settings.retry_policy)

    try:
        if settings.list_only:
            try:
                list_catalog(
                    client,
                    settings.credential,
                    page_size=settings.page_size,
                    policy=settings.retry_policy,
                    limit=settings.limit,
                )
            except HarvestError as exc:
                print(f"Catalog enumeration failed: {exc}", file=sys.stderr)
                return 1
            return 0

        try:
            settings.directory.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            print(f"Error: Could not create target directory {settings.directory}: {exc}", file=sys.stderr)
            return 2
        print(f"Saving videos to {settings.directory}")

        logger = DownloadLogger(verbose=settings.verbose)
        error_analyzer = ErrorAnalyzer(error_log_path=settings.error_log)
        downloader = create_downloader(settings.downloader, logger=logger, ffmpeg_executable=settings.ffmpeg)

        summary = harvest_catalog(
            client,
            settings.credential,
            settings.directory,
            downloader,
            page_size=settings.page_size,
            policy=settings.retry_policy,
            error_analyzer=error_analyzer,
            logger=logger,
            limit=settings.limit,
        )
        error_analyzer.print_summary()
    except KeyboardInterrupt:
        print("\nHarvest interrupted.", file=sys.stderr)
        return 130

    return 1 if summary.enumeration_error is not None else 0


if __name__ == "__main__":
    sys.exit(main())
