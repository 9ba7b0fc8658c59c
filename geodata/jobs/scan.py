"""CLI job that scans Mexico City zones and writes the business datasets."""

import argparse
import asyncio
import dataclasses
import logging
import threading
import time
from enum import Enum
from pathlib import Path
from typing import Callable, Optional, Sequence

import requests

from geodata.core.aggregator import Aggregator
from geodata.core.cache import ZoneCache
from geodata.core.config import Settings, get_settings
from geodata.core.errors import ConfigError, FileWriteError, GeoDataError, MissingCredentialError
from geodata.core.fetcher import ZoneFetcher
from geodata.core.http_client import HTTPClient
from geodata.core.zones import DENUE_CURATED_ZONES, GOOGLE_CURATED_ZONES, describe, generate_zones
from geodata.etl import csv_codec
from geodata.etl.sources import DenueSource, GooglePlacesSource
from geodata.models import ScanOutcome, ScanProgress, ScanState, Zone
from geodata.vendors.denue import DenueClient
from geodata.vendors.google_places import GooglePlacesClient

logger = logging.getLogger(__name__)

GOOGLE_DATASET = "google_places_dataset"
INEGI_DATASET = "inegi_only_dataset"
MERGED_DATASET = "merged_google_inegi_dataset"
GOOGLE_COST_PER_PLACE_USD = 0.032


class ScanMode(str, Enum):
    GOOGLE = "google"
    INEGI = "inegi"
    MERGED = "merged"


class ScanCancelled(GeoDataError):
    """Raised at a zone boundary once cancellation was requested."""


class ScanJob:
    """One scan run: ``idle -> scanning -> completed | failed | cancelled``.

    Zones are scanned one at a time with a delay between them. A zone that
    fails is logged and skipped; only a missing credential or an unwritable
    output file fails the run.
    """

    def __init__(
        self,
        mode,
        *,
        settings: Settings,
        google_source: Optional[GooglePlacesSource] = None,
        denue_source: Optional[DenueSource] = None,
        google_zones: Optional[Sequence[Zone]] = None,
        inegi_zones: Optional[Sequence[Zone]] = None,
        progress_callback: Optional[Callable[[str], None]] = None,
        google_csv: Optional[Path] = None,
        sleep: Callable = asyncio.sleep,
        clock: Callable[[], float] = time.time,
        monotonic: Callable[[], float] = time.monotonic,
        http: Optional[HTTPClient] = None,
    ) -> None:
        self.mode = ScanMode(mode)
        self.settings = settings
        self.google_source = google_source
        self.denue_source = denue_source
        self.google_zones = list(google_zones or [])
        self.inegi_zones = list(inegi_zones or [])
        self.google_csv = Path(google_csv) if google_csv else None
        self._progress_callback = progress_callback
        self._sleep = sleep
        self._clock = clock
        self._monotonic = monotonic
        self._cancel_event = threading.Event()
        self._http = http

        self.state = ScanState.IDLE
        self.progress: Optional[ScanProgress] = None
        self.last_message = ""
        self.outcome: Optional[ScanOutcome] = None

    def cancel(self) -> None:
        """Request cancellation; honoured before the next zone starts."""
        self._cancel_event.set()

    @property
    def needs_google_scan(self) -> bool:
        return self.mode is ScanMode.GOOGLE or (self.mode is ScanMode.MERGED and self.google_csv is None)

    @property
    def needs_inegi_scan(self) -> bool:
        return self.mode in (ScanMode.INEGI, ScanMode.MERGED)

    def _check_credentials(self) -> None:
        if self.needs_google_scan and (not self.settings.google_api_key or self.google_source is None):
            raise MissingCredentialError("GOOGLE_API_KEY is required for Google Places scans")
        if self.needs_inegi_scan and (not self.settings.denue_api_token or self.denue_source is None):
            raise MissingCredentialError("DENUE_API_TOKEN is required for INEGI/DENUE scans")

    def close(self) -> None:
        """Release the HTTP session owned by this job, if any."""
        if self._http is not None:
            self._http.close()
            self._http = None

    async def run(self) -> ScanOutcome:
        self.state = ScanState.SCANNING
        try:
            self._check_credentials()
            if self.mode is ScanMode.GOOGLE:
                path, message = await self.generate_google_only()
            elif self.mode is ScanMode.INEGI:
                path, message = await self.generate_inegi_only()
            else:
                path, message = await self.generate_merged()
        except ScanCancelled as exc:
            logger.warning("Scan cancelled: %s", exc)
            return self._finish(ScanState.CANCELLED, str(exc))
        except (MissingCredentialError, FileWriteError) as exc:
            logger.error("Scan failed: %s", exc)
            return self._finish(ScanState.FAILED, str(exc))
        finally:
            self.close()
        return self._finish(ScanState.COMPLETED, message, path)

    def _finish(self, state: ScanState, message: str, path: Optional[Path] = None) -> ScanOutcome:
        self.state = state
        self.outcome = ScanOutcome(state=state, message=message, path=path, progress=self.progress)
        return self.outcome

    async def generate_google_only(self):
        aggregator = await self._scan(self.google_source, self.google_zones, self.settings.google_zone_delay, "Google Places")
        logger.info(
            "Estimated Google Places cost: $%.2f USD",
            len(aggregator) * GOOGLE_COST_PER_PLACE_USD,
        )
        path = csv_codec.write_records(aggregator.records, self.settings.output_dir, GOOGLE_DATASET, self._clock)
        return path, f"Google Places dataset saved with {len(aggregator)} places"

    async def generate_inegi_only(self):
        aggregator = await self._scan(self.denue_source, self.inegi_zones, self.settings.denue_zone_delay, "INEGI/DENUE")
        path = csv_codec.write_records(aggregator.records, self.settings.output_dir, INEGI_DATASET, self._clock)
        return path, f"INEGI dataset saved with {len(aggregator)} businesses"

    async def generate_merged(self):
        if self.google_csv is not None:
            google_path = self.google_csv
            logger.info("Merging into existing Google dataset %s", google_path)
        else:
            google_path, _ = await self.generate_google_only()
        # Read before the INEGI scan starts.
        google_rows = csv_codec.read_dataset_rows(google_path)

        aggregator = await self._scan(self.denue_source, self.inegi_zones, self.settings.denue_zone_delay, "INEGI/DENUE")
        path, stats = csv_codec.merge_rows(
            google_rows, aggregator.records, self.settings.output_dir, MERGED_DATASET, self._clock
        )
        return path, (
            f"Merged dataset saved with {stats.total} rows "
            f"({stats.google_rows} Google, {stats.inegi_rows} INEGI)"
        )

    async def _scan(self, source, zones: Sequence[Zone], delay: float, label: str) -> Aggregator:
        aggregator = Aggregator()
        progress = ScanProgress(zones_total=len(zones))
        self.progress = progress
        started = self._monotonic()
        logger.info("Starting %s scan over %s", label, describe(zones))

        for index, zone in enumerate(zones, start=1):
            if self._cancel_event.is_set():
                raise ScanCancelled(f"{label} scan cancelled after {index - 1}/{len(zones)} zones")

            self._report(progress.message(index, zone.name))
            try:
                result = await source.scan_zone(zone, seen=aggregator)
                added = aggregator.add_zone(result)
                if added:
                    logger.info("   +%d new | unique total %d", added, len(aggregator))
                else:
                    logger.info("   no new records")
            except Exception as exc:  # noqa: BLE001
                logger.warning("   zone %s failed: %s", zone.name, exc)

            progress.zones_completed = index
            progress.unique_record_count = len(aggregator)
            progress.failed_requests = aggregator.failed_requests
            progress.elapsed_seconds = self._monotonic() - started

            if index < len(zones):
                await self._sleep(delay)

        logger.info(
            "%s scan completed: unique=%d failed_requests=%d minutes=%.1f",
            label,
            len(aggregator),
            aggregator.failed_requests,
            progress.elapsed_seconds / 60,
        )
        return aggregator

    def _report(self, message: str) -> None:
        self.last_message = message
        logger.info(message)
        if self._progress_callback is not None:
            self._progress_callback(message)


def build_job(
    mode,
    settings: Settings,
    *,
    google_csv: Optional[Path] = None,
    progress_callback: Optional[Callable[[str], None]] = None,
    cache: Optional[ZoneCache] = None,
    session: Optional[requests.Session] = None,
) -> ScanJob:
    """Wire the real clients, fetchers and zone lists for ``mode``."""
    http = HTTPClient(session=session)
    if cache is None:
        cache = ZoneCache(settings.cache_ttl_seconds, settings.cache_max_entries)

    google_source = GooglePlacesSource(
        GooglePlacesClient(http, settings.google_api_key, settings.google_max_results, settings.google_timeout),
        ZoneFetcher(settings.google_details_batch_size),
    )
    denue_source = DenueSource(
        DenueClient(http, settings.denue_api_token, settings.denue_timeout),
        ZoneFetcher(settings.denue_batch_size, cache),
    )

    return ScanJob(
        mode,
        settings=settings,
        google_source=google_source,
        denue_source=denue_source,
        google_zones=generate_zones(settings.bbox, settings.google_grid_step, GOOGLE_CURATED_ZONES),
        inegi_zones=generate_zones(settings.bbox, settings.denue_grid_step, DENUE_CURATED_ZONES),
        progress_callback=progress_callback,
        google_csv=google_csv,
        http=http,
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Scan Mexico City points of interest into CSV datasets")
    parser.add_argument("mode", choices=[m.value for m in ScanMode], help="Which dataset to generate")
    parser.add_argument(
        "--google-csv",
        dest="google_csv",
        type=Path,
        help="Existing Google dataset to merge into (merged mode only; skips the Google scan)",
    )
    parser.add_argument("--output-dir", dest="output_dir", help="Directory for the generated CSV files")
    return parser


def main(argv: Optional[Sequence[str]] = None) -> None:
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s - %(message)s")
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.google_csv and args.mode != ScanMode.MERGED.value:
        parser.error("--google-csv is only valid in merged mode")

    try:
        settings = get_settings()
    except ConfigError as exc:
        logger.error("Configuration error: %s", exc)
        raise SystemExit(2) from exc
    if args.output_dir:
        settings = dataclasses.replace(settings, output_dir=args.output_dir)

    job = build_job(args.mode, settings, google_csv=args.google_csv)
    try:
        outcome = asyncio.run(job.run())
    except KeyboardInterrupt as exc:
        logger.warning("Interrupted; no dataset written")
        raise SystemExit(130) from exc

    if outcome.state is ScanState.CANCELLED:
        raise SystemExit(130)
    if outcome.state is not ScanState.COMPLETED:
        raise SystemExit(1)
    logger.info(outcome.message)
    print(outcome.path)


if __name__ == "__main__":
    main()
