"""HTTP entrypoint that triggers dataset scans and serves nearby lookups."""

from __future__ import annotations

import asyncio
import logging
import os
import threading
import uuid
from concurrent.futures import ThreadPoolExecutor
from dataclasses import asdict
from pathlib import Path
from typing import Any, Dict, List, Optional

from flask import Flask, jsonify, request

from geodata.core.cache import ZoneCache
from geodata.core.config import Settings, get_settings
from geodata.core.fetcher import ZoneFetcher
from geodata.core.http_client import HTTPClient
from geodata.core.lookup import NearbyLookup
from geodata.jobs.scan import ScanJob, ScanMode, build_job
from geodata.models import LocationType, ScanState
from geodata.vendors.denue import DenueClient

# ---------- Logging ----------
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s - %(message)s",
)
logger = logging.getLogger(__name__)

MAX_LOOKUP_RADIUS_METERS = 5000


class ScanRegistry:
    """Tracks scan jobs and owns the cache they share; one scan runs at a time."""

    def __init__(self) -> None:
        self._jobs: Dict[str, ScanJob] = {}
        self._lock = threading.Lock()
        self._cache: Optional[ZoneCache] = None
        self._lookup: Optional[NearbyLookup] = None

    def cache(self, settings: Settings) -> ZoneCache:
        with self._lock:
            if self._cache is None:
                self._cache = ZoneCache(settings.cache_ttl_seconds, settings.cache_max_entries)
            return self._cache

    def lookup(self, settings: Settings) -> NearbyLookup:
        cache = self.cache(settings)
        with self._lock:
            if self._lookup is None:
                client = DenueClient(HTTPClient(), settings.denue_api_token, settings.denue_timeout)
                self._lookup = NearbyLookup(client, ZoneFetcher(settings.denue_batch_size, cache))
            return self._lookup

    def register(self, job: ScanJob) -> Optional[str]:
        """Store ``job`` and return its id, or ``None`` if another scan is still active."""
        with self._lock:
            if any(j.state in (ScanState.IDLE, ScanState.SCANNING) for j in self._jobs.values()):
                return None
            scan_id = uuid.uuid4().hex
            self._jobs[scan_id] = job
            return scan_id

    def get(self, scan_id: str) -> Optional[ScanJob]:
        with self._lock:
            return self._jobs.get(scan_id)


# ---------- App & executor ----------
app = Flask(__name__)
_executor = ThreadPoolExecutor(max_workers=2)
_registry = ScanRegistry()

# ---------- Routes ----------


@app.get("/healthz")
def healthcheck() -> Any:
    settings = get_settings()
    return (
        jsonify(
            {
                "status": "ok",
                "worker_port_config": settings.worker_port,
                "google_configured": bool(settings.google_api_key),
                "denue_configured": bool(settings.denue_api_token),
                "revision": os.getenv("K_REVISION", "unknown"),
            }
        ),
        200,
    )


@app.post("/scans")
def enqueue_scan() -> Any:
    """
    Queue a dataset scan.
    Required JSON field: mode ("google", "inegi" or "merged")
    Optional: google_csv (existing Google dataset under OUTPUT_DIR, merged mode only)
    """
    payload: Dict[str, Any] = request.get_json(silent=True) or {}

    mode = str(payload.get("mode") or "").strip().lower()
    if mode not in {m.value for m in ScanMode}:
        return jsonify({"error": "mode must be one of: google, inegi, merged"}), 400

    google_csv = payload.get("google_csv")
    if google_csv and mode != ScanMode.MERGED.value:
        return jsonify({"error": "google_csv is only valid in merged mode"}), 400

    settings = get_settings()
    google_path: Optional[Path] = None
    if google_csv:
        google_path = _resolve_dataset_path(str(google_csv), settings.output_dir)
        if google_path is None:
            return jsonify({"error": "google_csv must be a file inside the output directory"}), 400

    job = build_job(mode, settings, google_csv=google_path, cache=_registry.cache(settings))
    scan_id = _registry.register(job)
    if scan_id is None:
        job.close()
        return jsonify({"error": "a scan is already running"}), 409

    logger.info("Queueing %s scan %s", mode, scan_id)
    _executor.submit(_run_job_safe, scan_id, job)
    return jsonify({"data": {"scan_id": scan_id, "status": "queued"}}), 202


@app.get("/scans/<scan_id>")
def scan_status(scan_id: str) -> Any:
    job = _registry.get(scan_id)
    if job is None:
        return jsonify({"error": "scan not found"}), 404
    return jsonify({"data": _describe_job(scan_id, job)}), 200


@app.post("/scans/<scan_id>/cancel")
def cancel_scan(scan_id: str) -> Any:
    job = _registry.get(scan_id)
    if job is None:
        return jsonify({"error": "scan not found"}), 404
    job.cancel()
    logger.info("Cancellation requested for scan %s", scan_id)
    return jsonify({"data": {"scan_id": scan_id, "status": "cancelling"}}), 202


@app.get("/businesses")
def nearby_businesses() -> Any:
    """
    DENUE businesses around a map position.
    Query: lat, lng (required), radius (meters, default 2000), categories (comma separated)
    """
    try:
        latitude = float(request.args["lat"])
        longitude = float(request.args["lng"])
    except (KeyError, ValueError):
        return jsonify({"error": "lat and lng must be numeric"}), 400

    try:
        radius = int(request.args.get("radius", 2000))
    except ValueError:
        return jsonify({"error": "radius must be an integer"}), 400
    if not 0 < radius <= MAX_LOOKUP_RADIUS_METERS:
        return jsonify({"error": f"radius must be between 1 and {MAX_LOOKUP_RADIUS_METERS}"}), 400

    raw_categories = request.args.get("categories", "")
    try:
        categories = _parse_categories(raw_categories)
    except ValueError as exc:
        return jsonify({"error": str(exc)}), 400

    settings = get_settings()
    if not settings.denue_api_token:
        return jsonify({"error": "DENUE_API_TOKEN is not configured"}), 503

    lookup = _registry.lookup(settings)
    records = asyncio.run(lookup.fetch_businesses(categories, latitude, longitude, radius))
    return jsonify({"data": [asdict(record) for record in records], "count": len(records)}), 200


# ---------- Internals ----------


def _parse_categories(raw: str) -> List[LocationType]:
    names = [name.strip().lower() for name in raw.split(",") if name.strip()]
    if not names:
        return [t for t in LocationType if t is not LocationType.OTHERS]
    try:
        return [LocationType(name) for name in names]
    except ValueError as exc:
        raise ValueError(f"unknown category in {raw!r}") from exc


def _resolve_dataset_path(raw: str, output_dir: str) -> Optional[Path]:
    """Resolve ``raw`` against ``output_dir``; ``None`` if it points outside it."""
    root = Path(output_dir).resolve()
    candidate = Path(raw)
    if not candidate.is_absolute():
        candidate = root / candidate
    candidate = candidate.resolve()
    if not candidate.is_relative_to(root):
        return None
    return candidate


def _describe_job(scan_id: str, job: ScanJob) -> Dict[str, Any]:
    outcome = job.outcome
    progress = job.progress
    return {
        "scan_id": scan_id,
        "mode": job.mode.value,
        "state": job.state.value,
        "progress": job.last_message,
        "zones_total": progress.zones_total if progress else None,
        "zones_completed": progress.zones_completed if progress else None,
        "percent": round(progress.percent, 1) if progress else None,
        "unique_records": progress.unique_record_count if progress else None,
        "failed_requests": progress.failed_requests if progress else None,
        "message": outcome.message if outcome else None,
        "path": str(outcome.path) if outcome and outcome.path else None,
    }


def _run_job_safe(scan_id: str, job: ScanJob) -> None:
    try:
        outcome = asyncio.run(job.run())
        logger.info("Scan %s finished: %s - %s", scan_id, outcome.state.value, outcome.message)
    except Exception as exc:  # noqa: BLE001
        logger.exception("Scan %s crashed: %s", scan_id, exc)
        job.state = ScanState.FAILED


def main() -> None:
    port = int(os.getenv("PORT") or get_settings().worker_port)
    logger.info("[BOOT] Binding on 0.0.0.0:%d", port)
    app.run(host="0.0.0.0", port=port)


if __name__ == "__main__":
    main()
