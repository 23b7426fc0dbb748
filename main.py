"""Command-line entry point: list OHGO cameras and save a snapshot of each."""

from __future__ import annotations

import argparse
import hashlib
import logging
import re
import sys
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, List, Optional, Sequence, Set, Tuple

from ohgo import (
    Camera,
    CameraImageFetcher,
    CameraListingClient,
    LOCATION_PARSERS,
    OHGOError,
)
from settings import MissingCredentialError, load_settings

logger = logging.getLogger("ohgo.main")

_UNSAFE_FILENAME_RE = re.compile(r"[^A-Za-z0-9._-]")


@dataclass
class SnapshotReport:
    saved: List[Path] = field(default_factory=list)
    skipped: List[Tuple[str, str]] = field(default_factory=list)  # (cam_id, reason)


def snapshot_path(output_dir: Path, cam_id: str) -> Path:
    """
    camera_<id>.jpg. Ids that need sanitising get a short hash of the raw id
    appended, so "a/b" and "a_b" never share a file.
    """
    safe = _UNSAFE_FILENAME_RE.sub("_", cam_id)
    if safe != cam_id:
        safe = f"{safe}-{hashlib.sha1(cam_id.encode('utf-8')).hexdigest()[:8]}"
    return Path(output_dir) / f"camera_{safe}.jpg"


def _fetch_one(
    fetcher: CameraImageFetcher, camera: Camera
) -> Tuple[Camera, Optional[bytes], Optional[OHGOError]]:
    try:
        return camera, fetcher.fetch_image(camera), None
    except OHGOError as exc:
        return camera, None, exc


def save_snapshots(
    cameras: Iterable[Camera],
    fetcher: CameraImageFetcher,
    output_dir: Path,
    workers: int = 1,
) -> SnapshotReport:
    """
    Fetch and write one image per camera into output_dir.

    Failures are logged and recorded per camera; the batch never stops early.
    With workers > 1 the downloads run on a thread pool, writes stay on the
    calling thread.
    """
    output_dir = Path(output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)
    report = SnapshotReport()
    cameras = list(cameras)
    used: Set[Path] = set()

    def handle(camera: Camera, image: Optional[bytes], error: Optional[OHGOError]) -> None:
        if error is not None:
            logger.error("Skipping camera %s: %s", camera.cam_id, error)
            report.skipped.append((camera.cam_id, str(error)))
            return

        file_name = snapshot_path(output_dir, camera.cam_id)
        if file_name in used:
            reason = f"{file_name.name} already written in this batch"
            logger.error("Skipping camera %s: %s", camera.cam_id, reason)
            report.skipped.append((camera.cam_id, reason))
            return

        # Write next to the target and rename, so a failed write leaves no partial file
        partial = file_name.with_name(file_name.name + ".part")
        try:
            partial.write_bytes(image)
            partial.replace(file_name)
        except OSError as exc:
            logger.error("Failed to write %s for camera %s: %s", file_name, camera.cam_id, exc)
            report.skipped.append((camera.cam_id, str(exc)))
            partial.unlink(missing_ok=True)
            return

        used.add(file_name)
        report.saved.append(file_name)
        print(f"Saved camera {camera.cam_id} to {file_name}")

    if workers > 1:
        with ThreadPoolExecutor(max_workers=workers) as pool:
            for result in pool.map(lambda cam: _fetch_one(fetcher, cam), cameras):
                handle(*result)
    else:
        for camera in cameras:
            handle(*_fetch_one(fetcher, camera))

    return report


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Download a still image from every camera listed by the OHGO API."
    )
    parser.add_argument(
        "--output",
        type=Path,
        default=None,
        help="Directory where snapshots are written (default: $OHGO_OUTPUT_DIR or ./snapshots)",
    )
    parser.add_argument(
        "--region",
        default=None,
        help="Only list cameras in this OHGO region, e.g. columbus",
    )
    parser.add_argument(
        "--workers",
        type=int,
        default=None,
        help="Number of parallel image downloads (default: 1)",
    )
    parser.add_argument(
        "--timeout",
        type=float,
        default=None,
        help="Per-request timeout in seconds (default: 30)",
    )
    parser.add_argument(
        "--location-format",
        choices=sorted(LOCATION_PARSERS),
        default=None,
        help="Shape of the camera location field in API responses",
    )
    parser.add_argument(
        "--env-file",
        default=None,
        help="Path to a .env file holding OHGO_APIKEY",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Enable verbose logging",
    )
    args = parser.parse_args(argv)
    if args.workers is not None and args.workers < 1:
        parser.error("--workers must be at least 1")
    if args.timeout is not None and args.timeout <= 0:
        parser.error("--timeout must be greater than 0")
    return args


def main(argv: Sequence[str] | None = None) -> int:
    args = parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        force=True,
    )

    try:
        settings = load_settings(dotenv_path=args.env_file)
    except (MissingCredentialError, ValueError) as exc:
        logger.error("Configuration error: %s", exc)
        return 2

    output_dir = args.output or settings.output_dir
    timeout = args.timeout if args.timeout is not None else settings.timeout
    workers = args.workers if args.workers is not None else settings.workers
    params = {"region": args.region} if args.region else None

    try:
        client = CameraListingClient(
            settings.api_key,
            base_url=settings.base_url,
            timeout=timeout,
            location_format=args.location_format or settings.location_format,
            params=params,
        )
    except ValueError as exc:
        logger.error("Configuration error: %s", exc)
        return 2

    try:
        cameras = client.fetch_all()
    except OHGOError as exc:
        logger.error("Could not list cameras: %s", exc)
        return 1

    print(f"Found {len(cameras)} cameras.")

    fetcher = CameraImageFetcher(timeout=timeout, pool_size=workers)
    report = save_snapshots(cameras, fetcher, output_dir, workers=workers)

    print(
        f"Done: saved {len(report.saved)} of {len(cameras)} images to {output_dir} "
        f"({len(report.skipped)} skipped)"
    )
    return 0


if __name__ == "__main__":
    sys.exit(main())
