"""
ohgo.py

A small client for the OHGO public traffic API to:
- list every camera across all pages of /cameras
- resolve a camera to its still image URL
- download the image bytes

Image URL policy: the first camera view's large image, falling back to that
same view's small image. Other views are never consulted.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Callable, Dict, Iterator, List, Mapping, Optional, Tuple, Union

import requests
from filetype import guess
from requests.adapters import HTTPAdapter

logger = logging.getLogger("ohgo")

DEFAULT_BASE_URL = "https://publicapi.ohgo.com/api/v1"
DEFAULT_TIMEOUT = 30.0


# -------------------------
# Errors
# -------------------------

class OHGOError(Exception):
    """Base class for everything this client raises."""


class TransportError(OHGOError):
    def __init__(self, url: str, reason: str) -> None:
        super().__init__(f"Request to {url} failed: {reason}")
        self.url = url
        self.reason = reason


class HTTPStatusError(OHGOError):
    def __init__(self, status_code: int, url: str) -> None:
        super().__init__(f"{url} responded with HTTP {status_code}")
        self.status_code = status_code
        self.url = url


class DecodeError(OHGOError):
    """Body could not be turned into a ListingPage. `body` holds the raw text."""

    def __init__(self, message: str, body: str) -> None:
        super().__init__(message)
        self.body = body


class NoImageAvailableError(OHGOError):
    def __init__(self, cam_id: str) -> None:
        super().__init__(f"Camera {cam_id} has no image URL")
        self.cam_id = cam_id


class InvalidImageError(OHGOError):
    def __init__(self, url: str, content_type: str) -> None:
        super().__init__(f"{url} did not return an image (Content-Type={content_type or 'n/a'})")
        self.url = url
        self.content_type = content_type


# -------------------------
# Data model
# -------------------------

@dataclass(frozen=True)
class CameraView:
    direction: str
    small_url: Optional[str] = None
    large_url: Optional[str] = None
    main_route: Optional[str] = None


@dataclass(frozen=True)
class Location:
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    text: Optional[str] = None


@dataclass(frozen=True)
class Camera:
    cam_id: str
    description: str
    location: Location
    direction: str = ""
    route: str = ""
    status: str = ""
    last_updated: Optional[str] = None
    views: Tuple[CameraView, ...] = ()
    # read-only view of the undecoded result element
    raw: Mapping[str, Any] = field(
        default_factory=lambda: MappingProxyType({}), compare=False, repr=False
    )

    @property
    def image_url(self) -> Optional[str]:
        if not self.views:
            return None
        first = self.views[0]
        return first.large_url or first.small_url or None


@dataclass(frozen=True)
class ListingPage:
    cameras: Tuple[Camera, ...]
    total_page_count: int
    total_result_count: int
    current_result_count: int
    current_page: int = 1
    links: Tuple[dict, ...] = ()
    last_updated: Optional[str] = None
    rejected_filters: Tuple[dict, ...] = ()


# -------------------------
# Response-shape adapters
# -------------------------

def _to_float(value: Any) -> Optional[float]:
    if value is None or value == "":
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def _coordinate_location(item: Mapping[str, Any]) -> Location:
    # Either top-level latitude/longitude or a nested {"location": {...}}
    nested = item.get("location")
    src = nested if isinstance(nested, dict) else item
    return Location(
        latitude=_to_float(src.get("latitude")),
        longitude=_to_float(src.get("longitude")),
    )


def _text_location(item: Mapping[str, Any]) -> Location:
    text = item.get("location")
    return Location(text=str(text) if text is not None else None)


LOCATION_PARSERS: Dict[str, Callable[[Mapping[str, Any]], Location]] = {
    "coordinates": _coordinate_location,
    "text": _text_location,
}


def _parse_view(item: Mapping[str, Any]) -> CameraView:
    return CameraView(
        direction=item.get("direction") or "",
        small_url=item.get("smallUrl") or None,
        large_url=item.get("largeUrl") or None,
        main_route=item.get("mainRoute") or None,
    )


def parse_camera(
    item: Mapping[str, Any],
    location_parser: Callable[[Mapping[str, Any]], Location] = _coordinate_location,
) -> Camera:
    """
    Build a Camera from one element of the API's "results" array.
    Raises ValueError when the element is unusable.
    """
    if not isinstance(item, dict):
        raise ValueError(f"camera entry is not an object: {item!r}")

    cam_id = item.get("id")
    cam_id = str(cam_id).strip() if cam_id is not None else ""
    if not cam_id:
        raise ValueError("camera entry has no id")

    views = item.get("cameraViews") or []
    if not isinstance(views, list):
        raise ValueError(f"camera {cam_id}: cameraViews is not a list")

    # Older responses carry the route on each view only
    route = item.get("mainRoute") or item.get("route") or ""
    if not route and views and isinstance(views[0], dict):
        route = views[0].get("mainRoute") or ""

    return Camera(
        cam_id=cam_id,
        description=item.get("description") or "",
        location=location_parser(item),
        direction=item.get("direction") or "",
        route=route,
        status=item.get("status") or "",
        last_updated=item.get("lastUpdated"),
        views=tuple(_parse_view(v) for v in views if isinstance(v, dict)),
        raw=MappingProxyType(dict(item)),
    )


def parse_listing_page(
    payload: Any,
    page: int,
    location_parser: Callable[[Mapping[str, Any]], Location] = _coordinate_location,
) -> ListingPage:
    if not isinstance(payload, dict):
        raise ValueError("listing response is not a JSON object")

    results = payload.get("results")
    if results is None:
        results = []
    if not isinstance(results, list):
        raise ValueError("'results' is not a list")

    try:
        total_pages = int(payload.get("totalPageCount") or 0)
        total_results = int(payload.get("totalResultCount") or 0)
        current_results = int(payload.get("currentResultCount") or len(results))
    except (TypeError, ValueError) as exc:
        raise ValueError(f"bad pagination counters: {exc}") from exc

    if total_pages > 0 and page > total_pages:
        raise ValueError(f"page {page} is beyond totalPageCount={total_pages}")

    cameras = tuple(parse_camera(item, location_parser) for item in results)
    return ListingPage(
        cameras=cameras,
        total_page_count=total_pages,
        total_result_count=total_results,
        current_result_count=current_results,
        current_page=page,
        links=tuple(payload.get("links") or ()),
        last_updated=payload.get("lastUpdated"),
        rejected_filters=tuple(payload.get("rejectedFilters") or ()),
    )


# -------------------------
# Clients
# -------------------------

class CameraListingClient:
    """Depaginates {base_url}/cameras into one ordered list of cameras."""

    def __init__(
        self,
        api_key: str,
        base_url: str = DEFAULT_BASE_URL,
        session: Optional[requests.Session] = None,
        timeout: float = DEFAULT_TIMEOUT,
        location_format: str = "coordinates",
        params: Optional[Mapping[str, str]] = None,
    ) -> None:
        if location_format not in LOCATION_PARSERS:
            raise ValueError(
                f"Unknown location format {location_format!r} "
                f"(expected one of {', '.join(sorted(LOCATION_PARSERS))})"
            )
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.params = dict(params or {})
        self._location_parser = LOCATION_PARSERS[location_format]
        self.session = session or requests.Session()
        self._apply_default_headers(api_key)

    def _apply_default_headers(self, api_key: str) -> None:
        self.session.headers.update(
            {
                "Accept": "application/json",
                "Authorization": f"APIKEY {api_key}",
            }
        )

    @property
    def cameras_url(self) -> str:
        return f"{self.base_url}/cameras"

    def fetch_page(self, page: int) -> ListingPage:
        url = self.cameras_url
        params = {**self.params, "page": page}
        logger.debug("Fetching %s page %d", url, page)
        try:
            r = self.session.get(url, params=params, timeout=self.timeout)
        except requests.RequestException as exc:
            raise TransportError(url, str(exc)) from exc

        if r.status_code != requests.codes.ok:
            raise HTTPStatusError(r.status_code, url)

        body = r.text
        try:
            payload = r.json()
        except ValueError as exc:
            raise DecodeError(f"Page {page} is not valid JSON: {exc}", body) from exc

        try:
            return parse_listing_page(payload, page, self._location_parser)
        except ValueError as exc:
            raise DecodeError(f"Page {page} has an unexpected shape: {exc}", body) from exc

    def iter_pages(self) -> Iterator[ListingPage]:
        page = 1
        while True:
            listing = self.fetch_page(page)
            yield listing
            if page >= listing.total_page_count:
                return
            page += 1

    def fetch_all(self) -> List[Camera]:
        cameras: List[Camera] = []
        for listing in self.iter_pages():
            cameras.extend(listing.cameras)
        logger.debug("Listing complete: %d cameras", len(cameras))
        return cameras


class CameraImageFetcher:
    """Downloads the still image of a single camera. Does not touch the disk."""

    def __init__(
        self,
        session: Optional[requests.Session] = None,
        timeout: float = DEFAULT_TIMEOUT,
        pool_size: Optional[int] = None,
    ) -> None:
        """
        pool_size sizes the connection pool of a session created here; pass
        the number of threads that will call fetch_image concurrently.
        A caller-supplied session is used as-is.
        """
        if session is None:
            session = requests.Session()
            if pool_size:
                adapter = HTTPAdapter(pool_connections=pool_size, pool_maxsize=pool_size)
                session.mount("https://", adapter)
                session.mount("http://", adapter)
        self.session = session
        self.timeout = timeout

    @staticmethod
    def resolve_image_url(camera: Camera) -> str:
        url = camera.image_url
        if not url:
            raise NoImageAvailableError(camera.cam_id)
        return url

    def fetch_image(self, target: Union[Camera, str]) -> bytes:
        url = self.resolve_image_url(target) if isinstance(target, Camera) else target

        try:
            r = self.session.get(url, timeout=self.timeout, allow_redirects=False)
        except requests.RequestException as exc:
            raise TransportError(url, str(exc)) from exc

        if r.status_code != requests.codes.ok:
            raise HTTPStatusError(r.status_code, url)

        data = r.content
        content_type = r.headers.get("Content-Type", "")
        if not data or not self._looks_like_image(content_type, data):
            raise InvalidImageError(url, content_type)
        return data

    @staticmethod
    def _looks_like_image(content_type: str, data: bytes) -> bool:
        if content_type.split(";")[0].strip().lower().startswith("image/"):
            return True
        kind = guess(data)
        return bool(kind and kind.mime.startswith("image/"))
