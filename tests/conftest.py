"""Shared pytest fixtures: a fake requests session and canned API payloads."""

import json
import sys
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

import pytest
import requests
from requests.structures import CaseInsensitiveDict

# Ensure the project root is in the path for imports
PROJECT_ROOT = Path(__file__).parent.parent
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))


JPEG_BYTES = bytes([0xFF, 0xD8, 0xFF, 0xE0, 0x00, 0x10]) + b"JFIF\x00" + b"\x00" * 32


def make_response(
    status_code: int = 200,
    body: Any = b"",
    headers: Optional[Dict[str, str]] = None,
    url: str = "",
) -> requests.Response:
    """Build a real requests.Response without touching the network."""
    if isinstance(body, (dict, list)):
        body = json.dumps(body).encode("utf-8")
        headers = {"Content-Type": "application/json", **(headers or {})}
    elif isinstance(body, str):
        body = body.encode("utf-8")
    resp = requests.Response()
    resp.status_code = status_code
    resp._content = body
    resp.encoding = "utf-8"
    resp.headers = CaseInsensitiveDict(headers or {})
    resp.url = url
    return resp


class FakeSession:
    """
    Stand-in for requests.Session.

    `handler(url, params)` returns a Response or raises; every call is recorded
    in `calls` as (url, params, kwargs).
    """

    def __init__(self, handler: Callable[[str, Dict[str, Any]], requests.Response]):
        self.handler = handler
        self.headers: CaseInsensitiveDict = CaseInsensitiveDict()
        self.calls: List[tuple] = []

    def get(self, url, params=None, **kwargs):
        params = dict(params or {})
        self.calls.append((url, params, kwargs))
        return self.handler(url, params)


def camera_payload(cam_id: str, large_url: Optional[str] = None, views: Optional[list] = None) -> dict:
    if views is None:
        large_url = large_url or f"https://images.example.test/{cam_id}.jpg"
        views = [
            {
                "direction": "North",
                "smallUrl": f"https://images.example.test/small/{cam_id}.jpg",
                "largeUrl": large_url,
                "mainRoute": "I-71",
            }
        ]
    return {
        "id": cam_id,
        "latitude": 39.96,
        "longitude": -82.99,
        "location": "I-71 at 5th Ave",
        "description": f"Camera {cam_id}",
        "direction": "N",
        "cameraViews": views,
    }


def listing_payload(results: list, page_count: int, total_results: int) -> dict:
    return {
        "links": [{"href": "https://publicapi.ohgo.com/api/v1/cameras", "rel": "self"}],
        "lastUpdated": "2026-10-19T12:00:00Z",
        "totalPageCount": page_count,
        "totalResultCount": total_results,
        "currentResultCount": len(results),
        "results": results,
        "rejectedFilters": [],
    }


def paged_handler(pages: Dict[int, requests.Response]):
    """Handler serving listing pages by their ?page= parameter."""

    def handler(url, params):
        return pages[int(params["page"])]

    return handler


@pytest.fixture
def jpeg_bytes() -> bytes:
    return JPEG_BYTES
