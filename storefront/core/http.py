import logging
from typing import Any, Optional

import httpx
from fastapi import HTTPException


logger = logging.getLogger(__name__)

JSON_HEADERS = {
    "Accept": "application/json",
    "Content-Type": "application/json",
}


def create_http_client(base_url: str = "", timeout_seconds: float = 10, transport: Optional[httpx.BaseTransport] = None) -> httpx.Client:
    return httpx.Client(base_url=base_url, timeout=timeout_seconds, transport=transport, headers={"Accept": "application/json"})


def get_json(client: httpx.Client, path: str, *, not_found_detail: Optional[str] = None) -> Any:
    """GET a JSON document, translating transport and status failures.

    A 404 becomes ``HTTPException(404)`` when ``not_found_detail`` is given;
    every other failure is reported as a bad gateway.
    """
    try:
        response = client.get(path)
    except httpx.HTTPError as e:
        logger.error(f"Request to {path} failed: {str(e)}")
        raise HTTPException(status_code=502, detail="Product service is unavailable")

    if response.status_code == 404 and not_found_detail:
        raise HTTPException(status_code=404, detail=not_found_detail)
    if response.status_code >= 400:
        logger.error(f"Request to {path} returned HTTP {response.status_code}: {response.text[:200]}")
        raise HTTPException(status_code=502, detail=f"Product service returned HTTP {response.status_code}")

    # FakeStore answers unknown ids with an empty 200 body
    if not response.content or not response.content.strip():
        if not_found_detail:
            raise HTTPException(status_code=404, detail=not_found_detail)
        return None

    try:
        return response.json()
    except ValueError as e:
        logger.error(f"Invalid JSON from {path}: {e}")
        raise HTTPException(status_code=502, detail="Product service returned invalid JSON")


def post_json(client: httpx.Client, url: str, payload: Any, *, error_detail: str) -> Any:
    try:
        response = client.post(url, json=payload, headers=JSON_HEADERS)
        response.raise_for_status()
    except httpx.HTTPError as e:
        logger.error(f"POST to {url} failed: {str(e)}")
        raise HTTPException(status_code=502, detail=error_detail)

    if not response.content:
        return {}
    try:
        return response.json()
    except ValueError:
        return {"raw": response.text}
