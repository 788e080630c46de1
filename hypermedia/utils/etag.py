import hashlib
import json
from typing import Any

from fastapi import Request, Response


def generate_etag(document: Any) -> str:
    """
    Generate an ETag for a rendered document.

    The document is hashed in its canonical JSON form (sorted keys), so the
    ETag changes whenever any attribute, link or embedded representation does.
    """
    content = json.dumps(document, sort_keys=True, separators=(",", ":"), default=str)
    etag_hash = hashlib.md5(content.encode("utf-8")).hexdigest()
    return f'"{etag_hash}"'


def check_etag_match(request: Request, current_etag: str) -> bool:
    """
    Check if the ETag in the If-None-Match header matches the current ETag.

    Returns True if they match (meaning the client has the current version).
    """
    if_none_match = request.headers.get("if-none-match")
    if not if_none_match:
        return False

    # Handle multiple ETags in the header (comma-separated), weak or strong
    client_etags = [etag.strip().removeprefix("W/") for etag in if_none_match.split(",")]

    return "*" in client_etags or current_etag in client_etags


def set_etag_headers(response: Response, etag: str) -> None:
    response.headers["ETag"] = etag
    response.headers["Cache-Control"] = "private, max-age=0, must-revalidate"


def handle_conditional_request(request: Request, document: Any) -> tuple[str, bool]:
    """
    Handle conditional requests with ETag support.

    Returns:
        tuple: (etag, should_return_304)
    """
    current_etag = generate_etag(document)
    return current_etag, check_etag_match(request, current_etag)
