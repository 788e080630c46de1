from typing import List, Optional, Tuple

from fastapi import HTTPException, status

from hypermedia.config.settings import settings
from hypermedia.models.document import MEDIA_TYPES, DocumentFormat

_BY_MEDIA_TYPE = {media: fmt for fmt, media in MEDIA_TYPES.items()}
_GENERIC = {"application/json", "application/*", "*/*"}


def _parse_accept(accept: str) -> List[Tuple[str, float]]:
    entries: List[Tuple[str, float]] = []
    for part in accept.split(","):
        media, *params = [p.strip() for p in part.split(";")]
        if not media:
            continue
        quality = 1.0
        for param in params:
            if param.startswith("q="):
                try:
                    quality = float(param[2:])
                except ValueError:
                    quality = 0.0
        entries.append((media.lower(), quality))
    # Stable sort keeps header order among equal qualities
    return sorted(entries, key=lambda e: e[1], reverse=True)


def negotiate_format(accept: Optional[str], override: Optional[str] = None) -> DocumentFormat:
    """
    Pick the document format from an explicit `format` override or the Accept header.
    Raises 400 for an unknown override and 406 when nothing acceptable is offered.
    """
    if override:
        try:
            return DocumentFormat(override.lower())
        except ValueError:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Unsupported format: {override}",
            )

    default = DocumentFormat(settings.DEFAULT_FORMAT)
    if not accept:
        return default

    for media, quality in _parse_accept(accept):
        if quality <= 0:
            continue
        if media in _BY_MEDIA_TYPE:
            return _BY_MEDIA_TYPE[media]
        if media in _GENERIC:
            return default

    raise HTTPException(
        status_code=status.HTTP_406_NOT_ACCEPTABLE,
        detail=f"Supported media types: {', '.join(MEDIA_TYPES.values())}",
    )
