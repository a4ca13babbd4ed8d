"""MIME type and charset lookup for rendered output kinds."""

import mimetypes

DEFAULT_MIME_TYPE = "application/octet-stream"

_TEXT_APPLICATION_TYPES = frozenset(
    {
        "application/javascript",
        "application/json",
        "application/manifest+json",
        "application/xml",
        "application/rss+xml",
        "application/atom+xml",
        "image/svg+xml",
    },
)


def mime_type(output_kind: str) -> str:
    """Map an output kind (file extension without dot) to a MIME type.

    Args:
        output_kind: e.g. "html", "css", "json"

    Returns:
        MIME type, application/octet-stream for unknown kinds
    """
    if not output_kind:
        return DEFAULT_MIME_TYPE
    guessed, _ = mimetypes.guess_type(f"file.{output_kind}", strict=False)
    return guessed or DEFAULT_MIME_TYPE


def charset_for(mime: str) -> str | None:
    """Return the charset to advertise for a MIME type, if it has one."""
    if mime.startswith("text/") or mime in _TEXT_APPLICATION_TYPES:
        return "utf-8"
    return None


def content_type(output_kind: str) -> str:
    """Build a Content-Type header value for an output kind."""
    mime = mime_type(output_kind)
    charset = charset_for(mime)
    return f"{mime}; charset={charset}" if charset else mime
