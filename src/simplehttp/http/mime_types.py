"""
=============================================================================
MIME TYPE DETECTION
=============================================================================

Maps file extensions to the Content-Type sent by Response.set_file().

    ┌────────────────────────────────────────────────────────────────────┐
    │  report.html   →  .html  →  text/html; charset=utf-8               │
    │  logo.png      →  .png   →  image/png                              │
    │  notes.xyz     →  .xyz   →  (unknown, set_file refuses the file)   │
    │  Makefile      →  (none) →  (no extension, set_file refuses too)   │
    └────────────────────────────────────────────────────────────────────┘

Unlike a static file server there is no "application/octet-stream"
fallback here: a file whose type cannot be determined is reported back to
the handler, which can then call set_file_with_content_type() with an
explicit type.

Text types carry a charset parameter so clients decode them correctly.

=============================================================================
"""

from pathlib import Path
from typing import Optional


# =============================================================================
# MIME TYPE DATABASE
# =============================================================================
#
# Keys are lowercase extensions including the dot.
#
# =============================================================================

MIME_TYPES = {
    # -------------------------------------------------------------------------
    # TEXT TYPES
    # -------------------------------------------------------------------------
    ".html": "text/html",
    ".htm": "text/html",
    ".css": "text/css",
    ".js": "text/javascript",
    ".mjs": "text/javascript",
    ".json": "application/json",
    ".xml": "application/xml",
    ".txt": "text/plain",
    ".md": "text/markdown",
    ".csv": "text/csv",

    # -------------------------------------------------------------------------
    # IMAGE TYPES
    # -------------------------------------------------------------------------
    ".png": "image/png",
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".gif": "image/gif",
    ".svg": "image/svg+xml",
    ".ico": "image/x-icon",
    ".webp": "image/webp",
    ".avif": "image/avif",
    ".bmp": "image/bmp",

    # -------------------------------------------------------------------------
    # FONT TYPES
    # -------------------------------------------------------------------------
    ".woff": "font/woff",
    ".woff2": "font/woff2",
    ".ttf": "font/ttf",
    ".otf": "font/otf",

    # -------------------------------------------------------------------------
    # AUDIO / VIDEO TYPES
    # -------------------------------------------------------------------------
    ".mp3": "audio/mpeg",
    ".wav": "audio/wav",
    ".ogg": "audio/ogg",
    ".mp4": "video/mp4",
    ".webm": "video/webm",

    # -------------------------------------------------------------------------
    # DOCUMENT / ARCHIVE TYPES
    # -------------------------------------------------------------------------
    ".pdf": "application/pdf",
    ".zip": "application/zip",
    ".tar": "application/x-tar",
    ".gz": "application/gzip",
    ".wasm": "application/wasm",
}

# Non text/* types that are still text and get a charset
_TEXT_APPLICATION_TYPES = {
    "application/json",
    "application/xml",
    "image/svg+xml",
}


# =============================================================================
# PUBLIC FUNCTIONS
# =============================================================================

def get_extension(path: str | Path) -> str:
    """
    Return the lowercase extension of `path`, including the dot.

    Returns "" when the file name has no extension.

        >>> get_extension("/srv/www/INDEX.HTML")
        '.html'
        >>> get_extension("Makefile")
        ''
    """
    return Path(path).suffix.lower()


def get_mime_type(path: str | Path) -> Optional[str]:
    """
    Get the bare MIME type for a file based on its extension.

    Returns:
        The MIME type, or None if the extension is missing or unknown.

    Examples:
        >>> get_mime_type("style.css")
        'text/css'
        >>> get_mime_type("unknown.xyz") is None
        True
    """
    return MIME_TYPES.get(get_extension(path))


def is_text_type(mime_type: str) -> bool:
    """Check if a MIME type is text and should carry a charset."""
    return mime_type.startswith("text/") or mime_type in _TEXT_APPLICATION_TYPES


def get_content_type(path: str | Path, charset: str = "utf-8") -> Optional[str]:
    """
    Get the full Content-Type header value for a file.

    Examples:
        >>> get_content_type("page.html")
        'text/html; charset=utf-8'
        >>> get_content_type("image.png")
        'image/png'
        >>> get_content_type("archive.unknown") is None
        True
    """
    mime_type = get_mime_type(path)
    if mime_type is None:
        return None

    if is_text_type(mime_type):
        return f"{mime_type}; charset={charset}"

    return mime_type
