from __future__ import annotations

import base64
import binascii
import re

from content_studio_cli.exceptions import TransientProviderError

_DATA_URL_PATTERN = re.compile(r"^data:(?P<mime>[\w/+.-]+)?(?P<params>(?:;[\w-]+=[\w-]+)*)(?P<b64>;base64)?,(?P<data>.*)$", re.S)

EXTENSION_BY_MIME = {"image/jpeg": "jpg", "image/jpg": "jpg", "image/png": "png", "image/webp": "webp"}


def encode_data_url(data: bytes, mime_type: str = "image/png") -> str:
    return f"data:{mime_type};base64,{base64.b64encode(data).decode('ascii')}"


def decode_data_url(url: str) -> tuple[bytes, str]:
    """Return ``(raw_bytes, mime_type)``. Bare base64 strings are read as PNG."""
    match = _DATA_URL_PATTERN.match(url)
    if match is None:
        mime_type, encoded = "image/png", url
    else:
        mime_type = match.group("mime") or "image/png"
        encoded = match.group("data")

    try:
        data = base64.b64decode(encoded, validate=False)
    except (binascii.Error, ValueError) as exc:
        raise TransientProviderError("Generated image is not valid base64") from exc
    if not data:
        raise TransientProviderError("Generated image payload is empty")
    return data, mime_type


def extension_for(mime_type: str) -> str:
    return EXTENSION_BY_MIME.get(mime_type.lower(), "png")
