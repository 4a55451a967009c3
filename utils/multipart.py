# utils/multipart.py
import io
import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from requests_toolbelt.multipart import decoder as mp
from PIL import Image

log = logging.getLogger(__name__)

ALLOWED_CONTENT = {"image/jpeg", "image/png", "image/webp", "image/gif"}


class MultipartError(Exception):
    """Raised when a request body cannot be read as the expected form."""


@dataclass
class UploadedFile:
    filename: str
    content_type: str
    data: bytes
    width: Optional[int] = None
    height: Optional[int] = None


@dataclass
class FormData:
    fields: Dict[str, str] = field(default_factory=dict)
    files: Dict[str, List[UploadedFile]] = field(default_factory=dict)

    def get(self, name: str, default: Optional[str] = None) -> Optional[str]:
        return self.fields.get(name, default)

    def files_for(self, name: str) -> List[UploadedFile]:
        """Files sent under `name` or the bracketed array form `name[]`."""
        return self.files.get(name, []) + self.files.get(f"{name}[]", [])


def _header_params(disp: str) -> Dict[str, str]:
    params: Dict[str, str] = {}
    for token in disp.split(";"):
        token = token.strip()
        if "=" not in token:
            continue
        key, value = token.split("=", 1)
        params[key.strip().lower()] = value.strip().strip('"')
    return params


def _probe_image(data: bytes) -> tuple[Optional[int], Optional[int]]:
    # non-fatal: some valid uploads (e.g. webp without codec) can't be probed
    try:
        with Image.open(io.BytesIO(data)) as im:
            return im.size
    except Exception:
        log.debug("Could not probe image dimensions", exc_info=True)
        return None, None


def parse_form(req) -> FormData:
    """
    Parse multipart/form-data from an Azure Functions HttpRequest.
    Text parts land in `fields`, parts with a filename in `files` (keyed by
    field name, in the order they were sent). Empty file parts are skipped.
    """
    ctype = req.headers.get("content-type") or req.headers.get("Content-Type")
    if not ctype or "multipart/form-data" not in ctype.lower():
        raise MultipartError("Expected multipart/form-data")

    if not _header_params(ctype).get("boundary"):
        raise MultipartError("Multipart Content-Type has no boundary")

    body = req.get_body() or b""
    try:
        parts = mp.MultipartDecoder(body, ctype).parts
    except (mp.ImproperBodyPartContentException, mp.NonMultipartContentTypeException, ValueError) as e:
        raise MultipartError(f"Malformed multipart body: {e}") from e

    form = FormData()
    for p in parts:
        disp = p.headers.get(b"Content-Disposition", b"").decode("utf-8", "ignore")
        params = _header_params(disp)
        name = params.get("name")
        if not name:
            continue

        if "filename" not in params:
            form.fields[name] = p.content.decode(p.encoding or "utf-8", "replace")
            continue

        data = p.content
        if not data:
            continue
        content_type = p.headers.get(b"Content-Type", b"application/octet-stream").decode("utf-8", "ignore")
        if content_type not in ALLOWED_CONTENT:
            raise MultipartError(f"Unsupported content type: {content_type}")

        width, height = _probe_image(data)
        form.files.setdefault(name, []).append(
            UploadedFile(
                filename=params.get("filename") or "upload.bin",
                content_type=content_type,
                data=data,
                width=width,
                height=height,
            )
        )
    return form
