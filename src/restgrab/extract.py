"""Turning request bodies into parameter sets."""
from __future__ import annotations

import json
import logging
import typing as t
from urllib.parse import parse_qs

import cherrypy

from .errors import ParamsError

logger = logging.getLogger(__name__)

JSON_TYPES = frozenset({"application/json", "text/json"})
FORM_TYPE = "application/x-www-form-urlencoded"
MULTIPART_TYPE = "multipart/form-data"

FILES_KEY = "files"
JSON_ARRAY_KEY = "items"


def media_type(content_type: str | None) -> str:
    """``"application/json; charset=utf-8"`` -> ``"application/json"``."""
    return (content_type or "").split(";", 1)[0].strip().lower()


def _is_file_part(value: t.Any) -> bool:
    return bool(getattr(value, "filename", None)) and hasattr(value, "file")


def collapse(form: t.Mapping[str, t.Any]) -> dict[str, t.Any]:
    """
    Flatten a parsed form into a parameter set.

    I hate assuming there's only one value when reading a form, and I hate
    testing the length everywhere even more, so a single value is stored
    bare and only repeated keys keep their list. Uploaded files are pulled
    out of their fields and gathered under "files".
    """
    params: dict[str, t.Any] = {}
    files: dict[str, t.Any] = {}
    for key, value in form.items():
        values = list(value) if isinstance(value, (list, tuple)) else [value]

        uploads = [v for v in values if _is_file_part(v)]
        if uploads:
            files[key] = uploads[0] if len(uploads) == 1 else uploads
            values = [v for v in values if not _is_file_part(v)]
            if not values:
                continue

        params[key] = values[0] if len(values) == 1 else values

    if files:
        params[FILES_KEY] = files
    return params


def _parse_json(body: bytes) -> dict[str, t.Any]:
    try:
        value = json.loads((body or b"{}").decode("utf-8"))
    except (UnicodeDecodeError, ValueError) as exc:
        raise ParamsError(f"Invalid JSON: {exc}") from exc

    if isinstance(value, dict):
        return value
    if isinstance(value, list):
        return {JSON_ARRAY_KEY: value}
    raise ParamsError("JSON body must be an object or an array")


def parse_params(
    content_type: str | None,
    body: bytes = b"",
    form: t.Mapping[str, t.Any] | None = None,
) -> dict[str, t.Any]:
    """
    Build a parameter set from a request.

    JSON bodies are decoded; everything else is read as a form. ``form`` is
    the already-parsed form (query string plus body, as a server hands it
    over); without one the body is parsed as URL-encoded.
    """
    kind = media_type(content_type)
    if kind in JSON_TYPES:
        return _parse_json(body)

    if form is None:
        if kind == MULTIPART_TYPE:
            raise ParamsError("multipart bodies must be parsed by the server")
        try:
            text = (body or b"").decode("utf-8")
        except UnicodeDecodeError as exc:
            raise ParamsError(f"Invalid form body: {exc}") from exc
        form = parse_qs(text, keep_blank_values=True)
    return collapse(form)


def request_params() -> dict[str, t.Any]:
    """
    Parse (and cache) the parameter set of the current CherryPy request.

    Body size is limited by CherryPy itself through the
    ``request.body.maxbytes`` config that ``web.mount`` sets.
    """
    request = cherrypy.request
    if hasattr(request, "_cached_params"):
        return getattr(request, "_cached_params")

    content_type = request.headers.get("Content-Type")
    kind = media_type(content_type)

    if kind in JSON_TYPES:
        # CherryPy leaves JSON bodies unread; only query parameters are in params
        body = request.body.read() if request.body is not None else b""
        params = dict(collapse(request.params or {}))
        params.update(parse_params(content_type, body))
    else:
        params = parse_params(content_type, form=request.params or {})

    logger.debug("%s request: %d parameters", kind or "bodyless", len(params))
    setattr(request, "_cached_params", params)
    return params
