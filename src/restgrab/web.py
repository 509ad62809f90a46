"""CherryPy endpoints whose handler arguments are bound from the request."""
from __future__ import annotations

import inspect
import json
import logging
import typing as t
from dataclasses import is_dataclass

import cherrypy

from .binding import Binder
from .config import Settings
from .errors import ConversionError, ParamsError, UnmatchedParameters
from .extract import request_params
from .render import dump

logger = logging.getLogger(__name__)

_HTTP_METHODS = {"get", "post", "put", "patch", "delete", "options", "head"}


class Endpoint:
    """
    Base class for endpoints: class Notes(web.Endpoint).

    Handlers are named after HTTP methods. A handler argument annotated with
    a dataclass receives a fresh instance bound from the request parameters;
    other arguments are looked up by name and converted like model fields.

        class Notes(Endpoint):
            def post(self, note: Note) -> Note:
                ...

    Missing required model fields answer 422, except for methods listed in
    ``partial_methods`` where they are allowed. Values that can't be
    converted, and parameters no field accepts, answer 400.
    """

    partial_methods: frozenset[str] = frozenset({"patch"})

    def __init__(self, settings: Settings | None = None, binder: Binder | None = None) -> None:
        self.settings = settings if settings is not None else Settings()
        self.binder = binder if binder is not None else Binder(self.settings.bind_config())

    def init(self) -> None:
        """Hook called before each request handler."""
        ...

    def auth(self) -> None:
        """Hook for auth/authorization checks before handler execution."""
        ...

    def cleanup(self) -> None:
        """Hook called after each request handler, even on errors."""
        ...

    @cherrypy.expose
    def index(self, **_params: t.Any) -> bytes:
        """Dispatch the current request to the handler for its method."""
        method = (cherrypy.request.method or "GET").lower()
        if method not in _HTTP_METHODS:
            raise cherrypy.HTTPError(405)

        try:
            params = request_params()
        except ParamsError as exc:
            raise cherrypy.HTTPError(400, str(exc)) from exc

        return _serialize(self._run(method, params))

    def _run(self, method: str, params: t.Mapping[str, t.Any]) -> t.Any:
        """Invoke a method with request-bound parameters."""
        self.init()
        try:
            self.auth()
            fn = getattr(self, method, None)
            if not callable(fn):
                raise cherrypy.HTTPError(405, "Method Not Allowed")
            return self._call_with_binding(fn, method, params)
        finally:
            try:
                self.cleanup()
            except Exception:
                logger.exception("%s.cleanup failed", type(self).__qualname__)

    def _call_with_binding(
        self,
        fn: t.Callable[..., t.Any],
        method: str,
        params: t.Mapping[str, t.Any],
    ) -> t.Any:
        """Bind request parameters to a callable and invoke it."""
        sig = inspect.signature(fn)

        func = getattr(fn, "__func__", fn)
        try:
            hints = t.get_type_hints(func, include_extras=True)
        except Exception:
            hints = {}

        kwargs: dict[str, t.Any] = {}
        models: list[tuple[str, type]] = []
        consumed: set[str] = set()
        for name, p in sig.parameters.items():
            if name == "self":
                continue

            ann = hints.get(name, p.annotation)
            if _is_dataclass_type(ann):
                models.append((name, ann))
                continue

            if name in params:
                kwargs[name] = self._coerce(name, params[name], ann)
                consumed.add(name)
            elif p.default is not inspect.Parameter.empty:
                kwargs[name] = p.default
            else:
                raise cherrypy.HTTPError(400, f"Missing param: {name}")

        if len(models) > 1:
            raise cherrypy.HTTPError(500, f"{fn.__name__} may take at most one model argument")

        if models:
            name, model_cls = models[0]
            remaining = {k: v for k, v in params.items() if k not in consumed}
            kwargs[name] = self._bind_model(model_cls, remaining, partial=method in self.partial_methods)

        return fn(**kwargs)

    def _bind_model(self, model_cls: type, params: t.Mapping[str, t.Any], *, partial: bool) -> t.Any:
        target = model_cls()
        try:
            result = self.binder.bind(params, target)
        except (ConversionError, UnmatchedParameters) as exc:
            logger.info("rejected %s: %s", model_cls.__qualname__, exc)
            raise cherrypy.HTTPError(400, str(exc)) from exc

        if result.missing and not partial:
            logger.info("rejected %s: %s", model_cls.__qualname__, result.missing)
            raise cherrypy.HTTPError(422, str(result.missing))
        return target

    def _coerce(self, name: str, value: t.Any, ann: t.Any) -> t.Any:
        """Convert a plain handler argument the same way a model field would be."""
        if ann is inspect.Parameter.empty:
            return value
        try:
            return self.binder.converter.convert(ann, value)
        except ConversionError as exc:
            raise cherrypy.HTTPError(400, f"{name}: {exc}") from exc


def mount(endpoint: Endpoint, path: str = "/", settings: Settings | None = None) -> t.Any:
    """
    Mount an endpoint instance into the CherryPy tree.

    Request bodies over ``settings.max_multipart_bytes`` (the endpoint's
    settings when none are given) are refused by CherryPy with a 413
    before they are read.
    """
    settings = settings if settings is not None else endpoint.settings
    config = {
        "/": {
            "tools.encode.on": True,
            "tools.encode.encoding": "utf-8",
            "request.body.maxbytes": settings.max_multipart_bytes,
        }
    }
    return cherrypy.tree.mount(endpoint, "/" + path.strip("/"), config=config)


def _is_dataclass_type(ann: t.Any) -> bool:
    """Return True when a type annotation is a dataclass class."""
    return inspect.isclass(ann) and is_dataclass(ann)


def _serialize(obj: t.Any) -> bytes:
    """Serialize endpoint output to bytes, defaulting to JSON."""
    if obj is None:
        cherrypy.response.status = 204
        return b""

    if isinstance(obj, (bytes, bytearray)):
        return bytes(obj)
    if isinstance(obj, str):
        return obj.encode("utf-8")

    cherrypy.response.headers["Content-Type"] = "application/json; charset=utf-8"
    return json.dumps(dump(obj)).encode("utf-8")
