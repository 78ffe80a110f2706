"""HTTP requests and responses, a response cache and a method/path router."""

from __future__ import annotations

import hashlib
import json
import re
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence, Tuple
from urllib.parse import unquote

Header = Tuple[str, str]
Params = Dict[str, str]

CERTIFICATE_EXPRESSION_HEADER_NAME = "IC-CertificateExpression"

SECURITY_HEADERS: Tuple[Header, ...] = (
    ("strict-transport-security", "max-age=31536000; includeSubDomains"),
    ("x-content-type-options", "nosniff"),
    ("referrer-policy", "no-referrer"),
    ("cache-control", "no-store, max-age=0"),
    ("pragma", "no-cache"),
)


@dataclass(frozen=True)
class HttpRequest:
    """An incoming HTTP request; ``url`` holds the path and query."""

    method: str
    url: str
    headers: Tuple[Header, ...] = ()
    body: bytes = b""

    def get_path(self) -> str:
        """The percent-decoded path, without query or fragment."""
        path = self.url.split("#", 1)[0].split("?", 1)[0]
        return unquote(path)

    def get_query(self) -> Optional[str]:
        """The query string, or ``None`` when the URL has no ``?``."""
        without_fragment = self.url.split("#", 1)[0]
        if "?" not in without_fragment:
            return None
        return without_fragment.split("?", 1)[1]


@dataclass(frozen=True)
class HttpResponse:
    """An HTTP response with headers kept in order."""

    status_code: int
    headers: Tuple[Header, ...] = ()
    body: bytes = b""

    def __post_init__(self) -> None:
        object.__setattr__(self, "status_code", int(self.status_code))
        object.__setattr__(self, "headers", tuple((str(n), str(v)) for n, v in self.headers))
        object.__setattr__(self, "body", bytes(self.body))

    def header(self, name: str) -> Optional[str]:
        """The first value of the header ``name``, matched case-insensitively."""
        wanted = name.lower()
        return next((value for key, value in self.headers if key.lower() == wanted), None)


@dataclass(frozen=True)
class ApiResponse:
    """A JSON envelope: ``{"ok": {"data": ...}}`` or ``{"err": {...}}``."""

    data: Any = None
    code: Optional[int] = None
    message: Optional[str] = None

    @classmethod
    def ok(cls, data: Any) -> "ApiResponse":
        return cls(data=data)

    @classmethod
    def err(cls, code: int, message: str) -> "ApiResponse":
        if not 0 <= code <= 0xFFFF:
            raise ValueError(f"error code must fit in 16 bits, got {code}")
        return cls(code=code, message=message)

    @property
    def is_ok(self) -> bool:
        return self.code is None

    def encode(self) -> bytes:
        """Serialize to compact JSON bytes."""
        if self.is_ok:
            payload: Dict[str, Any] = {"ok": {"data": self.data}}
        else:
            payload = {"err": {"code": self.code, "message": self.message}}
        return json.dumps(payload, separators=(",", ":"), ensure_ascii=False).encode("utf-8")


def create_response(
    status_code: int,
    body: bytes,
    headers: Sequence[Header],
    cel_expr: str,
) -> HttpResponse:
    """Build a response with the certificate expression and security headers appended."""
    return HttpResponse(
        status_code=status_code,
        headers=(
            *headers,
            (CERTIFICATE_EXPRESSION_HEADER_NAME, cel_expr),
            *SECURITY_HEADERS,
        ),
        body=body,
    )


def extract_path_and_query(request: HttpRequest) -> str:
    """The request path, followed by ``?query`` when a query is present."""
    path = request.get_path()
    query = request.get_query()
    return path if query is None else f"{path}?{query}"


# Response cache


@dataclass(frozen=True)
class CertifiedHttpResponse:
    """A stored response and the digest that certifies it."""

    response: HttpResponse
    certification: bytes


def _certification(response: HttpResponse) -> bytes:
    hasher = hashlib.sha256()
    hasher.update(str(response.status_code).encode("ascii"))
    for name, value in sorted((name.lower(), value) for name, value in response.headers):
        hasher.update(name.encode("utf-8") + b"\0" + value.encode("utf-8") + b"\0")
    hasher.update(hashlib.sha256(response.body).digest())
    return hasher.digest()


class ResponseCache:
    """Certified responses by key, with a root hash over all of them."""

    def __init__(self) -> None:
        self._entries: Dict[str, CertifiedHttpResponse] = {}

    def certify(self, key: str, response: HttpResponse) -> bytes:
        """Store ``response`` under ``key``, replacing any earlier one.

        Returns the response's certification.
        """
        certification = _certification(response)
        self._entries[key] = CertifiedHttpResponse(response, certification)
        return certification

    def get(self, key: str) -> Optional[CertifiedHttpResponse]:
        return self._entries.get(key)

    @property
    def root_hash(self) -> bytes:
        """A digest over every key and certification, in key order."""
        hasher = hashlib.sha256()
        for key in sorted(self._entries):
            hasher.update(hashlib.sha256(key.encode("utf-8")).digest())
            hasher.update(self._entries[key].certification)
        return hasher.digest()

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    def __len__(self) -> int:
        return len(self._entries)


# Routing

RouteHandler = Callable[[HttpRequest, Params], HttpResponse]
Fallback = Callable[[HttpRequest], HttpResponse]

_PARAM = re.compile(r"\{(\*?)([A-Za-z_][A-Za-z0-9_]*)\}")
_STATIC, _NAMED, _CATCH_ALL = 0, 1, 2


class RouteNotFound(LookupError):
    """Raised when no route matches and the router has no fallback."""


@dataclass(frozen=True)
class _Route:
    pattern: str
    segments: Tuple[Tuple[int, str], ...]
    handler: RouteHandler

    @property
    def shape(self) -> Tuple[Tuple[int, str], ...]:
        return tuple((kind, text if kind == _STATIC else "") for kind, text in self.segments)

    def match(self, parts: List[str]) -> Optional[Tuple[Tuple[int, ...], Params]]:
        params: Params = {}
        ranks: List[int] = []
        for position, (kind, text) in enumerate(self.segments):
            if kind == _CATCH_ALL:
                rest = "/".join(parts[position:])
                if not rest:
                    return None
                params[text] = rest
                ranks.append(kind)
                return tuple(ranks), params
            if position >= len(parts):
                return None
            part = parts[position]
            if kind == _STATIC:
                if part != text:
                    return None
            elif not part:
                return None
            else:
                params[text] = part
            ranks.append(kind)
        if len(parts) != len(self.segments):
            return None
        return tuple(ranks), params


def _parse_pattern(pattern: str) -> Tuple[Tuple[int, str], ...]:
    pieces = pattern.split("/")
    segments = []
    for position, piece in enumerate(pieces):
        if "{" not in piece and "}" not in piece:
            segments.append((_STATIC, piece))
            continue
        found = _PARAM.fullmatch(piece)
        if found is None:
            raise ValueError(f"invalid route segment {piece!r} in {pattern!r}")
        if found.group(1):
            if position != len(pieces) - 1:
                raise ValueError(f"catch-all must be the last segment in {pattern!r}")
            segments.append((_CATCH_ALL, found.group(2)))
        else:
            segments.append((_NAMED, found.group(2)))
    return tuple(segments)


class Router:
    """Routes requests by method and path to handlers.

    Paths may hold ``{name}`` parameters matching one segment and a final
    ``{*name}`` catch-all. Static segments win over parameters, parameters
    over catch-alls. Unmatched requests go to ``fallback``.
    """

    def __init__(self, fallback: Optional[Fallback] = None) -> None:
        self._fallback = fallback
        self._routes: Dict[str, List[_Route]] = {}

    def insert(self, method: str, path: str, handler: RouteHandler) -> None:
        """Register ``handler``; raises ``ValueError`` for a conflicting route."""
        route = _Route(path, _parse_pattern(path), handler)
        routes = self._routes.setdefault(method, [])
        for existing in routes:
            if existing.shape == route.shape:
                raise ValueError(
                    f"route {path!r} conflicts with {existing.pattern!r} for {method}"
                )
        routes.append(route)

    def match(self, request: HttpRequest) -> HttpResponse:
        """Answer ``request`` with its handler or with the fallback."""
        path = extract_path_and_query(request)
        routes = self._routes.get(request.method.upper(), [])
        parts = path.split("/")
        best: Optional[Tuple[Tuple[int, ...], Params, RouteHandler]] = None
        for route in routes:
            found = route.match(parts)
            if found is not None and (best is None or found[0] < best[0]):
                best = (found[0], found[1], route.handler)
        if best is not None:
            return best[2](request, best[1])
        if self._fallback is None:
            raise RouteNotFound(f"no route for {request.method} {path}")
        return self._fallback(request)

    def routes(self) -> Mapping[str, List[str]]:
        """Registered patterns by method."""
        return {method: [r.pattern for r in routes] for method, routes in self._routes.items()}