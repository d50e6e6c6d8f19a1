"""
Locator grammar.

A locator is a URI-like string describing one destination::

    [scheme:][//authority]path[?query][#fragment]
    authority = [userinfo@]host-or-[ipv6][:port]

The fragment is a level expression and a trailing ``.ext`` on the path names the
output format.
"""

from __future__ import annotations

import os
import re
from typing import Literal, Optional
from urllib.parse import unquote

from pydantic import BaseModel, ConfigDict, Field

from .exceptions import InvalidLocatorError, InvalidPortError, UnsupportedSchemeError
from .levels import ALL, parse_level

Scheme = Literal["file", "udp", "tty"]
SCHEMES: tuple[str, ...] = ("file", "udp", "tty")

_URI = re.compile(r"^(?:([^:/?#]+):)?(?://([^/?#]*))?([^?#]*)(?:\?([^#]*))?(?:#(.*))?$", re.DOTALL)
#                     {  scheme  }       {authority}  { path }     { query }     {frag}

_AUTHORITY = re.compile(r"^(?:([^@]*)@)?(?:([^:]*)|\[([^\[\]]*)\])(?::([0-9]*))?$")
#                          {userinfo}    { host }   {  ipv6  }       { port }

_EXTENSION = re.compile(r"^(.*)\.([^/.]+)$", re.DOTALL)

_ESCAPES = re.compile(r"(?:%[0-9A-Fa-f]{2})+")

# decodeURI leaves these escaped so the URI structure survives decoding
_RESERVED = frozenset(";/?:@&=+$,#")


class Destination(BaseModel):
    """Parsed, immutable description of one destination."""

    model_config = ConfigDict(frozen=True)

    scheme: Scheme
    userinfo: Optional[str] = None
    host: Optional[str] = None
    port: Optional[int] = Field(default=None, ge=0, le=0xFFFF)
    path: Optional[str] = None
    query: Optional[str] = None
    fragment: Optional[str] = None
    extension: Optional[str] = None
    mask: int = ALL


def _decode_run(run: str) -> str:
    raw = bytes(int(run[i + 1 : i + 3], 16) for i in range(0, len(run), 3))
    try:
        text = raw.decode("utf-8")
    except UnicodeDecodeError as exc:
        raise InvalidLocatorError("invalid uri", locator=run) from exc
    if not _RESERVED.intersection(text):
        return text
    # reserved characters are single-byte, so escapes and characters line up
    out = []
    pos = 0
    for char in text:
        width = len(char.encode("utf-8"))
        out.append(run[pos : pos + 3] if char in _RESERVED else char)
        pos += 3 * width
    return "".join(out)


def decode_uri(locator: str) -> str:
    """Percent-decode a whole locator, keeping reserved characters escaped."""
    if re.search(r"%(?![0-9A-Fa-f]{2})", locator):
        raise InvalidLocatorError("invalid uri", locator=locator)
    return _ESCAPES.sub(lambda m: _decode_run(m.group(0)), locator)


def _component(value: Optional[str]) -> Optional[str]:
    if not value:
        return value
    try:
        return unquote(value, errors="strict")
    except UnicodeDecodeError as exc:
        raise InvalidLocatorError("invalid uri", locator=value) from exc


def expand_path(path: Optional[str]) -> Optional[str]:
    """Validate a file path and expand a leading ``~``."""
    if path is None:
        return path
    if "\0" in path:
        raise InvalidLocatorError("null byte in path", locator=path)
    if not path.startswith("~"):
        return path
    if path.startswith("~+"):
        return os.path.join(os.getcwd(), path[2:].lstrip("/"))
    if path.startswith("~-"):
        return os.path.join(os.environ.get("OLDPWD", os.getcwd()), path[2:].lstrip("/"))
    return os.path.expanduser(path)


def _parse_port(port: Optional[str]) -> Optional[int]:
    if port is None:
        return None
    if port == "":
        return 0
    value = int(port)
    if value > 0xFFFF:
        raise InvalidPortError(port)
    return value


def infer_scheme(host: Optional[str], port: Optional[int], pathname: Optional[str]) -> str:
    if host or port:
        return "udp"
    if not pathname or pathname == ".":
        return "tty"
    return "file"


def parse_locator(locator: str) -> Destination:
    """Parse a locator into a :class:`Destination`.

    Raises:
        InvalidLocatorError: malformed locator or path.
        InvalidPortError: port outside 0..65535.
        UnsupportedSchemeError: explicit scheme without a transport.
        InvalidLevelError: the fragment is not a level expression.
    """
    if not isinstance(locator, str):
        raise InvalidLocatorError(f"invalid uri {locator!r}")
    return parse_decoded(decode_uri(locator))


def parse_decoded(locator: str) -> Destination:
    """Parse a locator already passed through :func:`decode_uri`."""
    match = _URI.match(locator)
    if match is None:
        raise InvalidLocatorError("invalid uri", locator=locator)
    scheme, authority, path, query, fragment = match.groups()

    scheme = _component(scheme)
    path = expand_path(_component(path))
    query = _component(query)
    fragment = _component(fragment or "")

    userinfo = host = None
    port = None
    if authority is not None:
        parts = _AUTHORITY.match(authority)
        if parts is None:
            raise InvalidLocatorError("invalid uri", locator=locator)
        userinfo = _component(parts.group(1))
        host = _component(parts.group(2) if parts.group(2) is not None else parts.group(3)) or None
        port = _parse_port(parts.group(4))

    extension = None
    pathname = path
    ext = _EXTENSION.match(path or "")
    if ext is not None:
        pathname, extension = ext.groups()

    if scheme is None:
        scheme = infer_scheme(host, port, pathname)
    elif scheme not in SCHEMES:
        raise UnsupportedSchemeError(scheme)

    return Destination(
        scheme=scheme,
        userinfo=userinfo,
        host=host,
        port=port,
        path=path,
        query=query,
        fragment=fragment or None,
        extension=extension,
        mask=parse_level(fragment),
    )
