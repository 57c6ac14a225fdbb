"""Cookie parsing, per-request storage, and Set-Cookie serialization.

Consolidates the read side (``parse_cookies``, used by ``Request``), the
per-request ``CookieStore`` handlers read and write through the context,
and the write side (``Cookie.to_header_value``, used when the dispatcher
applies cookies to the final response).
"""

from collections.abc import Iterator, Mapping
from dataclasses import dataclass
from datetime import UTC, datetime
from email.utils import format_datetime
from urllib.parse import quote, unquote

# Expiry stamped on deleted cookies so the client drops them
EPOCH = datetime(1970, 1, 1, tzinfo=UTC)

# Characters left unescaped in cookie values (encodeURIComponent's set)
_VALUE_SAFE = "-_.!~*'()"


def parse_cookies(header: str) -> dict[str, str]:
    """Parse a ``Cookie`` header value into a name-value dict.

    Values are percent-decoded. Returns an empty dict for empty or
    missing headers; pairs without ``=`` are skipped.
    """
    if not header:
        return {}
    cookies: dict[str, str] = {}
    for pair in header.split(";"):
        pair = pair.strip()
        if "=" in pair:
            key, _, value = pair.partition("=")
            cookies[key.strip()] = unquote(value.strip())
    return cookies


def _http_date(moment: datetime) -> str:
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=UTC)
    return format_datetime(moment.astimezone(UTC), usegmt=True)


@dataclass(slots=True)
class Cookie:
    """One cookie record in a ``CookieStore``.

    A falsy *value* turns the record into a deletion: the value becomes
    ``None`` and ``expires`` is forced to the epoch. Only records with
    ``overwrite=True`` are sent back to the client.
    """

    name: str
    value: str | None
    path: str | None = None
    domain: str | None = None
    expires: datetime | None = None
    max_age: int | None = None
    http_only: bool | None = None
    secure: bool | None = None
    same_site: str | bool | None = None
    signed: bool | None = None
    overwrite: bool = True

    def __post_init__(self) -> None:
        if not self.value:
            self.value = None
            self.expires = EPOCH

    @property
    def expired(self) -> bool:
        """True for deletion records."""
        return self.value is None

    def to_header_value(self) -> str:
        """Serialize to a ``Set-Cookie`` header value string.

        Attribute order: Expires, HttpOnly, Secure, Domain, Path, SameSite
        (Max-Age is only emitted together with SameSite).
        """
        if self.value is None:
            return f"{self.name}=; Expires={_http_date(EPOCH)}; Path={self.path or '/'}"

        parts = [f"{self.name}={quote(self.value, safe=_VALUE_SAFE)}"]
        if self.expires is not None:
            parts.append(f"Expires={_http_date(self.expires)}")
        if self.http_only:
            parts.append("HttpOnly")
        if self.secure:
            parts.append("Secure")
        if self.domain:
            parts.append(f"Domain={self.domain}")
        if self.path:
            parts.append(f"Path={self.path}")
        if self.same_site:
            same_site = "Strict" if self.same_site is True else self.same_site
            parts.append(f"SameSite={same_site}")
            if self.max_age is not None:
                parts.append(f"Max-Age={self.max_age}")
        return "; ".join(parts)


class CookieStore:
    """Per-request cookie jar.

    Seeded from the inbound ``Cookie`` header with ``overwrite=False`` so
    that reading a cookie never retransmits it. ``set()`` and ``delete()``
    create records with ``overwrite=True``.

    Usage::

        token = context.cookies.get("token")
        context.cookies.set("theme", "dark", path="/", max_age=3600, same_site="lax")
        context.cookies.delete("session")
    """

    __slots__ = ("_cookies",)

    def __init__(
        self,
        cookies: Mapping[str, str] | None = None,
        *,
        overwrite: bool = False,
        path: str | None = None,
        http_only: bool | None = None,
    ) -> None:
        self._cookies: dict[str, Cookie] = {}
        for name, value in (cookies or {}).items():
            self._cookies[name] = Cookie(
                name, value, path=path, http_only=http_only, overwrite=overwrite
            )

    @classmethod
    def from_header(cls, header: str) -> "CookieStore":
        """Build a store from a raw ``Cookie`` header value."""
        return cls(parse_cookies(header))

    def get(self, name: str) -> Cookie | None:
        """Return the cookie record for *name*, or ``None``."""
        return self._cookies.get(name)

    def set(
        self,
        name: str,
        value: str | None,
        *,
        path: str | None = None,
        domain: str | None = None,
        expires: datetime | None = None,
        max_age: int | None = None,
        http_only: bool | None = None,
        secure: bool | None = None,
        same_site: str | bool | None = None,
        signed: bool | None = None,
        overwrite: bool = True,
    ) -> Cookie:
        """Store a cookie record, replacing any previous one."""
        cookie = Cookie(
            name,
            value,
            path=path,
            domain=domain,
            expires=expires,
            max_age=max_age,
            http_only=http_only,
            secure=secure,
            same_site=same_site,
            signed=signed,
            overwrite=overwrite,
        )
        self._cookies[name] = cookie
        return cookie

    def delete(self, name: str) -> None:
        """Replace a known cookie with an expiring record for the client.

        The record keeps the original path so the browser clears the
        right cookie. Unknown names are ignored.
        """
        cookie = self._cookies.get(name)
        if cookie is not None:
            self._cookies[name] = Cookie(name, None, path=cookie.path)

    def outgoing(self) -> list[Cookie]:
        """Records that must be emitted as ``Set-Cookie`` headers."""
        return [cookie for cookie in self._cookies.values() if cookie.overwrite]

    def items(self) -> list[tuple[str, Cookie]]:
        return list(self._cookies.items())

    def __contains__(self, name: object) -> bool:
        return name in self._cookies

    def __iter__(self) -> Iterator[str]:
        return iter(self._cookies)

    def __len__(self) -> int:
        return len(self._cookies)

    def __repr__(self) -> str:
        return f"CookieStore({list(self._cookies)!r})"
