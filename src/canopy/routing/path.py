"""Route path patterns.

Compiles Express-style path templates into regular expressions and matches
request paths against them::

    /users              literal
    /users/:id          named parameter (one segment)
    /files/:id(\\d+)     parameter with an inline sub-pattern
    /(\\d+)              unnamed group, keyed "0", "1", ...
    /docs{/:section}?   brace group with an optional parameter
    /assets/:path*      repeated parameter, extracted as a list

Matching is case-insensitive and tolerates a single trailing delimiter.
Request paths arrive already percent-decoded, so extracted values are
returned verbatim. ``"*"`` matches every path, and pre-compiled
``re.Pattern`` objects are tested with ``search()`` and never yield
parameters.
"""

import posixpath
import re
import string
from dataclasses import dataclass
from functools import lru_cache
from typing import NamedTuple

from canopy._internal.types import Params
from canopy.errors import ConfigurationError

RoutePath = str | re.Pattern[str]

WILDCARD = "*"

_DELIMITERS = "/#?"
_DEFAULT_PATTERN = f"[^{re.escape(_DELIMITERS)}]+?"
_PREFIXES = "./"
_NAME_CHARS = frozenset(string.ascii_letters + string.digits + "_")
_MODIFIERS = "*+?"


class _Lexeme(NamedTuple):
    kind: str
    index: int
    value: str


@dataclass(frozen=True, slots=True)
class Key:
    """A parameter slot in a compiled pattern."""

    name: str
    prefix: str
    suffix: str
    pattern: str
    modifier: str

    @property
    def repeated(self) -> bool:
        return self.modifier in ("*", "+")


@dataclass(frozen=True, slots=True)
class PathMatch:
    """A successful match: the matched portion of the path and its params."""

    path: str
    params: Params


def _invalid(pattern: str, reason: str) -> ConfigurationError:
    return ConfigurationError(f"Invalid route pattern {pattern!r}: {reason}")


def _lex(pattern: str) -> list[_Lexeme]:
    tokens: list[_Lexeme] = []
    i = 0
    length = len(pattern)

    while i < length:
        char = pattern[i]

        if char in _MODIFIERS:
            tokens.append(_Lexeme("MODIFIER", i, char))
            i += 1
            continue

        if char == "\\":
            if i + 1 >= length:
                raise _invalid(pattern, f"dangling escape at {i}")
            tokens.append(_Lexeme("ESCAPED_CHAR", i, pattern[i + 1]))
            i += 2
            continue

        if char == "{":
            tokens.append(_Lexeme("OPEN", i, char))
            i += 1
            continue

        if char == "}":
            tokens.append(_Lexeme("CLOSE", i, char))
            i += 1
            continue

        if char == ":":
            j = i + 1
            while j < length and pattern[j] in _NAME_CHARS:
                j += 1
            name = pattern[i + 1 : j]
            if not name:
                raise _invalid(pattern, f"missing parameter name at {i}")
            tokens.append(_Lexeme("NAME", i, name))
            i = j
            continue

        if char == "(":
            depth = 1
            sub = ""
            j = i + 1
            if j < length and pattern[j] == "?":
                raise _invalid(pattern, f'sub-pattern cannot start with "?" at {j}')
            while j < length:
                if pattern[j] == "\\":
                    sub += pattern[j : j + 2]
                    j += 2
                    continue
                if pattern[j] == ")":
                    depth -= 1
                    if depth == 0:
                        j += 1
                        break
                elif pattern[j] == "(":
                    depth += 1
                    if j + 1 >= length or pattern[j + 1] != "?":
                        raise _invalid(pattern, f"capturing groups are not allowed at {j}")
                sub += pattern[j]
                j += 1
            if depth:
                raise _invalid(pattern, f"unbalanced sub-pattern at {i}")
            if not sub:
                raise _invalid(pattern, f"missing sub-pattern at {i}")
            tokens.append(_Lexeme("PATTERN", i, sub))
            i = j
            continue

        tokens.append(_Lexeme("CHAR", i, char))
        i += 1

    tokens.append(_Lexeme("END", i, ""))
    return tokens


class _Parser:
    """Turns lexemes into literal strings and parameter ``Key`` objects."""

    def __init__(self, pattern: str) -> None:
        self.pattern = pattern
        self.tokens = _lex(pattern)
        self.position = 0
        self.next_index = 0

    def try_consume(self, kind: str) -> str | None:
        if self.position < len(self.tokens) and self.tokens[self.position].kind == kind:
            value = self.tokens[self.position].value
            self.position += 1
            return value
        return None

    def must_consume(self, kind: str) -> str:
        value = self.try_consume(kind)
        if value is not None:
            return value
        token = self.tokens[self.position]
        raise _invalid(self.pattern, f"unexpected {token.kind} at {token.index}, expected {kind}")

    def consume_text(self) -> str:
        text = ""
        while True:
            value = self.try_consume("CHAR")
            if value is None:
                value = self.try_consume("ESCAPED_CHAR")
            if value is None:
                return text
            text += value

    def unnamed(self) -> str:
        name = str(self.next_index)
        self.next_index += 1
        return name

    def parse(self) -> list[str | Key]:
        result: list[str | Key] = []
        path = ""

        while self.position < len(self.tokens):
            char = self.try_consume("CHAR")
            name = self.try_consume("NAME")
            sub = self.try_consume("PATTERN")

            if name or sub:
                prefix = char or ""
                if prefix not in _PREFIXES:
                    path += prefix
                    prefix = ""
                if path:
                    result.append(path)
                    path = ""
                result.append(
                    Key(
                        name=name or self.unnamed(),
                        prefix=prefix,
                        suffix="",
                        pattern=sub or _DEFAULT_PATTERN,
                        modifier=self.try_consume("MODIFIER") or "",
                    )
                )
                continue

            value = char or self.try_consume("ESCAPED_CHAR")
            if value:
                path += value
                continue

            if path:
                result.append(path)
                path = ""

            if self.try_consume("OPEN") is not None:
                prefix = self.consume_text()
                name = self.try_consume("NAME") or ""
                sub = self.try_consume("PATTERN") or ""
                suffix = self.consume_text()
                self.must_consume("CLOSE")
                if name and not sub:
                    sub = _DEFAULT_PATTERN
                if not name and sub:
                    name = self.unnamed()
                result.append(
                    Key(
                        name=name,
                        prefix=prefix,
                        suffix=suffix,
                        pattern=sub,
                        modifier=self.try_consume("MODIFIER") or "",
                    )
                )
                continue

            self.must_consume("END")

        return result


def _to_regex(tokens: list[str | Key]) -> tuple[str, tuple[Key, ...]]:
    route = "^"
    keys: list[Key] = []

    for token in tokens:
        if isinstance(token, str):
            route += re.escape(token)
            continue

        prefix = re.escape(token.prefix)
        suffix = re.escape(token.suffix)

        if not token.pattern:
            route += f"(?:{prefix}{suffix}){token.modifier}"
            continue

        keys.append(token)
        if prefix or suffix:
            if token.repeated:
                optional = "?" if token.modifier == "*" else ""
                route += (
                    f"(?:{prefix}((?:{token.pattern})(?:{suffix}{prefix}(?:{token.pattern}))*){suffix}){optional}"
                )
            else:
                route += f"(?:{prefix}({token.pattern}){suffix}){token.modifier}"
        elif token.repeated:
            route += f"((?:{token.pattern}){token.modifier})"
        else:
            route += f"({token.pattern}){token.modifier}"

    route += f"[{re.escape(_DELIMITERS)}]?\\Z"
    return route, tuple(keys)


@dataclass(frozen=True, slots=True)
class PathMatcher:
    """A compiled route pattern. Call it with a path to match."""

    source: RoutePath
    regex: re.Pattern[str] | None
    keys: tuple[Key, ...] = ()

    def __call__(self, path: str) -> PathMatch | None:
        if self.regex is None:
            return PathMatch(path, {})
        found = self.regex.search(path)
        if found is None:
            return None
        params: Params = {}
        for key, value in zip(self.keys, found.groups(), strict=False):
            if value is None:
                continue
            if key.repeated:
                separator = key.prefix + key.suffix
                params[key.name] = value.split(separator) if separator else [value]
            else:
                params[key.name] = value
        return PathMatch(found.group(0), params)


@lru_cache(maxsize=512)
def compile_path(pattern: RoutePath) -> PathMatcher:
    """Compile a route pattern into a ``PathMatcher``.

    Raises:
        ConfigurationError: If the pattern is malformed.
    """
    if isinstance(pattern, re.Pattern):
        return PathMatcher(pattern, pattern)
    if pattern == WILDCARD:
        return PathMatcher(pattern, None)
    tokens = _Parser(pattern).parse()
    source, keys = _to_regex(tokens)
    try:
        regex = re.compile(source, re.IGNORECASE)
    except re.error as exc:
        raise _invalid(pattern, str(exc)) from exc
    return PathMatcher(pattern, regex, keys)


def match_path(pattern: RoutePath, path: str) -> PathMatch | None:
    """Shortcut for ``compile_path(pattern)(path)``."""
    return compile_path(pattern)(path)


def normalize_path(path: RoutePath) -> RoutePath:
    """Collapse ``//``, ``.`` and ``..``, drop the trailing slash, force a leading one.

    ``"*"`` and ``re.Pattern`` objects are returned untouched.
    """
    if isinstance(path, re.Pattern) or path == WILDCARD:
        return path
    stripped = posixpath.normpath(path or "/").strip("/")
    if stripped == ".":
        stripped = ""
    return "/" + stripped
