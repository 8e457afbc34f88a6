"""Path-pattern policies and the path matching they rely on."""

from __future__ import annotations

import json
from typing import Iterable


class BadPatternError(ValueError):
    """A path pattern is syntactically invalid."""

    def __init__(self, message: str = "syntax error in pattern") -> None:
        super().__init__(message)


class NotAllowedError(PermissionError):
    """A request path is not allowed by a policy."""

    def __init__(self, message: str = "not allowed by policy") -> None:
        super().__init__(message)


def match(pattern: str, name: str) -> bool:
    """Report whether ``name`` matches the shell-style ``pattern``.

    ``*`` matches any run of characters except '/', ``?`` matches a single
    character except '/', ``[...]`` is a character class (``^`` negates it)
    and ``\\`` escapes the next character. The whole pattern is checked for
    syntax errors, which raise :class:`BadPatternError`.
    """
    while pattern:
        star, chunk, pattern = _scan_chunk(pattern)
        if star and not chunk:
            # A trailing star matches the rest unless it holds a '/'.
            return "/" not in name

        rest = _match_chunk(chunk, name)
        if rest is not None and (not rest or pattern):
            name = rest
            continue

        if star and _skip_match(chunk, name, pattern) is not None:
            name = _skip_match(chunk, name, pattern)
            continue

        # Check that the remaining pattern is well-formed before failing.
        while pattern:
            _, chunk, pattern = _scan_chunk(pattern)
            _match_chunk(chunk, "")
        return False
    return not name


def _skip_match(chunk: str, name: str, pattern: str) -> str | None:
    """Try matching ``chunk`` after skipping a prefix of ``name`` without '/'."""
    for i, char in enumerate(name):
        if char == "/":
            break
        rest = _match_chunk(chunk, name[i + 1:])
        if rest is None:
            continue
        if not pattern and rest:
            continue
        return rest
    return None


def _scan_chunk(pattern: str) -> tuple[bool, str, str]:
    stripped = pattern.lstrip("*")
    star = len(stripped) != len(pattern)
    pattern = stripped

    in_range = False
    i = 0
    while i < len(pattern):
        char = pattern[i]
        if char == "\\":
            if i + 1 < len(pattern):
                i += 1
        elif char == "[":
            in_range = True
        elif char == "]":
            in_range = False
        elif char == "*" and not in_range:
            break
        i += 1
    return star, pattern[:i], pattern[i:]


def _match_chunk(chunk: str, s: str) -> str | None:
    """Match ``chunk`` at the start of ``s``; return the rest or ``None``."""
    failed = False
    while chunk:
        if not failed and not s:
            failed = True
        head = chunk[0]
        if head == "[":
            char = ""
            if not failed:
                char, s = s[0], s[1:]
            chunk = chunk[1:]
            negated = chunk.startswith("^")
            if negated:
                chunk = chunk[1:]
            matched = False
            ranges = 0
            while True:
                if chunk.startswith("]") and ranges > 0:
                    chunk = chunk[1:]
                    break
                lo, chunk = _get_escaped(chunk)
                hi = lo
                if chunk[0] == "-":
                    hi, chunk = _get_escaped(chunk[1:])
                if not failed and lo <= char <= hi:
                    matched = True
                ranges += 1
            if matched == negated:
                failed = True
        elif head == "?":
            if not failed:
                if s[0] == "/":
                    failed = True
                s = s[1:]
            chunk = chunk[1:]
        else:
            if head == "\\":
                chunk = chunk[1:]
                if not chunk:
                    raise BadPatternError()
            if not failed:
                if chunk[0] != s[0]:
                    failed = True
                s = s[1:]
            chunk = chunk[1:]
    return None if failed else s


def _get_escaped(chunk: str) -> tuple[str, str]:
    if not chunk or chunk[0] in "-]":
        raise BadPatternError()
    if chunk[0] == "\\":
        chunk = chunk[1:]
        if not chunk:
            raise BadPatternError()
    char, rest = chunk[0], chunk[1:]
    if not rest:
        raise BadPatternError()
    return char, rest


def _validate(patterns: Iterable[str]) -> None:
    for pattern in patterns:
        match(pattern, pattern)


_JSON_ESCAPES = {
    "<": "\\u003c",
    ">": "\\u003e",
    "&": "\\u0026",
    "\u2028": "\\u2028",
    "\u2029": "\\u2029",
}


class Policy:
    """A set of path patterns; a request path is allowed if any pattern matches."""

    def __init__(self, *patterns: str) -> None:
        _validate(patterns)
        self._patterns: tuple[str, ...] = tuple(patterns)

    @property
    def patterns(self) -> tuple[str, ...]:
        return self._patterns

    def to_json(self) -> str:
        """Return the policy as compact JSON: ``{"paths":[...]}``."""
        text = json.dumps(
            {"paths": list(self._patterns)}, separators=(",", ":"), ensure_ascii=False
        )
        for char, escaped in _JSON_ESCAPES.items():
            text = text.replace(char, escaped)
        return text

    def __str__(self) -> str:
        body = "".join(f"  {pattern}\n" for pattern in self._patterns if pattern)
        return "[\n" + body + "]\n"

    def __repr__(self) -> str:
        return f"Policy({', '.join(map(repr, self._patterns))})"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Policy):
            return NotImplemented
        return self._patterns == other._patterns

    def __hash__(self) -> int:
        return hash(self._patterns)

    def verify(self, path: str) -> None:
        """Raise :class:`NotAllowedError` unless some pattern matches ``path``."""
        for pattern in self._patterns:
            try:
                if match(pattern, path):
                    return
            except BadPatternError:
                continue
        raise NotAllowedError()


def parse_policy(data: str | bytes) -> Policy:
    """Parse a policy from its JSON form ``{"paths":[...]}``.

    Unknown fields are rejected and every pattern is validated.
    Data after the first JSON value is ignored.
    """
    if isinstance(data, (bytes, bytearray)):
        data = bytes(data).decode("utf-8")
    text = data.lstrip()
    if not text:
        raise ValueError("policy is empty")
    value, _ = json.JSONDecoder().raw_decode(text)

    if value is None:
        return Policy()
    if not isinstance(value, dict):
        raise ValueError("policy must be a JSON object")

    paths: list[str] | None = None
    for key, item in value.items():
        if key.casefold() != "paths":
            raise ValueError(f"unknown field {key!r}")
        if item is None:
            continue
        if not isinstance(item, list):
            raise ValueError("policy paths must be a list of strings")
        parsed = []
        for entry in item:
            if entry is None:
                entry = ""
            if not isinstance(entry, str):
                raise ValueError("policy paths must be a list of strings")
            parsed.append(entry)
        paths = parsed
    return Policy(*(paths or ()))