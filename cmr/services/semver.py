"""Semantic versions and npm-style version ranges.

Chart versions follow SemVer 2.0. ``source.version_range`` uses the range
grammar Helm users know from node-semver:

    1.2.3  =1.2.3  >1.2  <=2  ^1.2.3  ~1.2  1.x  *  1.2.3 - 2.3  >=1 <2 || >=3
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from functools import total_ordering
from typing import Literal, TypeAlias

__all__ = [
    "Version",
    "Comparator",
    "Range",
    "parse_version",
    "parse_range",
]

PreId: TypeAlias = int | str
Op: TypeAlias = Literal["<", "<=", ">", ">=", "="]

_IDENT = r"[0-9A-Za-z-]+"
_VERSION_RE = re.compile(
    r"^v?(0|[1-9]\d*)\.(0|[1-9]\d*)\.(0|[1-9]\d*)"
    rf"(?:-({_IDENT}(?:\.{_IDENT})*))?"
    rf"(?:\+({_IDENT}(?:\.{_IDENT})*))?$"
)
_PARTIAL_RE = re.compile(
    r"^(<=|>=|<|>|=|\^|~>?)?v?"
    r"(0|[1-9]\d*|[xX*])"
    r"(?:\.(0|[1-9]\d*|[xX*])"
    r"(?:\.(0|[1-9]\d*|[xX*])"
    rf"(?:-({_IDENT}(?:\.{_IDENT})*))?"
    rf"(?:\+({_IDENT}(?:\.{_IDENT})*))?)?)?$"
)
_HYPHEN_RE = re.compile(r"^(\S+)\s+-\s+(\S+)$")
_OP_SPACE_RE = re.compile(r"(<=|>=|<|>|=|\^|~>?)\s+")


def _prerelease(text: str | None) -> tuple[PreId, ...]:
    if not text:
        return ()
    out: list[PreId] = []
    for part in text.split("."):
        out.append(int(part) if part.isdigit() else part)
    return tuple(out)


@total_ordering
@dataclass(frozen=True, slots=True, eq=False)
class Version:
    major: int
    minor: int
    patch: int
    prerelease: tuple[PreId, ...] = ()
    build: tuple[str, ...] = ()

    def _key(self) -> tuple[int, int, int, int, tuple[tuple[int, int | str], ...]]:
        # A release sorts after all of its prereleases; numeric ids sort
        # before alphanumeric ones.
        pre = tuple((0, p) if isinstance(p, int) else (1, p) for p in self.prerelease)
        return (self.major, self.minor, self.patch, 0 if self.prerelease else 1, pre)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Version):
            return NotImplemented
        return self._key() == other._key()

    def __lt__(self, other: Version) -> bool:
        return self._key() < other._key()

    def __hash__(self) -> int:
        return hash(self._key())

    @property
    def core(self) -> tuple[int, int, int]:
        return (self.major, self.minor, self.patch)

    def __str__(self) -> str:
        text = f"{self.major}.{self.minor}.{self.patch}"
        if self.prerelease:
            text += "-" + ".".join(str(p) for p in self.prerelease)
        if self.build:
            text += "+" + ".".join(self.build)
        return text


def parse_version(text: str) -> Version | None:
    m = _VERSION_RE.match(text.strip())
    if m is None:
        return None
    return Version(
        int(m.group(1)),
        int(m.group(2)),
        int(m.group(3)),
        _prerelease(m.group(4)),
        tuple(m.group(5).split(".")) if m.group(5) else (),
    )


_ZERO = Version(0, 0, 0)
# Lowest possible version; "<0.0.0-0" matches nothing.
_FLOOR = Version(0, 0, 0, (0,))


def _lowest(major: int, minor: int = 0, patch: int = 0) -> Version:
    """The first prerelease of ``major.minor.patch`` (exclusive upper bounds)."""
    return Version(major, minor, patch, (0,))


@dataclass(frozen=True, slots=True)
class Comparator:
    op: Op
    version: Version

    def test(self, v: Version) -> bool:
        match self.op:
            case "<":
                return v < self.version
            case "<=":
                return v <= self.version
            case ">":
                return v > self.version
            case ">=":
                return v >= self.version
            case "=":
                return v == self.version

    def __str__(self) -> str:
        return f"{self.op}{self.version}"


_ANY = (Comparator(">=", _ZERO),)
_NONE = (Comparator("<", _FLOOR),)


def _num(part: str | None) -> int | None:
    if part is None or part in ("x", "X", "*"):
        return None
    return int(part)


def _desugar(op: str, major: int | None, minor: int | None, patch: int | None,
             pre: tuple[PreId, ...]) -> tuple[Comparator, ...]:
    if major is None:
        return _NONE if op in ("<", ">") else _ANY

    if op in ("", "="):
        if minor is None:
            return (Comparator(">=", Version(major, 0, 0)), Comparator("<", _lowest(major + 1)))
        if patch is None:
            return (
                Comparator(">=", Version(major, minor, 0)),
                Comparator("<", _lowest(major, minor + 1)),
            )
        return (Comparator("=", Version(major, minor, patch, pre)),)

    if op in ("~", "~>"):
        if minor is None:
            return (Comparator(">=", Version(major, 0, 0)), Comparator("<", _lowest(major + 1)))
        return (
            Comparator(">=", Version(major, minor, patch or 0, pre if patch is not None else ())),
            Comparator("<", _lowest(major, minor + 1)),
        )

    if op == "^":
        if minor is None:
            return (Comparator(">=", Version(major, 0, 0)), Comparator("<", _lowest(major + 1)))
        lower = Version(major, minor, patch or 0, pre if patch is not None else ())
        if major != 0:
            upper = _lowest(major + 1)
        elif minor != 0 or patch is None:
            upper = _lowest(0, minor + 1)
        else:
            upper = _lowest(0, 0, patch + 1)
        return (Comparator(">=", lower), Comparator("<", upper))

    # Plain comparators; partial versions widen to the enclosing block.
    if minor is None or patch is None:
        if op == ">":
            bound = Version(major + 1, 0, 0) if minor is None else Version(major, minor + 1, 0)
            return (Comparator(">=", bound),)
        if op == "<=":
            bound = _lowest(major + 1) if minor is None else _lowest(major, minor + 1)
            return (Comparator("<", bound),)
        if op == "<":
            return (Comparator("<", _lowest(major, minor or 0)),)
        return (Comparator(">=", Version(major, minor or 0, 0)),)
    return (Comparator(op, Version(major, minor, patch, pre)),)  # type: ignore[arg-type]


def _parse_token(token: str) -> tuple[Comparator, ...] | None:
    if token in ("", "*", "x", "X"):
        return _ANY
    m = _PARTIAL_RE.match(token)
    if m is None:
        return None
    major, minor, patch = _num(m.group(2)), _num(m.group(3)), _num(m.group(4))
    # "1.x.3" is not a range.
    if (major is None and (minor is not None or patch is not None)) or (
        minor is None and patch is not None
    ):
        return None
    return _desugar(m.group(1) or "", major, minor, patch, _prerelease(m.group(5)))


def _parse_hyphen(low: str, high: str) -> tuple[Comparator, ...] | None:
    lo = _PARTIAL_RE.match(low)
    hi = _PARTIAL_RE.match(high)
    if lo is None or hi is None or lo.group(1) or hi.group(1):
        return None
    out: list[Comparator] = []
    lmaj, lmin, lpat = _num(lo.group(2)), _num(lo.group(3)), _num(lo.group(4))
    if lmaj is not None:
        pre = _prerelease(lo.group(5)) if lpat is not None else ()
        out.append(Comparator(">=", Version(lmaj, lmin or 0, lpat or 0, pre)))
    hmaj, hmin, hpat = _num(hi.group(2)), _num(hi.group(3)), _num(hi.group(4))
    if hmaj is not None:
        if hmin is None:
            out.append(Comparator("<", _lowest(hmaj + 1)))
        elif hpat is None:
            out.append(Comparator("<", _lowest(hmaj, hmin + 1)))
        else:
            out.append(Comparator("<=", Version(hmaj, hmin, hpat, _prerelease(hi.group(5)))))
    return tuple(out) or _ANY


def _test_set(comparators: tuple[Comparator, ...], v: Version) -> bool:
    if not all(c.test(v) for c in comparators):
        return False
    if not v.prerelease:
        return True
    # A prerelease only matches when the range opts into prereleases of
    # that exact major.minor.patch.
    return any(
        c.version.prerelease and c.version.core == v.core and c.version != _FLOOR
        for c in comparators
    )


@dataclass(frozen=True, slots=True)
class Range:
    """A union (``||``) of comparator sets."""

    raw: str
    sets: tuple[tuple[Comparator, ...], ...]

    def test(self, v: Version) -> bool:
        return any(_test_set(s, v) for s in self.sets)

    def __str__(self) -> str:
        return " || ".join(" ".join(str(c) for c in s) for s in self.sets)


def parse_range(expr: str) -> Range | None:
    """Parse a range expression, or return None if it is not valid."""
    sets: list[tuple[Comparator, ...]] = []
    for alternative in expr.split("||"):
        text = alternative.strip()
        hyphen = _HYPHEN_RE.match(text)
        if hyphen is not None:
            parsed = _parse_hyphen(hyphen.group(1), hyphen.group(2))
            if parsed is None:
                return None
            sets.append(parsed)
            continue

        comparators: list[Comparator] = []
        for token in _OP_SPACE_RE.sub(r"\1", text).split() or [""]:
            parsed = _parse_token(token)
            if parsed is None:
                return None
            comparators.extend(parsed)
        sets.append(tuple(comparators))
    return Range(raw=expr, sets=tuple(sets))
