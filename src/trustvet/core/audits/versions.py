"""Versions, version ranges, and package-version identities.

Versions follow Semantic Versioning 2.0.0 precedence with one extension used
by audit databases: a ``@git:<rev>`` suffix names an unpublished revision on
top of a published version (``1.2.3@git:0a1b2c``).

Range syntax mirrors Cargo/npm requirement strings: exact match (``=`` or
``==``), not-equal (``!=``), inclusive/exclusive bounds (``>=``, ``<=``,
``>``, ``<``), caret (``^``, also the meaning of a bare version), tilde
(``~``), wildcard (``*``), and comma-separated conjunctions.

References
----------
.. [SemVer] Preston-Werner, T. (2013). "Semantic Versioning 2.0.0."
   https://semver.org/
"""

from __future__ import annotations

import functools
import re
from dataclasses import dataclass, field

# ---------------------------------------------------------------------------
# Version: a totally ordered semantic version
# ---------------------------------------------------------------------------

_SEMVER_RE = re.compile(
    r"^(?P<major>0|[1-9]\d*)\.(?P<minor>0|[1-9]\d*)\.(?P<patch>0|[1-9]\d*)"
    r"(?:-(?P<pre>[0-9A-Za-z\-.]+))?"
    r"(?:\+(?P<build>[0-9A-Za-z\-.]+))?$"
)

_GIT_PREFIX = "git:"


def _pre_key(pre: tuple[str, ...]) -> tuple:
    """Precedence key for pre-release identifiers (SemVer section 11).

    A release (no identifiers) sorts after every pre-release of the same
    triple. Numeric identifiers compare numerically and sort before
    alphanumeric ones.
    """
    if not pre:
        return (1,)
    parts = tuple(
        (0, int(ident), "") if ident.isdigit() else (1, 0, ident)
        for ident in pre
    )
    return (0, parts)


@functools.total_ordering
@dataclass(frozen=True)
class Version:
    """A semantic version, optionally pinned to a git revision.

    Build metadata is kept for display but ignored for equality and
    ordering, per SemVer precedence rules.

    Attributes:
        major: Major version number.
        minor: Minor version number.
        patch: Patch version number.
        pre: Pre-release identifiers (``("alpha", "1")`` for ``-alpha.1``).
        git_rev: Git revision for unpublished code, or None.
        build: Build metadata (not part of identity).
    """

    major: int
    minor: int
    patch: int
    pre: tuple[str, ...] = ()
    git_rev: str | None = None
    build: str = field(default="", compare=False)

    @classmethod
    def parse(cls, text: str) -> Version:
        """Parse ``"1.2.3"``, ``"1.0.0-rc.1"`` or ``"1.2.3@git:abc123"``.

        Raises:
            ValueError: If the string is not a valid version.
        """
        raw = text.strip()
        git_rev: str | None = None
        if "@" in raw:
            raw, _, rev = raw.partition("@")
            rev = rev.strip()
            if not rev.startswith(_GIT_PREFIX) or not rev[len(_GIT_PREFIX):]:
                raise ValueError(f"Unknown revision kind in version: {text!r}")
            git_rev = rev[len(_GIT_PREFIX):]
            raw = raw.strip()
        m = _SEMVER_RE.match(raw)
        if not m:
            raise ValueError(f"Invalid semantic version: {text!r}")
        pre = tuple(m.group("pre").split(".")) if m.group("pre") else ()
        return cls(
            major=int(m.group("major")),
            minor=int(m.group("minor")),
            patch=int(m.group("patch")),
            pre=pre,
            git_rev=git_rev,
            build=m.group("build") or "",
        )

    @property
    def sort_key(self) -> tuple:
        """Total-order key: SemVer precedence, then git revision."""
        rev_key = (0, "") if self.git_rev is None else (1, self.git_rev)
        return (self.major, self.minor, self.patch, _pre_key(self.pre), rev_key)

    @property
    def triple(self) -> tuple[int, int, int]:
        return (self.major, self.minor, self.patch)

    def published(self) -> Version:
        """Return this version without its git revision."""
        if self.git_rev is None:
            return self
        return Version(self.major, self.minor, self.patch, self.pre, None, self.build)

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, Version):
            return NotImplemented
        return self.sort_key < other.sort_key

    def __str__(self) -> str:
        text = f"{self.major}.{self.minor}.{self.patch}"
        if self.pre:
            text += "-" + ".".join(self.pre)
        if self.build:
            text += "+" + self.build
        if self.git_rev is not None:
            text += f"@{_GIT_PREFIX}{self.git_rev}"
        return text

    def __repr__(self) -> str:
        return f"Version({str(self)!r})"


# ---------------------------------------------------------------------------
# VersionRange: declarative set of versions
# ---------------------------------------------------------------------------

_RANGE_ATOM_RE = re.compile(
    r"^\s*(?P<op>==|=|!=|>=|<=|>|<|\^|~)?\s*(?P<ver>[0-9][0-9A-Za-z\-.+]*)\s*$"
)


@dataclass(frozen=True)
class VersionRange:
    """A version range such as ``">=1.1.0, <2.0.0"`` or ``"*"``.

    All comma-separated atoms must hold (conjunction). A bare version means
    caret compatibility, as in Cargo. Git revisions are ignored when testing
    membership: ``1.2.3@git:abc`` is in a range iff ``1.2.3`` is.

    Attributes:
        raw: The range string as authored.
    """

    raw: str
    _atoms: tuple[tuple[str, Version], ...] = field(
        default=(), init=False, repr=False, compare=False
    )

    def __post_init__(self) -> None:
        stripped = self.raw.strip()
        if not stripped:
            raise ValueError("Empty version range")
        atoms: list[tuple[str, Version]] = []
        if stripped != "*":
            for part in stripped.split(","):
                m = _RANGE_ATOM_RE.match(part)
                if not m:
                    raise ValueError(f"Invalid version range atom: {part!r}")
                op = m.group("op") or "^"
                atoms.append(("==" if op == "=" else op, Version.parse(m.group("ver"))))
        object.__setattr__(self, "_atoms", tuple(atoms))

    @classmethod
    def exact(cls, version: Version) -> VersionRange:
        return cls(f"={version.published()}")

    @property
    def is_wildcard(self) -> bool:
        return not self._atoms

    def contains(self, version: Version) -> bool:
        """Return True if *version* lies inside this range."""
        target = version.published()
        return all(self._atom_contains(op, bound, target) for op, bound in self._atoms)

    __contains__ = contains

    @staticmethod
    def _atom_contains(op: str, bound: Version, ver: Version) -> bool:
        if op == "==":
            return ver == bound
        elif op == "!=":
            return ver != bound
        elif op == ">=":
            return ver >= bound
        elif op == "<=":
            return ver <= bound
        elif op == ">":
            return ver > bound
        elif op == "<":
            return ver < bound
        elif op == "^":
            # Same left-most non-zero component, and not below the bound.
            if ver < bound:
                return False
            if bound.major != 0:
                return ver.major == bound.major
            if bound.minor != 0:
                return ver.major == 0 and ver.minor == bound.minor
            return ver.triple == bound.triple
        elif op == "~":
            return ver >= bound and ver.major == bound.major and ver.minor == bound.minor
        else:  # pragma: no cover
            raise ValueError(f"Unknown operator: {op!r}")

    def __str__(self) -> str:
        return self.raw


# ---------------------------------------------------------------------------
# PackageVersion: one concrete (package, version) identity
# ---------------------------------------------------------------------------


@dataclass(frozen=True, order=True)
class PackageVersion:
    """A (package name, version) pair, ordered by name then version."""

    package: str
    version: Version

    @classmethod
    def parse(cls, text: str) -> PackageVersion:
        """Parse ``"left-pad@1.0.0"`` (or ``"left-pad:1.0.0"``).

        The first separator splits name from version, so git-pinned versions
        (``"foo@1.0.0@git:abc"``) round-trip.
        """
        for sep in ("@", ":"):
            name, found, ver = text.partition(sep)
            if found and name.strip():
                return cls(name.strip(), Version.parse(ver))
        raise ValueError(f"Expected 'package@version', got {text!r}")

    def __str__(self) -> str:
        return f"{self.package}@{self.version}"
