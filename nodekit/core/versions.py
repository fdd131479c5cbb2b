"""
Version specifier parsing and resolution.

Specifiers follow node-semver conventions:
- Exact: "10.16.0", "v10.16.0", "=10.16.0"
- Partial (X-range): "10", "10.16", "10.x", "10.16.*"
- Ranges: "^10.1", "~8.9", ">=8 <10", "8.0.0 - 8.9", "^8 || ^10"
- Aliases: "latest", "current", "node", "*"

Partials are matched component-wise, so "1.2" matches "1.2.5" but never
"1.20.0". Pre-release versions only match when a comparator in the same
AND-group names a pre-release of the same major.minor.patch.

Concrete versions are parsed and ordered with ``packaging.version``.
Everything here is pure: no I/O, deterministic output.

Example:
    >>> resolve("1.2", ["1.20.0", "1.2.5", "1.2.3"])
    '1.2.5'
    >>> resolve("^10", ["10.16.0", "11.0.0"])
    '10.16.0'
"""

import logging
import re
from dataclasses import dataclass
from typing import Iterable, List, Optional, Tuple, Union

from packaging.version import InvalidVersion, Version

from nodekit.core.exceptions import InvalidSpecifierError

logger = logging.getLogger(__name__)

ALIASES = {"latest": "*", "current": "*", "node": "*"}

_SEMVER_RE = re.compile(
    r"^(?P<release>\d+\.\d+\.\d+)"
    r"(?:-(?P<pre>[0-9A-Za-z-]+(?:\.[0-9A-Za-z-]+)*))?"
    r"(?:\+[0-9A-Za-z-]+(?:\.[0-9A-Za-z-]+)*)?$"
)

_PARTIAL_RE = re.compile(
    r"^v?(?P<major>\d+|[xX*])"
    r"(?:\.(?P<minor>\d+|[xX*])"
    r"(?:\.(?P<patch>\d+|[xX*])"
    r"(?:-(?P<pre>[0-9A-Za-z-]+(?:\.[0-9A-Za-z-]+)*))?"
    r"(?:\+[0-9A-Za-z-]+(?:\.[0-9A-Za-z-]+)*)?"
    r")?)?$"
)

_HYPHEN_RE = re.compile(r"^(?P<low>\S+)\s+-\s+(?P<high>\S+)$")
_OPERATOR_SPACE_RE = re.compile(r"(<=|>=|<|>|=|~>|~|\^)\s+")
_TOKEN_RE = re.compile(r"^(?P<op><=|>=|<|>|=|~>|~|\^)?(?P<partial>.+)$")


def clean_version(text: str) -> Optional[str]:
    """
    Normalize a concrete version string.

    Strips whitespace, a leading "=" or "v" and build metadata.

    Args:
        text: Version text such as "v10.16.0"

    Returns:
        Normalized version ("10.16.0"), or None if text is not a full
        major.minor.patch version

    Example:
        >>> clean_version("  v10.16.0 ")
        '10.16.0'
        >>> clean_version("10.16") is None
        True
    """
    if not text:
        return None
    candidate = text.strip().lstrip("=v").strip()
    match = _SEMVER_RE.match(candidate)
    if not match:
        return None
    if match.group("pre"):
        return f"{match.group('release')}-{match.group('pre')}"
    return match.group("release")


def is_explicit_version(specifier: str) -> bool:
    """True if specifier names exactly one concrete version."""
    return clean_version(specifier) is not None


def _semver_to_version(release: str, prerelease: Optional[str]) -> Optional[Version]:
    """
    Convert a semver release and pre-release tag to a packaging Version.

    Numeric-only tags ("1.2.3-0") become dev releases ("1.2.3.dev0"), so they
    stay pre-releases and sort below every named tag of the same release.
    Tags packaging cannot read as a pre-release give None.
    """
    if not prerelease:
        return Version(release)
    if prerelease.isdigit():
        return Version(f"{release}.dev{int(prerelease)}")
    try:
        version = Version(f"{release}-{prerelease}")
    except InvalidVersion:
        return None
    # Rejects tags packaging reads as post-releases ("post1", "rev2")
    if not version.is_prerelease:
        return None
    return version


def parse_version(text: str) -> Optional[Version]:
    """
    Parse a concrete version, returning None when it is not understood.

    Pre-release tags must be numeric or ones ``packaging`` can order as a
    pre-release (alpha, beta, rc, pre, preview, dev and their short forms).
    """
    cleaned = clean_version(text)
    if cleaned is None:
        return None
    release, _, prerelease = cleaned.partition("-")
    return _semver_to_version(release, prerelease or None)


def _release3(version: Version) -> Tuple[int, int, int]:
    release = tuple(version.release) + (0, 0, 0)
    return release[0], release[1], release[2]


def _floor(major: int, minor: int = 0, patch: int = 0) -> Version:
    # Lowest version of major.minor.patch, below all of its pre-releases
    return Version(f"{major}.{minor}.{patch}.dev0")


@dataclass(frozen=True)
class Comparator:
    """A single ``<op> <version>`` test."""

    op: str
    version: Version
    explicit_prerelease: bool = False

    def test(self, version: Version) -> bool:
        if self.op == "<":
            return version < self.version
        if self.op == "<=":
            return version <= self.version
        if self.op == ">":
            return version > self.version
        if self.op == ">=":
            return version >= self.version
        return version == self.version

    def __str__(self) -> str:
        return f"{self.op}{self.version}"


_NEVER = Comparator("<", Version("0.dev0"))


@dataclass(frozen=True)
class _Partial:
    major: Optional[int]
    minor: Optional[int]
    patch: Optional[int]
    prerelease: Optional[str]

    @property
    def is_full(self) -> bool:
        return self.patch is not None

    def to_version(self, specifier: str) -> Version:
        release = f"{self.major or 0}.{self.minor or 0}.{self.patch or 0}"
        version = _semver_to_version(release, self.prerelease)
        if version is None:
            raise InvalidSpecifierError(
                specifier, f"unsupported pre-release tag '{self.prerelease}'"
            )
        return version

    def comparator(self, op: str, specifier: str) -> Comparator:
        return Comparator(
            op, self.to_version(specifier), explicit_prerelease=bool(self.prerelease)
        )

    def upper_exclusive(self) -> Optional[Version]:
        """First version past this partial (None for a full wildcard)."""
        if self.major is None:
            return None
        if self.minor is None:
            return _floor(self.major + 1)
        return _floor(self.major, self.minor + 1)


def _parse_partial(text: str, specifier: str) -> _Partial:
    match = _PARTIAL_RE.match(text)
    if not match:
        raise InvalidSpecifierError(specifier, f"cannot parse '{text}'")

    parts = []
    wildcard_seen = False
    for name in ("major", "minor", "patch"):
        value = match.group(name)
        if value is None or value in ("x", "X", "*"):
            wildcard_seen = True
            parts.append(None)
        elif wildcard_seen:
            raise InvalidSpecifierError(
                specifier, f"number after wildcard in '{text}'"
            )
        else:
            parts.append(int(value))

    prerelease = match.group("pre")
    if prerelease and parts[2] is None:
        raise InvalidSpecifierError(specifier, f"pre-release on partial '{text}'")
    return _Partial(parts[0], parts[1], parts[2], prerelease)


def _x_range(partial: _Partial, specifier: str) -> List[Comparator]:
    if partial.is_full:
        return [partial.comparator("=", specifier)]
    if partial.major is None:
        return []
    return [
        Comparator(">=", _floor(partial.major, partial.minor or 0)),
        Comparator("<", partial.upper_exclusive()),
    ]


def _tilde(partial: _Partial, specifier: str) -> List[Comparator]:
    if partial.major is None:
        return []
    if not partial.is_full:
        return _x_range(partial, specifier)
    return [
        partial.comparator(">=", specifier),
        Comparator("<", _floor(partial.major, partial.minor + 1)),
    ]


def _caret(partial: _Partial, specifier: str) -> List[Comparator]:
    major, minor, patch = partial.major, partial.minor, partial.patch
    if major is None or minor is None:
        return _x_range(partial, specifier)
    if patch is None:
        upper = _floor(major + 1) if major > 0 else _floor(0, minor + 1)
        return [Comparator(">=", _floor(major, minor)), Comparator("<", upper)]

    if major > 0:
        upper = _floor(major + 1)
    elif minor > 0:
        upper = _floor(0, minor + 1)
    else:
        upper = _floor(0, 0, patch + 1)
    return [partial.comparator(">=", specifier), Comparator("<", upper)]


def _primitive(op: str, partial: _Partial, specifier: str) -> List[Comparator]:
    if op == "=":
        return _x_range(partial, specifier)
    if partial.is_full:
        return [partial.comparator(op, specifier)]
    if partial.major is None:
        return [_NEVER] if op in ("<", ">") else []

    start = _floor(partial.major, partial.minor or 0)
    if op == ">":
        return [Comparator(">=", partial.upper_exclusive())]
    if op == ">=":
        return [Comparator(">=", start)]
    if op == "<":
        return [Comparator("<", start)]
    # "<="
    return [Comparator("<", partial.upper_exclusive())]


def _hyphen(low: _Partial, high: _Partial, specifier: str) -> List[Comparator]:
    comparators: List[Comparator] = []
    if low.major is not None:
        if low.is_full:
            comparators.append(low.comparator(">=", specifier))
        else:
            comparators.append(Comparator(">=", _floor(low.major, low.minor or 0)))
    if high.is_full:
        comparators.append(high.comparator("<=", specifier))
    elif high.major is not None:
        comparators.append(Comparator("<", high.upper_exclusive()))
    return comparators


def _parse_group(text: str, specifier: str) -> Tuple[Comparator, ...]:
    text = text.strip()
    if not text:
        return ()

    hyphen = _HYPHEN_RE.match(text)
    if hyphen:
        low = _parse_partial(hyphen.group("low"), specifier)
        high = _parse_partial(hyphen.group("high"), specifier)
        return tuple(_hyphen(low, high, specifier))

    comparators: List[Comparator] = []
    for token in _OPERATOR_SPACE_RE.sub(r"\1", text).split():
        match = _TOKEN_RE.match(token)
        if not match:
            raise InvalidSpecifierError(specifier, f"cannot parse '{token}'")
        op = match.group("op")
        partial = _parse_partial(match.group("partial"), specifier)

        if op is None:
            comparators.extend(_x_range(partial, specifier))
        elif op in ("~", "~>"):
            comparators.extend(_tilde(partial, specifier))
        elif op == "^":
            comparators.extend(_caret(partial, specifier))
        else:
            comparators.extend(_primitive(op, partial, specifier))
    return tuple(comparators)


@dataclass(frozen=True)
class VersionRange:
    """
    A parsed specifier: AND-groups of comparators joined by OR.

    An empty group matches every stable version.
    """

    specifier: str
    groups: Tuple[Tuple[Comparator, ...], ...]

    def satisfied_by(self, version: Union[str, Version]) -> bool:
        """
        Check whether a concrete version satisfies this range.

        Args:
            version: Version object or version text

        Returns:
            True if any AND-group accepts the version
        """
        if not isinstance(version, Version):
            parsed = parse_version(version)
            if parsed is None:
                return False
            version = parsed

        for group in self.groups:
            if not all(c.test(version) for c in group):
                continue
            if not version.is_prerelease:
                return True
            # Pre-releases need an explicit pre-release on the same release
            release = _release3(version)
            if any(
                c.explicit_prerelease and _release3(c.version) == release
                for c in group
            ):
                return True
        return False

    def __str__(self) -> str:
        rendered = []
        for group in self.groups:
            rendered.append(" ".join(str(c) for c in group) or "*")
        return " || ".join(rendered)


def parse_specifier(specifier: str) -> VersionRange:
    """
    Parse a version specifier.

    Args:
        specifier: Exact version, partial, range or alias

    Returns:
        VersionRange usable with ``satisfied_by``

    Raises:
        InvalidSpecifierError: If the specifier is empty or malformed

    Example:
        >>> str(parse_specifier("1.2"))
        '>=1.2.0.dev0 <1.3.0.dev0'
    """
    if specifier is None or not str(specifier).strip():
        raise InvalidSpecifierError(str(specifier), "empty specifier")

    text = str(specifier).strip()
    text = ALIASES.get(text.lower(), text)

    groups = tuple(_parse_group(part, specifier) for part in text.split("||"))
    return VersionRange(specifier=specifier, groups=groups)


def resolve(
    specifier: Union[str, VersionRange], candidates: Iterable[str]
) -> Optional[str]:
    """
    Select the highest candidate satisfying specifier.

    Args:
        specifier: Specifier text or an already parsed VersionRange
        candidates: Concrete version strings (a leading "v" is accepted)

    Returns:
        The matching candidate exactly as given, or None if nothing matches

    Raises:
        InvalidSpecifierError: If specifier text is malformed
    """
    version_range = (
        specifier
        if isinstance(specifier, VersionRange)
        else parse_specifier(specifier)
    )

    best: Optional[str] = None
    best_version: Optional[Version] = None
    for candidate in candidates:
        version = parse_version(candidate)
        if version is None:
            logger.debug(f"Skipping unparseable version: {candidate}")
            continue
        if not version_range.satisfied_by(version):
            continue
        if best_version is None or version > best_version:
            best, best_version = candidate, version

    return best


def sort_versions(versions: Iterable[str], reverse: bool = False) -> List[str]:
    """Sort version strings by semantic order, dropping unparseable ones."""
    parsed = [(parse_version(v), v) for v in versions]
    ordered = sorted((p for p in parsed if p[0] is not None), key=lambda p: p[0])
    if reverse:
        ordered.reverse()
    return [v for _, v in ordered]
