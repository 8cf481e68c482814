"""
Package specifier parsing.

A specifier is the short string a user writes to declare a dependency. It is
parsed into a SourceDescriptor (where the code lives) and a package name
(which directory it is installed under).

Supported formats, tried in order:
    owner/repo            GitHub shorthand, optional @tag or #branch
    github:owner/repo     Explicit GitHub, optional @tag or #branch
    git:<url>             Any git remote, optional #ref
    path:<path>           Local directory, linked rather than copied

Example:
    >>> parsed = parse_specifier("acme/widgets@v1.0.0")
    >>> parsed.name
    'widgets'
    >>> parsed.source.origin
    'https://github.com/acme/widgets'
"""

import re
from dataclasses import dataclass
from enum import Enum
from typing import Optional
from urllib.parse import urlsplit

from opm.core.exceptions import InvalidSpecifierError

DEFAULT_GITHUB_URL = "https://github.com"

_REF = r"[\w.\-/]+"
_GITHUB_PATTERN = re.compile(
    rf"^(?P<owner>[\w-]+)/(?P<repo>[\w-]+)(?:@(?P<tag>{_REF})|#(?P<branch>{_REF}))?$"
)
_NAME_PATTERN = re.compile(r"^[\w.\-]+$")


class SourceKind(Enum):
    """Where a package's code lives."""

    REMOTE_GIT = "git"
    LOCAL_PATH = "local"


@dataclass(frozen=True)
class SourceDescriptor:
    """
    Parsed form of a specifier.

    Attributes:
        kind: Remote git repository or local directory
        origin: Clone URL or filesystem path
        revision_hint: Branch or tag to follow; None means the default branch
    """

    kind: SourceKind
    origin: str
    revision_hint: Optional[str] = None

    def __post_init__(self):
        if self.kind is SourceKind.LOCAL_PATH and self.revision_hint is not None:
            raise ValueError("Local path sources cannot carry a revision hint")

    @property
    def is_local(self) -> bool:
        return self.kind is SourceKind.LOCAL_PATH


@dataclass(frozen=True)
class ParsedSpecifier:
    """A specifier split into the package name and its source."""

    name: str
    source: SourceDescriptor


def parse_specifier(spec: str, github_url: str = DEFAULT_GITHUB_URL) -> ParsedSpecifier:
    """
    Parse a package specifier.

    Args:
        spec: Specifier string as written by the user
        github_url: Base URL used for GitHub shorthands

    Returns:
        Package name and source descriptor

    Raises:
        InvalidSpecifierError: If the string matches none of the formats
    """
    if not isinstance(spec, str) or not spec.strip():
        raise InvalidSpecifierError(str(spec), "empty specifier")
    spec = spec.strip()

    if spec.startswith("github:"):
        return _parse_github(spec, spec[len("github:"):], github_url)

    if spec.startswith("git:"):
        return _parse_git(spec, spec[len("git:"):])

    if spec.startswith("path:"):
        return _parse_path(spec, spec[len("path:"):])

    if ":" not in spec:
        return _parse_github(spec, spec, github_url)

    raise InvalidSpecifierError(spec)


def _parse_github(spec: str, rest: str, github_url: str) -> ParsedSpecifier:
    if "@" in rest and "#" in rest:
        raise InvalidSpecifierError(spec, "use either @tag or #branch, not both")

    match = _GITHUB_PATTERN.match(rest)
    if not match:
        raise InvalidSpecifierError(spec)

    owner, repo = match.group("owner"), match.group("repo")
    ref = match.group("tag") or match.group("branch")
    return ParsedSpecifier(
        name=repo,
        source=SourceDescriptor(
            kind=SourceKind.REMOTE_GIT,
            origin=f"{github_url.rstrip('/')}/{owner}/{repo}",
            revision_hint=ref,
        ),
    )


def _parse_git(spec: str, rest: str) -> ParsedSpecifier:
    url, _, ref = rest.partition("#")
    if not url:
        raise InvalidSpecifierError(spec, "missing repository URL")
    if "#" in rest and not ref:
        raise InvalidSpecifierError(spec, "empty ref after '#'")

    if "://" in url:
        path = urlsplit(url).path
    else:
        # scp-style host:owner/repo.git, or a plain path
        path = url.rpartition(":")[2]
    segment = path.rstrip("/").rpartition("/")[2]
    if segment.endswith(".git"):
        segment = segment[: -len(".git")]

    return ParsedSpecifier(
        name=_checked_name(spec, segment),
        source=SourceDescriptor(
            kind=SourceKind.REMOTE_GIT, origin=url, revision_hint=ref or None
        ),
    )


def _parse_path(spec: str, path: str) -> ParsedSpecifier:
    if not path:
        raise InvalidSpecifierError(spec, "missing path")

    segment = re.split(r"[/\\]", path.rstrip("/\\"))[-1]
    return ParsedSpecifier(
        name=_checked_name(spec, segment),
        source=SourceDescriptor(kind=SourceKind.LOCAL_PATH, origin=path),
    )


def _checked_name(spec: str, name: str) -> str:
    if not name or name in (".", "..") or not _NAME_PATTERN.match(name):
        raise InvalidSpecifierError(spec, f"cannot derive a package name from {name!r}")
    return name
