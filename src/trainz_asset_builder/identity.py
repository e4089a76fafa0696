"""Parsing and rewriting of asset identities (KUIDs) in marker files.

A marker file declares its asset's identity on a line of the form::

    kuid <kuid:USER:CONTENT:N>
    kuid <kuid2:USER:CONTENT:N:VERSION>

Only the first ``kuid`` line of a file is considered. Rewriting replaces the
bracketed value of that line and leaves every other byte untouched.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field

from trainz_asset_builder.types import AssetBuilderError

__all__ = [
    "AssetIdentity",
    "IdentityError",
    "IdentityMatch",
    "MalformedIdentity",
    "MissingIdentity",
    "find_identity",
    "parse_identity",
    "parse_kuid",
    "render_identity",
    "replace_identity",
]

# Number of integer components per variant
KUID_ARITY = {"kuid": 3, "kuid2": 4}

MAX_COMPONENT = 2**31 - 1
_MAX_DIGITS = len(str(MAX_COMPONENT))

# A line whose first token is the kuid tag. "kuid-table" and friends don't count.
_CANDIDATE_LINE = re.compile(
    r"^[ \t]*(?P<tag>kuid2?)(?=[ \t<\r]|$)(?P<rest>[^\r\n]*)",
    re.IGNORECASE | re.MULTILINE,
)
# Anything after the closing bracket is ignored
_BRACKETED_VALUE = re.compile(r"^[ \t]*<(?P<value>[^<>]*)>")
_COMPONENT = re.compile(r"[0-9]+")


class IdentityError(AssetBuilderError, ValueError):
    """Marker file does not declare a usable identity."""

    pass


class MissingIdentity(IdentityError):
    """No kuid line was found."""

    def __init__(self, source: str | None = None) -> None:
        self.source = source
        where = f" in {source}" if source else ""
        super().__init__(f"No kuid declaration found{where}")


class MalformedIdentity(IdentityError):
    """A kuid line was found but its value is invalid."""

    def __init__(self, reason: str, line: int | None = None) -> None:
        self.reason = reason
        self.line = line
        where = f" (line {line})" if line is not None else ""
        super().__init__(f"Malformed kuid{where}: {reason}")


@dataclass(frozen=True)
class AssetIdentity:
    """A parsed KUID.

    Attributes:
        variant: Normalized variant keyword, "kuid" or "kuid2".
        components: Integer components, three for kuid and four for kuid2.
        keyword: Variant keyword as spelled in the source text. Used only for
            rendering, never for comparison.
    """

    variant: str
    components: tuple[int, ...]
    keyword: str = field(default="", compare=False, repr=False)

    def __post_init__(self) -> None:
        """Validate invariants."""
        variant = self.variant.lower()
        if variant not in KUID_ARITY:
            raise MalformedIdentity(f"unknown variant '{self.variant}'")
        if len(self.components) != KUID_ARITY[variant]:
            raise MalformedIdentity(
                f"{variant} takes {KUID_ARITY[variant]} components, "
                f"got {len(self.components)}"
            )
        for component in self.components:
            if not 0 <= component <= MAX_COMPONENT:
                raise MalformedIdentity(f"component {component} out of range")
        object.__setattr__(self, "variant", variant)
        object.__setattr__(self, "components", tuple(self.components))
        if not self.keyword or self.keyword.lower() != variant:
            object.__setattr__(self, "keyword", variant)

    @property
    def user_id(self) -> int:
        return self.components[0]

    @property
    def content_id(self) -> int:
        return self.components[1]

    @property
    def tag(self) -> str:
        """Identity in angle brackets, as TrainzUtil prints it."""
        return f"<{render_identity(self)}>"

    def __str__(self) -> str:
        return render_identity(self)


@dataclass(frozen=True)
class IdentityMatch:
    """Location of the identity declaration inside a text.

    ``start``/``end`` delimit the bracketed value (without the brackets).
    """

    identity: AssetIdentity
    start: int
    end: int
    line: int


def render_identity(identity: AssetIdentity) -> str:
    """Serialize an identity to its textual form, e.g. ``kuid:1:2:3``."""
    return ":".join([identity.keyword, *(str(c) for c in identity.components)])


def parse_kuid(value: str, line: int | None = None) -> AssetIdentity:
    """Parse a bare identity value such as ``kuid2:1:2:3:4``.

    Args:
        value: Identity text without angle brackets.
        line: Line number for error reporting.

    Returns:
        The parsed identity.

    Raises:
        MalformedIdentity: If the value does not follow either variant.
    """
    if not value:
        raise MalformedIdentity("empty value", line)

    keyword, *parts = value.split(":")
    variant = keyword.lower()
    if variant not in KUID_ARITY:
        raise MalformedIdentity(f"unknown variant '{keyword}'", line)
    if len(parts) != KUID_ARITY[variant]:
        raise MalformedIdentity(
            f"{variant} takes {KUID_ARITY[variant]} components, got {len(parts)}", line
        )

    components = []
    for part in parts:
        if not _COMPONENT.fullmatch(part):
            raise MalformedIdentity(f"component '{part}' is not a non-negative integer", line)
        if len(part.lstrip("0")) > _MAX_DIGITS:
            raise MalformedIdentity(f"component {part[:16]}... out of range", line)
        number = int(part)
        if number > MAX_COMPONENT:
            raise MalformedIdentity(f"component {number} out of range", line)
        components.append(number)

    return AssetIdentity(variant, tuple(components), keyword=keyword)


def find_identity(text: str) -> IdentityMatch:
    """Locate and parse the first identity declaration in a text.

    Args:
        text: Full marker file content.

    Returns:
        IdentityMatch with the identity and the span of its value.

    Raises:
        MissingIdentity: If no kuid line exists.
        MalformedIdentity: If the first kuid line is invalid.
    """
    candidate = _CANDIDATE_LINE.search(text)
    if candidate is None:
        raise MissingIdentity()

    line = text.count("\n", 0, candidate.start()) + 1
    bracketed = _BRACKETED_VALUE.match(candidate.group("rest"))
    if bracketed is None:
        if not candidate.group("rest").strip():
            raise MalformedIdentity("empty value", line)
        raise MalformedIdentity("expected a value like <kuid:N:N:N>", line)

    identity = parse_kuid(bracketed.group("value"), line)
    start = candidate.start("rest") + bracketed.start("value")
    end = candidate.start("rest") + bracketed.end("value")
    return IdentityMatch(identity=identity, start=start, end=end, line=line)


def parse_identity(text: str) -> AssetIdentity:
    """Extract the asset identity from marker file content.

    Args:
        text: Full marker file content.

    Returns:
        The declared identity.

    Raises:
        MissingIdentity: If no kuid line exists.
        MalformedIdentity: If the first kuid line is invalid.
    """
    return find_identity(text).identity


def replace_identity(text: str, identity: AssetIdentity) -> str:
    """Return ``text`` with its declared identity replaced by ``identity``.

    Only the bracketed value of the first kuid line changes.

    Raises:
        MissingIdentity: If no kuid line exists.
        MalformedIdentity: If the first kuid line is invalid.
    """
    match = find_identity(text)
    return text[: match.start] + render_identity(identity) + text[match.end :]
