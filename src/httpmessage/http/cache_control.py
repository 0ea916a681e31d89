"""
=============================================================================
REQUEST CACHE-CONTROL DIRECTIVES (RFC 7234 §5.2.1)
=============================================================================

Turns a request's Cache-Control header into a structured directive set.

    "no-cache, max-age=60, max-stale"
                │
                ▼
    CacheControl(no_cache=True, max_age=60, max_stale=ANY_AGE)

=============================================================================
REQUEST DIRECTIVES
=============================================================================

    ┌────────────────┬──────────┬─────────────────────────────────────────┐
    │ Directive      │ Value    │ Meaning                                 │
    ├────────────────┼──────────┼─────────────────────────────────────────┤
    │ no-cache       │ -        │ revalidate before using a cached copy   │
    │ no-store       │ -        │ do not store request or response        │
    │ no-transform   │ -        │ intermediaries must not alter payload   │
    │ only-if-cached │ -        │ answer from cache or 504                │
    │ max-age        │ seconds  │ accept responses up to this age         │
    │ max-stale      │ [secs]   │ accept stale responses (bare = any age) │
    │ min-fresh      │ seconds  │ must stay fresh at least this long      │
    └────────────────┴──────────┴─────────────────────────────────────────┘

=============================================================================
TOLERANT PARSING
=============================================================================

Cache-Control is advisory, so the parser never fails:

    - "max-age=abc"      → max_age stays None (not an error)
    - "max-stale"        → max_stale = ANY_AGE
    - "max-stale=10"     → max_stale = 10
    - "x-vendor=1"       → ignored
    - "No-Cache"         → ignored (directive tokens are matched as sent)

=============================================================================
"""

import math
import re
from dataclasses import dataclass
from typing import List, Optional, Union


# Bare "max-stale": any staleness is acceptable. math.inf compares greater
# than every age, so `age <= max_stale` needs no special case.
ANY_AGE = math.inf

NO_CACHE = "no-cache"
NO_STORE = "no-store"
NO_TRANSFORM = "no-transform"
ONLY_IF_CACHED = "only-if-cached"
MAX_AGE = "max-age"
MAX_STALE = "max-stale"
MIN_FRESH = "min-fresh"

_NUMERIC_DIRECTIVES = (
    (MAX_AGE, "max_age"),
    (MAX_STALE, "max_stale"),
    (MIN_FRESH, "min_fresh"),
)

_DELTA_SECONDS = re.compile(r"[0-9]+")


@dataclass(frozen=True)
class CacheControl:
    """
    Immutable snapshot of the request Cache-Control directives.

    Boolean directives default to False. Numeric directives default to None,
    which means "not specified" and is different from zero.
    """

    no_cache: bool = False
    no_store: bool = False
    no_transform: bool = False
    only_if_cached: bool = False
    max_age: Optional[int] = None
    max_stale: Optional[Union[int, float]] = None
    min_fresh: Optional[int] = None

    @property
    def accepts_any_staleness(self) -> bool:
        return self.max_stale == ANY_AGE

    def to_header_value(self) -> str:
        """
        Render the directives back into header text.

        Example:
            CacheControl(no_cache=True, max_age=60).to_header_value()
            # "no-cache, max-age=60"
        """
        directives: List[str] = []
        if self.no_cache:
            directives.append(NO_CACHE)
        if self.no_store:
            directives.append(NO_STORE)
        if self.no_transform:
            directives.append(NO_TRANSFORM)
        if self.only_if_cached:
            directives.append(ONLY_IF_CACHED)
        if self.max_age is not None:
            directives.append(f"{MAX_AGE}={self.max_age}")
        if self.max_stale == ANY_AGE:
            directives.append(MAX_STALE)
        elif self.max_stale is not None:
            directives.append(f"{MAX_STALE}={self.max_stale}")
        if self.min_fresh is not None:
            directives.append(f"{MIN_FRESH}={self.min_fresh}")
        return ", ".join(directives)


def _delta_seconds(token: str) -> Optional[int]:
    """
    Parse the value after '=' as non-negative delta-seconds.

    Returns None when there is no '=' or the value is not all digits.
    """
    _, sep, value = token.partition("=")
    if not sep:
        return None
    value = value.strip()
    if not _DELTA_SECONDS.fullmatch(value):
        return None
    return int(value)


def parse_cache_control(value: str) -> CacheControl:
    """
    Parse a Cache-Control header value.

    =========================================================================
    ALGORITHM
    =========================================================================

    1. Split on ","
    2. Strip whitespace from each token
    3. Classify by (case-sensitive) prefix against the known directives
    4. Numeric directives parse the text after "="; junk → unset
    5. Unknown directives are dropped

    =========================================================================

    Args:
        value: Raw header value, e.g. "no-cache, max-age=60".

    Returns:
        A frozen CacheControl. Never raises for malformed input.
    """
    fields = {}

    for token in value.split(","):
        token = token.strip()
        if not token:
            continue

        if token.startswith(NO_CACHE):
            fields["no_cache"] = True
        elif token.startswith(NO_STORE):
            fields["no_store"] = True
        elif token.startswith(NO_TRANSFORM):
            fields["no_transform"] = True
        elif token.startswith(ONLY_IF_CACHED):
            fields["only_if_cached"] = True
        elif token.startswith(MAX_STALE) and token == MAX_STALE:
            fields["max_stale"] = ANY_AGE
        else:
            for directive, name in _NUMERIC_DIRECTIVES:
                if token.startswith(directive):
                    seconds = _delta_seconds(token)
                    # Malformed value: leave the directive unset
                    if seconds is not None:
                        fields[name] = seconds
                    break

    return CacheControl(**fields)
