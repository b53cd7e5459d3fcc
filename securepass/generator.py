"""
generator.py - Secure password generation using cryptographically secure randomness
"""
import math
import os
import re
import secrets
from dataclasses import dataclass
from typing import Any, Callable, List, Mapping, Optional, Sequence, Tuple

# A source returns an integer in [0, bound) for a positive bound
RandBelow = Callable[[int], int]

MIN_LENGTH = 4
MAX_LENGTH = 128

LOWERCASE = "abcdefghijklmnopqrstuvwxyz"
LOWERCASE_SIMILAR_FREE = "abcdefghjkmnpqrstuvwxyz"
UPPERCASE = "ABCDEFGHIJKLMNOPQRSTUVWXYZ"
UPPERCASE_SIMILAR_FREE = "ABCDEFGHJKMNPQRSTUVWXYZ"
DIGITS = "0123456789"
DIGITS_SIMILAR_FREE = "23456789"
SYMBOLS = "!@#$%^&*()-_=+[]{}|;:,.<>?/"

SIMILAR_CHARACTERS = "iloILO01"

_UINT32_RANGE = 2 ** 32
_LEADING_INT = re.compile(r"\s*([+-]?)0*(\d+)", re.ASCII)


class PasswordGenerationError(Exception):
    """Base class for generator failures"""


class ConfigurationError(PasswordGenerationError, ValueError):
    """The caller asked for something that cannot be generated"""


class InternalInvariantError(PasswordGenerationError, RuntimeError):
    """
    Raised when generation reaches a state validated input can never produce.

    Callers should not branch on this; it points at a defect in pool construction
    or in an injected random source.
    """


@dataclass(frozen=True)
class GenerationConfig:
    """Validated input to generate(). Build it with normalize_config() for untrusted input."""
    length: int = 16
    include_lowercase: bool = True
    include_uppercase: bool = True
    include_numbers: bool = True
    include_symbols: bool = True
    exclude_similar: bool = False

    @property
    def selected_classes(self) -> int:
        return sum((
            self.include_lowercase,
            self.include_uppercase,
            self.include_numbers,
            self.include_symbols,
        ))


def rejection_randbelow(bound: int, read_bytes: Callable[[int], bytes] = os.urandom) -> int:
    """
    Draw a uniform integer in [0, bound) from 32-bit samples without modulo bias.

    Samples at or above the largest multiple of bound that fits in 2**32 are thrown
    away and redrawn, so every accepted residue is equally likely.
    """
    if bound <= 0:
        raise InternalInvariantError("Maximum value must be a positive number.")
    if bound > _UINT32_RANGE:
        raise InternalInvariantError(f"Bound {bound} exceeds the 32-bit sample range.")

    limit = (_UINT32_RANGE // bound) * bound
    while True:
        sample = int.from_bytes(read_bytes(4), "big")
        if sample < limit:
            return sample % bound


def uniform_random_index(bound: int, randbelow: Optional[RandBelow] = None) -> int:
    """
    Return an index in [0, bound) with exactly uniform probability.

    Args:
        bound: Exclusive upper bound, must be a positive integer
        randbelow: Random source to draw from (default: secrets.randbelow)

    Returns:
        An integer in [0, bound)

    Raises:
        InternalInvariantError: If bound is not positive or the source misbehaves
    """
    if isinstance(bound, bool) or not isinstance(bound, int) or bound <= 0:
        raise InternalInvariantError("Maximum value must be a positive number.")

    source = randbelow or secrets.randbelow
    index = source(bound)
    if not 0 <= index < bound:
        raise InternalInvariantError(
            f"Random source returned {index!r}, outside [0, {bound})."
        )
    return index


def pick_random_character(pool: Sequence[str], randbelow: Optional[RandBelow] = None) -> str:
    """Pick one character from a non-empty pool."""
    if not pool:
        raise InternalInvariantError("Character pool must contain at least one character.")
    return pool[uniform_random_index(len(pool), randbelow)]


def build_pools(config: GenerationConfig) -> Tuple[List[str], str]:
    """
    Select the character pools for a config.

    Pools come back in the fixed order lowercase, uppercase, digits, symbols,
    together with their concatenation (the allowed alphabet).

    Raises:
        ConfigurationError: If no character class is selected
    """
    similar_free = config.exclude_similar
    pools = []

    if config.include_lowercase:
        pools.append(LOWERCASE_SIMILAR_FREE if similar_free else LOWERCASE)
    if config.include_uppercase:
        pools.append(UPPERCASE_SIMILAR_FREE if similar_free else UPPERCASE)
    if config.include_numbers:
        pools.append(DIGITS_SIMILAR_FREE if similar_free else DIGITS)
    if config.include_symbols:
        # Same set with or without exclude_similar
        pools.append(SYMBOLS)

    if not pools:
        raise ConfigurationError("At least one character set must be selected.")

    return pools, "".join(pools)


def shuffle(buffer: List[Any], randbelow: Optional[RandBelow] = None) -> None:
    """Fisher-Yates shuffle in place; every permutation is equally likely."""
    for i in range(len(buffer) - 1, 0, -1):
        j = uniform_random_index(i + 1, randbelow)
        buffer[i], buffer[j] = buffer[j], buffer[i]


def generate(config: GenerationConfig, randbelow: Optional[RandBelow] = None) -> str:
    """
    Generate a cryptographically secure random password.

    One character is drawn from every selected pool first, the rest come from the
    whole allowed alphabet, and the buffer is shuffled as a whole so the required
    characters do not sit at predictable positions.

    Args:
        config: Validated generation settings
        randbelow: Random source (default: secrets.randbelow)

    Returns:
        A password of exactly config.length characters

    Raises:
        ConfigurationError: If no character class is selected or length < 1
        InternalInvariantError: If a pool is unexpectedly empty
    """
    if config.length < 1:
        raise ConfigurationError("Password length must be a positive number.")

    pools, alphabet = build_pools(config)

    password_chars = [pick_random_character(pool, randbelow) for pool in pools]
    while len(password_chars) < config.length:
        password_chars.append(pick_random_character(alphabet, randbelow))

    shuffle(password_chars, randbelow)

    # Only shortens when more classes are selected than the length allows
    return "".join(password_chars)[:config.length]


def _parse_length(value: Any) -> int:
    """Leading-integer parse; anything unparseable or non-positive becomes 0."""
    if value is None or isinstance(value, bool):
        return 0
    if isinstance(value, int):
        try:
            value = float(value)
        except OverflowError:
            return 0
    if isinstance(value, float):
        if not math.isfinite(value):
            return 0
        if value >= 1e21:
            # Numbers this large print in exponent form; only the first digit parses
            return int(f"{value:e}"[0])
        parsed = math.trunc(value)
    else:
        match = _LEADING_INT.match(str(value))
        if not match:
            return 0
        sign, digits = match.groups()
        if sign == "-":
            return 0
        # Past MAX_LENGTH either way
        if len(digits) > 9:
            return MAX_LENGTH
        parsed = int(digits)
    return parsed if parsed > 0 else 0


def normalize_config(raw: Optional[Mapping[str, Any]]) -> GenerationConfig:
    """
    Turn untrusted key/value input into a GenerationConfig. Never fails.

    Accepts the request field names (length, includeLowercase, includeUppercase,
    includeNumbers, includeSymbols, excludeSimilar). A missing or malformed length
    becomes the minimum; flags use plain truthiness.
    """
    raw = raw or {}
    length = min(max(_parse_length(raw.get("length")), MIN_LENGTH), MAX_LENGTH)

    return GenerationConfig(
        length=length,
        include_lowercase=bool(raw.get("includeLowercase")),
        include_uppercase=bool(raw.get("includeUppercase")),
        include_numbers=bool(raw.get("includeNumbers")),
        include_symbols=bool(raw.get("includeSymbols")),
        exclude_similar=bool(raw.get("excludeSimilar")),
    )
