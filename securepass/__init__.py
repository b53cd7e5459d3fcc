"""
SecurePass - Cryptographically secure password generator.

Features:
- CSPRNG-backed, modulo-bias-free character selection
- At least one character from every selected class
- Unbiased Fisher-Yates shuffle of the final password
- Optional exclusion of look-alike characters
- JSON API and browser client
"""

__version__ = "1.0.0"
__license__ = "MIT"

from .generator import (
    ConfigurationError,
    GenerationConfig,
    InternalInvariantError,
    PasswordGenerationError,
    generate,
    normalize_config,
)

__all__ = [
    "ConfigurationError",
    "GenerationConfig",
    "InternalInvariantError",
    "PasswordGenerationError",
    "generate",
    "normalize_config",
    "get_version",
]


def get_version():
    """Get the current version string."""
    return __version__
