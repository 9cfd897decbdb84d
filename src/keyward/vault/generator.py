"""Random password generation for new credentials and master keys."""

import secrets
import string

DEFAULT_LENGTH = 16
MIN_LENGTH = 8
MAX_LENGTH = 128
SYMBOLS = "!@#$%^&*()-_=+[]{};:,.?"

_CLASSES = (string.ascii_lowercase, string.ascii_uppercase, string.digits, SYMBOLS)
_ALPHABET = "".join(_CLASSES)


def generate_password(length: int = DEFAULT_LENGTH) -> str:
    """Generate a random password containing lower, upper, digit and symbol characters.

    Raises:
        ValueError: If length is outside MIN_LENGTH..MAX_LENGTH.
    """
    if not MIN_LENGTH <= length <= MAX_LENGTH:
        raise ValueError(f"Password length must be between {MIN_LENGTH} and {MAX_LENGTH}")

    chars = [secrets.choice(charset) for charset in _CLASSES]
    chars.extend(secrets.choice(_ALPHABET) for _ in range(length - len(chars)))
    # Fisher-Yates with a CSPRNG so the guaranteed characters land anywhere
    for i in range(len(chars) - 1, 0, -1):
        j = secrets.randbelow(i + 1)
        chars[i], chars[j] = chars[j], chars[i]
    return "".join(chars)
