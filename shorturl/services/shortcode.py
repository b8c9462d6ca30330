"""
Short Code Generation

Short codes are drawn from a cryptographically secure byte source and
encoded with the URL-safe base64 alphabet ([A-Za-z0-9-_]).

Design Decisions:
- 4 random bytes encode to 8 base64 characters, the first 6 are kept
- No uniqueness check here; callers decide what to do with collisions
- The byte source is injectable so an unavailable entropy source can be tested
"""

import base64
import secrets
from typing import Callable

from shorturl.core.exceptions import RandomSourceError

SHORT_CODE_LENGTH = 6
RANDOM_BYTES = 4


class ShortCodeGenerator:
    """Generate random short codes."""

    def __init__(self, random_bytes: Callable[[int], bytes] = secrets.token_bytes):
        """
        Args:
            random_bytes: Callable returning n cryptographically random bytes
        """
        self._random_bytes = random_bytes

    def generate(self) -> str:
        """
        Generate a 6-character URL-safe short code.

        Raises:
            RandomSourceError: If the entropy source is unavailable
        """
        try:
            raw = self._random_bytes(RANDOM_BYTES)
        except (OSError, NotImplementedError) as e:
            raise RandomSourceError(original_error=e) from e

        if len(raw) < RANDOM_BYTES:
            raise RandomSourceError()

        return base64.urlsafe_b64encode(raw).decode("ascii")[:SHORT_CODE_LENGTH]
