"""Password generation for the shared Basic auth credential.

The password is three words drawn from a system word list and joined
without a separator. It lives only in memory for the life of the process.
"""

import logging
import secrets
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Sequence

from secureserve.errors import StartupError

logger = logging.getLogger(__name__)

DEFAULT_WORDS_FILE = Path("/usr/share/dict/words")
DEFAULT_USERNAME = "user"
WORD_COUNT = 3


class CredentialError(StartupError):
    """Word list missing, unreadable or empty."""

    def __init__(self, message: str):
        super().__init__("E200", message)


@dataclass(frozen=True)
class Credential:
    """Username/password pair accepted by the server."""

    password: str = field(repr=False)
    username: str = DEFAULT_USERNAME


def load_word_list(path: Path = DEFAULT_WORDS_FILE) -> list[str]:
    """Read a newline-separated word list.

    Entries are stripped and blank lines dropped.

    Raises:
        CredentialError: If the file cannot be read or holds no words
    """
    try:
        text = path.read_text(encoding="utf-8", errors="replace")
    except OSError as e:
        raise CredentialError(f"Error reading words file {path}: {e}") from e

    words = [line.strip() for line in text.splitlines()]
    words = [w for w in words if w]
    if not words:
        raise CredentialError(f"Words file is empty: {path}")

    logger.debug("Loaded %d words from %s", len(words), path)
    return words


def generate_password(
    words: Optional[Sequence[str]] = None,
    count: int = WORD_COUNT,
) -> str:
    """Concatenate `count` words chosen independently and uniformly.

    Selection uses secrets.choice, so every entry is equally likely
    whatever the list length. Words may repeat.

    Args:
        words: Candidate words (default: the system word list)
        count: Number of words to join

    Raises:
        CredentialError: If no word list is available
    """
    if words is None:
        words = load_word_list()
    if not words:
        raise CredentialError("Word list is empty")

    return "".join(secrets.choice(words).strip() for _ in range(count))


def generate_credential(words: Optional[Sequence[str]] = None) -> Credential:
    """Generate the process-lifetime credential."""
    return Credential(password=generate_password(words))
