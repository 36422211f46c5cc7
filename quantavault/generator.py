"""
quantavault.generator
Secure password and passphrase generator using Python's secrets module.
"""

from secrets import choice, randbelow, SystemRandom
import string
from typing import List, Optional

from .errors import InvalidConfig
from .models import GeneratorConfig

LOWERCASE = string.ascii_lowercase
UPPERCASE = string.ascii_uppercase
DIGITS = string.digits
SYMBOLS = "!@#$%^&*()_-+=[]{}|:;\"'<>,.?/~`"
AMBIGUOUS = "il1LoO0"

# bounds offered by the CLI/API; generate() itself only needs length >= classes
MIN_LENGTH = 8
MAX_LENGTH = 64
MIN_WORDS = 3
MAX_WORDS = 8

WORDLIST = (
    "apple", "banana", "orange", "grape", "lemon", "melon", "cherry",
    "happy", "sunny", "funny", "silly", "crazy", "lucky", "shiny",
    "blue", "green", "red", "yellow", "purple", "teal", "amber",
    "river", "ocean", "mountain", "forest", "desert", "island", "valley",
)

_sysrand = SystemRandom()


def active_pools(config: GeneratorConfig) -> List[str]:
    """Return the enabled character pools, with ambiguous glyphs removed if requested."""
    pools = []
    if config.lowercase:
        pools.append(LOWERCASE)
    if config.uppercase:
        pools.append(UPPERCASE)
    if config.digits:
        pools.append(DIGITS)
    if config.symbols:
        pools.append(SYMBOLS)
    if config.exclude_ambiguous:
        pools = ["".join(c for c in p if c not in AMBIGUOUS) for p in pools]
    return pools


def generate(config: Optional[GeneratorConfig] = None) -> str:
    """
    Generate a random password containing at least one character from each
    enabled class. With no class enabled the lowercase pool is used.
    """
    config = config or GeneratorConfig()
    if config.length <= 0:
        raise InvalidConfig("length must be > 0")

    pools = active_pools(config)
    if len(pools) > config.length:
        raise InvalidConfig("length too small for the requested character classes")

    password_chars = [choice(p) for p in pools]

    all_chars = "".join(pools)
    if not all_chars:
        all_chars = LOWERCASE
        if config.exclude_ambiguous:
            all_chars = "".join(c for c in all_chars if c not in AMBIGUOUS)

    for _ in range(config.length - len(password_chars)):
        password_chars.append(choice(all_chars))

    _sysrand.shuffle(password_chars)
    return "".join(password_chars)


def generate_passphrase(word_count: int = 4, separator: str = "-") -> str:
    """
    Join word_count random words (each capitalised half the time) and a
    trailing number 0-99 with separator.
    """
    if word_count < 1:
        raise InvalidConfig("word_count must be >= 1")

    tokens = []
    for _ in range(word_count):
        word = choice(WORDLIST)
        if randbelow(2):
            word = word.capitalize()
        tokens.append(word)
    tokens.append(str(randbelow(100)))
    return separator.join(tokens)
