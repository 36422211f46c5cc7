"""
quantavault.evaluator

Password strength scorer:
- score_password(password): heuristic score 0-100 (stored with every record)
- security_level(score): 'low' / 'medium' / 'high' bucket shared by every consumer
- evaluate_password(password): score plus level, entropy estimate,
  explanations (which rules fired) and suggestions, for the CLI and API

Rules:
  length             min(4 * len, 40)
  lowercase present  +10
  uppercase present  +10
  digit present      +10
  symbol present     +15   (anything outside [A-Za-z0-9])
  3+ classes present +15
  run of 3+ same char  -10
  weak prefix          -20   (123, abc, qwerty, password, admin; any case)
Result clamped to [0, 100].
"""

import math
import re
from typing import Dict, List

HIGH_THRESHOLD = 80
MEDIUM_THRESHOLD = 50

LENGTH_POINTS_PER_CHAR = 4
LENGTH_POINTS_MAX = 40
CLASS_POINTS = {
    "lowercase": 10,
    "uppercase": 10,
    "digits": 10,
    "symbols": 15,
}
DIVERSITY_BONUS = 15
REPEAT_PENALTY = 10
WEAK_PREFIX_PENALTY = 20

WEAK_PREFIXES = ("123", "abc", "qwerty", "password", "admin")

_CLASS_PATTERNS = {
    "lowercase": re.compile(r"[a-z]"),
    "uppercase": re.compile(r"[A-Z]"),
    "digits": re.compile(r"\d"),
    "symbols": re.compile(r"[^a-zA-Z0-9]"),
}
_REPEAT_RE = re.compile(r"(.)\1{2,}")
_WEAK_PREFIX_RE = re.compile(r"^(%s)" % "|".join(WEAK_PREFIXES), re.IGNORECASE)

# pool sizes used for the entropy estimate
_POOL_SIZES = {"lowercase": 26, "uppercase": 26, "digits": 10, "symbols": 32}


def character_classes(password: str) -> List[str]:
    """Return the names of the character classes present, in fixed order."""
    return [name for name, pat in _CLASS_PATTERNS.items() if pat.search(password)]


def detect_repeated_chars(password: str) -> List[str]:
    """Runs of three or more identical characters, e.g. 'aaa', '1111'."""
    return [m.group(0) for m in _REPEAT_RE.finditer(password)]


def detect_weak_prefix(password: str) -> str:
    """Return the weak prefix the password starts with, or '' if none."""
    m = _WEAK_PREFIX_RE.match(password)
    return m.group(1).lower() if m else ""


def estimate_entropy(password: str) -> float:
    """
    Conservative entropy estimate: length * log2(pool), where the pool is the
    sum of the sizes of the classes actually used.
    """
    if not password:
        return 0.0
    pool = sum(_POOL_SIZES[c] for c in character_classes(password))
    return len(password) * math.log2(max(pool, 2))


def score_password(password: str) -> int:
    if not password:
        return 0

    score = min(len(password) * LENGTH_POINTS_PER_CHAR, LENGTH_POINTS_MAX)

    classes = character_classes(password)
    score += sum(CLASS_POINTS[c] for c in classes)
    if len(classes) >= 3:
        score += DIVERSITY_BONUS

    if _REPEAT_RE.search(password):
        score -= REPEAT_PENALTY
    if _WEAK_PREFIX_RE.match(password):
        score -= WEAK_PREFIX_PENALTY

    return max(0, min(100, score))


def security_level(score: int) -> str:
    if score >= HIGH_THRESHOLD:
        return "high"
    if score >= MEDIUM_THRESHOLD:
        return "medium"
    return "low"


def evaluate_password(password: str) -> Dict:
    """
    Score a password and explain the result.

    Returns a dict:
    {
        "password": password,
        "score": int,        # 0..100
        "level": str,        # low / medium / high
        "entropy": float,    # bits, informational only
        "explanations": [str],
        "suggestions": [str]
    }
    """
    score = score_password(password)
    classes = character_classes(password)
    explanations: List[str] = []
    suggestions: List[str] = []

    if not password:
        explanations.append("Password is empty.")
        suggestions.append("Enter a password or generate one.")
    else:
        if len(password) * LENGTH_POINTS_PER_CHAR < LENGTH_POINTS_MAX:
            explanations.append(f"Password is short ({len(password)} characters).")
            suggestions.append("Use at least 10 characters; 16 or more is better.")

        missing = [c for c in CLASS_POINTS if c not in classes]
        if missing:
            explanations.append(f"Missing character classes: {', '.join(missing)}")
            suggestions.append(f"Add {' and '.join(missing)} to increase variety.")
        if len(classes) >= 3:
            explanations.append("Good mix of character classes.")

        repeats = detect_repeated_chars(password)
        if repeats:
            explanations.append(f"Repeated characters: {', '.join(repeats)}")
            suggestions.append("Break up runs of the same character.")

        prefix = detect_weak_prefix(password)
        if prefix:
            explanations.append(f"Starts with a common pattern: '{prefix}'")
            suggestions.append("Avoid starting with common sequences like '123', 'abc' or 'password'.")

    level = security_level(score)
    if level == "high" and not suggestions:
        suggestions.append("This password meets the strength target.")

    return {
        "password": password,
        "score": score,
        "level": level,
        "entropy": estimate_entropy(password),
        "explanations": explanations,
        "suggestions": suggestions,
    }
