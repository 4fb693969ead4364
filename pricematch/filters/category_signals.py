# pricematch/filters/category_signals.py

"""Keyword signals shared by query relaxation and candidate matching.

Each category is recognised from a title with a small set of regexes.
Detection is first-match in table order, so the more specific device
classes come before the generic ones.
"""

import re

TELEVISION = "television"
PHONE = "phone"
TABLET = "tablet"
LAPTOP = "laptop"
CONSOLE = "console"

# Ordered: first matching category wins
CATEGORY_PATTERNS: list[tuple[str, re.Pattern[str]]] = [
    (
        PHONE,
        re.compile(
            r"\b(?:smart\s*)?phone\b|\bgalaxy\s+s\d+|\biphone\s*\d+"
            r"|\bpixel\s*\d+|\biphone\b",
            re.IGNORECASE,
        ),
    ),
    (
        TABLET,
        re.compile(r"\bipad\b|\bgalaxy\s+tab\b|\btablet\b", re.IGNORECASE),
    ),
    (
        LAPTOP,
        re.compile(
            r"\blaptop\b|\bnotebook\b|\bmacbook\b|\bchromebook\b",
            re.IGNORECASE,
        ),
    ),
    (
        CONSOLE,
        re.compile(
            r"\bplaystation\b|\bps[45]\b|\bxbox\b|\bnintendo\s+switch\b",
            re.IGNORECASE,
        ),
    ),
    (
        TELEVISION,
        re.compile(r"\btv\b|\btelevision\b|\bclass\b", re.IGNORECASE),
    ),
]

# Free-form category hints mapped onto detected categories
CATEGORY_ALIASES: dict[str, str] = {
    "tv": TELEVISION,
    "tvs": TELEVISION,
    "television": TELEVISION,
    "televisions": TELEVISION,
    "phone": PHONE,
    "phones": PHONE,
    "smartphone": PHONE,
    "smartphones": PHONE,
    "cell phone": PHONE,
    "mobile": PHONE,
    "tablet": TABLET,
    "tablets": TABLET,
    "laptop": LAPTOP,
    "laptops": LAPTOP,
    "notebook": LAPTOP,
    "console": CONSOLE,
    "consoles": CONSOLE,
    "gaming console": CONSOLE,
    "video games": CONSOLE,
}

# Descriptors that carry identity for televisions
TV_SIGNIFICANT_WORDS: frozenset[str] = frozenset({
    "class", "crystal", "uhd", "4k", "8k", "smart", "led", "oled", "qled",
})

# Letters then digits then optional letters/digits, e.g. U7900F, QN85A
MODEL_CODE_RE = re.compile(r"\b([A-Za-z]{1,4}\d{2,}[A-Za-z0-9]*)\b")

# Screen size such as 55", 65-inch, 43 Class
SCREEN_SIZE_RE = re.compile(
    r"\b(\d{2,3})\s*(?:-?\s*inch(?:es)?|in\b|\"|'|\s*class\b)",
    re.IGNORECASE,
)

_TOKEN_RE = re.compile(r"[a-z0-9]+")


def tokenize(text: str) -> list[str]:
    """Lowercase alphanumeric tokens longer than two characters.

    Two-character screen sizes and ``4k``/``8k`` style tokens are kept
    because they carry most of a television's identity.
    """
    return [
        t
        for t in _TOKEN_RE.findall(text.lower())
        if len(t) > 2 or t.isdigit() or t in TV_SIGNIFICANT_WORDS
    ]


def detect_category(text: str) -> str | None:
    """Return the first category whose signals appear in *text*."""
    if not text:
        return None
    for category, pattern in CATEGORY_PATTERNS:
        if pattern.search(text):
            return category
    return None


def resolve_category(
    text: str, category_hint: str | None = None,
) -> str | None:
    """Prefer an explicit hint, fall back to detection from *text*."""
    if category_hint:
        hint = " ".join(category_hint.lower().split())
        if hint in CATEGORY_ALIASES:
            return CATEGORY_ALIASES[hint]
        known = {c for c, _ in CATEGORY_PATTERNS}
        if hint in known:
            return hint
    return detect_category(text)


def categories_incompatible(
    expected: str | None, found: str | None,
) -> bool:
    """Two known, different device classes can never be the same product."""
    if expected is None or found is None:
        return False
    return expected != found


def find_model_code(text: str) -> str | None:
    """Return the first model code in *text* as written."""
    for match in MODEL_CODE_RE.finditer(text):
        code = match.group(1)
        # Bare generation tags like "s24" or "ps5" are not model codes
        if len(code) >= 4:
            return code
    return None


def extract_model_code(text: str) -> str | None:
    """Return the first model code in *text*, lowercased."""
    code = find_model_code(text)
    return code.lower() if code else None


def extract_screen_size(text: str) -> str | None:
    """Return the screen size in inches as a string, if present."""
    match = SCREEN_SIZE_RE.search(text)
    return match.group(1) if match else None
