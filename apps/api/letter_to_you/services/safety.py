"""Crisis-signal detection and the crisis resources shown on a hit."""

from collections.abc import Iterable

CRISIS_KEYWORDS: tuple[str, ...] = (
    "suicide",
    "suicidal",
    "kill myself",
    "end my life",
    "want to die",
    "self-harm",
    "self harm",
    "cutting myself",
    "hurt myself",
    "don't want to live",
    "better off dead",
    "no reason to live",
)

CRISIS_RESOURCES: dict = {
    "title": "You deserve real support right now",
    "message": (
        "What you're going through sounds really difficult. This tool isn't "
        "equipped to help with what you're describing, but there are people who can."
    ),
    "resources": [
        {
            "name": "Find a Helpline (International)",
            "url": "https://findahelpline.com/",
            "description": "Find crisis support in your country",
        },
        {
            "name": "US: National Suicide Prevention Lifeline",
            "phone": "988",
            "description": "Call or text 988",
        },
        {
            "name": "US: Crisis Text Line",
            "phone": "Text HOME to 741741",
            "description": "Free 24/7 support",
        },
        {"name": "NZ: Need to Talk?", "phone": "1737", "description": "Free call or text, anytime"},
        {"name": "UK: Samaritans", "phone": "116 123", "description": "Free to call, 24 hours"},
        {"name": "AU: Lifeline", "phone": "13 11 14", "description": "24 hour crisis support"},
    ],
}


def _normalize(text: str) -> str:
    # Curly apostrophes from mobile keyboards
    return text.lower().replace("’", "'")


def contains_crisis_signal(text: str | None) -> bool:
    """Case-insensitive substring check against the crisis keyword list."""
    if not text:
        return False
    lowered = _normalize(text)
    return any(keyword in lowered for keyword in CRISIS_KEYWORDS)


def scan_answers(*answer_groups: Iterable[str | None]) -> bool:
    """
    Scan every primary and follow-up answer collected so far.

    Answers are joined with a space and checked as one text.
    """
    combined = " ".join(
        answer for group in answer_groups for answer in group if answer
    )
    return contains_crisis_signal(combined)
