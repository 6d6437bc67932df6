"""Letter generation: prompts and calls to the text-generation provider.

Three generations share one provider:
- the letter itself (transcript -> letter)
- a comparison narrative between two saved letters
- a short reflection on a weekly check-in
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime

import httpx

from letter_to_you.core.errors import ConfigurationError, GenerationError
from letter_to_you.db.enums import Tone
from letter_to_you.services import ai_provider
from letter_to_you.services.ai_provider import ChatMessage
from letter_to_you.utils.dates import as_utc

logger = logging.getLogger(__name__)

LETTER_MAX_TOKENS = 2000
COMPARISON_MAX_TOKENS = 1500
CHECKIN_MAX_TOKENS = 200


BASE_SYSTEM_PROMPT = """You are a thoughtful, warm writer creating a personal letter for someone based on their reflective interview responses.

Your task is to write a letter TO the person, synthesizing what they shared into something meaningful and actionable.

Guidelines:
- Write in second person ("you")
- Be specific: reference their actual words and situations
- Notice patterns they might not see
- Be honest, including about hard things
- End with 2-4 concrete, specific next steps drawn from their responses
- Length: 600-1,200 words

Structure:
1. Opening that acknowledges where they are
2. Body that synthesizes themes and patterns from their responses
3. Gentle observations about what might be underneath
4. Closing with specific, actionable next steps

Do NOT:
- Give medical or mental health advice
- Be preachy or prescriptive
- Use therapy jargon
- Make assumptions beyond what they shared
- Be falsely positive; honor the complexity"""

TONE_INSTRUCTIONS: dict[str, str] = {
    Tone.YOU_DECIDE.value: """
TONE: You Decide
Read their answers carefully and choose the tone that best fits what they need right now. You might choose:
- Warm & Gentle: If they seem vulnerable, hurting, or in need of compassion and validation
- Clear & Direct: If they seem stuck in ambiguity and need honest clarity to move forward
- Motivating: If they seem ready for action but need a push or encouragement

Don't announce which tone you chose. Just write in that voice naturally. Let their words guide you to what they need to hear.""",
    Tone.WARM.value: """
TONE: Warm & Gentle
Write with deep compassion and gentleness. Use soft, supportive language. Validate their feelings before offering observations. Be like a caring friend who sees them clearly and accepts them fully. Phrases like "It makes sense that..." and "It's okay to feel..." fit this tone.""",
    Tone.DIRECT.value: """
TONE: Clear & Direct
Be honest and clear. Skip unnecessary pleasantries. Name what you see directly and succinctly. Respect their intelligence and capacity to hear truth. Don't soften things so much that the message gets lost. Be like a trusted mentor who tells it straight because they respect you.""",
    Tone.MOTIVATING.value: """
TONE: Motivating & Forward-Looking
Be energizing and action-oriented. Acknowledge the hard stuff but quickly pivot to agency, possibility, and potential. Emphasize their strengths and what they can do. Be like a coach who believes in them and wants to see them move forward. Use language that creates momentum.""",
}

COMPARISON_SYSTEM_PROMPT = """You are a thoughtful analyst helping someone understand how they've changed between two personal reflection letters they wrote to themselves.

Your task is to compare the two letters and provide meaningful insights about:
1. What has shifted in their emotional state or mindset
2. Changes in their priorities, concerns, or focus areas
3. Progress or movement on issues they were grappling with
4. New themes that emerged or old ones that resolved
5. What this evolution might mean for their personal growth

Guidelines:
- Be specific: reference actual content from both letters
- Be warm and encouraging about growth, but honest about challenges
- Notice both obvious and subtle shifts
- Avoid being preachy or prescriptive
- Length: 300-500 words
- Write in second person ("you")
- Do NOT use markdown formatting (no **bold**, no *italics*, no bullet points); write in plain prose

Structure your response as flowing paragraphs, not a list. Start by acknowledging the time between the letters, then explore what has changed."""


def normalize_tone(tone: str | None) -> str:
    """Map incoming tone ids onto Tone values; unknown tones fall back to warm."""
    if not tone:
        return Tone.WARM.value
    value = tone.strip().lower()
    if value == "youdecide":
        value = Tone.YOU_DECIDE.value
    return value if Tone.has_value(value) else Tone.WARM.value


def build_letter_system_prompt(tone: str | None) -> str:
    return BASE_SYSTEM_PROMPT + "\n" + TONE_INSTRUCTIONS[normalize_tone(tone)]


def build_letter_prompt(mode_name: str, transcript: str) -> str:
    return (
        f'The person completed a "{mode_name}" reflection. Here are their responses:\n\n'
        f"{transcript}\n\n"
        "---\n\n"
        "Based on these responses, write them a thoughtful, personal letter that "
        "synthesizes what they shared and ends with 2-4 specific next steps."
    )


def format_letter_date(value: datetime) -> str:
    """'March 4, 2025' style date."""
    return f"{value.strftime('%B')} {value.day}, {value.year}"


@dataclass(frozen=True)
class ComparableLetter:
    content: str
    mode: str
    date: datetime


def order_for_comparison(
    letter_a: ComparableLetter, letter_b: ComparableLetter
) -> tuple[ComparableLetter, ComparableLetter]:
    """(older, newer), regardless of selection order."""
    if as_utc(letter_b.date) < as_utc(letter_a.date):
        return letter_b, letter_a
    return letter_a, letter_b


def build_comparison_prompt(letter_a: ComparableLetter, letter_b: ComparableLetter) -> str:
    older, newer = order_for_comparison(letter_a, letter_b)
    return (
        "Here are two letters this person wrote to themselves at different times. "
        "Please analyze what has changed.\n\n"
        f"EARLIER LETTER ({format_letter_date(older.date)}, {older.mode} reflection):\n"
        f"{older.content}\n\n"
        "---\n\n"
        f"LATER LETTER ({format_letter_date(newer.date)}, {newer.mode} reflection):\n"
        f"{newer.content}\n\n"
        "---\n\n"
        "Please provide a thoughtful comparison of how this person has evolved "
        "between these two letters."
    )


def build_checkin_prompt(
    *,
    mood_rating: int,
    energy_level: int,
    wins: str | None = None,
    challenges: str | None = None,
    gratitude: str | None = None,
    focus_next_week: str | None = None,
) -> str:
    def shared(value: str | None) -> str:
        return value.strip() if value and value.strip() else "Not shared"

    return f"""You are a supportive, insightful reflection companion. Based on someone's weekly check-in, write a brief, personalized reflection (2-3 sentences) that:
- Acknowledges their experience
- Offers gentle insight or encouragement
- Connects to their stated focus for next week

Weekly Check-in Data:
- Mood: {mood_rating}/10
- Energy: {energy_level}/10
- What went well: {shared(wins)}
- Challenges: {shared(challenges)}
- Gratitude: {shared(gratitude)}
- Focus for next week: {shared(focus_next_week)}

Write a warm, brief reflection (2-3 sentences max). Don't use bullet points or lists. Be genuine, not generic."""


async def _complete(
    messages: list[ChatMessage],
    *,
    max_tokens: int,
    failure_message: str,
) -> str:
    """One provider call. Every provider failure becomes a GenerationError."""
    provider = ai_provider.get_configured_provider()
    try:
        response = await provider.chat(messages, max_tokens=max_tokens)
    except ConfigurationError:
        raise
    except httpx.HTTPStatusError as exc:
        logger.warning(
            "Text generation failed with status %s", exc.response.status_code
        )
        raise GenerationError(failure_message, details=f"Provider returned {exc.response.status_code}")
    except (httpx.HTTPError, KeyError, ValueError) as exc:
        logger.warning("Text generation failed: %s", type(exc).__name__)
        raise GenerationError(failure_message, details=str(exc) or type(exc).__name__)

    content = (response.content or "").strip()
    if not content:
        raise GenerationError(failure_message, details="No content received")
    return content


async def generate_letter(*, mode_name: str, tone: str | None, transcript: str) -> str:
    """Generate a letter from a fully formatted transcript."""
    messages = [
        ChatMessage(role="system", content=build_letter_system_prompt(tone)),
        ChatMessage(role="user", content=build_letter_prompt(mode_name, transcript)),
    ]
    return await _complete(
        messages,
        max_tokens=LETTER_MAX_TOKENS,
        failure_message="Failed to generate letter",
    )


async def compare_letters(letter_a: ComparableLetter, letter_b: ComparableLetter) -> str:
    """Comparison narrative, older letter first in the prompt."""
    messages = [
        ChatMessage(role="system", content=COMPARISON_SYSTEM_PROMPT),
        ChatMessage(role="user", content=build_comparison_prompt(letter_a, letter_b)),
    ]
    return await _complete(
        messages,
        max_tokens=COMPARISON_MAX_TOKENS,
        failure_message="Failed to compare letters",
    )


async def generate_checkin_reflection(**checkin_fields) -> str:
    """Two or three sentence reflection on a weekly check-in."""
    messages = [ChatMessage(role="user", content=build_checkin_prompt(**checkin_fields))]
    return await _complete(
        messages,
        max_tokens=CHECKIN_MAX_TOKENS,
        failure_message="Failed to generate reflection",
    )
