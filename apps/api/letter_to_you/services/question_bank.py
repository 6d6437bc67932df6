"""Question bank: modes, their questions, and question selection.

Everything here is static and immutable. ``select_questions`` is the only
operation and is pure: the same mode id always yields the same list.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from letter_to_you.core.config import settings
from letter_to_you.db.enums import ModeKind

MAX_GENERAL_QUESTIONS = 10
QUICK_MODE_ID = "quick"


@dataclass(frozen=True)
class Question:
    """A single interview question."""

    id: str
    section: str
    section_name: str
    prompt: str
    follow_up: str | None = None
    tags: tuple[str, ...] = ()
    intensity: int = 1  # editorial only
    core: bool = False
    use_if: frozenset[str] | None = None  # None = applies to every general mode
    options: tuple[str, ...] = ()  # pre-written answers (quick letter)

    def applies_to(self, mode_id: str) -> bool:
        return self.core or self.use_if is None or mode_id in self.use_if


@dataclass(frozen=True)
class Mode:
    """A reflection category or life-event template."""

    id: str
    name: str
    description: str
    kind: ModeKind
    icon: str = ""
    questions: tuple[Question, ...] = field(default=(), repr=False)

    @property
    def paid(self) -> bool:
        return self.id not in settings.free_modes_list


def _q(id: str, section: str, section_name: str, prompt: str, **kwargs) -> Question:
    use_if = kwargs.pop("use_if", None)
    tags = kwargs.pop("tags", ())
    return Question(
        id=id,
        section=section,
        section_name=section_name,
        prompt=prompt,
        tags=tuple(tags),
        use_if=frozenset(use_if) if use_if is not None else None,
        **kwargs,
    )


# =============================================================================
# General pool (filtered per mode, pool order preserved)
# =============================================================================

GENERAL_POOL: tuple[Question, ...] = (
    # Orientation
    _q(
        "orientation-1", "orientation", "Orientation",
        "What brings you here right now? Not the polished version, the real reason.",
        follow_up="If you said the honest sentence you don't usually say out loud, what would it be?",
        tags=("identity", "meaning"), intensity=3, core=True,
    ),
    _q(
        "orientation-2", "orientation", "Orientation",
        "What would you most want to be different in 6 months, internally rather than externally?",
        tags=("meaning", "values"), intensity=2, core=True,
    ),
    # Values + identity
    _q(
        "values-1", "values", "Values & Identity",
        "When do you feel most like yourself lately? Be specific.",
        follow_up="What is present in those moments that's missing elsewhere?",
        tags=("identity", "values", "energy"), intensity=2, core=True,
    ),
    _q(
        "values-2", "values", "Values & Identity",
        "What are you doing that looks 'fine' from the outside but feels wrong on the inside?",
        tags=("identity", "values"), intensity=3, core=True,
    ),
    _q(
        "values-3", "values", "Values & Identity",
        "If someone who loves you were being brutally honest, what would they say you've been avoiding?",
        follow_up="What do you fear would happen if you stopped avoiding it?",
        tags=("fear", "identity"), intensity=4,
        use_if=("general", "transition"),
    ),
    # Energy + emotional load
    _q(
        "energy-1", "energy", "Energy & Load",
        "What is quietly draining you right now?",
        tags=("energy", "fear"), intensity=2, core=True,
    ),
    _q(
        "energy-2", "energy", "Energy & Load",
        "What are you carrying that you haven't fully admitted is heavy?",
        follow_up="If that weight could speak, what would it ask of you?",
        tags=("energy", "grief"), intensity=4,
        use_if=("general",),
    ),
    _q(
        "energy-3", "energy", "Energy & Load",
        "Where is your life asking for fewer obligations and more truth?",
        tags=("energy", "values"), intensity=3,
        use_if=("general", "transition"),
    ),
    # Relationships + connection
    _q(
        "relationships-1", "relationships", "Relationships & Connection",
        "Who do you feel most yourself around, and why?",
        tags=("relationships", "identity"), intensity=2,
        use_if=("general", "relationships"),
    ),
    _q(
        "relationships-2", "relationships", "Relationships & Connection",
        "What relationship dynamic are you tolerating that you wouldn't advise someone else to tolerate?",
        tags=("relationships", "values"), intensity=4,
        use_if=("general", "relationships"),
    ),
    _q(
        "relationships-3", "relationships", "Relationships & Connection",
        "What do you need more of from others that you rarely ask for?",
        follow_up="What stops you: pride, fear, habit, or something else?",
        tags=("relationships", "fear"), intensity=3,
        use_if=("general", "relationships"),
    ),
    _q(
        "relationships-4", "relationships", "Relationships & Connection",
        "What conversation are you postponing?",
        follow_up="If you had to say the first 2 sentences, what are they?",
        tags=("relationships", "fear"), intensity=4,
        use_if=("general", "relationships", "transition"),
    ),
    # Work + meaning
    _q(
        "work-1", "work", "Work & Meaning",
        "Where are you over-performing to earn safety or approval?",
        tags=("work", "fear", "identity"), intensity=3,
        use_if=("general", "career"),
    ),
    _q(
        "work-2", "work", "Work & Meaning",
        "What part of your work (paid or unpaid) feels meaningful, and what feels like a costume?",
        tags=("work", "meaning", "identity"), intensity=3,
        use_if=("general", "career"),
    ),
    _q(
        "work-3", "work", "Work & Meaning",
        "If you knew you could not fail socially, what change would you make?",
        tags=("work", "fear", "meaning"), intensity=3,
        use_if=("general", "career", "transition"),
    ),
    # Pattern + choice
    _q(
        "pattern-1", "pattern", "Patterns & Choices",
        "Name a pattern you keep repeating that you're tired of.",
        follow_up="What does that pattern protect you from feeling?",
        tags=("identity", "fear"), intensity=4, core=True,
    ),
    _q(
        "pattern-2", "pattern", "Patterns & Choices",
        "What do you already know you should do, but haven't done?",
        tags=("meaning", "fear"), intensity=3,
        use_if=("general", "career"),
    ),
    _q(
        "pattern-3", "pattern", "Patterns & Choices",
        "What is one small act of self-respect you could do in the next 72 hours?",
        tags=("values", "meaning"), intensity=2,
        use_if=("general",),
    ),
    # Closing
    _q(
        "closing", "closing", "Closing",
        "Anything else you want me to know before I write the letter?",
        intensity=1, core=True,
    ),
)


# =============================================================================
# Life-event templates (fixed lists, at most 6 each)
# =============================================================================

LIFE_EVENT_QUESTIONS: dict[str, tuple[Question, ...]] = {
    "breakup": (
        _q("breakup-1", "processing", "Processing",
           "How are you really doing right now? Not the version you tell others."),
        _q("breakup-2", "reflection", "Looking Back",
           "What did this relationship teach you about yourself?"),
        _q("breakup-3", "identity", "Identity",
           "What parts of yourself did you lose or put aside in this relationship?"),
        _q("breakup-4", "healing", "Healing",
           "What do you need to forgive, in them or in yourself?"),
        _q("breakup-5", "forward", "Moving Forward",
           "What do you want your next relationship (with yourself or someone else) to look like?"),
        _q("breakup-6", "closing", "Closing",
           "What would you tell yourself six months from now, looking back at this moment?"),
    ),
    "newbeginning": (
        _q("newbeginning-1", "present", "Right Now",
           "What's the mix of excitement and fear you're feeling about this change?"),
        _q("newbeginning-2", "leaving", "What You're Leaving",
           "What are you grateful to leave behind? What will you miss?"),
        _q("newbeginning-3", "hopes", "Hopes",
           "In your most optimistic vision, what does this new chapter look like?"),
        _q("newbeginning-4", "fears", "Fears",
           "What's the thing you're most afraid won't work out?"),
        _q("newbeginning-5", "identity", "Identity",
           "Who do you want to become in this new chapter?"),
        _q("newbeginning-6", "closing", "Closing",
           "What permission do you need to give yourself right now?"),
    ),
    "grief": (
        _q("grief-1", "honoring", "Honoring",
           "Tell me about what or who you've lost. What do you want me to know about them?"),
        _q("grief-2", "feeling", "Feeling",
           "How is the grief showing up in your daily life right now?"),
        _q("grief-3", "unsaid", "Unsaid",
           "What do you wish you could say to them, or about them, that you haven't?"),
        _q("grief-4", "carrying", "Carrying Forward",
           "What part of them or what they meant to you do you want to carry forward?"),
        _q("grief-5", "support", "Support",
           "What kind of support do you need right now that you're not getting?"),
        _q("grief-6", "closing", "Closing",
           "What would it mean to honor your grief while still moving forward?"),
    ),
    "newparent": (
        _q("newparent-1", "real", "The Real Version",
           "How is parenthood different from what you expected? Honestly."),
        _q("newparent-2", "identity", "Identity",
           "What parts of your old self do you miss? What new parts are emerging?"),
        _q("newparent-3", "overwhelm", "The Hard Parts",
           "What's the thing you're not supposed to say out loud about being a parent?"),
        _q("newparent-4", "joy", "The Joy",
           "What moment recently made you feel like you're doing okay at this?"),
        _q("newparent-5", "values", "Values",
           "What kind of parent do you want to be? What matters most to you?"),
        _q("newparent-6", "closing", "Closing",
           "What do you need to hear right now that no one is telling you?"),
    ),
    "careercrossroads": (
        _q("career-1", "stuck", "Where You Are",
           "What's not working about your current work situation?"),
        _q("career-2", "want", "What You Want",
           "If money and judgment weren't factors, what would you actually want to do?"),
        _q("career-3", "fear", "Fears",
           "What's the fear that's keeping you from making a change?"),
        _q("career-4", "patterns", "Patterns",
           "Have you been here before? What patterns do you notice in your career decisions?"),
        _q("career-5", "values", "Values",
           "What does meaningful work actually look like for you?"),
        _q("career-6", "closing", "Closing",
           "What's one small step you could take in the next week toward clarity?"),
    ),
    "milestone": (
        _q("milestone-1", "reflection", "Looking Back",
           "As you look at the decade behind you, what are you most proud of?"),
        _q("milestone-2", "lessons", "Lessons",
           "What's the most important thing you learned about yourself in your last decade?"),
        _q("milestone-3", "regrets", "Regrets",
           "Is there anything you wish you'd done differently? What would you tell your younger self?"),
        _q("milestone-4", "present", "Right Now",
           "How do you feel about where you are in life right now, really?"),
        _q("milestone-5", "future", "Looking Forward",
           "What do you want the next decade to be about?"),
        _q("milestone-6", "closing", "Closing",
           "What intention or word do you want to carry into this new chapter?"),
    ),
}


_DEPTH = ("depth", "Deep Reflection")

ORIGINAL_QUESTIONS: tuple[Question, ...] = tuple(
    _q(f"original-{n}", *_DEPTH, prompt)
    for n, prompt in enumerate(
        (
            "When in your life have you felt most at peace (not just happy, but deeply, quietly content) and what were the smallest details of that moment that stick with you?",
            "If your unconscious mind could speak to you in plain language, like a voice in a quiet room, what do you think it's been trying to say to you lately that you haven't quite heard?",
            "When do you notice yourself performing, subtly or overtly, rather than simply being? What do you think you're trying to prove in those moments, and to whom?",
            "What's a pattern in love, work, or friendship that you keep repeating, even though you know it doesn't serve you? And what fear might be hiding underneath that repetition?",
            "When do you most feel like the child version of yourself, not in a nostalgic way but in the raw, unprotected, instinctive way, and what emotion usually surfaces in that state?",
            "If someone truly saw all of you (the light, the dark, the contradictions, the things you hide), what do you secretly hope they'd say to you in response?",
            "When you imagine a future where you feel fully at home in your own skin, your relationships and your choices, what are three things that don't exist in that version of your life anymore?",
            "What truth about yourself do you suspect is there, just beneath the surface, but you haven't quite been ready to say out loud yet?",
            "If your heart could write a letter to your mind, what would it say, in just one sentence?",
            "What part of yourself are you most afraid someone else might truly understand, and why would that kind of understanding feel dangerous?",
        ),
        start=1,
    )
)


QUICK_QUESTIONS: tuple[Question, ...] = (
    _q("quick-1", "quick", "Quick Reflection", "How are you really feeling right now?",
       options=(
           "Overwhelmed: there's too much going on and I can't keep up",
           "Stuck: I know something needs to change but I don't know what",
           "Lost: I'm not sure who I am or what I want anymore",
           "Tired: I'm exhausted from trying so hard at everything",
       )),
    _q("quick-2", "quick", "Quick Reflection", "What's been weighing on you most?",
       options=(
           "A relationship that's not working the way I need it to",
           "Work or career that feels meaningless or draining",
           "A decision I've been avoiding making",
           "Feeling disconnected from myself or others",
       )),
    _q("quick-3", "quick", "Quick Reflection", "What do you think you need right now?",
       options=(
           "Permission to slow down and stop pushing so hard",
           "Clarity about what I actually want",
           "Courage to make a change I've been avoiding",
           "To feel seen and understood",
       )),
    _q("quick-4", "quick", "Quick Reflection", "What's something you've been avoiding?",
       options=(
           "A hard conversation I need to have",
           "Admitting that something isn't working",
           "Taking care of myself the way I should",
           "Making a decision that will disappoint someone",
       )),
    _q("quick-5", "quick", "Quick Reflection", "What would help you move forward?",
       options=(
           "Letting go of something that's no longer serving me",
           "Setting a boundary I've been afraid to set",
           "Being honest with myself about what I really want",
           "Taking one small step instead of trying to fix everything",
       )),
)

# Pre-written answers offered on every regular interview question
SKIP_OPTIONS: tuple[str, ...] = (
    "I'm not sure yet",
    "I'd rather not say",
    "This doesn't apply to me",
    "I need to think about this more",
)


# =============================================================================
# Modes
# =============================================================================

GENERAL_MODES: tuple[Mode, ...] = (
    Mode("general", "General Reflection", "A broad exploration of where you are right now", ModeKind.GENERAL, "◎"),
    Mode("relationships", "Relationship & Connection", "Patterns in how you connect with others", ModeKind.GENERAL, "∞"),
    Mode("career", "Career & Meaning", "Work, purpose, and what you're building", ModeKind.GENERAL, "◈"),
    Mode("transition", "Transition / Crossroads", "When you're between chapters", ModeKind.GENERAL, "⊕"),
    Mode("original", "The Original", "The deep questions that started it all", ModeKind.CURATED, "✦", ORIGINAL_QUESTIONS),
)

LIFE_EVENT_MODES: tuple[Mode, ...] = (
    Mode("breakup", "After a Breakup", "Processing the end of a relationship", ModeKind.LIFE_EVENT, "◇", LIFE_EVENT_QUESTIONS["breakup"]),
    Mode("newbeginning", "New Beginning", "Starting a new job, city, or chapter", ModeKind.LIFE_EVENT, "↗", LIFE_EVENT_QUESTIONS["newbeginning"]),
    Mode("grief", "Processing Grief", "Honoring loss and finding your way forward", ModeKind.LIFE_EVENT, "○", LIFE_EVENT_QUESTIONS["grief"]),
    Mode("newparent", "New Parent", "Navigating the identity shift of parenthood", ModeKind.LIFE_EVENT, "✧", LIFE_EVENT_QUESTIONS["newparent"]),
    Mode("careercrossroads", "Career Crossroads", "Figuring out your next professional move", ModeKind.LIFE_EVENT, "⊗", LIFE_EVENT_QUESTIONS["careercrossroads"]),
    Mode("milestone", "Milestone Birthday", "Reflecting on a new decade of life", ModeKind.LIFE_EVENT, "◐", LIFE_EVENT_QUESTIONS["milestone"]),
)

QUICK_MODE = Mode(
    QUICK_MODE_ID, "Quick Reflection", "Five questions with pre-written options", ModeKind.CURATED, "⚡", QUICK_QUESTIONS
)

_MODES_BY_ID: dict[str, Mode] = {
    mode.id: mode for mode in (*GENERAL_MODES, *LIFE_EVENT_MODES, QUICK_MODE)
}


def all_modes() -> list[Mode]:
    """Every known mode, in catalog order."""
    return list(_MODES_BY_ID.values())


def get_mode(mode_id: str) -> Mode | None:
    return _MODES_BY_ID.get(mode_id)


def mode_name(mode_id: str) -> str:
    """Display name for a mode id, falling back to the general reflection name."""
    mode = get_mode(mode_id)
    return mode.name if mode else "General Reflection"


def filter_pool(
    pool: tuple[Question, ...] | list[Question],
    mode_id: str,
    cap: int = MAX_GENERAL_QUESTIONS,
) -> list[Question]:
    """
    Filter a general pool for a mode, preserving pool order.

    When more than ``cap`` questions apply, trailing non-core questions are
    dropped before any core question, so every core question survives as
    long as there are no more than ``cap`` of them.
    """
    applicable = [q for q in pool if q.applies_to(mode_id)]
    if len(applicable) <= cap:
        return applicable

    core_count = sum(1 for q in applicable if q.core)
    non_core_budget = max(0, cap - core_count)

    selected: list[Question] = []
    for question in applicable:
        if question.core:
            selected.append(question)
        elif non_core_budget > 0:
            selected.append(question)
            non_core_budget -= 1
    return selected[:cap]


def select_questions(mode_id: str) -> list[Question]:
    """
    Ordered questions for a mode.

    Fixed-list modes return their authored list verbatim. General modes
    filter the shared pool. Unknown mode ids return an empty list; callers
    must treat that as an error.
    """
    mode = get_mode(mode_id)
    if mode is None:
        return []
    if mode.kind == ModeKind.GENERAL:
        return filter_pool(GENERAL_POOL, mode.id)
    return list(mode.questions)
