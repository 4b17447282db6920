"""
Local heuristic tone classification and mood summaries.

The heuristic classifier is the always-available fallback behind the remote
classifier. It is a fixed, ordered list of keyword and pattern rules; the
first rule that matches decides the tone. It never blocks and never raises.

The mood summary turns a batch of recent messages into one human-readable
line (who just joined, whether chat is laughing, hyped or frustrated, what
word dominates) without any remote call.

Example:
    >>> classifier = HeuristicToneClassifier()
    >>> classifier.classify("free followers at bestsite.com").tone
    <Tone.SPAM: 'spam'>
    >>> summarize_mood([("viewer42", "lol that", None), ("viewer42", "haha again", None)]).tone
    'positive'
"""

import re
from collections import Counter
from dataclasses import dataclass
from typing import List, Optional, Pattern, Sequence, Tuple

from chatpulse.ingest.emotes import GLOBAL_EMOTES
from chatpulse.models.chat import MoodSummary, Tone, ToneResult

_FLAGS = re.IGNORECASE

SPAM_PATTERN = re.compile(
    r"(http(s)?://|www\.|\b(?:[a-z0-9-]+\.){1,3}(?:com|net|org|gg|xyz|shop|store|info|ru|io|co)\b"
    r"|\bfree\b.*\b(followers?|viewers?|subs?)\b|\bbuy\b.*\b(followers?|viewers?|subs?)\b"
    r"|\bpromo\b|\bfollow back\b|\bremove the space\b|\bstreamboo\b|\bbest viewers\b)",
    _FLAGS,
)
SPAM_HANDLE_PATTERN = re.compile(r"@[a-z0-9]{6,}", _FLAGS)
SYSTEM_PATTERN = re.compile(r"^([!/][a-z0-9_-]+|\*{2}|\[mod\])", _FLAGS)
TOXIC_PATTERN = re.compile(
    r"\b(kys|die|trash|sucks|hate|stupid|idiot|worst|loser|bot|pathetic|garbage|terrible"
    r"|awful|kill yourself|hate you|hate u|noob)\b",
    _FLAGS,
)
CRITICAL_PATTERN = re.compile(
    r"\b(bad|boring|cringe|annoying|lame|trash|terrible|hate|never|awful|useless|slow|weak"
    r"|bronze|fail|sad|disappointing|frustrating)\b",
    _FLAGS,
)
CONSTRUCTIVE_PATTERN = re.compile(
    r"\b(should|maybe|consider|try|could|recommend|suggest|idea|feedback|tip|advice|perhaps"
    r"|what if|swap|switch|change|adjust|improve)\b",
    _FLAGS,
)
HYPE_PATTERN = re.compile(
    r"\b(pog|insane|let's go|hype|massive|huge|fire|cracked|goat|legend|unstoppable|carry"
    r"|clutch)\b",
    _FLAGS,
)
SUPPORTIVE_PATTERN = re.compile(
    r"\b(gg|nice|awesome|love|great|amazing|thanks|thank you|appreciate|well played|wp"
    r"|so good|cool)\b",
    _FLAGS,
)
HUMOR_PATTERN = re.compile(
    r"\b(lol|lul|haha|lmao|rofl|xd|hehe|joke|funny|dead|i'm dying|i am dying)\b|😂|🤣",
    _FLAGS,
)
SARCASTIC_PATTERN = re.compile(
    r"\b(sure|yeah right|totally|as if|wow just wow|nice job|great|amazing)\b",
    _FLAGS,
)

# Ordered rules: first match wins.
_RULES: Tuple[Tuple[Tone, float, str, Tuple[Pattern[str], ...]], ...] = (
    (Tone.SPAM, 0.82, "Matches spam-like pattern", (SPAM_PATTERN, SPAM_HANDLE_PATTERN)),
    (Tone.SYSTEM, 0.5, "Bot command or moderator notice", (SYSTEM_PATTERN,)),
    (Tone.TOXIC, 0.75, "Matches toxic language pattern", (TOXIC_PATTERN,)),
    (Tone.CRITICAL, 0.65, "Matches critical language pattern", (CRITICAL_PATTERN,)),
    (Tone.CONSTRUCTIVE, 0.6, "Contains constructive feedback", (CONSTRUCTIVE_PATTERN,)),
    (Tone.HYPE, 0.65, "Matches hype language", (HYPE_PATTERN,)),
    (Tone.SUPPORTIVE, 0.6, "Contains supportive language", (SUPPORTIVE_PATTERN,)),
    (Tone.HUMOR, 0.55, "Contains laughter markers", (HUMOR_PATTERN,)),
    (Tone.SARCASTIC, 0.45, "Possible sarcasm keywords", (SARCASTIC_PATTERN,)),
)


class HeuristicToneClassifier:
    """
    Ordered keyword and pattern tone classifier.

    Rules in priority order, with the confidence each assigns:
        spam 0.82, system 0.5, toxic 0.75, critical 0.65, constructive 0.6,
        hype 0.65, supportive 0.6, humor 0.55, sarcastic 0.45,
        question 0.5 (ends with "?"), informational 0.3 (under 5 chars),
        otherwise unknown 0.2. Empty text is unknown with confidence 0.
    """

    SHORT_MESSAGE_CHARS: int = 5

    def classify(self, text: str) -> ToneResult:
        """Classify a single message."""
        trimmed = text.strip()
        if not trimmed:
            return ToneResult(tone=Tone.UNKNOWN, confidence=0.0, rationale="Empty message")

        for tone, confidence, rationale, patterns in _RULES:
            if any(pattern.search(trimmed) for pattern in patterns):
                return ToneResult(tone=tone, confidence=confidence, rationale=rationale)

        if trimmed.endswith("?"):
            return ToneResult(
                tone=Tone.QUESTION, confidence=0.5, rationale="Ends with a question mark"
            )
        if len(trimmed) < self.SHORT_MESSAGE_CHARS:
            return ToneResult(
                tone=Tone.INFORMATIONAL,
                confidence=0.3,
                rationale="Very short/ambiguous message",
            )
        return ToneResult(tone=Tone.UNKNOWN, confidence=0.2, rationale="No strong tone detected")


# =============================================================================
# MOOD SUMMARY
# =============================================================================

_LAUGHTER_PATTERN = re.compile(r"(lul|lol|haha|lmao|rofl|xd)")
_HYPE_WORDS_PATTERN = re.compile(r"(pog|hype|let's go|omg|fire|goat|pogchamp)")
_FRUSTRATION_PATTERN = re.compile(
    r"(mad|wtf|cringe|angry|hate|terrible|trash|annoyed|upset|frustrated)"
)
_WORD_PATTERN = re.compile(r"[a-z0-9']+")

MOOD_RATIO_THRESHOLD = 0.02


@dataclass
class MoodContext:
    """
    Counts behind a mood summary.

    Attributes:
        message_count: Messages analysed.
        unique_chatters: Distinct authors.
        top_words: Most frequent words, most frequent first.
        laughter_ratio: Share of messages that laugh.
        hype_ratio: Share of hype or supportive messages.
        negative_ratio: Share of negative messages.
        new_chatter_names: Authors with exactly one message (first five).
    """

    message_count: int
    unique_chatters: int
    top_words: List[str]
    laughter_ratio: float
    hype_ratio: float
    negative_ratio: float
    new_chatter_names: List[str]


def analyze_mood(
    messages: Sequence[Tuple[str, str, Optional[Tone]]],
) -> MoodContext:
    """
    Count mood signals over ``(author, text, tone)`` triples.

    A message counts toward laughter, hype or negativity through its tone
    when classified, otherwise through keyword matches.
    """
    message_counts: Counter = Counter()
    word_counts: Counter = Counter()
    laughter = hype = negative = 0

    for author, text, tone in messages:
        message_counts[author] += 1
        lower = text.lower()

        if tone == Tone.HUMOR or _LAUGHTER_PATTERN.search(lower):
            laughter += 1
        if tone in (Tone.HYPE, Tone.SUPPORTIVE) or _HYPE_WORDS_PATTERN.search(lower):
            hype += 1
        if (tone is not None and tone.is_negative) or _FRUSTRATION_PATTERN.search(lower):
            negative += 1

        for word in _WORD_PATTERN.findall(lower):
            if len(word) > 2 and word not in GLOBAL_EMOTES:
                word_counts[word] += 1

    safe_count = len(messages) or 1
    return MoodContext(
        message_count=len(messages),
        unique_chatters=len(message_counts),
        top_words=[word for word, _ in word_counts.most_common(10)],
        laughter_ratio=laughter / safe_count,
        hype_ratio=hype / safe_count,
        negative_ratio=negative / safe_count,
        new_chatter_names=[name for name, count in message_counts.items() if count == 1][:5],
    )


def summarize_mood(
    messages: Sequence[Tuple[str, str, Optional[Tone]]],
    default_tone: str = "neutral",
) -> MoodSummary:
    """
    Build a one-line mood summary from recent messages.

    Args:
        messages: ``(author, text, tone)`` triples, oldest first.
        default_tone: Tone reported when no signal dominates.

    Returns:
        MoodSummary: Message and tone (positive, neutral or negative).
    """
    context = analyze_mood(messages)
    primary_word = context.top_words[0] if context.top_words else None

    if context.new_chatter_names:
        names = ", ".join(context.new_chatter_names)
        return MoodSummary(message=f"{names} just joined—say hello!", tone="positive")

    if context.laughter_ratio > MOOD_RATIO_THRESHOLD:
        about = f' about "{primary_word}"' if primary_word else "!"
        return MoodSummary(message=f"Chat can't stop laughing{about}", tone="positive")

    if context.hype_ratio > MOOD_RATIO_THRESHOLD:
        subject = f'"{primary_word}"' if primary_word else "that moment"
        return MoodSummary(message=f"Hype spike—{subject} is going wild!", tone="positive")

    if context.negative_ratio > MOOD_RATIO_THRESHOLD:
        about = f' about "{primary_word}"' if primary_word else " right now"
        return MoodSummary(message=f"Chat sounds frustrated{about}.", tone="negative")

    if primary_word:
        return MoodSummary(message=f'Lots of talk about "{primary_word}" in chat.', tone=default_tone)

    return MoodSummary(
        message="Chat is steady and tuned in—waiting for the next spark.",
        tone=default_tone,
    )
