"""
Personality: tone selection, acknowledgements and proactive openers.

Phrase choice goes through an injected random.Random so replies are
reproducible under test.
"""

import random
from typing import Optional

from resource_wizard.models.response import ResponseType, Tone

ACKNOWLEDGMENTS = {
    Tone.CASUAL: ["Got it!", "On it!", "Done!", "You got it!", "Sure thing!"],
    Tone.PROFESSIONAL: ["Understood.", "I'll take care of that.", "Processing now.", "Confirmed."],
    Tone.URGENT: ["Right away.", "Handling this now.", "On it immediately."],
}


def select_tone(
    has_urgent_issues: bool,
    is_first_message: bool,
    recent_tone: Optional[Tone] = None,
) -> Tone:
    if has_urgent_issues:
        return Tone.URGENT
    if is_first_message:
        return Tone.CASUAL
    return recent_tone or Tone.CASUAL


def acknowledgment(tone: Tone, rng: Optional[random.Random] = None) -> str:
    rng = rng or random.Random()
    return rng.choice(ACKNOWLEDGMENTS[tone])


def proactive_opener(insight_count: int, critical_count: int) -> Optional[str]:
    """Lead-in for replies that carry unprompted insights. None when there are none."""
    if critical_count > 0:
        subject = "Something needs" if critical_count == 1 else f"{critical_count} things need"
        return f"Heads up: {subject} your attention."
    if insight_count >= 3:
        return "A few things to be aware of:"
    if insight_count > 0:
        return "Quick note:"
    return None


def classify_reply_type(text: str) -> ResponseType:
    """Type a text-only reply by its content."""
    lower = (text or "").lower()
    if "option" in lower or "suggest" in lower or "recommend" in lower:
        return ResponseType.SUGGESTION
    if "?" in lower and ("which" in lower or "do you mean" in lower or "clarify" in lower):
        return ResponseType.CLARIFICATION
    return ResponseType.INFO
