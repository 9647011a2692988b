from __future__ import annotations

from collections.abc import Sequence

from tutor_progress.core.vocabulary import ACVocabulary
from tutor_progress.models.records import ConversationMessage

MAX_TAGS = 3
EMPTY_CONVERSATION = "Empty conversation."

RETRY_PREAMBLE = "RETURN ONLY ONE VALID JSON OBJECT. NO EXTRA TEXT. NO MARKDOWN."


def render_transcript(messages: Sequence[ConversationMessage]) -> str:
    if not messages:
        return EMPTY_CONVERSATION
    return "\n".join(f"{m.role}: {m.content}" for m in messages)


def build_prompt(messages: Sequence[ConversationMessage], vocabulary: ACVocabulary) -> str:
    return f"""
You classify alternative conceptions (AC) shown by a learner in a tutoring dialogue.

STRICT RULES (MANDATORY):
- Return ONLY valid JSON.
- Do not write any text outside the JSON.
- No explanations, comments or markdown.

You may only return IDs from this closed list:
{vocabulary.ids_text()}

Return at most {MAX_TAGS} IDs.
If none is clearly present, return [].

EXACT FORMAT:
{{
  "analysis": "1-2 very short sentences",
  "advice": "1 very short sentence",
  "acs": ["AC13", "AC14"]
}}

CONVERSATION:
---
{render_transcript(messages)}
---
""".strip()


def build_retry_prompt(messages: Sequence[ConversationMessage], vocabulary: ACVocabulary) -> str:
    return f"{RETRY_PREAMBLE}\n{build_prompt(messages, vocabulary)}"
