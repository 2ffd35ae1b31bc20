"""Instruction prompts sent to Gemini.

The bullet layout requested from the note prompt is a formatting convention of
the prompt text only; nothing downstream parses or validates it.
"""

from typing import Optional

from voice_notes_bot.config.settings import AppSettings

TRANSCRIPTION_PROMPT = """Transcribe this audio.

Rules:
- Write it down verbatim, keeping every word
- Split the text into paragraphs by meaning (each complete thought is a new paragraph)
- Put an empty line between paragraphs
- Fix obvious slips of the tongue
- Remove filler sounds such as "uh", "um", "er" at the start of phrases
- Answer in the language of the audio
- Output only the transcription"""

NOTE_PROMPT = """Turn the transcription into a structured note.

Format:
1. Come up with a short title (no emoji, no formatting)
2. Split the content into thematic sections
3. Each section: a heading followed by bullets
4. Start bullets with "• " (a bullet and a space)
5. Start nested items with "  • " (two spaces, a bullet and a space)

Format example:
Note title

 Section name
• First item
• Second item
  • Nested item

 Another section
• Item

Rules:
- Remove filler words and padding
- Keep the key ideas and details
- Group related ideas together
- Use short, dense wording
- Answer in the language of the input text
- Output only the note

Transcription:"""


def resolve_prompts(settings: Optional[AppSettings] = None) -> tuple[str, str]:
    """Return the (transcription, note) prompts, honouring configured overrides."""

    if settings is None:
        return TRANSCRIPTION_PROMPT, NOTE_PROMPT

    return (
        settings.transcription_prompt or TRANSCRIPTION_PROMPT,
        settings.note_prompt or NOTE_PROMPT,
    )
