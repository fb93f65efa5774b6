OCR_PROMPT = """You are transcribing a scanned page from a historical book written in {language}.

Transcribe ALL text on the page exactly as it appears:
- Preserve original spelling, abbreviations and punctuation
- Keep line breaks between paragraphs
- Mark illegible words as [illegible]
- Mark page furniture (running heads, page numbers, catchwords) as [[header: ...]], [[page: ...]], [[catchword: ...]]

Return only the transcription, with no commentary."""


TRANSLATION_PROMPT = """Translate the following {source_language} text from a historical book into {target_language}.

Guidelines:
- Translate faithfully; do not summarize or omit passages
- Keep paragraph breaks
- Keep [[...]] markup tags unchanged
- Render proper names in their conventional {target_language} form

Return only the translation.

TEXT:
{text}"""


def build_ocr_prompt(language: str) -> str:
    return OCR_PROMPT.format(language=language)


def build_translation_prompt(text: str, source_language: str, target_language: str) -> str:
    return TRANSLATION_PROMPT.format(
        text=text,
        source_language=source_language,
        target_language=target_language,
    )
