SUMMARY_PROMPT = """You are summarizing a translated historical book for a reader's introduction.

Below are translated pages, each prefixed with its page number.

Return JSON in exactly this shape:
{{
  "overview": "<3-5 paragraph overview of the work>",
  "quotes": [{{"text": "<memorable passage>", "page": <page number>}}],
  "themes": ["<theme>", "..."]
}}

Choose 3-6 quotes and 3-8 themes. Use only the text given.

PAGES:
{pages}"""


SPLIT_LABEL_PROMPT = """You are an expert at analyzing scanned book images.

TASK: Determine if this is a TWO-PAGE SPREAD or a SINGLE PAGE, and if it's a spread, find the optimal split position.

- A spread shows two text blocks separated by a gutter (dark shadow, bright gap or plain margin)
- The split must fall in the gap between text blocks, never through text
- Follow the binding line if the book is tilted

Return your answer in this EXACT JSON format:
{
  "isTwoPageSpread": <true|false>,
  "splitPosition": <integer from 0-1000 where 0=left edge, 1000=right edge; 500 if single page>,
  "confidence": "<high|medium|low>",
  "reasoning": "<brief explanation>"
}"""


def build_summary_prompt(pages_text: str) -> str:
    return SUMMARY_PROMPT.format(pages=pages_text)
