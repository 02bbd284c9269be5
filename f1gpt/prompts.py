"""Prompt construction for grounded F1 answers."""

import datetime
from dataclasses import dataclass

from .models import RetrievedPassage

NO_CONTEXT_SENTINEL = "No relevant documents found."
PASSAGE_SEPARATOR = "\n\n"

INSTRUCTION_START = "[INST]"
INSTRUCTION_END = "[/INST]"

SYSTEM_INSTRUCTION = (
    "You are F1GPT, a Formula 1 expert assistant. Current date: {now} UTC.\n"
    "CRITICAL RULES:\n"
    "- Only use the context provided below. Do not add any details that are "
    "not present.\n"
    "- If the context does not include the answer, respond with "
    "\"I don't have enough information to answer that question\".\n"
    "- DO NOT reference events after the current date ({now}) unless they are "
    "explicitly in the context.\n"
    "- Do not speculate or provide information about events not covered in "
    "the context.\n"
    "- Provide only factual answers and DO NOT include any disclaimers in "
    "your output.\n"
    "- Add emojis only when required, do not add it always."
)


def format_utc_datetime(now: datetime.datetime | None = None) -> str:
    """Format a timestamp as ``YYYY-MM-DD HH:MM:SS`` in UTC.

    Naive datetimes are taken to be UTC already.

    Returns:
        The formatted timestamp.
    """
    now = now or datetime.datetime.now(tz=datetime.UTC)
    if now.tzinfo is not None:
        now = now.astimezone(datetime.UTC)
    return now.strftime("%Y-%m-%d %H:%M:%S")


@dataclass(frozen=True)
class PromptContext:
    """Everything the model sees for one question."""

    system_instruction: str
    assembled_context: str
    question: str
    current_time: datetime.datetime

    def render(self) -> str:
        """Render the instruction-wrapped model input.

        Returns:
            str: Prompt text wrapped in the model's instruction delimiters.
        """
        stamp = format_utc_datetime(self.current_time)
        body = (
            f"{self.system_instruction.format(now=stamp)}\n\n"
            f"Context:\n{self.assembled_context}\n\n"
            f"Question: {self.question}\n\n"
            "Your response:"
        )
        return f"{INSTRUCTION_START}{body}{INSTRUCTION_END}"


def build_prompt(context: str, question: str, now: datetime.datetime) -> str:
    """Combine the fixed instruction, context and question into one model input.

    Args:
        context: Assembled passage text or the no-documents sentinel.
        question: The user's latest message.
        now: Reference time the model must not reason beyond.

    Returns:
        str: The complete prompt.
    """
    return PromptContext(
        system_instruction=SYSTEM_INSTRUCTION,
        assembled_context=context or NO_CONTEXT_SENTINEL,
        question=question,
        current_time=now,
    ).render()


def join_passages(passages: list[RetrievedPassage]) -> str:
    """Join passage contents, falling back to the sentinel when empty.

    Returns:
        str: Context block for the prompt.
    """
    if not passages:
        return NO_CONTEXT_SENTINEL
    return PASSAGE_SEPARATOR.join(passage.content for passage in passages)


def fit_context(
    passages: list[RetrievedPassage],
    max_chars: int,
) -> list[RetrievedPassage]:
    """Trim passages so the joined context stays within ``max_chars``.

    Lowest-similarity passages are dropped first. When the best passage alone
    is too long its text is cut. A non-positive limit disables trimming.

    Returns:
        list[RetrievedPassage]: Surviving passages, still ranked by similarity.
    """
    if max_chars <= 0 or not passages:
        return passages

    kept = sorted(passages, key=lambda passage: passage.similarity, reverse=True)
    while len(kept) > 1 and len(join_passages(kept)) > max_chars:
        kept.pop()

    best = kept[0]
    if len(best.content) > max_chars:
        kept[0] = RetrievedPassage(
            content=best.content[:max_chars],
            similarity=best.similarity,
            rank=best.rank,
            source_url=best.source_url,
        )
    return kept
