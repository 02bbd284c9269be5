"""Tests for prompt construction."""

import datetime

import pytest

from f1gpt.models import RetrievedPassage
from f1gpt.prompts import (
    NO_CONTEXT_SENTINEL,
    build_prompt,
    fit_context,
    format_utc_datetime,
    join_passages,
)
from tests.conftest import TestConstants


def _passage(content: str, similarity: float, rank: int = 1) -> RetrievedPassage:
    return RetrievedPassage(content=content, similarity=similarity, rank=rank)


def test_build_prompt_layout():
    prompt = build_prompt(
        "Verstappen won Imola 2025.",
        "Who won Imola?",
        TestConstants.FIXED_TIME,
    )

    assert prompt.startswith("[INST]You are F1GPT")
    assert prompt.endswith("Your response:[/INST]")
    assert "Context:\nVerstappen won Imola 2025.\n\nQuestion: Who won Imola?" in prompt
    assert prompt.count("2025-05-18 14:30:00") == 2


def test_build_prompt_states_rules():
    prompt = build_prompt(NO_CONTEXT_SENTINEL, "q", TestConstants.FIXED_TIME)

    assert "Only use the context provided below" in prompt
    assert "I don't have enough information to answer that question" in prompt
    assert "DO NOT include any disclaimers" in prompt


def test_build_prompt_empty_context_uses_sentinel():
    prompt = build_prompt("", "q", TestConstants.FIXED_TIME)

    assert f"Context:\n{NO_CONTEXT_SENTINEL}\n\n" in prompt


def test_build_prompt_is_deterministic():
    first = build_prompt("ctx", "q", TestConstants.FIXED_TIME)
    second = build_prompt("ctx", "q", TestConstants.FIXED_TIME)

    assert first == second


@pytest.mark.parametrize(
    ("moment", "expected"),
    [
        (
            datetime.datetime(2025, 1, 2, 3, 4, 5, tzinfo=datetime.UTC),
            "2025-01-02 03:04:05",
        ),
        (
            datetime.datetime(
                2025, 1, 2, 5, 4, 5, tzinfo=datetime.timezone(datetime.timedelta(hours=2))
            ),
            "2025-01-02 03:04:05",
        ),
        (datetime.datetime(2025, 1, 2, 3, 4, 5), "2025-01-02 03:04:05"),  # noqa: DTZ001
    ],
    ids=["utc", "offset", "naive"],
)
def test_format_utc_datetime(moment, expected):
    assert format_utc_datetime(moment) == expected


def test_join_passages():
    assert join_passages([]) == NO_CONTEXT_SENTINEL
    assert join_passages([_passage("a", 0.9), _passage("b", 0.8)]) == "a\n\nb"


def test_fit_context_disabled_for_non_positive_limit():
    passages = [_passage("x" * 100, 0.9)]

    assert fit_context(passages, 0) == passages


def test_fit_context_drops_lowest_similarity_first():
    passages = [
        _passage("low" * 10, 0.71, rank=3),
        _passage("best" * 10, 0.95, rank=1),
        _passage("mid" * 10, 0.8, rank=2),
    ]

    kept = fit_context(passages, 75)

    assert [p.similarity for p in kept] == [0.95, 0.8]


def test_fit_context_cuts_single_long_passage():
    kept = fit_context([_passage("y" * 100, 0.9)], 30)

    assert kept[0].content == "y" * 30
    assert kept[0].similarity == 0.9
