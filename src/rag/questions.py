from __future__ import annotations

"""Parsing of generated hypothetical question lists."""

import re

MAX_QUESTIONS = 5
MIN_QUESTION_LENGTH = 10

_PREFIX_RE = re.compile(r"^(?:[1-9]\d*[.)](?!\d)|[-*•])\s*")


def strip_list_prefix(line: str) -> str:
    """Remove a leading list marker such as '1.', '2)', '-', '*' or a bullet."""
    return _PREFIX_RE.sub("", line.strip(), count=1).strip()


def parse_questions(
    text: str,
    max_questions: int = MAX_QUESTIONS,
    min_length: int = MIN_QUESTION_LENGTH,
) -> list[str]:
    """Extract questions from model output, one candidate per line.

    A line is kept when, after prefix stripping, it contains a question mark
    and is longer than min_length characters. At most max_questions are
    returned, in order of appearance.
    """
    questions: list[str] = []
    for raw_line in text.splitlines():
        line = strip_list_prefix(raw_line)
        if not line:
            continue
        if "?" not in line or len(line) <= min_length:
            continue
        questions.append(line)
        if len(questions) >= max_questions:
            break
    return questions
