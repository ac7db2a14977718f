"""Completed-task extraction from AI summary text."""

import re
from typing import Any, Iterable

MAX_TASKS = 10

COMPLETED_PATTERN = re.compile(
    r"(?:completed|finished|done with|accomplished)\s+([^.!?]+)", re.IGNORECASE
)
CHECKMARK_PATTERN = re.compile(r"[✓✅]\s*([^.!?\n]+)")
ARTICLE_PATTERN = re.compile(r"^(the|a|an)\s+", re.IGNORECASE)


def _normalize(task: str) -> str:
    task = ARTICLE_PATTERN.sub("", task.lower())
    task = re.sub(r"\s+", " ", task)
    return re.sub(r"[^\w\s]", "", task).strip()


def is_similar_task(first: str, second: str) -> bool:
    """Whether two task descriptions name the same piece of work."""
    a, b = _normalize(first), _normalize(second)
    if a == b:
        return True
    if (b in a and len(b) > 10) or (a in b and len(a) > 10):
        return True

    words_a = [w for w in a.split(" ") if len(w) > 2]
    words_b = [w for w in b.split(" ") if len(w) > 2]
    if not words_a or not words_b:
        return False
    common = [w for w in words_a if w in words_b]
    return len(common) / max(len(words_a), len(words_b)) > 0.8


def _usable(task: str) -> bool:
    return 3 < len(task) < 100


def extract_completed_tasks(summaries: Iterable[dict[str, Any]]) -> list[str]:
    """Pull completed tasks out of a session's summaries.

    Each summary may carry a ``task_completion.completed`` list reported by
    the summary generator and free ``summary_text``. Explicit lists and
    check-marked items are trusted over phrases like "finished X".
    """
    candidates = []
    for summary in summaries:
        completion = summary.get("task_completion") or {}
        for task in completion.get("completed") or []:
            if isinstance(task, str):
                candidates.append((0.95, task.strip()))

        text = (summary.get("summary_text") or "").lower()
        for match in COMPLETED_PATTERN.finditer(text):
            task = match.group(1).strip()
            if _usable(task):
                candidates.append((0.9, task))
        for match in CHECKMARK_PATTERN.finditer(text):
            task = match.group(1).strip()
            if _usable(task):
                candidates.append((0.95, task))

    # Stable sort keeps first-seen order within a confidence level
    candidates.sort(key=lambda c: c[0], reverse=True)

    tasks = []
    for _, text in candidates:
        if any(is_similar_task(text, existing) for existing in tasks):
            continue
        cleaned = re.sub(r"\s+", " ", ARTICLE_PATTERN.sub("", text)).strip()
        if _usable(cleaned):
            tasks.append(cleaned)
    return tasks[:MAX_TASKS]
