"""AI coaching tips for the profile screen.

Asks a Groq chat model for three short, actionable suggestions based on
the user's habits.  Suggestions are a nice-to-have, so nothing here ever
raises: a missing API key, an empty habit list, a network or HTTP error,
or a reply that is not a JSON array of strings all fall back to a fixed
set of generic tips.
"""

from __future__ import annotations

import json
import logging
import random
import re
from typing import Iterable

import requests

from . import analytics
from .records import Habit

logger = logging.getLogger(__name__)

GROQ_API_URL = "https://api.groq.com/openai/v1/chat/completions"
DEFAULT_MODEL = "llama-3.1-8b-instant"
SUGGESTION_COUNT = 3

SYSTEM_PROMPT = (
    "You are a habit coach that provides specific, actionable advice. "
    "Always respond with a JSON array of exactly 3 suggestion strings."
)

FALLBACK_SUGGESTIONS = (
    "Focus on your highest-importance habits during peak energy hours (usually morning)",
    "Consider breaking down larger goals into smaller, more achievable daily targets",
    "Try habit stacking: link new habits to existing ones for better consistency",
    "Schedule weekly reviews to assess progress and adjust goals if needed",
    "Use the 2-minute rule: if a habit takes less than 2 minutes, do it immediately",
)

_JSON_ARRAY = re.compile(r"\[.*\]", re.DOTALL)


def build_prompt(habits: Iterable[Habit]) -> str:
    context = ", ".join(
        f"{h.name} (Importance: {h.importance}/10, Goal: {h.goal}, "
        f"Progress: {analytics.progress_percent(h):.1f}%)"
        for h in habits
    )
    return (
        f"Based on these habits: {context}. "
        "Provide 3 specific, actionable suggestions to improve habit consistency "
        "and achievement. Focus on practical tips that consider their current "
        "progress and importance levels. Format as a JSON array of strings."
    )


def parse_suggestions(content) -> list[str] | None:
    """Pull a list of strings out of the model reply, or None."""
    if not content or not isinstance(content, str):
        return None
    text = content.strip()
    candidates = [text]
    match = _JSON_ARRAY.search(text)
    if match and match.group(0) != text:
        candidates.append(match.group(0))

    for candidate in candidates:
        try:
            data = json.loads(candidate)
        except json.JSONDecodeError:
            continue
        if isinstance(data, dict):
            data = data.get("suggestions")
        if isinstance(data, list):
            tips = [s.strip() for s in data if isinstance(s, str) and s.strip()]
            if tips:
                return tips[:SUGGESTION_COUNT]
    return None


class SuggestionClient:
    """Fetch suggestions for a list of habits.

    *rng* picks the fallback tips; pass a seeded :class:`random.Random` for
    repeatable output.
    """

    def __init__(
        self,
        api_key: str | None,
        *,
        model: str = DEFAULT_MODEL,
        url: str = GROQ_API_URL,
        timeout: float = 30.0,
        rng: random.Random | None = None,
    ) -> None:
        self._api_key = api_key
        self._model = model
        self._url = url
        self._timeout = timeout
        self._rng = rng or random.Random()

    @classmethod
    def from_settings(cls, settings, rng: random.Random | None = None) -> SuggestionClient:
        return cls(
            settings.groq_api_key,
            model=settings.groq_model,
            timeout=settings.suggestion_timeout,
            rng=rng,
        )

    def fallback(self) -> list[str]:
        return self._rng.sample(FALLBACK_SUGGESTIONS, SUGGESTION_COUNT)

    def suggest(self, habits: Iterable[Habit]) -> list[str]:
        habits = list(habits)
        if not habits:
            logger.info("No habits yet; using fallback suggestions")
            return self.fallback()
        if not self._api_key:
            logger.info("No Groq API key configured; using fallback suggestions")
            return self.fallback()

        payload = {
            "model": self._model,
            "messages": [
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": build_prompt(habits)},
            ],
            "temperature": 0.7,
            "max_tokens": 500,
        }
        headers = {
            "Authorization": f"Bearer {self._api_key}",
            "Content-Type": "application/json",
        }

        try:
            logger.info("Requesting suggestions for %d habits", len(habits))
            response = requests.post(
                self._url, headers=headers, json=payload, timeout=self._timeout
            )
            response.raise_for_status()
            data = response.json()
            content = data["choices"][0]["message"]["content"]
        except requests.exceptions.Timeout:
            logger.warning("Suggestion request timed out")
            return self.fallback()
        except requests.exceptions.RequestException as exc:
            logger.warning("Suggestion request failed: %s", exc)
            return self.fallback()
        except (ValueError, KeyError, IndexError, TypeError) as exc:
            logger.warning("Unexpected suggestion response: %s", exc)
            return self.fallback()

        tips = parse_suggestions(content)
        if tips is None:
            logger.warning("Could not parse suggestions from model output")
            return self.fallback()
        return tips
