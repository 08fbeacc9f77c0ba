"""Rule-based intent classification.

Rules are plain data: an ordered list of :class:`IntentRule` entries evaluated in
declaration order. The first pattern that matches wins, so more specific rules
must be declared ahead of the broader ones they overlap with. Patterns are
case-insensitive regular expressions; a bare keyword is a valid pattern.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any, Iterable, Sequence

from ..core import metrics
from ..core.config import ClassifierSettings
from ..core.logging import get_logger
from ..schemas.orchestrator import Intent

logger = get_logger(name=__name__)

UNKNOWN_INTENT = "unknown"


@dataclass(slots=True)
class IntentRule:
    intent_type: str
    patterns: tuple[str, ...]
    _compiled: tuple[re.Pattern[str], ...] = field(init=False, repr=False, default=())

    def __post_init__(self) -> None:
        if isinstance(self.patterns, str):
            self.patterns = (self.patterns,)
        self.patterns = tuple(self.patterns)
        self._compiled = tuple(re.compile(pattern, re.IGNORECASE) for pattern in self.patterns)

    def match(self, utterance: str) -> re.Match[str] | None:
        for pattern in self._compiled:
            found = pattern.search(utterance)
            if found is not None:
                return found
        return None


DEFAULT_RULES: tuple[IntentRule, ...] = (
    IntentRule(
        "schedule.create",
        (r"\b(schedule|book|set up|create|arrange)\b.*\b(meeting|event|call|appointment)s?\b",),
    ),
    IntentRule(
        "approval.process",
        (r"\b(approve|reject|deny)\b.*\b(expense|time off|leave|approval|request)s?\b",),
    ),
    IntentRule("workday.timeoff", (r"\b(time off|vacation|pto|holiday|annual leave)\b",)),
    IntentRule("workday.expense", (r"\b(expense report|submit .*expenses?|reimburse(ment)?)\b",)),
    IntentRule("servicenow.ticket", (r"\b(servicenow|incidents?|tickets?|helpdesk|it support)\b",)),
    IntentRule("schedule.view", (r"\b(schedule|calendar|agenda|meetings?)\b",)),
    IntentRule("news.view", (r"\b(news|announcements?|headlines)\b",)),
    IntentRule("decision.make", (r"\b(approve|reject|decide)\b",)),
    IntentRule("decision.view", (r"\bdecisions?\b",)),
    IntentRule("approval.view", (r"\b(approvals?|pending requests?)\b",)),
    IntentRule(
        "action.complete",
        (r"\b(complete|finish|close|mark)\b.*\b(action items?|tasks?|to-?dos?)\b",),
    ),
    IntentRule("action.view", (r"\b(action items?|tasks?|to-?dos?)\b",)),
)

_WEEKDAYS = "monday|tuesday|wednesday|thursday|friday|saturday|sunday"
_DATE_PATTERN = re.compile(
    rf"\b(today|tomorrow|yesterday|tonight|(?:this|next|last) (?:week|month)|(?:next |this )?(?:{_WEEKDAYS}))\b",
    re.IGNORECASE,
)
_AMOUNT_PATTERN = re.compile(
    r"(?P<currency>[$€£])\s?(?P<value>\d[\d,]*(?:\.\d+)?)"
    r"|\b(?P<bare>\d[\d,]*(?:\.\d+)?)\s?(?P<unit>dollars|usd|eur|euros|gbp)?\b",
    re.IGNORECASE,
)
_PERSON_PATTERN = re.compile(r"\b([A-Z][a-z]+ [A-Z][a-z]+)\b")
_EMAIL_PATTERN = re.compile(r"\b[\w.+-]+@[\w-]+(?:\.[\w-]+)+\b")


def extract_entities(utterance: str) -> dict[str, Any]:
    """Best-effort entity pass; each entity is optional."""
    entities: dict[str, Any] = {}

    date = _DATE_PATTERN.search(utterance)
    if date:
        entities["date"] = date.group(1).lower()

    amount = _AMOUNT_PATTERN.search(utterance)
    if amount:
        raw = amount.group("value") or amount.group("bare")
        try:
            entities["amount"] = float(raw.replace(",", ""))
        except ValueError:  # pragma: no cover - regex only admits digits
            pass
        currency = amount.group("currency") or amount.group("unit")
        if currency:
            entities["currency"] = currency.upper() if currency.isalpha() else currency

    person = _PERSON_PATTERN.search(utterance)
    if person:
        entities["person"] = person.group(1)

    email = _EMAIL_PATTERN.search(utterance)
    if email:
        entities["email"] = email.group(0)

    return entities


class IntentClassifier:
    def __init__(
        self,
        rules: Iterable[IntentRule] | None = None,
        *,
        settings: ClassifierSettings | None = None,
    ) -> None:
        self._rules: tuple[IntentRule, ...] = tuple(rules) if rules is not None else DEFAULT_RULES
        self._settings = settings or ClassifierSettings()

    @property
    def rules(self) -> Sequence[IntentRule]:
        return self._rules

    def classify(self, utterance: str) -> Intent:
        text = (utterance or "").strip()
        for rule in self._rules:
            found = rule.match(text)
            if found is None:
                continue
            intent = Intent(
                type=rule.intent_type,
                confidence=self._confidence(found, text),
                entities=extract_entities(text),
                raw_utterance=utterance,
            )
            break
        else:
            intent = Intent(
                type=UNKNOWN_INTENT,
                confidence=self._settings.unknown_confidence,
                entities={},
                raw_utterance=utterance or "",
            )

        metrics.increment_intent_classification(intent_type=intent.type)
        logger.debug(
            "intent_classified",
            intent_type=intent.type,
            confidence=intent.confidence,
            entities=sorted(intent.entities),
        )
        return intent

    def _confidence(self, found: re.Match[str], text: str) -> float:
        span = found.end() - found.start()
        ratio = span / len(text) if text else 0.0
        score = self._settings.confidence_base + ratio
        return round(min(self._settings.max_confidence, max(self._settings.min_confidence, score)), 4)


__all__ = ["DEFAULT_RULES", "IntentClassifier", "IntentRule", "UNKNOWN_INTENT", "extract_entities"]
