"""
Question Intent Classifier
==========================

Maps a question to one of twelve intents with an ordered rule list.

The ORDER of INTENT_RULES is the tie-break policy: the first rule whose
patterns all match wins. "top 3 by average revenue" is a TOP question
because the top rule is checked before the average rule.

Rules (in priority order):
- SUMMARY  : summary / overview / describe / profile
- TYPES    : type / datatype / schema
- COLUMNS  : columns / fields / headers
- ROWS     : rows|records AND how many|count
- TOP      : top / most common / most frequent
- COMPARE  : compare / vs / versus
- DISTINCT : distinct / unique
- AVG      : average / avg / mean
- SUM      : sum / total
- MAX      : max / highest / largest
- MIN      : min / lowest / smallest
- COUNT    : how many / count / number of
Anything else defaults to COUNT.

Author: DataQA Team
"""

import re
import logging
from dataclasses import dataclass
from typing import List, Optional, Pattern, Tuple

from .types import Intent, IntentType

logger = logging.getLogger(__name__)

TOP_N_PATTERN = re.compile(r"\btop\s+(\d+)\b")


@dataclass(frozen=True)
class IntentRule:
    """An intent that applies when every pattern matches."""
    intent: IntentType
    patterns: Tuple[Pattern, ...]

    def matches(self, question_lower: str) -> bool:
        return all(p.search(question_lower) for p in self.patterns)


def _rule(intent: IntentType, *patterns: str) -> IntentRule:
    return IntentRule(intent, tuple(re.compile(p) for p in patterns))


INTENT_RULES: List[IntentRule] = [
    _rule(IntentType.SUMMARY,
          r"\b(summary|overview|describe|profile|about this data|about this dataset)\b"),
    _rule(IntentType.TYPES, r"\b(type|types|datatype|data type|schema)\b"),
    _rule(IntentType.COLUMNS, r"\b(columns?|fields?|headers?)\b"),
    _rule(IntentType.ROWS, r"\b(rows?|records?)\b", r"\bhow many\b|\bcount\b"),
    _rule(IntentType.TOP, r"\btop\b|\bmost common\b|\bmost frequent\b"),
    _rule(IntentType.COMPARE, r"\bcompare\b|\bvs\b|\bversus\b"),
    _rule(IntentType.DISTINCT, r"\bdistinct\b|\bunique\b"),
    _rule(IntentType.AVG, r"\baverage\b|\bavg\b|\bmean\b"),
    _rule(IntentType.SUM, r"\bsum\b|\btotal\b"),
    _rule(IntentType.MAX, r"\bmax\b|\bhighest\b|\blargest\b"),
    _rule(IntentType.MIN, r"\bmin\b|\blowest\b|\bsmallest\b"),
    _rule(IntentType.COUNT, r"\bhow many\b|\bcount\b|\bnumber of\b"),
]


class IntentClassifier:
    """Classifies question text into an Intent. Pure; no side effects."""

    def __init__(self, rules: Optional[List[IntentRule]] = None,
                 default_top_n: int = 5, max_top_n: int = 20):
        self.rules = rules if rules is not None else INTENT_RULES
        self.default_top_n = default_top_n
        self.max_top_n = max_top_n

    def parse_top_n(self, question_lower: str) -> int:
        """`top N` clamped to [1, max_top_n]; default otherwise."""
        match = TOP_N_PATTERN.search(question_lower)
        if not match:
            return self.default_top_n
        return max(1, min(self.max_top_n, int(match.group(1))))

    def classify(self, question: str, forced: Optional[IntentType] = None) -> Intent:
        """
        Classify a question.

        Args:
            question: Raw question text
            forced: Optional intent override (topN is still parsed)

        Returns:
            Intent with type and top_n
        """
        lower = (question or "").lower()
        top_n = self.parse_top_n(lower)

        if forced is not None:
            return Intent(IntentType(forced), top_n)

        for rule in self.rules:
            if rule.matches(lower):
                logger.debug(f"[INTENT] {rule.intent.value} (top_n={top_n})")
                return Intent(rule.intent, top_n)

        return Intent(IntentType.COUNT, top_n)


def detect_intent(question: str) -> Intent:
    """Convenience wrapper using default limits."""
    return IntentClassifier().classify(question)
