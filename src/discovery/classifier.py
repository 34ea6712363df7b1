"""
Heuristic classification of probe responses
"""

import json
import logging
from typing import Iterable, Optional

from .models import ProbeOutcome

logger = logging.getLogger(__name__)

DEFAULT_KEYWORDS = (
    'arduino',
    'motor',
    'command',
    'status',
    'armed',
    'running',
    'currentmotor',
)

class ResponseClassifier:
    """
    Decides whether a response plausibly came from a motor controller.

    A response qualifies on a keyword hit OR a structured (JSON) body. The
    structured fallback favours recall; set ``require_keyword_match`` to
    accept keyword hits only.
    """

    def __init__(self, keywords: Optional[Iterable[str]] = None, require_keyword_match: bool = False):
        source = DEFAULT_KEYWORDS if keywords is None else keywords
        self.keywords = tuple(k.lower() for k in source if k)
        self.require_keyword_match = require_keyword_match

    def classify(self, outcome: ProbeOutcome) -> bool:
        if not outcome.succeeded or _is_empty(outcome.body):
            return False

        if self.has_keyword(outcome.body):
            return True

        if self.require_keyword_match:
            return False

        return self.is_structured(outcome)

    def has_keyword(self, body) -> bool:
        text = _serialize(body).lower()
        return any(keyword in text for keyword in self.keywords)

    @staticmethod
    def is_structured(outcome: ProbeOutcome) -> bool:
        if 'application/json' in outcome.content_type.lower():
            return True
        return isinstance(outcome.body, (dict, list))

def _is_empty(body) -> bool:
    if body is None:
        return True
    if isinstance(body, str):
        return not body.strip()
    if isinstance(body, (bool, int, float)):
        return not body
    return False

def _serialize(body) -> str:
    if isinstance(body, str):
        return body
    try:
        return json.dumps(body)
    except (TypeError, ValueError):
        return str(body)
