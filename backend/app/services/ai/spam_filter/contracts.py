"""Spam filter contracts: policy, decision and the reply parser.

A model reply is parsed into exactly one of ``Allow``, ``Deny`` or
``Malformed``. There is no default branch: anything not recognised is
``Malformed`` and the caller must reject the submission.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal, Optional, Union

from ..common.json_tools import loads_json_object

ALLOW = "ALLOW"
DENY = "DENY"
VALID_DECISIONS = frozenset({ALLOW, DENY})


@dataclass(frozen=True)
class ClassificationPolicy:
    """The (model, system prompt) pair governing one classification."""

    model: str
    system_prompt: str
    source: str = "static"


@dataclass(frozen=True)
class ClassificationDecision:
    decision: Literal["ALLOW", "DENY"]
    reason: Optional[str] = None

    @property
    def allowed(self) -> bool:
        return self.decision == ALLOW


@dataclass(frozen=True)
class Allow:
    reason: Optional[str] = None

    def to_decision(self) -> ClassificationDecision:
        return ClassificationDecision(decision=ALLOW, reason=self.reason)


@dataclass(frozen=True)
class Deny:
    reason: Optional[str] = None

    def to_decision(self) -> ClassificationDecision:
        return ClassificationDecision(decision=DENY, reason=self.reason)


@dataclass(frozen=True)
class Malformed:
    why: str


ParsedReply = Union[Allow, Deny, Malformed]


def parse_classifier_reply(text: Optional[str]) -> ParsedReply:
    """Map raw model text to a tagged result.

    Accepted shapes (after trimming whitespace):
      * the bare token ``ALLOW`` or ``DENY``;
      * a JSON object, optionally in a Markdown code fence, whose
        ``decision`` is exactly ``"ALLOW"`` or ``"DENY"`` and whose
        optional ``reason`` is a string.
    """
    stripped = (text or "").strip()
    if not stripped:
        return Malformed("empty reply")

    if stripped == ALLOW:
        return Allow()
    if stripped == DENY:
        return Deny()

    obj = loads_json_object(stripped)
    if obj is None:
        return Malformed("reply is neither a decision token nor a JSON object")

    decision = obj.get("decision")
    if not isinstance(decision, str) or decision not in VALID_DECISIONS:
        return Malformed(f"unknown decision {decision!r}")

    reason = obj.get("reason")
    if reason is not None and not isinstance(reason, str):
        return Malformed("reason is not a string")
    if reason is not None:
        reason = reason.strip() or None

    if decision == ALLOW:
        return Allow(reason=reason)
    return Deny(reason=reason)
