"""Spam classification service: one completion call, strict reply parsing."""

from __future__ import annotations

import json
import logging

import httpx

from app.services.contact.contracts import ContactSubmission
from app.services.contact.errors import ClassifierMalformed, ClassifierUnavailable

from ..common.audit import log_ai_run
from ..common.providers.base import ProviderResponseError
from ..common.router import ResolvedConfig
from .contracts import ClassificationDecision, ClassificationPolicy, Malformed, parse_classifier_reply

logger = logging.getLogger(__name__)

SCOPE = "spam_filter"


def build_user_prompt(submission: ContactSubmission) -> str:
    # Serialized as data so message text cannot pose as instructions.
    return json.dumps(submission.as_classifier_payload(), ensure_ascii=False)


class SpamClassifier:
    def __init__(self, config: ResolvedConfig) -> None:
        self._config = config

    async def classify(
        self,
        submission: ContactSubmission,
        policy: ClassificationPolicy,
    ) -> ClassificationDecision:
        config = self._config
        prompt = build_user_prompt(submission)

        try:
            result = await config.provider.generate(
                prompt,
                system_prompt=policy.system_prompt,
                model=policy.model,
                temperature=config.temperature,
                max_tokens=config.max_tokens,
                timeout_seconds=config.timeout_seconds,
            )
        except httpx.HTTPError as exc:
            logger.error("Classifier request failed: %s", exc.__class__.__name__)
            raise ClassifierUnavailable() from exc
        except (ProviderResponseError, ValueError) as exc:
            logger.error("Classifier returned an unusable response: %s", exc)
            raise ClassifierUnavailable() from exc

        parsed = parse_classifier_reply(result.raw_text)
        if isinstance(parsed, Malformed):
            log_ai_run(
                scope=SCOPE,
                provider_result=result,
                prompt_text=prompt,
                parsed_output=None,
                extra_meta={"malformed": parsed.why, "policy_source": policy.source},
            )
            raise ClassifierMalformed()

        decision = parsed.to_decision()

        log_ai_run(
            scope=SCOPE,
            provider_result=result,
            prompt_text=prompt,
            parsed_output={"decision": decision.decision, "reason": decision.reason},
            extra_meta={"policy_source": policy.source},
        )
        return decision
