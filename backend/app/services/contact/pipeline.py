"""Contact pipeline orchestrator.

RECEIVED -> VALIDATED -> CAPTCHA_CHECKED -> POLICY_LOADED -> CLASSIFIED
-> DISPATCHED -> RESPONDED, with REJECTED as the terminal state for any
stage failure. Stages run strictly in order and the first ``ContactError``
ends the run; every run yields exactly one ``PipelineOutcome``.
"""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass, field
from typing import Optional

from app.core.config import Settings, get_settings
from app.core.feature_flags import resolve_captcha_state
from app.services.ai.common import router as ai_router
from app.services.ai.common.providers import ProviderNotConfigured
from app.services.ai.spam_filter.contracts import ClassificationDecision
from app.services.ai.spam_filter.policy import PolicyFetcher, RemotePolicyFetcher, StaticPolicyFetcher
from app.services.ai.spam_filter.service import SpamClassifier
from app.utils.redaction import redact_email_for_log

from .captcha import RecaptchaVerifier
from .contracts import ContactSubmission, PipelineResult
from .errors import ClassifierUnavailable, ContactError, SpamRejected
from .mailer import Mailer, build_mailer
from .validator import validate_submission

logger = logging.getLogger(__name__)


class PipelineState(str, enum.Enum):
    RECEIVED = "RECEIVED"
    VALIDATED = "VALIDATED"
    CAPTCHA_CHECKED = "CAPTCHA_CHECKED"
    POLICY_LOADED = "POLICY_LOADED"
    CLASSIFIED = "CLASSIFIED"
    DISPATCHED = "DISPATCHED"
    RESPONDED = "RESPONDED"
    REJECTED = "REJECTED"


@dataclass
class PipelineOutcome:
    status_code: int
    result: PipelineResult
    state: PipelineState
    trail: list[PipelineState] = field(default_factory=list)


class ContactPipeline:
    def __init__(
        self,
        settings: Optional[Settings] = None,
        *,
        captcha_verifier: Optional[RecaptchaVerifier] = None,
        policy_fetcher: Optional[PolicyFetcher] = None,
        classifier: Optional[SpamClassifier] = None,
        mailer: Optional[Mailer] = None,
    ) -> None:
        self.settings = settings or get_settings()
        self._captcha_verifier = captcha_verifier
        self._policy_fetcher = policy_fetcher
        self._classifier = classifier
        self._mailer = mailer

    # Collaborators are built on first use so a request that fails
    # validation never touches provider configuration.

    @property
    def captcha_verifier(self) -> RecaptchaVerifier:
        if self._captcha_verifier is None:
            s = self.settings
            self._captcha_verifier = RecaptchaVerifier(
                s.recaptcha_secret,
                verify_url=s.recaptcha_verify_url,
                min_score=s.recaptcha_min_score,
                timeout_seconds=s.recaptcha_timeout_seconds,
            )
        return self._captcha_verifier

    @property
    def policy_fetcher(self) -> PolicyFetcher:
        if self._policy_fetcher is None:
            s = self.settings
            if s.remote_policy_configured:
                self._policy_fetcher = RemotePolicyFetcher(
                    s.policy_model_url,
                    s.policy_prompt_url,
                    timeout_seconds=s.policy_timeout_seconds,
                )
            else:
                self._policy_fetcher = StaticPolicyFetcher(s.ai_model, s.ai_system_prompt)
        return self._policy_fetcher

    @property
    def classifier(self) -> SpamClassifier:
        if self._classifier is None:
            try:
                config = ai_router.resolve("spam_filter", self.settings)
            except ProviderNotConfigured as exc:
                logger.error("Spam filter provider not configured: %s", exc)
                raise ClassifierUnavailable() from exc
            self._classifier = SpamClassifier(config)
        return self._classifier

    @property
    def mailer(self) -> Mailer:
        if self._mailer is None:
            self._mailer = build_mailer(self.settings)
        return self._mailer

    async def run(self, submission: ContactSubmission, client_ip: Optional[str]) -> PipelineOutcome:
        trail = [PipelineState.RECEIVED]
        decision: Optional[ClassificationDecision] = None

        def advance(state: PipelineState) -> None:
            trail.append(state)
            logger.debug("Contact pipeline -> %s", state.value)

        try:
            captcha_state = resolve_captcha_state(self.settings)
            validate_submission(
                submission,
                max_length=self.settings.max_message_length,
                captcha_required=captcha_state.verifies,
                extra_denylist=self.settings.extra_disposable_domains,
            )
            advance(PipelineState.VALIDATED)

            if captcha_state.verifies:
                await self.captcha_verifier.verify(submission.recaptcha_token or "", client_ip)
            else:
                logger.warning("reCAPTCHA stage skipped: %s", captcha_state.value)
            advance(PipelineState.CAPTCHA_CHECKED)

            if self.settings.ai_filter_enabled:
                policy = await self.policy_fetcher.fetch_policy()
                advance(PipelineState.POLICY_LOADED)

                decision = await self.classifier.classify(submission, policy)
                advance(PipelineState.CLASSIFIED)
                if not decision.allowed:
                    raise SpamRejected(ai_decision=decision.decision, ai_reason=decision.reason)
            else:
                logger.warning("AI spam filter stage skipped: AI_FILTER_ENABLED=false")
                advance(PipelineState.POLICY_LOADED)
                advance(PipelineState.CLASSIFIED)

            logger.info(
                "Contact submission approved: from=%s ip=%s",
                redact_email_for_log(submission.email),
                client_ip,
            )
            await self.mailer.send(submission)
            advance(PipelineState.DISPATCHED)
        except ContactError as exc:
            return self._rejected(exc, decision, trail)

        advance(PipelineState.RESPONDED)
        result = PipelineResult(
            success=True,
            email_sent=True,
            ai_decision=decision.decision if decision else None,
            ai_reason=decision.reason if decision else None,
        )
        return PipelineOutcome(status_code=200, result=result, state=PipelineState.RESPONDED, trail=trail)

    def _rejected(
        self,
        exc: ContactError,
        decision: Optional[ClassificationDecision],
        trail: list[PipelineState],
    ) -> PipelineOutcome:
        trail.append(PipelineState.REJECTED)
        last_ok = trail[-2].value
        log = logger.warning if exc.status_code < 500 else logger.error
        log("Contact pipeline rejected after %s: %s", last_ok, exc.code)

        ai_decision = exc.ai_decision or (decision.decision if decision else None)
        ai_reason = exc.ai_reason or (decision.reason if decision else None)
        result = PipelineResult(
            success=False,
            email_sent=False,
            ai_decision=ai_decision,
            ai_reason=ai_reason,
            error=exc.code,
            message=exc.message,
        )
        return PipelineOutcome(
            status_code=exc.status_code,
            result=result,
            state=PipelineState.REJECTED,
            trail=trail,
        )

