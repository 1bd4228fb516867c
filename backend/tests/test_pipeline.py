"""Orchestrator tests with fake collaborators."""

import unittest
from unittest.mock import AsyncMock

from app.core.feature_flags import recaptcha_flag
from app.services.ai.common.providers import MockProvider
from app.services.ai.common.router import ResolvedConfig
from app.services.ai.spam_filter.policy import StaticPolicyFetcher
from app.services.ai.spam_filter.service import SpamClassifier
from app.services.contact.errors import (
    CaptchaFailed,
    CaptchaUnavailable,
    DispatchFailed,
    PolicyUnavailable,
)
from app.services.contact.pipeline import ContactPipeline, PipelineState
from factories import make_settings, make_submission


class PipelineTestBase(unittest.IsolatedAsyncioTestCase):
    def setUp(self):
        recaptcha_flag.reset()
        self.verifier = AsyncMock()
        self.policy_fetcher = StaticPolicyFetcher("llama-test", "You filter spam.")
        self.provider = MockProvider(reply="ALLOW")
        self.mailer = AsyncMock()

    def tearDown(self):
        recaptcha_flag.reset()

    def _pipeline(self, **settings_overrides) -> ContactPipeline:
        classifier = SpamClassifier(
            ResolvedConfig(provider=self.provider, temperature=0.0, max_tokens=50, timeout_seconds=2.0)
        )
        return ContactPipeline(
            make_settings(**settings_overrides),
            captcha_verifier=self.verifier,
            policy_fetcher=self.policy_fetcher,
            classifier=classifier,
            mailer=self.mailer,
        )

    def assertNoExternalCalls(self):
        self.verifier.verify.assert_not_called()
        self.assertEqual(self.provider.calls, [])
        self.mailer.send.assert_not_called()


class HappyPathTests(PipelineTestBase):
    async def test_approved_and_dispatched(self):
        outcome = await self._pipeline().run(make_submission(), "198.51.100.4")

        self.assertEqual(outcome.status_code, 200)
        self.assertEqual(outcome.result.to_response(), {"success": True, "emailSent": True, "aiDecision": "ALLOW"})
        self.assertEqual(outcome.state, PipelineState.RESPONDED)
        self.assertEqual(
            outcome.trail,
            [
                PipelineState.RECEIVED,
                PipelineState.VALIDATED,
                PipelineState.CAPTCHA_CHECKED,
                PipelineState.POLICY_LOADED,
                PipelineState.CLASSIFIED,
                PipelineState.DISPATCHED,
                PipelineState.RESPONDED,
            ],
        )
        self.verifier.verify.assert_awaited_once_with("tok", "198.51.100.4")
        self.mailer.send.assert_awaited_once()

    async def test_scenario_e_json_allow_with_reason(self):
        self.provider.reply = '{"decision":"ALLOW","reason":"looks legitimate"}'
        outcome = await self._pipeline().run(make_submission(), None)

        self.assertEqual(outcome.status_code, 200)
        self.assertEqual(
            outcome.result.to_response(),
            {"success": True, "emailSent": True, "aiDecision": "ALLOW", "aiReason": "looks legitimate"},
        )


class ValidationShortCircuitTests(PipelineTestBase):
    async def test_missing_field_makes_no_external_calls(self):
        for field in ("name", "email", "message", "recaptchaToken"):
            with self.subTest(field=field):
                outcome = await self._pipeline().run(make_submission(**{field: ""}), None)
                self.assertEqual(outcome.status_code, 400)
                self.assertEqual(outcome.result.error, "MISSING_FIELD")
                self.assertFalse(outcome.result.email_sent)
        self.assertNoExternalCalls()

    async def test_scenario_a_disposable_email(self):
        outcome = await self._pipeline().run(make_submission(email="bo@mailinator.com", message="hi"), None)
        self.assertEqual(outcome.status_code, 400)
        self.assertEqual(outcome.result.error, "INVALID_EMAIL")
        self.assertEqual(outcome.state, PipelineState.REJECTED)
        self.assertNoExternalCalls()

    async def test_scenario_b_message_too_long(self):
        outcome = await self._pipeline().run(make_submission(message="x" * 2001), None)
        self.assertEqual(outcome.status_code, 400)
        self.assertEqual(outcome.result.error, "MESSAGE_TOO_LONG")
        self.assertNoExternalCalls()


class CaptchaStageTests(PipelineTestBase):
    async def test_captcha_rejection_is_400(self):
        self.verifier.verify.side_effect = CaptchaFailed()
        outcome = await self._pipeline().run(make_submission(), None)
        self.assertEqual(outcome.status_code, 400)
        self.assertEqual(outcome.result.error, "CAPTCHA_FAILED")
        self.assertEqual(self.provider.calls, [])
        self.mailer.send.assert_not_called()

    async def test_captcha_outage_is_500(self):
        self.verifier.verify.side_effect = CaptchaUnavailable()
        outcome = await self._pipeline().run(make_submission(), None)
        self.assertEqual(outcome.status_code, 500)
        self.assertEqual(outcome.result.error, "CAPTCHA_UNAVAILABLE")
        self.mailer.send.assert_not_called()

    async def test_toggle_off_skips_captcha_and_token(self):
        recaptcha_flag.set(False)
        with self.assertLogs("app.services.contact.pipeline", level="WARNING") as logs:
            outcome = await self._pipeline().run(make_submission(recaptchaToken=None), None)
        self.assertEqual(outcome.status_code, 200)
        self.verifier.verify.assert_not_called()
        self.assertIn("DISABLED_BY_TOGGLE", "\n".join(logs.output))

    async def test_lab_bypass(self):
        outcome = await self._pipeline(mode="LAB", lab_bypass_recaptcha=True).run(
            make_submission(recaptchaToken=None), None
        )
        self.assertEqual(outcome.status_code, 200)
        self.verifier.verify.assert_not_called()

    async def test_lab_mode_without_bypass_still_verifies(self):
        outcome = await self._pipeline(mode="LAB", lab_bypass_recaptcha=False).run(make_submission(), None)
        self.assertEqual(outcome.status_code, 200)
        self.verifier.verify.assert_awaited_once()


class ClassifierStageTests(PipelineTestBase):
    async def test_scenario_c_malformed_reply(self):
        self.provider.reply = "maybe?"
        outcome = await self._pipeline().run(make_submission(), None)
        self.assertEqual(outcome.status_code, 500)
        self.assertEqual(outcome.result.error, "CLASSIFIER_MALFORMED")
        self.assertIsNone(outcome.result.ai_decision)
        self.mailer.send.assert_not_called()

    async def test_scenario_d_deny(self):
        self.provider.reply = "DENY"
        outcome = await self._pipeline().run(make_submission(), None)
        self.assertEqual(outcome.status_code, 422)
        body = outcome.result.to_response()
        self.assertEqual(body["error"], "SPAM_REJECTED")
        self.assertEqual(body["aiDecision"], "DENY")
        self.assertFalse(body["emailSent"])
        self.assertFalse(body["success"])
        self.mailer.send.assert_not_called()

    async def test_deny_reason_is_reported(self):
        self.provider.reply = '{"decision": "DENY", "reason": "SEO spam"}'
        outcome = await self._pipeline().run(make_submission(), None)
        self.assertEqual(outcome.result.ai_reason, "SEO spam")

    async def test_policy_outage_is_500(self):
        self.policy_fetcher = AsyncMock()
        self.policy_fetcher.fetch_policy.side_effect = PolicyUnavailable()
        outcome = await self._pipeline().run(make_submission(), None)
        self.assertEqual(outcome.status_code, 500)
        self.assertEqual(outcome.result.error, "POLICY_UNAVAILABLE")
        self.assertEqual(self.provider.calls, [])
        self.mailer.send.assert_not_called()

    async def test_unconfigured_provider_is_unavailable(self):
        pipeline = ContactPipeline(
            make_settings(ai_provider="groq", groq_api_key=""),
            captcha_verifier=self.verifier,
            policy_fetcher=self.policy_fetcher,
            mailer=self.mailer,
        )
        outcome = await pipeline.run(make_submission(), None)
        self.assertEqual(outcome.status_code, 500)
        self.assertEqual(outcome.result.error, "CLASSIFIER_UNAVAILABLE")
        self.mailer.send.assert_not_called()

    async def test_filter_disabled_is_explicit(self):
        with self.assertLogs("app.services.contact.pipeline", level="WARNING") as logs:
            outcome = await self._pipeline(ai_filter_enabled=False).run(make_submission(), None)
        self.assertEqual(outcome.status_code, 200)
        self.assertEqual(outcome.result.to_response(), {"success": True, "emailSent": True})
        self.assertEqual(self.provider.calls, [])
        self.assertIn("AI_FILTER_ENABLED=false", "\n".join(logs.output))


class DispatchStageTests(PipelineTestBase):
    async def test_dispatch_failure_keeps_allow_decision(self):
        self.mailer.send.side_effect = DispatchFailed()
        outcome = await self._pipeline().run(make_submission(), None)

        self.assertEqual(outcome.status_code, 500)
        self.assertEqual(
            outcome.result.to_response(),
            {
                "success": False,
                "emailSent": False,
                "aiDecision": "ALLOW",
                "error": "DISPATCH_FAILED",
                "message": "Failed to send email",
            },
        )
        self.assertEqual(outcome.trail[-2], PipelineState.CLASSIFIED)
        self.assertEqual(outcome.trail[-1], PipelineState.REJECTED)
