"""Contact pipeline error taxonomy.

Every stage failure is a ``ContactError`` carrying a machine-readable
``code``, the HTTP status it maps to and a short client-safe message.
Upstream bodies, keys and tracebacks never go into ``message``.
"""

from __future__ import annotations

from typing import Optional


class ContactError(Exception):
    code: str = "CONTACT_ERROR"
    status_code: int = 500
    default_message: str = "Request could not be processed"

    def __init__(
        self,
        message: Optional[str] = None,
        *,
        ai_decision: Optional[str] = None,
        ai_reason: Optional[str] = None,
    ) -> None:
        self.message = message or self.default_message
        self.ai_decision = ai_decision
        self.ai_reason = ai_reason
        super().__init__(self.message)


# Client-fixable (4xx)


class ValidationFailed(ContactError):
    code = "VALIDATION_FAILED"
    status_code = 400
    default_message = "Invalid submission"


class MissingField(ValidationFailed):
    code = "MISSING_FIELD"
    default_message = "Missing fields"


class InvalidEmail(ValidationFailed):
    code = "INVALID_EMAIL"
    default_message = "Invalid or disposable email"


class MessageTooLong(ValidationFailed):
    code = "MESSAGE_TOO_LONG"
    default_message = "Message too long"


class CaptchaFailed(ContactError):
    code = "CAPTCHA_FAILED"
    status_code = 400
    default_message = "Failed recaptcha verification"


class SpamRejected(ContactError):
    code = "SPAM_REJECTED"
    status_code = 422
    default_message = "Message rejected by spam filter"


# Server-side (5xx)


class CaptchaUnavailable(ContactError):
    code = "CAPTCHA_UNAVAILABLE"
    default_message = "Recaptcha verification failed"


class PolicyUnavailable(ContactError):
    code = "POLICY_UNAVAILABLE"
    default_message = "Spam filter configuration unavailable"


class ClassifierUnavailable(ContactError):
    code = "CLASSIFIER_UNAVAILABLE"
    default_message = "Spam filter unavailable"


class ClassifierMalformed(ContactError):
    code = "CLASSIFIER_MALFORMED"
    default_message = "Spam filter returned an invalid decision"


class DispatchFailed(ContactError):
    code = "DISPATCH_FAILED"
    default_message = "Failed to send email"
