"""Submission validation: required fields, length cap, email shape and domain."""

from __future__ import annotations

import re
from collections.abc import Iterable

from disposable_email_domains import blocklist as DISPOSABLE_DOMAINS

from .contracts import ContactSubmission
from .errors import InvalidEmail, MessageTooLong, MissingField

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")


def email_domain(email: str) -> str:
    return email.rsplit("@", 1)[-1].strip().lower() if "@" in email else ""


def is_disposable_email(email: str, extra_denylist: Iterable[str] = ()) -> bool:
    domain = email_domain(email)
    if not domain:
        return False
    if domain in DISPOSABLE_DOMAINS:
        return True
    return domain in {d.strip().lower() for d in extra_denylist if d.strip()}


def is_valid_email(email: str, extra_denylist: Iterable[str] = ()) -> bool:
    return bool(EMAIL_PATTERN.match(email)) and not is_disposable_email(email, extra_denylist)


def validate_submission(
    submission: ContactSubmission,
    *,
    max_length: int,
    captcha_required: bool,
    extra_denylist: Iterable[str] = (),
) -> None:
    """Raise the first applicable ``ValidationFailed``; return ``None`` if valid.

    Order: missing fields, message length, email. A too-long message is
    reported as such whatever the email looks like.
    """
    missing = [
        field
        for field in ("name", "email", "message")
        if not getattr(submission, field)
    ]
    if captcha_required and not submission.recaptcha_token:
        missing.append("recaptchaToken")
    if missing:
        raise MissingField(f"Missing fields: {', '.join(missing)}")

    if len(submission.message) > max_length:
        raise MessageTooLong(f"Message too long (max {max_length} chars)")

    if not is_valid_email(submission.email, extra_denylist):
        raise InvalidEmail()
