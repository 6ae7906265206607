"""Recipient address checks run before anything is rendered or sent."""

from typing import Any, Tuple

from email_validator import EmailNotValidError, validate_email


def validate_email_address(email: Any) -> Tuple[bool, str]:
    """Check the syntax of a recipient address; no DNS lookups are made.

    Surrounding whitespace is ignored and the domain part is lower-cased,
    so ``" Kwame@EXAMPLE.com "`` comes back as ``Kwame@example.com``.

    Returns:
        ``(True, normalized_address)`` or ``(False, reason)``
    """
    if not isinstance(email, str) or not email.strip():
        return False, "no recipient address given"

    try:
        checked = validate_email(email.strip(), check_deliverability=False)
    except EmailNotValidError as e:
        return False, str(e)
    return True, checked.normalized
