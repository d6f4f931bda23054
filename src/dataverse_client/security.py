"""
Redaction helpers for anything that may reach a log line.

Client secrets, bearer tokens and signed query parameters must never be
logged in the clear.
"""

import re
from urllib.parse import urlparse, urlunparse

# Query parameter names whose values are always redacted
SENSITIVE_PARAMS = {
    "sig",
    "token",
    "access_token",
    "client_secret",
    "api_key",
    "apikey",
    "key",
    "secret",
    "password",
    "auth",
    "authorization",
}

# Patterns that may carry credentials inside free-form messages
SENSITIVE_PATTERNS = [
    (re.compile(r'client_secret=[^&\s"\']+', re.IGNORECASE), "client_secret=[REDACTED]"),
    (re.compile(r'access_token=[^&\s"\']+', re.IGNORECASE), "access_token=[REDACTED]"),
    (re.compile(r'"access_token"\s*:\s*"[^"]*"', re.IGNORECASE), '"access_token": "[REDACTED]"'),
    (re.compile(r'(?<![a-z_])token=[^&\s"\']+', re.IGNORECASE), "token=[REDACTED]"),
    (re.compile(r'password=[^&\s"\']+', re.IGNORECASE), "password=[REDACTED]"),
    (re.compile(r'sig=[^&\s"\']+', re.IGNORECASE), "sig=[REDACTED]"),
    (re.compile(r"bearer\s+[a-zA-Z0-9\-_.~+/]+=*", re.IGNORECASE), "Bearer [REDACTED]"),
]

URL_PATTERN = re.compile(r'https?://[^\s"\'<>]+')


def sanitize_url(url: str) -> str:
    """
    Remove sensitive query parameters from a URL.

    Path and structure are kept for debugging; sensitive values are
    replaced with [REDACTED].
    """
    if not url:
        return url

    try:
        parsed = urlparse(url)
    except ValueError:
        return url

    if not parsed.query:
        return url

    sanitized_params = []
    for param in parsed.query.split("&"):
        key, sep, _ = param.partition("=")
        if sep and key.lower() in SENSITIVE_PARAMS:
            sanitized_params.append(f"{key}=[REDACTED]")
        else:
            sanitized_params.append(param)

    return urlunparse(parsed._replace(query="&".join(sanitized_params)))


def sanitize_error_message(msg: str, max_length: int = 500) -> str:
    """Redact credentials from a free-form message and truncate it to max_length."""
    if not msg:
        return msg

    for pattern, replacement in SENSITIVE_PATTERNS:
        msg = pattern.sub(replacement, msg)

    for match in URL_PATTERN.finditer(msg):
        original_url = match.group(0)
        sanitized = sanitize_url(original_url)
        if sanitized != original_url:
            msg = msg.replace(original_url, sanitized)

    if len(msg) > max_length:
        msg = msg[: max_length - 3] + "..."

    return msg


def mask_credential(value: str | None, visible_chars: int = 4) -> str:
    """Mask a credential showing only first N chars for verification."""
    if not value:
        return "<not_set>"
    if len(value) <= visible_chars:
        return "***"
    return f"{value[:visible_chars]}...({len(value)} chars)"


__all__ = [
    "sanitize_url",
    "sanitize_error_message",
    "mask_credential",
]
