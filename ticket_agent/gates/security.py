"""Input guardrails: secret/PII redaction, prompt-injection scrubbing, size limits.

Sensitive content never fails the check; it is redacted and the sanitized
text replaces the original for every later step. The only hard rejection is
an upload larger than the configured limit.
"""
from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Callable, List, Optional, Tuple

logger = logging.getLogger(__name__)

DEFAULT_MAX_FILE_MB = 5.0

INJECTION_MARKER = "[REMOVED]"

INJECTION_PATTERNS = [
    re.compile(r"ignore\s+(?:previous|all|above)\s+(?:instructions|prompts)", re.IGNORECASE),
    re.compile(r"disregard\s+(?:previous|all|above)", re.IGNORECASE),
    re.compile(r"forget\s+(?:previous|all|above)", re.IGNORECASE),
    re.compile(r"system\s*:\s*you\s+are", re.IGNORECASE),
    re.compile(r"new\s+instructions", re.IGNORECASE),
]

_SSN = re.compile(r"\b\d{3}-\d{2}-\d{4}\b")
# Plain emails are common in briefs; only labelled ones look like credentials.
_EMAIL_CREDENTIAL = re.compile(
    r"((?:email|user|username|login)\s*[:=]\s*)[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,}",
    re.IGNORECASE,
)
_CARD = re.compile(r"\b(?:\d{4}[-\s]?){3}\d{4}\b")
_PASSWORD = re.compile(r"\b(password|pwd|passwd)\s*[:=]\s*\S+", re.IGNORECASE)
_API_KEY = re.compile(r"\b(api[_-]?key|apikey|secret[_-]?key)\s*[:=]\s*\S+", re.IGNORECASE)
_LONG_TOKEN = re.compile(r"\b[A-Za-z0-9]{40,}\b")


@dataclass
class SecurityCheckResult:
    passed: bool
    reason: Optional[str] = None
    sanitized_text: Optional[str] = None
    findings: Tuple[str, ...] = ()


def _redactions() -> List[Tuple[str, re.Pattern, Callable[[re.Match], str]]]:
    return [
        ("ssn", _SSN, lambda match: "[SSN-REDACTED]"),
        ("email", _EMAIL_CREDENTIAL, lambda match: f"{match.group(1)}[EMAIL-REDACTED]"),
        ("card", _CARD, lambda match: "[CARD-REDACTED]"),
        ("password", _PASSWORD, lambda match: f"{match.group(1)}: [PASSWORD-REDACTED]"),
        ("api_key", _API_KEY, lambda match: f"{match.group(1)}: [API-KEY-REDACTED]"),
        ("token", _LONG_TOKEN, lambda match: "[TOKEN-REDACTED]"),
    ]


def redact_sensitive(text: str) -> Tuple[str, List[str]]:
    findings: List[str] = []
    for name, pattern, replacement in _redactions():
        text, count = pattern.subn(replacement, text)
        if count:
            findings.append(name)
    return text, findings


def scrub_injection(text: str) -> Tuple[str, bool]:
    found = False
    for pattern in INJECTION_PATTERNS:
        text, count = pattern.subn(INJECTION_MARKER, text)
        found = found or count > 0
    return text, found


def check_file_size(size_bytes: int, max_size_mb: float = DEFAULT_MAX_FILE_MB) -> SecurityCheckResult:
    size_mb = size_bytes / (1024 * 1024)
    if size_mb > max_size_mb:
        return SecurityCheckResult(
            passed=False,
            reason=f"File size ({size_mb:.2f}MB) exceeds maximum allowed size ({max_size_mb:g}MB)",
        )
    return SecurityCheckResult(passed=True)


def sanitize(
    text: str,
    file_size: Optional[int] = None,
    max_size_mb: float = DEFAULT_MAX_FILE_MB,
) -> SecurityCheckResult:
    if file_size is not None:
        size_check = check_file_size(file_size, max_size_mb)
        if not size_check.passed:
            return size_check

    redacted, findings = redact_sensitive(text)
    scrubbed, injected = scrub_injection(redacted)
    if injected:
        findings.append("prompt_injection")

    if not findings:
        return SecurityCheckResult(passed=True)

    logger.warning("Sanitized input: %s", ", ".join(findings))
    reasons = []
    if injected:
        reasons.append("potential prompt injection removed")
    if len(findings) > int(injected):
        reasons.append("sensitive information redacted")
    return SecurityCheckResult(
        passed=True,
        reason="; ".join(reasons),
        sanitized_text=scrubbed,
        findings=tuple(findings),
    )
