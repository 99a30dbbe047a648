"""Credential redaction applied to every admitted file before rendering.

Each entry of `CREDENTIAL_PATTERNS` names a kind of secret, a regex and the
group holding the secret itself; only that group is replaced, so the
surrounding structure (`api_key = "..."`) stays readable.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from pathlib import PurePosixPath

from pydantic import BaseModel, ConfigDict

REDACTED = "[REDACTED]"
SENSITIVE_HEADER = "⚠️ SENSITIVE FILE - Credentials have been automatically redacted"

_VALUE_CHARS = r"[\w!@#$%^&*()+\-=\[\]{}|;':\",./<>?]"


@dataclass(frozen=True)
class CredentialPattern:
    kind: str
    regex: re.Pattern[str]
    group: int


CREDENTIAL_PATTERNS: tuple[CredentialPattern, ...] = (
    CredentialPattern(
        "api_key",
        re.compile(
            r"([\"']?(?:api[_-]?key|api[_-]?token|app[_-]?key|app[_-]?token|auth[_-]?token|access[_-]?token"
            r"|secret[_-]?key|client[_-]?secret)[\"']?\s*[=:]\s*[\"'])([\w\-.]{10,})[\"']",
            re.IGNORECASE,
        ),
        2,
    ),
    CredentialPattern(
        "aws_access_key_id",
        re.compile(r"([\"']?aws[_-]?access[_-]?key[_-]?id[\"']?\s*[=:]\s*[\"'])(\w{16,})[\"']", re.IGNORECASE),
        2,
    ),
    CredentialPattern(
        "aws_secret_access_key",
        re.compile(
            r"([\"']?aws[_-]?secret[_-]?(?:access[_-]?)?key[\"']?\s*[=:]\s*[\"'])([\w/+]{30,})[\"']",
            re.IGNORECASE,
        ),
        2,
    ),
    CredentialPattern(
        "mongodb_password",
        re.compile(r"(mongodb(?:\+srv)?://\w+:)([\w@\-./+%:]+?)(@)", re.IGNORECASE),
        2,
    ),
    CredentialPattern(
        "database_password",
        re.compile(r"((?:postgres(?:ql)?|mysql|jdbc:(?:mysql|postgresql))://\w+:)([\w\-./+%]+)([@/])", re.IGNORECASE),
        2,
    ),
    CredentialPattern(
        "password",
        re.compile(rf"([\"']?(?:password|passwd|pwd)[\"']?\s*[=:]\s*[\"'])({_VALUE_CHARS}{{4,}}?)[\"']", re.IGNORECASE),
        2,
    ),
    CredentialPattern(
        "private_key",
        re.compile(r"-----BEGIN (?:RSA |DSA |EC |OPENSSH )?PRIVATE KEY-----\n?([\s\S]+?)-----END", re.IGNORECASE),
        1,
    ),
    CredentialPattern(
        "oauth_token",
        re.compile(
            r"([\"']?(?:oauth[_-]?token|bearer[_-]?token|refresh[_-]?token)[\"']?\s*[=:]\s*[\"'])([\w\-.]{10,})[\"']",
            re.IGNORECASE,
        ),
        2,
    ),
    CredentialPattern(
        "jwt",
        re.compile(r"([\"']?(?:jwt|token)[\"']?\s*[=:]\s*[\"'])(eyJ[\w\-.]+)[\"']", re.IGNORECASE),
        2,
    ),
    CredentialPattern(
        "firebase_api_key",
        re.compile(r"(firebaseConfig\s*=\s*\{[\s\S]*?apiKey:\s*[\"'])([\w\-]+)[\"']"),
        2,
    ),
    CredentialPattern(
        "env_secret",
        re.compile(
            r"^(\s*(?:export\s+)?[A-Z0-9_]*(?:SECRET|TOKEN|KEY|PASSWORD|CREDENTIAL|AUTH)[A-Z0-9_]*\s*=\s*)"
            rf"(?![\"']?\$)({_VALUE_CHARS}{{4,}})",
            re.MULTILINE,
        ),
        2,
    ),
    CredentialPattern(
        "generic_secret",
        re.compile(
            rf"([\"']?(?:secret|token|key|password|credential|auth)[\"']?\s*[=:]\s*[\"'])({_VALUE_CHARS}{{8,}}?)[\"']",
            re.IGNORECASE,
        ),
        2,
    ),
)

SENSITIVE_SUFFIXES: tuple[str, ...] = ("config.js", "settings.json", "secrets.yml", "credentials.json")
_HASH_COMMENT_SUFFIXES = frozenset({".yml", ".yaml", ".py", ".rb", ".sh", ".toml", ".cfg", ".ini"})


class Finding(BaseModel):
    """One redacted credential; `partial_value` never holds the full secret."""

    model_config = ConfigDict(frozen=True)

    line: int
    column: int
    kind: str
    partial_value: str


class RedactionResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    content: str
    found: bool = False
    findings: tuple[Finding, ...] = ()


def is_sensitive_file(path: str) -> bool:
    """Environment files and well-known config/secret files get a warning header."""
    return ".env" in path or path.endswith(SENSITIVE_SUFFIXES)


def _comment_prefix(path: str) -> str:
    p = PurePosixPath(path)
    if p.name.startswith(".env") or p.suffix.lower() in _HASH_COMMENT_SUFFIXES:
        return "#"
    return "//"


def _partial(value: str) -> str:
    return value[:4] + "..." if len(value) > 8 else "***"  # noqa: PLR2004


def redact_credentials(content: str, path: str) -> RedactionResult:
    """Replace credentials in `content` with `[REDACTED]`.

    Args:
        content (str): the file content
        path (str): the file's relative path, used to flag sensitive files

    Returns:
        RedactionResult: redacted content, whether anything was found, and the
            position and kind of every finding
    """
    if not content:
        return RedactionResult(content=content)

    findings: list[Finding] = []
    redacted = content
    for pattern in CREDENTIAL_PATTERNS:

        def replace(m: re.Match[str], pattern: CredentialPattern = pattern) -> str:
            value = m.group(pattern.group)
            if value.strip() == REDACTED or REDACTED in value:
                return m.group(0)
            start = m.start(pattern.group)
            line_start = m.string.rfind("\n", 0, start) + 1
            findings.append(
                Finding(
                    line=m.string.count("\n", 0, start) + 1,
                    column=start - line_start + 1,
                    kind=pattern.kind,
                    partial_value=_partial(value),
                ),
            )
            offset = m.start(0)
            whole = m.group(0)
            return whole[: start - offset] + REDACTED + whole[m.end(pattern.group) - offset :]

        redacted = pattern.regex.sub(replace, redacted)

    if is_sensitive_file(path):
        redacted = f"{_comment_prefix(path)} {SENSITIVE_HEADER}\n{redacted}"

    return RedactionResult(content=redacted, found=bool(findings), findings=tuple(findings))
