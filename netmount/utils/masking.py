"""Secret masking for log records, error messages and command lines"""

import re
from typing import Any, Iterable, List, Optional
from urllib.parse import quote

MASK = '********'

# Field names whose values never leave the process in clear text
SENSITIVE_FIELDS = frozenset([
    'password',
    'secret',
    'secret_access_key',
    'access_key_id',
    'key',
    'token',
    'auth',
])

_QUERY_PASSWORD_RE = re.compile(r'(password|pwd|passwd|pass)=([^&\s]+)', re.IGNORECASE)
_QUERY_AUTH_RE = re.compile(r'(auth|token|key|secret)=([^&\s,]+)', re.IGNORECASE)
_URL_USERINFO_RE = re.compile(r'([a-zA-Z][a-zA-Z0-9+.\-]*://|//)([^:/@\s\'"]+):([^@\s\'"]+)@')
_LEADING_USERINFO_RE = re.compile(r'^((?:[a-zA-Z][a-zA-Z0-9+.\-]*:)?//)[^/@]*@')


def _mask_value(value: Any) -> Any:
    if not value:
        return value
    if isinstance(value, str):
        if len(value) > 2:
            return value[0] + MASK + value[-1]
        return MASK
    return '[REDACTED]'


def mask_sensitive_data(data: Any) -> Any:
    """
    Return a copy of ``data`` with sensitive fields masked.

    Dicts and lists are walked recursively; strings found anywhere in the
    structure are additionally scrubbed with :func:`mask_string`.
    """
    if data is None:
        return data
    if isinstance(data, dict):
        masked = {}
        for key, value in data.items():
            if isinstance(key, str) and key.lower() in SENSITIVE_FIELDS:
                masked[key] = _mask_value(value)
            else:
                masked[key] = mask_sensitive_data(value)
        return masked
    if isinstance(data, (list, tuple)):
        return [mask_sensitive_data(item) for item in data]
    if isinstance(data, str):
        return mask_string(data)
    return data


def mask_string(text: Optional[str]) -> Optional[str]:
    """Scrub password-like query pairs and URL userinfo from free text."""
    if not text:
        return text
    text = _QUERY_PASSWORD_RE.sub(r'\1=' + MASK, text)
    text = _QUERY_AUTH_RE.sub(r'\1=' + MASK, text)
    text = _URL_USERINFO_RE.sub(r'\1\2:' + MASK + '@', text)
    return text


def strip_userinfo(source: Optional[str]) -> Optional[str]:
    """``smb://user:pw@host/share`` -> ``smb://host/share``"""
    if not source:
        return source
    return _LEADING_USERINFO_RE.sub(r'\1', source)


class Redactor:
    """
    Replaces the known secret values of a single connection.

    Pattern-based masking cannot catch a password passed as a bare
    positional argument (``mount_webdav -p <password>``) or echoed back
    in a tool's stderr, so every string produced while mounting is run
    through the redactor of the connection being mounted.
    """

    def __init__(self, secrets: Iterable[Optional[str]] = ()):
        values = set()
        for secret in secrets:
            if not secret:
                continue
            values.add(secret)
            values.add(quote(secret, safe=''))
        # Longest first so a secret containing another is replaced whole
        self._secrets: List[str] = sorted(values, key=len, reverse=True)

    def __call__(self, text: Optional[str]) -> Optional[str]:
        if not text:
            return text
        for secret in self._secrets:
            text = text.replace(secret, MASK)
        return mask_string(text)

    def command(self, cmd: List[str]) -> str:
        """Render a command line for logging."""
        return self(' '.join(cmd))
