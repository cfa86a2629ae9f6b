"""Reading the user's e-mail address from the stored OAuth credentials."""

from __future__ import annotations

import base64
import binascii
import json
import os
import re
from pathlib import Path
from typing import Any

_SEGMENT = re.compile(r"[A-Za-z0-9_-]*={0,2}")


class CredentialsError(Exception):
    """Raised when the credentials file cannot be read or parsed."""


def _object_field(value: Any, key: str, where: str) -> Any:
    if value is None:
        return None
    if not isinstance(value, dict):
        raise CredentialsError(f"{where}: expected a JSON object")
    return value.get(key)


def _string(value: Any, where: str) -> str:
    if value is None:
        return ""
    if not isinstance(value, str):
        raise CredentialsError(f"{where}: expected a string")
    return value


def _decode_segment(segment: str) -> bytes:
    if not _SEGMENT.fullmatch(segment):
        raise CredentialsError("credentials: decode JWT payload: illegal base64 data")
    padded = segment
    if "=" not in segment:
        if len(segment) % 4 == 2:
            padded += "=="
        elif len(segment) % 4 == 3:
            padded += "="
    try:
        return base64.b64decode(padded, altchars=b"-_", validate=True)
    except (binascii.Error, ValueError) as exc:
        raise CredentialsError(f"credentials: decode JWT payload: {exc}") from exc


class FileCredReader:
    """Reads the e-mail claim from the JWT access token in a credentials file."""

    def __init__(self, path: str | os.PathLike[str]) -> None:
        self.path = Path(path)

    def email(self) -> str:
        """Return the e-mail claim, or "" when there is no token or no claim."""
        try:
            data = self.path.read_bytes()
        except OSError as exc:
            raise CredentialsError(f"credentials: read {self.path}: {exc}") from exc
        try:
            creds = json.loads(data)
        except ValueError as exc:
            raise CredentialsError(f"credentials: parse: {exc}") from exc

        oauth = _object_field(creds, "claudeAiOauth", "credentials: parse")
        token = _string(
            _object_field(oauth, "accessToken", "credentials: parse"), "credentials: parse"
        )
        if not token:
            return ""

        parts = token.split(".")
        if len(parts) != 3:
            raise CredentialsError(f"credentials: malformed JWT (got {len(parts)} parts)")
        raw = _decode_segment(parts[1])
        try:
            claims = json.loads(raw)
        except ValueError as exc:
            raise CredentialsError(f"credentials: parse JWT claims: {exc}") from exc
        return _string(
            _object_field(claims, "email", "credentials: parse JWT claims"),
            "credentials: parse JWT claims",
        )