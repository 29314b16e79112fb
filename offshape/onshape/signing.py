"""Onshape API-key request signing.

Responsibilities:
- Build the HMAC-SHA256 `Authorization` header Onshape expects for API keys.
- Supply the nonce, date, and fixed media-type headers that the signature covers.
"""

from __future__ import annotations

import base64
from dataclasses import dataclass
from email.utils import formatdate
import hashlib
import hmac
import secrets
import string
from typing import Callable
from urllib.parse import unquote, urlsplit

from ..errors import ConfigurationError


ACCEPT_HEADER = "application/vnd.onshape.v2+json;charset=UTF-8;qs=0.2"
CONTENT_TYPE = "application/json"
NONCE_LENGTH = 25
_NONCE_ALPHABET = string.ascii_letters + string.digits


def create_nonce(length: int = NONCE_LENGTH) -> str:
    """Draw a fresh alphanumeric nonce from a cryptographic source."""

    return "".join(secrets.choice(_NONCE_ALPHABET) for _ in range(length))


def http_date() -> str:
    """Return the current time formatted as an RFC 7231 HTTP-date."""

    return formatdate(usegmt=True)


def signature_plaintext(
    *,
    method: str,
    nonce: str,
    date: str,
    path: str,
    query: str,
    content_type: str = CONTENT_TYPE,
) -> str:
    """Return the lowercased string Onshape signs for one request.

    The trailing newline is required by the service.
    """

    return f"{method}\n{nonce}\n{date}\n{content_type}\n{path}\n{query}\n".lower()


@dataclass(frozen=True, slots=True)
class RequestSigner:
    """Sign Onshape requests with an access/secret key pair."""

    access_key: str
    secret_key: str
    nonce_factory: Callable[[], str] = create_nonce
    date_factory: Callable[[], str] = http_date

    def __post_init__(self) -> None:
        """Reject blank key material before any request is signed."""

        if not isinstance(self.access_key, str) or not self.access_key.strip():
            raise ConfigurationError(
                "Onshape access key is missing.",
                hint="Set `ONSHAPE_ACCESS_KEY` or pass `--access-key`.",
            )
        if not isinstance(self.secret_key, str) or not self.secret_key.strip():
            raise ConfigurationError(
                "Onshape secret key is missing.",
                hint="Set `ONSHAPE_SECRET_KEY` or pass `--secret-key`.",
            )

    def signature(self, plaintext: str) -> str:
        """Return the padded base64 HMAC-SHA256 digest of `plaintext`."""

        digest = hmac.new(
            self.secret_key.encode("utf-8"),
            plaintext.encode("utf-8"),
            hashlib.sha256,
        ).digest()
        return base64.b64encode(digest).decode("ascii")

    def headers(
        self,
        method: str,
        url: str,
        *,
        nonce: str | None = None,
        date: str | None = None,
    ) -> dict[str, str]:
        """Return the signed header set for one request.

        Args:
            method: HTTP method, any case.
            url: Absolute request URL including any query string.
            nonce: Optional fixed nonce; a fresh one is drawn when omitted.
            date: Optional fixed HTTP-date; the current time is used when omitted.
        """

        resolved_nonce = nonce if nonce is not None else self.nonce_factory()
        resolved_date = date if date is not None else self.date_factory()
        parts = urlsplit(url)
        plaintext = signature_plaintext(
            method=method.upper(),
            nonce=resolved_nonce,
            date=resolved_date,
            path=parts.path,
            query=unquote(parts.query),
        )
        return {
            "Authorization": (
                f"On {self.access_key}:HmacSHA256:{self.signature(plaintext)}"
            ),
            "Accept": ACCEPT_HEADER,
            "Content-Type": CONTENT_TYPE,
            "Date": resolved_date,
            "On-Nonce": resolved_nonce,
        }
