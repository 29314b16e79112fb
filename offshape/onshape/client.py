"""Onshape REST client used by the export pipeline.

Responsibilities:
- Perform every network request, each paced by the shared rate limiter and
  signed with the account's API keys.
- Map listing, translation, and download responses into typed records.
- Raise `TransportError` for transport, HTTP, and protocol failures.
"""

from __future__ import annotations

import json
import re
import socket
from typing import Any
from urllib.parse import urlencode

from loguru import logger
import requests

from ..errors import InvalidStateError, TransportError
from ..models.datatypes import (
    DocumentElement,
    ExportFileFormat,
    Part,
    TranslationJob,
    TranslationState,
)
from .rate_limiter import RateLimiter
from .signing import RequestSigner


BASE_URL = "https://cad.onshape.com/api"

ANGULAR_TOLERANCE = 0.04363323129985824
DISTANCE_TOLERANCE = 0.00006
MAXIMUM_CHORD_LENGTH = 10.0
STL_CHORD_TOLERANCE = 0.06
STL_MIN_FACET_WIDTH = 0.025
PARASOLID_VERSION = "35.1"
IMAGE_SIZE = 96

# e.g. `DATE=2023-06-22T10:00:01 (UTC);` or `CREATION_DATE=...`
_HEADER_DATE_PATTERN = re.compile(rb"^.*DATE=.*(?:\r?\n|$)", re.MULTILINE)


def strip_header_dates(content: bytes) -> bytes:
    """Remove every line carrying a `DATE=` generation marker.

    Works on raw bytes so payloads in any ASCII-compatible encoding pass
    through unchanged apart from the removed lines.
    """

    return _HEADER_DATE_PATTERN.sub(b"", content)


class OnshapeClient:
    """Minimal requests-based Onshape API client."""

    _MAX_ERROR_MESSAGE_CHARS = 180

    def __init__(
        self,
        access_key: str,
        secret_key: str,
        proxy_url: str | None = None,
        *,
        base_url: str = BASE_URL,
        rate_limiter: RateLimiter | None = None,
        session: requests.Session | None = None,
        timeout_seconds: float = 60.0,
    ) -> None:
        """Initialize client settings; blank keys raise `ConfigurationError`."""

        self.signer = RequestSigner(access_key=access_key, secret_key=secret_key)
        self.base_url = base_url.rstrip("/")
        self.rate_limiter = rate_limiter if rate_limiter is not None else RateLimiter()
        self.timeout_seconds = timeout_seconds
        self.session = session if session is not None else requests.Session()
        if proxy_url:
            logger.warning(
                "Routing Onshape requests through proxy {} with TLS verification disabled",
                proxy_url,
            )
            self.session.proxies = {"http": proxy_url, "https": proxy_url}
            self.session.verify = False

    def list_elements(
        self, document_id: str, workspace_id: str
    ) -> dict[str, DocumentElement]:
        """Return the workspace's elements keyed by element id."""

        payload = self._get_json(
            f"{self.base_url}/documents/d/{document_id}/w/{workspace_id}/elements"
        )
        elements = [DocumentElement.from_payload(item) for item in _require_list(payload)]
        return {element.id: element for element in elements}

    def list_parts(
        self, document_id: str, workspace_id: str, element_id: str
    ) -> list[Part]:
        """Return the parts found in one part studio."""

        payload = self._get_json(self._parts_url(document_id, workspace_id, element_id))
        return [Part.from_payload(item) for item in _require_list(payload)]

    def list_parts_json(self, document_id: str, workspace_id: str, element_id: str) -> str:
        """Return the raw JSON parts listing of one part studio."""

        response = self._send("GET", self._parts_url(document_id, workspace_id, element_id))
        return bytes(response.content).decode("utf-8")

    def begin_translation(
        self,
        format: ExportFileFormat,
        document_id: str,
        workspace_id: str,
        element_id: str,
        part_id: str,
        basename: str,
    ) -> TranslationJob:
        """Submit a translation job for one part and return it in its initial state."""

        output_filename = f"{basename}.{format.extension}"
        payload = {
            "formatName": format.value,
            "partIds": part_id,
            "destinationName": output_filename,
            "storeInDocument": False,
            "configuration": "",
            "resolution": "fine",
            "distanceTolerance": DISTANCE_TOLERANCE,
            "angularTolerance": ANGULAR_TOLERANCE,
            "maximumChordLength": MAXIMUM_CHORD_LENGTH,
            "specifyUnits": True,
            "units": "millimeter",
            "imageWidth": IMAGE_SIZE,
            "imageHeight": IMAGE_SIZE,
        }
        url = (
            f"{self.base_url}/partstudios/d/{document_id}/w/{workspace_id}"
            f"/e/{element_id}/translations"
        )
        response_payload = self._decode_json(self._send("POST", url, payload=payload))
        return TranslationJob.from_payload(
            _require_mapping(response_payload),
            format=format,
            output_filename=output_filename,
        )

    def poll_translation(self, job: TranslationJob) -> TranslationJob:
        """Fetch the current state of a submitted translation job."""

        return job.refreshed(_require_mapping(self._get_json(job.href)))

    def fetch_direct_artifact(
        self,
        document_id: str,
        workspace_id: str,
        element_id: str,
        part_id: str,
    ) -> bytes:
        """Return a part's text STL mesh via the synchronous export endpoint."""

        query = urlencode(
            {
                "mode": "text",
                "units": "millimeter",
                "angleTolerance": str(ANGULAR_TOLERANCE),
                "chordTolerance": str(STL_CHORD_TOLERANCE),
                "minFacetWidth": str(STL_MIN_FACET_WIDTH),
                "configuration": "",
            }
        )
        url = (
            f"{self.base_url}/parts/d/{document_id}/w/{workspace_id}"
            f"/e/{element_id}/partid/{part_id}/stl?{query}"
        )
        return bytes(self._get_via_redirect(url).content)

    def fetch_part_parasolid(
        self,
        document_id: str,
        microversion_id: str,
        element_id: str,
        part_id: str,
        configuration: str = "",
    ) -> str:
        """Return a part's Parasolid text with `DATE=` header lines removed.

        Bytes that are not valid UTF-8 are kept as surrogate escapes, so
        `text.encode("utf-8", errors="surrogateescape")` restores them.
        """

        query = urlencode(
            {
                "version": PARASOLID_VERSION,
                "includeExportIds": "true",
                "binaryExport": "false",
                "configuration": configuration,
            }
        )
        url = (
            f"{self.base_url}/parts/d/{document_id}/m/{microversion_id}"
            f"/e/{element_id}/partid/{part_id}/parasolid?{query}"
        )
        content = strip_header_dates(bytes(self._get_via_redirect(url).content))
        return content.decode("utf-8", errors="surrogateescape")

    def download_artifact(
        self, job: TranslationJob, strip_nondeterminism: bool = False
    ) -> bytes:
        """Download the first result file of a finished translation job."""

        if job.request_state is not TranslationState.DONE or not job.result_external_data_ids:
            raise InvalidStateError(
                f"Job `{job.name}` for `{job.output_filename}` cannot be downloaded "
                f"(state={job.request_state.value}, "
                f"results={len(job.result_external_data_ids)})."
            )

        external_id = job.result_external_data_ids[0]
        url = f"{self.base_url}/documents/d/{job.document_id}/externaldata/{external_id}"
        response = self._send("GET", url)
        if _is_redirect(response):
            response = self._send("GET", self._redirect_location(response, url))
        content = bytes(response.content)
        if strip_nondeterminism and job.format.is_textual:
            content = strip_header_dates(content)
        return content

    def _parts_url(self, document_id: str, workspace_id: str, element_id: str) -> str:
        """Build the part-studio parts listing URL."""

        return f"{self.base_url}/parts/d/{document_id}/w/{workspace_id}/e/{element_id}"

    def _get_json(self, url: str) -> Any:
        """GET a URL and decode its JSON body."""

        return self._decode_json(self._send("GET", url))

    def _get_via_redirect(self, url: str) -> requests.Response:
        """GET an endpoint that answers with a redirect, then fetch its target."""

        response = self._send("GET", url)
        if not _is_redirect(response):
            raise TransportError(
                f"Onshape export expected a redirect but got HTTP {response.status_code}.",
                failure_kind="protocol",
                status_code=response.status_code,
            )
        return self._send("GET", self._redirect_location(response, url))

    @staticmethod
    def _redirect_location(response: requests.Response, url: str) -> str:
        """Read the `Location` header of a redirect response."""

        location = response.headers.get("Location")
        if not location:
            raise TransportError(
                f"Onshape redirect for `{url}` is missing a `Location` header.",
                failure_kind="protocol",
                status_code=response.status_code,
            )
        return location

    def _send(
        self,
        method: str,
        url: str,
        *,
        payload: dict[str, Any] | None = None,
    ) -> requests.Response:
        """Rate limit, sign, and send one request; redirects are never followed."""

        self.rate_limiter.acquire()
        headers = self.signer.headers(method, url)
        try:
            response = self.session.request(
                method,
                url,
                headers=headers,
                json=payload,
                allow_redirects=False,
                timeout=self.timeout_seconds,
            )
        except requests.RequestException as exc:
            failure_kind = self._classify_transport_failure(exc)
            if failure_kind == "timeout":
                detail = f"Onshape request timed out: {method} {url}"
            else:
                detail = f"Onshape request transport error: {self._short_message(str(exc))}"
            raise TransportError(detail, failure_kind=failure_kind) from exc

        if response.status_code >= 400:
            raise self._http_error(response, method, url)
        return response

    def _decode_json(self, response: requests.Response) -> Any:
        """Decode a JSON response body."""

        try:
            return json.loads(bytes(response.content).decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError) as exc:
            raise TransportError(
                "Onshape returned invalid JSON payload.",
                failure_kind="protocol",
                status_code=response.status_code,
            ) from exc

    @classmethod
    def _http_error(cls, response: requests.Response, method: str, url: str) -> TransportError:
        """Convert an HTTP error response into a `TransportError`."""

        status_code = response.status_code
        message = cls._extract_error_message(bytes(response.content))
        failure_kind = {
            401: "unauthorized",
            403: "forbidden",
            404: "not_found",
            429: "rate_limited",
        }.get(status_code, "http_error")
        detail = f"Onshape request failed (HTTP {status_code}): {method} {url}"
        if message:
            detail = f"{detail}: {message}"
        hint = None
        if failure_kind == "unauthorized":
            hint = "Check the Onshape access and secret keys."
        return TransportError(
            detail,
            failure_kind=failure_kind,
            status_code=status_code,
            hint=hint,
        )

    @classmethod
    def _extract_error_message(cls, body: bytes) -> str:
        """Extract a concise message from an Onshape error body."""

        text = body.decode("utf-8", errors="replace").strip()
        if not text:
            return ""
        try:
            payload = json.loads(text)
        except json.JSONDecodeError:
            return cls._short_message(text)
        if isinstance(payload, dict) and isinstance(payload.get("message"), str):
            return cls._short_message(payload["message"])
        return cls._short_message(text)

    @classmethod
    def _short_message(cls, text: str) -> str:
        """Normalize and cap user-facing error message length."""

        compact = " ".join(text.split())
        if len(compact) <= cls._MAX_ERROR_MESSAGE_CHARS:
            return compact
        return f"{compact[: cls._MAX_ERROR_MESSAGE_CHARS - 1]}..."

    @staticmethod
    def _classify_transport_failure(reason: object) -> str:
        """Classify network-layer failures into diagnostic kinds."""

        if isinstance(reason, TimeoutError | socket.timeout | requests.Timeout):
            return "timeout"
        return "transport"


def _is_redirect(response: requests.Response) -> bool:
    """Return whether the response status is in the 3xx class."""

    return 300 <= response.status_code < 400


def _require_list(payload: Any) -> list[Any]:
    """Require a JSON array response."""

    if not isinstance(payload, list):
        raise TransportError(
            "Onshape response was expected to be a JSON array.",
            failure_kind="protocol",
        )
    return payload


def _require_mapping(payload: Any) -> dict[str, Any]:
    """Require a JSON object response."""

    if not isinstance(payload, dict):
        raise TransportError(
            "Onshape response was expected to be a JSON object.",
            failure_kind="protocol",
        )
    return payload
