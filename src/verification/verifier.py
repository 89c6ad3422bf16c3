"""
Vision Verifier
===============

Boundary to the external drawing-analysis service. The service looks at a
sheet image and answers a prompt; its answers arrive as loosely-shaped JSON
and are parsed defensively into VerificationPayload.
"""

import json
import logging
import re
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

import requests

from ..config import VisionConfig

logger = logging.getLogger(__name__)

# ```json ... ``` fences some models wrap around their answer
_FENCE_PATTERN = re.compile(r"```(?:json)?\s*(.*?)```", re.DOTALL)


class VisionVerificationError(Exception):
    """Vision service error."""
    pass


@dataclass
class VerificationPayload:
    success: bool
    data: Dict[str, Any] = field(default_factory=dict)
    raw_text: str = ""
    error: Optional[str] = None

    @property
    def text(self) -> str:
        """Flattened payload text used for containment checks."""
        if self.data:
            return json.dumps(self.data, default=str)
        return self.raw_text

    def find_count(self) -> Optional[float]:
        """Numeric count reported by the service, if any."""
        for key in ("count", "quantity", "total"):
            value = self.data.get(key)
            if isinstance(value, bool):
                continue
            if isinstance(value, (int, float)):
                return float(value)
            if isinstance(value, str):
                try:
                    return float(value.strip())
                except ValueError:
                    continue
        return None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": self.success,
            "data": self.data,
            "error": self.error,
        }


def parse_verification_payload(raw: Any) -> VerificationPayload:
    """
    Parse a vision service answer.

    Accepts a dict or a JSON string (optionally fenced). Anything unreadable
    becomes an unsuccessful payload with empty data, never an exception.
    """
    if raw is None:
        return VerificationPayload(success=False, error="empty response")

    if isinstance(raw, dict):
        success = raw.get("success", True) is not False
        data = raw.get("data", raw)
        if not isinstance(data, dict):
            data = {"value": data}
        return VerificationPayload(success=success, data=data, error=raw.get("error"))

    if not isinstance(raw, str):
        return VerificationPayload(success=False, error=f"unexpected payload type {type(raw).__name__}")

    text = raw.strip()
    fenced = _FENCE_PATTERN.search(text)
    if fenced:
        text = fenced.group(1).strip()

    try:
        decoded = json.loads(text)
    except ValueError as e:
        logger.warning(f"Unparseable vision payload: {e}")
        return VerificationPayload(success=False, raw_text=raw, error=f"invalid JSON: {e}")

    if not isinstance(decoded, dict):
        return VerificationPayload(success=False, raw_text=raw, error="payload is not an object")

    payload = parse_verification_payload(decoded)
    payload.raw_text = raw
    return payload


class VisionVerifier(ABC):

    @abstractmethod
    def verify(self, designation: str, sheet: str, prompt: str) -> Any:
        """Ask the service about one designation on one sheet. Returns the raw answer."""


class HttpVisionVerifier(VisionVerifier):
    """Client for a JSON-over-HTTP vision verification endpoint."""

    def __init__(self, config: Optional[VisionConfig] = None, session: Optional[requests.Session] = None):
        self.config = config if config is not None else VisionConfig()
        if not self.config.endpoint:
            raise VisionVerificationError("Vision verifier not configured. Set VISION_VERIFIER_URL in .env")
        self._session = session if session is not None else requests.Session()

    def verify(self, designation: str, sheet: str, prompt: str) -> Any:
        headers = {}
        if self.config.api_key:
            headers["Authorization"] = f"Bearer {self.config.api_key}"

        try:
            response = self._session.post(
                self.config.endpoint,
                json={"designation": designation, "sheet": sheet, "prompt": prompt},
                headers=headers,
                timeout=self.config.timeout,
            )
        except requests.RequestException as e:
            raise VisionVerificationError(f"Request failed: {e}") from e

        if response.status_code == 401:
            raise VisionVerificationError("Invalid vision service credentials")
        elif response.status_code != 200:
            raise VisionVerificationError(
                f"Vision service error: {response.status_code} - {response.text[:200]}"
            )

        return response.text
