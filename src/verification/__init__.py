"""
Vision Verification
===================

Cross-checks indexed data against the external vision service, with a
short-lived memo so repeated lookups skip the expensive call.
"""

from .verifier import (
    VisionVerifier,
    HttpVisionVerifier,
    VisionVerificationError,
    VerificationPayload,
    parse_verification_payload,
)
from .lookup import VerifiedLookupService

__all__ = [
    "VisionVerifier",
    "HttpVisionVerifier",
    "VisionVerificationError",
    "VerificationPayload",
    "parse_verification_payload",
    "VerifiedLookupService",
]
