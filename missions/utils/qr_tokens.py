# missions/utils/qr_tokens.py
"""
Time-boxed QR tokens for attendance check-in.

A coordinator's screen shows a QR code that encodes a signed token binding the
mission to the coordinator who generated it. Tokens are valid for 5 minutes.
"""

import logging
from typing import Any, Dict, Optional

from django.core import signing

from ..conf import get_setting
from ..exceptions import TokenExpired, TokenMalformed, WrongPurpose

logger = logging.getLogger(__name__)

ATTENDANCE_QR_PURPOSE = 'attendance_qr'
TOKEN_SALT = 'missions.tokens'


class QRTokenService:
    """Issues and verifies signed, time-boxed tokens with a purpose tag."""

    def __init__(self, secret: Optional[str] = None, max_age_seconds: Optional[int] = None,
                 purpose: str = ATTENDANCE_QR_PURPOSE):
        self.secret = secret or get_setting('QR_TOKEN_SECRET')
        self.max_age_seconds = max_age_seconds or get_setting('QR_TOKEN_MAX_AGE_SECONDS')
        self.purpose = purpose

    def issue(self, mission_id: int, issuer_id: int) -> str:
        """Sign {missionId, issuerId, purpose}; the signer stamps issuance time."""
        payload = {
            'missionId': mission_id,
            'issuerId': issuer_id,
            'purpose': self.purpose,
        }
        return signing.dumps(payload, key=self.secret, salt=TOKEN_SALT)

    def verify(self, token: str) -> Dict[str, Any]:
        """
        Return the embedded payload.

        Raises:
            TokenExpired: signature valid but older than max_age_seconds
            TokenMalformed: not a token we signed
            WrongPurpose: signed by us for a different feature
        """
        if not token or not isinstance(token, str):
            raise TokenMalformed()

        try:
            payload = signing.loads(token, key=self.secret, salt=TOKEN_SALT, max_age=self.max_age_seconds)
        except signing.SignatureExpired:
            raise TokenExpired()
        except signing.BadSignature:
            logger.info("Rejected QR token with a bad signature")
            raise TokenMalformed()

        if not isinstance(payload, dict) or 'missionId' not in payload:
            raise TokenMalformed()
        if payload.get('purpose') != self.purpose:
            raise WrongPurpose()
        return payload


def get_token_service() -> QRTokenService:
    """Get a QRTokenService configured from settings.MISSIONS"""
    return QRTokenService()
