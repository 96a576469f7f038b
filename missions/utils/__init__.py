# missions/utils/__init__.py
from .geofence import (
    GeofenceResult,
    parse_coordinates,
    validate_geofence,
)
from .qr_tokens import (
    QRTokenService,
    get_token_service,
)
from .waitlist import (
    WaitlistCandidate,
    rank_candidates,
    select_for_promotion,
)

__all__ = [
    'GeofenceResult',
    'parse_coordinates',
    'validate_geofence',
    'QRTokenService',
    'get_token_service',
    'WaitlistCandidate',
    'rank_candidates',
    'select_for_promotion',
]
