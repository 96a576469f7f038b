from django.conf import settings

DEFAULTS = {
    'QR_TOKEN_SECRET': None,
    'QR_TOKEN_MAX_AGE_SECONDS': 300,
    'GEOFENCE_RADIUS_METERS': 100,
    'CHECK_IN_EARLY_MINUTES': 30,
    'COORDINATOR_FEED_GROUP': 'coordinator_feed',
}


def get_setting(name):
    """Read an engine knob from settings.MISSIONS, falling back to the default."""
    return getattr(settings, 'MISSIONS', {}).get(name, DEFAULTS[name])
