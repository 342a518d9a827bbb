# errors.py
# Exception types raised across the guidance package.


class GuidanceError(Exception):
    """Base class for every error raised by the guidance package."""


class InvalidCoordinateError(GuidanceError, ValueError):
    """Latitude/longitude is non-finite or outside its valid range."""


class UndefinedBearingError(GuidanceError, ValueError):
    """Bearing requested between two points with identical lat/lon."""


class LocationUnavailableError(GuidanceError):
    """Location permission was denied or the location source failed."""


class SpeechUnavailableError(GuidanceError):
    """The voice output channel cannot speak."""


class HapticUnavailableError(GuidanceError):
    """The haptic output channel cannot pulse."""
