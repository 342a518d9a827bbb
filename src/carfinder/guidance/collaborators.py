# collaborators.py
# Interfaces of the device services the guidance core talks to.
# Implementations live with the platform layer (or in tests as fakes).

from typing import Callable, Protocol, Sequence, Union

from carfinder.guidance.models import GeoPoint, HapticFeedback, SpeechPriority


# A single fix, or simultaneous fixes from several providers to be fused
FixCallback = Callable[[Union[GeoPoint, Sequence[GeoPoint]]], None]
HeadingCallback = Callable[[float, float], None]     # (degrees, timestamp)
ErrorCallback = Callable[[Exception], None]


class LocationSource(Protocol):
    def start(
        self,
        on_fix: FixCallback,
        on_error: ErrorCallback,
        min_interval_s: float,
        min_distance_m: float,
    ) -> None:
        """
        Begin delivering fixes. Blocks until the subscription is live.

        Raises:
            LocationUnavailableError: permission denied or no provider.
        """

    def stop(self) -> None: ...


class HeadingSource(Protocol):
    def start(self, on_heading: HeadingCallback, interval_s: float) -> None: ...

    def stop(self) -> None: ...


class VoiceOutput(Protocol):
    def speak(self, text: str, priority: SpeechPriority = SpeechPriority.NORMAL) -> None:
        """Queue text for speech, most urgent first. Raises SpeechUnavailableError."""

    def stop(self) -> None:
        """Drop queued text and interrupt the current utterance."""


class HapticOutput(Protocol):
    def trigger(self, feedback: HapticFeedback) -> None:
        """Fire one pulse. Raises HapticUnavailableError."""
