"""
Collaborator protocols for drop detection.

Defines the contracts the detector depends on. This module is pure — no I/O,
no network calls, no side effects. Concrete implementations (HTTP analysis
provider, Redis / in-memory storage) live outside core/.
"""

from collections.abc import Mapping
from typing import Any, Protocol, runtime_checkable


@runtime_checkable
class AnalysisProvider(Protocol):
    """
    Protocol for audio-analysis providers.

    Any class that implements ``get_analysis`` can feed the detector.
    """

    def get_analysis(self, track_id: str) -> Mapping[str, Any]:
        """
        Fetch the pre-computed analysis document for a track.

        Args:
            track_id: Opaque provider track identifier.

        Returns:
            Decoded analysis JSON with ``track``, ``sections``, ``segments``
            and ``bars`` keys.

        Raises:
            Exception: Any transport, auth or decoding failure. The detector
                does not inspect the cause.
        """
        ...


@runtime_checkable
class CacheStorage(Protocol):
    """
    Protocol for the key-value store behind the drop result cache.

    No transactional guarantees are required; concurrent writers to one key
    resolve as last-write-wins.
    """

    def get(self, key: str) -> dict[str, Any] | None:
        """Return the stored value, or None if absent."""
        ...

    def put(self, key: str, value: dict[str, Any]) -> None:
        """Store *value* under *key*, replacing any previous value."""
        ...

    def delete(self, key: str) -> bool:
        """Remove *key*. Returns True if something was removed."""
        ...
