"""
Audio module - source acquisition, chunk buffering and capture backends.

Factory function for creating a capture platform based on provider
configuration.
"""

from .aggregator import ChunkAggregator, ChunkStream
from .base import AudioSource, AudioTrack, MediaPlatform, MediaRecorder
from .source import SourceAcquirer

__all__ = [
    "AudioSource",
    "AudioTrack",
    "ChunkAggregator",
    "ChunkStream",
    "MediaPlatform",
    "MediaRecorder",
    "SourceAcquirer",
    "create_platform",
]


def create_platform(provider: str = "loopback", **kwargs) -> MediaPlatform:
    """
    Factory function to create a capture platform.

    Args:
        provider: Platform name ("loopback" / "sounddevice")
        **kwargs: Platform-specific configuration

    Returns:
        MediaPlatform implementation instance

    Raises:
        ValueError: If provider is unknown
    """
    if provider == "loopback" or provider == "sounddevice":
        from .loopback import LoopbackPlatform
        return LoopbackPlatform(**kwargs)
    else:
        raise ValueError(f"Unknown capture platform: {provider}")
