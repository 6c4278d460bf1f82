"""
Transcription clients for the first pipeline stage.
"""

from .base import BaseSTT

__all__ = ["BaseSTT", "create_stt"]


def create_stt(provider: str = "remote", **kwargs) -> BaseSTT:
    """
    Build the transcription client.

    Only the backend proxy upload ("remote", alias "backend") exists;
    keyword arguments go to its constructor.

    Raises:
        ValueError: If provider is unknown
    """
    if provider in ("remote", "backend"):
        from .remote import RemoteSTT
        return RemoteSTT(**kwargs)
    else:
        raise ValueError(f"Unknown STT provider: {provider}")
