"""
Text generation providers for the refine and answer stages.

``create_llm`` picks the provider by name; provider modules are imported on
first use.
"""

from .base import BaseLLM

__all__ = ["BaseLLM", "create_llm"]


def create_llm(provider: str, **kwargs) -> BaseLLM:
    """
    Build the text generation client for a stage.

    Args:
        provider: "gemini" (question refinement) or "backend" / "openai"
            (answers through the backend proxy)
        **kwargs: Passed to the provider constructor (base_url, timeout,
            settings, transport, ...)

    Raises:
        ValueError: If provider is unknown
    """
    if provider == "gemini":
        from .gemini import GeminiLLM
        return GeminiLLM(**kwargs)
    elif provider in ("backend", "openai"):
        from .backend import BackendAnswerLLM
        return BackendAnswerLLM(**kwargs)
    else:
        raise ValueError(f"Unknown LLM provider: {provider}")
