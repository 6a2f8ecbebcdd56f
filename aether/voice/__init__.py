from .speech import SpeechAdapter, SpeechUnavailable  # noqa: F401

__all__ = ["SpeechAdapter", "SpeechUnavailable"]
