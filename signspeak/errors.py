"""
Exceptions raised by the sign-to-speech assistant.
"""


class SignSpeakError(Exception):
    """Base class for all errors raised by this package."""


class CollaboratorUnavailableError(SignSpeakError):
    """A vision or classification library could not be loaded or started."""


class SpeechUnavailableError(SignSpeakError):
    """No text-to-speech backend is available in this environment."""


class TrainingInProgressError(SignSpeakError):
    """A teach request arrived while another training session is running."""
