"""Exceptions for voice activity detection."""


class VadError(Exception):
    """Base exception for voice activity detection errors."""


class ConfigurationError(VadError):
    """Options are inconsistent (threshold ordering, frame size, model variant)."""


class ModelLoadError(VadError):
    """Model resource is missing, corrupt, or does not match the selected variant."""


class ModelNotLoadedError(VadError):
    """Iterator used before init_model() or after release()."""


class InferenceError(VadError):
    """Backend failed to score a single frame."""


class PermissionDeniedError(VadError):
    """No permission (or no device) to record audio."""


class AudioStreamError(VadError):
    """Audio capture stream failed to start, pause, resume or stop."""
