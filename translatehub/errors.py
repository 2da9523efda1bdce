class TranslateHubError(Exception):
    """Base error. ``status_code`` is the HTTP status the server answers with."""

    status_code = 500

    def __init__(self, message: str, *, details=None):
        super().__init__(message)
        self.message = message
        self.details = details

    def to_dict(self) -> dict:
        payload = {"error": self.message}
        if self.details:
            payload.update(self.details)
        return payload


class InvalidRequest(TranslateHubError):
    status_code = 400


class NoSpeechDetected(TranslateHubError):
    status_code = 400


class ServiceUnavailable(TranslateHubError):
    status_code = 503


class UpstreamError(TranslateHubError):
    """An external service answered non-200 or with something unusable."""

    status_code = 502


class CaptureError(TranslateHubError):
    """Microphone/display capture could not start (permission denied, no device)."""


class DispatchError(TranslateHubError):
    """A client-side request to the TranslateHub server failed."""

    def __init__(self, message: str, *, status_code=None, details=None):
        super().__init__(message, details=details)
        if status_code is not None:
            self.status_code = status_code
