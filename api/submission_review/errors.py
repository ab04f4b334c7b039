class AssessmentError(Exception):
    """Base class for failures surfaced by the assessment service."""

    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ConfigurationError(AssessmentError):
    """A required credential or endpoint is not configured."""


class UpstreamError(AssessmentError):
    """The record store could not answer a mandatory history query."""


class ModerationUnavailable(AssessmentError):
    """
    The moderation model failed or replied with something unparseable.
    Never reaches the caller: the engine logs it and scores without AI signals.
    """


class InputError(AssessmentError):
    status_code = 400
