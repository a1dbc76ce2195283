class ProdeError(Exception):
    """Base error of the prediction game backend."""


class ProviderError(ProdeError):
    """The match data provider could not be reached or answered with an error."""

    def __init__(self, message: str, *, round_number: int | None = None):
        super().__init__(message)
        self.round_number = round_number


class ProviderPayloadError(ProviderError):
    """The provider answered, but the payload does not look like a round."""


class ExecutionNotFoundError(ProdeError):
    pass
