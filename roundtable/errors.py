"""Exceptions raised by provider attempts."""

_RETRYABLE_STATUS = 429


class ProviderError(Exception):
    """Raised when a provider call fails."""

    def __init__(self, provider_name: str, message: str) -> None:
        self.provider_name = provider_name
        super().__init__(f"[{provider_name}] {message}")


class ProviderHTTPError(ProviderError):
    """An HTTP or transport failure from one provider attempt.

    ``status`` is None for connection-level errors that never got a response.
    ``retry_after`` is the server-suggested delay in seconds, when one was sent.
    """

    def __init__(
        self,
        provider_name: str,
        message: str,
        status: int | None = None,
        retry_after: float | None = None,
    ) -> None:
        self.status = status
        self.retry_after = retry_after
        super().__init__(provider_name, message)

    @property
    def retryable(self) -> bool:
        if self.status is None:
            return True
        return self.status == _RETRYABLE_STATUS or 500 <= self.status <= 599
