"""Error taxonomy for product resolution and diary storage."""


class NutriScanError(Exception):
    """Base class for all application errors."""

    user_message = "Something went wrong. Please try again."

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.user_message)


class ProviderError(NutriScanError):
    """A product provider failed to produce a record."""

    user_message = "Could not analyze the product. Please try again."

    def __init__(
        self, message: str | None = None, *, status_code: int | None = None
    ) -> None:
        super().__init__(message)
        self.status_code = status_code


class RetryableProviderError(ProviderError):
    """Rate-limited, unavailable or timed-out provider call."""

    user_message = "The service is busy. Please try again in a moment."


class FatalProviderError(ProviderError):
    """Provider failure that must not be retried."""


class MalformedResponseError(FatalProviderError):
    """The provider reply could not be decoded into a product record."""

    user_message = "Could not read the analysis result. Try another photo."


class ProviderConfigurationError(FatalProviderError):
    """The provider endpoint or credentials are misconfigured."""

    user_message = "Analysis is misconfigured. Please contact support."


class ProviderPermissionError(FatalProviderError):
    """The provider rejected our credentials."""

    user_message = "Permission denied by the analysis service."


class ProviderUnavailableError(FatalProviderError):
    """The provider stayed unavailable after all retries."""

    user_message = "Service unavailable. Try again later."


class PersistenceError(NutriScanError):
    """A store read or write failed; the operation was not applied."""

    user_message = "Could not reach your diary. Please try again."


class ValidationError(NutriScanError):
    """Input was rejected before any persistence or network call."""

    user_message = "Some required information is missing."


class EntryNotFoundError(NutriScanError):
    """The referenced diary entry does not exist."""

    user_message = "That diary entry no longer exists."
