"""Exception taxonomy shared by the provider and literature layers."""


class MedAssistError(Exception):
    """Base exception for medassist failures."""


# ---------------------------------------------------------------------------
# Providers
# ---------------------------------------------------------------------------


class ProviderError(MedAssistError):
    """A single provider attempt failed."""

    def __init__(self, provider: str, message: str, status_code: int | None = None):
        self.provider = provider
        self.status_code = status_code
        super().__init__(f"[{provider}] {message}")


class TransientProviderError(ProviderError):
    """Timeout, transport failure or server-side error. Retryable."""

    pass


class ProviderRejection(ProviderError):
    """The provider refused the request (bad request, auth). Not retried."""

    pass


class AllProvidersExhausted(MedAssistError):
    """Every provider in the chain failed.

    ``errors`` maps provider id to the last error seen from that provider,
    in the order the providers were tried.
    """

    def __init__(self, errors: dict[str, str]):
        self.errors = dict(errors)
        tried = ", ".join(self.errors) or "none"
        super().__init__(f"All providers exhausted (tried: {tried})")


class RateLimited(MedAssistError):
    """Admission denied for this user."""

    def __init__(self, user_id: str):
        self.user_id = user_id
        super().__init__(f"Rate limit exceeded for user {user_id}")


# ---------------------------------------------------------------------------
# Literature
# ---------------------------------------------------------------------------


class LiteratureApiError(MedAssistError):
    """The literature API could not be reached or returned an error."""

    def __init__(self, source: str, message: str, status_code: int | None = None):
        self.source = source
        self.status_code = status_code
        super().__init__(f"[{source}] {message}")


class MalformedArticle(MedAssistError):
    """One article in an EFetch document could not be parsed."""

    def __init__(self, pmid: str | None, reason: str):
        self.pmid = pmid
        self.reason = reason
        super().__init__(f"Malformed article {pmid or '<unknown>'}: {reason}")
