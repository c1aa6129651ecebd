class BaseServiceError(Exception):
    """Base exception for all service-related errors."""
    pass

class ProviderError(BaseServiceError):
    """Base exception for snapshot provider errors."""
    pass

class ProviderUnavailableError(ProviderError):
    """Raised when the provider cannot be reached, times out or answers garbage."""
    pass

class RateLimitedError(ProviderError):
    """Raised after the provider signalled a rate limit and the backoff window elapsed."""
    pass

class NotFoundError(ProviderError):
    """Raised when the requested offer or seller listing does not exist."""
    pass

class NoFeaturedOfferError(NotFoundError):
    """Raised when a listing currently has no BuyBox winner."""
    pass

class StoreFailureError(BaseServiceError):
    """Raised when a state store read or write fails."""
    pass

class SubjectNotFoundError(BaseServiceError):
    """Raised when a subject id cannot be resolved."""
    pass

class NotifyFailureError(BaseServiceError):
    """Raised when a webhook delivery fails. Never propagates out of the notifier."""
    pass
