__version__ = "0.1.0"

from .client import ZohoClient
from .config import ZohoCredential, load_config
from .exceptions import (
    AuthenticationError,
    ConfigurationError,
    ProviderAPIError,
    RateLimitError,
    TokenExpiredError,
    ZohoException,
)
from .sync_wrapper import ZohoClientSync
from .utils import PaginationConfig, PaginationOptions, PaginationResult, RetryConfig

__all__ = [
    "AuthenticationError",
    "ConfigurationError",
    "PaginationConfig",
    "PaginationOptions",
    "PaginationResult",
    "ProviderAPIError",
    "RateLimitError",
    "RetryConfig",
    "TokenExpiredError",
    "ZohoClient",
    "ZohoClientSync",
    "ZohoCredential",
    "ZohoException",
    "__version__",
    "load_config",
]
