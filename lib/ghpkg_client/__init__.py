from .client import GitHubClient
from .config_types import ClientConfig
from .errors import ApiError, AuthError, GitHubClientError, NetworkError

__all__ = ["GitHubClient", "ClientConfig", "ApiError", "AuthError", "GitHubClientError", "NetworkError"]
