"""
REST transports: an aiohttp client shared by one adapter per service.
"""

from .base import ApiAdapter
from .client import HttpResponse, RestClient, api_base_url
from .github_api import GitHubApi
from .gitlab_api import GitLabApi

__all__ = [
    "ApiAdapter",
    "GitHubApi",
    "GitLabApi",
    "HttpResponse",
    "RestClient",
    "api_base_url",
]
