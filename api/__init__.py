# API module - REST client for the server's HTTP endpoints

from .client import APIClient, APIConfig, APIResponse, APIStatus

__all__ = ["APIClient", "APIConfig", "APIResponse", "APIStatus"]
