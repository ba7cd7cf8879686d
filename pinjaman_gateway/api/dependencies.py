"""Dependency injection for FastAPI endpoints"""

from fastapi import Request
from pinjaman_gateway.config import settings


def get_request_id(request: Request) -> str:
    """Extract request ID from request state"""
    return getattr(request.state, "request_id", "unknown")


def get_config_id() -> str:
    """Key of the state document this service reads and writes"""
    return settings.config_id
