"""FastAPI dependencies shared by the routers."""

from fastapi import Request

from core.bootstrap import AppServices


def get_services(request: Request) -> AppServices:
    """Return the service graph built at application startup."""
    return request.app.state.services
