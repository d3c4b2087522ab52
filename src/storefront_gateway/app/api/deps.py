"""
Storefront Gateway - Request Dependencies
"""

from fastapi import Request

from storefront_sync.app.sync.manager import IntegrationManager


def get_manager(request: Request) -> IntegrationManager:
    """Integration manager created by the application lifespan."""
    return request.app.state.manager
