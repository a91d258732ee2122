"""
HTTP API package exports.
"""

from mediguide.api.app import create_app
from mediguide.api.container import ServiceContainer, build_services

__all__ = ["create_app", "ServiceContainer", "build_services"]
