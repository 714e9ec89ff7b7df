# API endpoints
from . import activities, certificates, health, verify

__all__ = ["activities", "certificates", "health", "verify"]
