from .forwarder import Forwarder
from .route import RequestRouter, router

__all__ = ["Forwarder", "RequestRouter", "router"]
