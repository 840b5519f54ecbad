from .client import SellusClient, GatewayResult

__all__ = ["SellusClient", "GatewayResult"]
