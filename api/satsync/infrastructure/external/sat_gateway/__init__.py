"""
Integracion con el gateway de descarga masiva del SAT.
"""
from satsync.infrastructure.external.sat_gateway.client import SatGatewayClient, format_sat_range
from satsync.infrastructure.external.sat_gateway.rate_limited_client import RateLimitedSyncClient


__all__ = ["SatGatewayClient", "RateLimitedSyncClient", "format_sat_range"]
