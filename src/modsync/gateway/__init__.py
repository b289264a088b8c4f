"""Concrete catalog gateways."""

from modsync.gateway.errors import error_from_response, error_from_transport, server_timestamp
from modsync.gateway.http import HttpCatalogGateway

__all__ = ["HttpCatalogGateway", "error_from_response", "error_from_transport", "server_timestamp"]
