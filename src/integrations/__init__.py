"""
Integrations layer.
This package contains all code used to communicate with the product/pricing backend:
- Product detail and related-code (rider) lookups
- Availability checks and premium calculation
- Product document / code catalogue and contract information

Key rule:
- Orchestration MUST NOT call the backend directly.
- It should call a ProductBackend client (under src/integrations/clients).
- We use the MOCK client during development and swap to the REAL_HTTP client when the backend is available.

Switching implementations:
- The selection of mock vs real clients happens in ONE place (build_backend below),
  used by src/api/main.py and scripts/run_matrix.py.
"""

import logging

from .clients.mocks import MockProductBackend
from .clients.real_http import LookupGateway, RealProductBackend
from .contracts.errors import (
    GatewayError,
    HTTPStatusFailure,
    LookupTimeout,
    NetworkUnavailable,
    ResponseDecodeError,
)
from .contracts.interfaces import ProductBackend, RowKind, SelectionPhase
from .contracts.product_catalogues import (
    DataCheckResult,
    PremiumQuote,
    ProductDetail,
    RelatedCode,
    TermDefinition,
)

logger = logging.getLogger(__name__)


def build_backend(config) -> ProductBackend:
    """Pick the mock or real product backend from a MatrixConfig."""
    if config.backend.use_mock:
        logger.info("Using in-memory mock product backend")
        return MockProductBackend()
    gateway = LookupGateway(
        base_url=config.backend.base_url,
        timeout_seconds=config.backend.timeout_seconds,
        max_connections=config.backend.max_connections,
        slow_call_ms=config.backend.slow_call_ms,
    )
    gateway.open_shared_client()
    logger.info("Using product backend at %s", gateway.base_url)
    return RealProductBackend(gateway)


__all__ = [
    # clients
    "LookupGateway", "MockProductBackend", "RealProductBackend", "build_backend",
    # errors
    "GatewayError", "HTTPStatusFailure", "LookupTimeout", "NetworkUnavailable", "ResponseDecodeError",
    # interfaces
    "ProductBackend", "RowKind", "SelectionPhase",
    # products
    "DataCheckResult", "PremiumQuote", "ProductDetail", "RelatedCode", "TermDefinition",
]
