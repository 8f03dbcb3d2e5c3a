"""
Real HTTP integration clients.

These clients communicate with the product/pricing backend via HTTP:
- product detail and related (rider) codes
- rate-table availability checks
- per-term premium calculation
- limit / min-max / contract-notes lookups

Important:
- Must implement the same interface as the mock clients (ProductBackend)
- Must return data shaped according to src/integrations/contracts/*

Switching:
The selection of mock vs real clients happens in build_backend (src/integrations/__init__.py) only.
"""

from .gateway import LookupGateway
from .product_backend import RealProductBackend

__all__ = ["LookupGateway", "RealProductBackend"]
