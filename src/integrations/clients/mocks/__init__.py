"""
Mock integration clients.

These clients return fake (but realistic) responses without calling any external API.
They are used when:
- The product backend is not reachable from the development machine
- We want to test orchestration end-to-end without external dependencies

Important:
- Mock clients must follow the SAME interface as real HTTP clients (ProductBackend).
- Mock clients return data shaped according to src/integrations/contracts/*

Switching to real:
When the backend is available, unset MATRIX_USE_MOCK_BACKEND so that
build_backend in src/integrations wires clients/real_http/* instead.
"""

from .local_product_backend import MockProductBackend

__all__ = ["MockProductBackend"]
