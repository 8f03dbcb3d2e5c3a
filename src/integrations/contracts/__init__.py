"""
Contracts (data models).

This folder defines the request/response shapes for the product backend.
Examples:
- Product detail and term definition formats
- Availability check / premium quote formats
- Transport failure types shared by real and mock clients

Why this exists:
- Ensures consistent data structures across mock and real clients
- Prevents "guessing" payload formats in multiple places
- Orchestration relies on stable models, not on ad-hoc dicts

Both mock and real HTTP clients should use these contracts.
"""
