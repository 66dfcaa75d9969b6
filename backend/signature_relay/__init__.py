"""
Signature Relay - Application Package Initializer
===================================================

What: Marks the `signature_relay` directory as a Python package.
Why:  Enables module imports like `from signature_relay.config import settings`.
Who:  Used implicitly by Python's import system and explicitly by pytest and uvicorn.

Architecture Note:
    The relay follows the same layered split as the rest of our backends:

    ┌─────────────────────────────────────┐
    │           Routes (API Layer)        │  ← HTTP concerns only
    ├─────────────────────────────────────┤
    │     Services (Relay Orchestration)  │  ← Validation, decoding, sequencing
    ├─────────────────────────────────────┤
    │      ServiceM8 Client (Outbound)    │  ← Authenticated httpx calls
    ├─────────────────────────────────────┤
    │           Schemas (Contracts)       │  ← Pydantic request/response models
    └─────────────────────────────────────┘

    There is no persistence layer: nothing outlives a single request.
"""

__version__ = "1.0.0"
