# Services package init
"""
Signature Relay - Services Layer
==================================

Service Inventory:
    - ServiceM8Client: Authenticated httpx calls to the ServiceM8 attachment API
    - SignatureRelay: Validates and decodes the signature, then runs the
      create-metadata → upload-binary sequence through ServiceM8Client

Services know nothing about HTTP requests or responses on our side; they
raise exceptions from signature_relay.exceptions and the routes let the
global handlers format them.
"""
