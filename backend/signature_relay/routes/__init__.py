# Routes package init
"""
Signature Relay - API Routes Package
======================================

Route Inventory:
    - signature.py:  POST /api/signature-upload   (relay a signature to ServiceM8)
                     other methods                 (405, via the router)
    - health.py:     GET  /health                  (service health check)

Routes stay thin: parse the request, call the service, let the global
exception handlers format failures.
"""
