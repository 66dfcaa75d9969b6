# Middleware package init
"""
Signature Relay - Middleware Package
======================================

Middleware Chain (outermost first):
    Request → [Request ID] → [Logging] → [CORS] → Route Handler

    1. Request ID: Generate correlation ID before anything logs
    2. Logging: Access line with the request ID, including OPTIONS preflights
    3. CORS: Answers OPTIONS directly; stamps headers on every other response,
       including error responses produced by the exception handlers
"""
