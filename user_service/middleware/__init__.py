"""
User Service — Middleware Package
===================================

What:  Cross-cutting concerns applied to every request.

Middleware Chain (outermost first):
    Request → [OpenTelemetry server span] → [Request ID] → [Logging] → Route Handler

    - Request ID runs before Logging so every access log line carries the id.
    - Unhandled exceptions never reach these layers as exceptions: the global
      handlers in main.py turn them into 500 responses first.
"""
