"""
Relay server: WebSocket transport, HTTP surface and observability for the
session relay core.
"""
