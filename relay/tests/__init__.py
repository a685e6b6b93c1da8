"""
Test suite for the session relay.

Focus areas:
- Replay completeness and ordering
- Fan-out isolation and send-failure handling
- Registry uniqueness under concurrency
- Eviction policies
- WebSocket transport, HTTP surface and CLI
"""
