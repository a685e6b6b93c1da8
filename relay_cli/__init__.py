"""
Relay CLI - Session Relay

Commands:
- relay-cli serve - Run the relay server
- relay-cli token - Mint a session token
- relay-cli session show/stats - Inspect a running server
"""

__version__ = "0.1.0"
