"""
Pneuma - Network layer for Aletheia.

Provides the REST client for the full node and the keyless services,
BCS encoding, transaction building and simulation.

Uses httpx for HTTP; no generated API client.
"""
