"""
Nexus - Endpoint access layer for Tessera.

Provides the JSON-RPC endpoint client, ABI/artifact handling and the
immutable records (receipts, event records, prepared calls) it returns.

Uses httpx + eth-account + eth-abi instead of the heavyweight web3.py.
"""
