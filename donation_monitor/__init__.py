"""
Donation Monitor — ingests an EVM chain's blocks, records incoming payments
to a monitored address, extracts any message embedded in the transaction
payload and scores each donation by amount and message substance.

Modular layout: chain reader, message extraction, scoring, ledger,
ingestion orchestration, and a thin API server.
"""

__version__ = "0.1.0"
