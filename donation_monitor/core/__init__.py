"""
Core definitions shared across the chain reader, ledger, ingestion and API
layers: the application exception hierarchy.
"""
