"""
Payment processor webhook ingestion: signature checks, deduplication and event handlers.
"""
