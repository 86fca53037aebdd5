"""
Automated aircraft-table extractor.

This package periodically reads the aircraft table of an ADS-B Exchange
style page, normalizes its rows into flat records, keeps a bounded history
of snapshots and exports them as CSV and JSON files.

The pieces are layered so that each can be tested without a browser:
table sources (common), pure normalization and serialization, the history
buffer, and the scheduler that drives them (driver).
"""
