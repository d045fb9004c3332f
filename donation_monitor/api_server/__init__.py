"""
API server package — thin HTTP surface over the donation service.

Exposes the query interface (list / get donations), the on-demand trigger
(run a scan cycle, process one transaction) and the monitored address.
All data comes from the in-memory ledger.
"""
