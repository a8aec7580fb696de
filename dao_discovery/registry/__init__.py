"""
Registry discovery: wire normalization, query composition, pagination,
the discovery client and per-view sessions.
"""
