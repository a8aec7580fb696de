"""
DAO discovery and search client layer.

Queries the paginated DAO registry, composes search/filter/sort requests,
normalizes wire-format records into view-models and keeps the pagination and
aggregate statistics state a discovery view renders from.
"""
