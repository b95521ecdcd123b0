"""
Site search: index construction and fuzzy lookup.

This package provides both halves of the in-site search:
- extraction: regex-based title, heading and plain-text extraction
- indexer: content tree walk producing SearchRecords and the JSON artifact
- models: persisted records and runtime searchable items
- fuzzy: typo-tolerant substring scoring and the matcher
- engine: load-once index loader and search structure
- session: interactive query state, result cursor and navigation
"""
