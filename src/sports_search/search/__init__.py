"""
Query engine package.

This package provides the pure, I/O-free parts of search:
- fuzzy: bounded Levenshtein matching, scoring and did-you-mean suggestions
- boolean_query: AND/OR/NOT parsing and left-to-right evaluation
- validation: query normalization, sanitization and validation
- query_builder: translation of queries into document store predicates
- query_utils: fingerprints and human-readable descriptions
- ranking: client-side filtering, ranking, facets and pagination
"""
