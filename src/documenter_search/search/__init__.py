"""
Search indexing and query engine package.

- analyzers: tokenizer and filters shared by index builds and queries
- payload: decoding of generated search-index payloads
- index: immutable inverted index and its builder
- scoring: tiered relevance scoring
- fuzzy / phrase: typo tolerance and phrase proximity
- snippet: excerpt windows and highlighting
- engine: ranking, pagination and cooperative cancellation
"""
