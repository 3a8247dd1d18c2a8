"""Core resolution components: address classification, extraction, parsing, fetching, assembly."""
