"""
Shared utilities used across all domain layers.

- stopwords.py: stopword sets and token cleanup for keyword counting
"""
