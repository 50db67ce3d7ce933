"""
Search Module - listing and candidate search with a store fallback.
"""
