"""
Retrieval-augmented context engine for brand content generation.
"""
