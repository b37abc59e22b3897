"""
Engine core: configuration, persistence, rate limiting, retrieval, context assembly and maintenance.
"""
