"""
Core domain: models, pure matching heuristics, source profiles and errors.
"""
