"""
Core infrastructure: configuration, paths, logging, errors and validation.
"""
