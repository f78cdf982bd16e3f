"""
coursereview
Course review platform backend: curriculum visibility, one-time academic
selection, review feed and idempotent reference-data loading.
"""
__version__ = "1.0.0"
