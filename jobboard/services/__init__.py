"""
ART Job Board - Services Package

Business logic for the job board.
"""
