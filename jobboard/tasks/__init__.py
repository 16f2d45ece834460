"""
ART Job Board - Background Tasks
"""
