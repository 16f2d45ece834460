"""
ART Job Board - Utilities Package

Error handling, security and permission helpers.
"""
