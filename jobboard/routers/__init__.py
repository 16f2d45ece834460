"""
ART Job Board - API Routers Package
"""
