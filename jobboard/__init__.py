"""
ART Job Board - Roofing Estimate Tracking Platform

Job board backend for roofing estimates: client loyalty tiers,
plan-type pricing, estimate status workflow and pricing snapshots.
"""

__version__ = "0.1.0"
