"""
dex - Venues: pricing models, adapters and the venue registry.
"""
