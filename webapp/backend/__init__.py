"""
GA4 home dashboard backend
"""
