"""
Data providers package initialization
"""
from .ga4_provider import GA4ReportSource

__all__ = ['GA4ReportSource']
