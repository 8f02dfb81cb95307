"""
Clinic Booking Service

A FastAPI-based appointment booking backend for a small clinic, with
session authentication, role-based access control and slot-conflict
prevention.
"""

__version__ = "1.0.0"
