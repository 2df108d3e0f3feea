"""Records application for the hospital backend.

This package contains models, services, serializers, views and route
registrations for patient records, billing and revenue integrity.
"""
