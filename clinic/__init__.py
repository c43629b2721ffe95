"""Clinic application for the HealthConnect backend.

This package contains models, serializers, services, views and route
registrations for accounts, doctors, slots, appointments and the
wellness calendar.
"""
