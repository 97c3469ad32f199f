"""Notifications app package.

Stores in-app notifications for staff and administrators. Delivery over
other channels (email, push) is handled outside this service.
"""
