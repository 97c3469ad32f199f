"""
Shared Kernel

Base classes and utilities shared by the studio, inventory, calendar and
signature contexts: value objects, domain events and the message bus that
routes events to handlers once a transaction commits.
"""
