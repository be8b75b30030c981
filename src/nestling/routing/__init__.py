"""Routing — ordered regex route table and handler resolution.

Routes are registered during setup and frozen into an immutable tuple
when the owning dispatcher initialises.
"""
