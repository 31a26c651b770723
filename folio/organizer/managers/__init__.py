"""Mutation engine for the organizer.

Each module provides async functions that encapsulate reads, validation and
the atomic batch for one kind of record.  Every write operation takes the
document store first and the acting user id explicitly, and raises domain
exceptions from ``folio.organizer.errors`` (never HTTP exceptions -- that
translation is the router's responsibility).
"""
