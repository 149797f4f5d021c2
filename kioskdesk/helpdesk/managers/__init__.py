"""Helpdesk managers.

Each module provides async functions for one area (users, workspaces,
team, kiosks, tickets, comments, attachments, dashboard).  Managers accept a
``DocumentStore`` and the caller's ``Identity`` as parameters and raise
domain exceptions from ``kioskdesk.helpdesk.errors``, never HTTP
exceptions -- the app-level exception handler does that translation.
"""
