"""
Tickets Module
==============

Bounded context for the ticket lifecycle.

Responsibilities:
- Create tickets and drive classify -> route -> assign -> SLA attach
- Track status changes and replies, recording the first response once
- Trigger inline SLA breach checks on first response and resolution
"""
