"""
Routing Module
==============

Bounded context for getting a new ticket to the right person.

Responsibilities:
- Classify ticket text into a coarse category
- Pick the highest-priority active assignment rule matching the ticket
- Rotate tickets across a team's members (round-robin from history)
- Manage teams, members, rules and the assignment history
"""
