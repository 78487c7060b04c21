"""
Helpdesk Routing & SLA Service
==============================

Customer-support ticket backend:
- Tickets: lifecycle, first-response tracking, messages
- Routing: keyword classification, prioritized assignment rules, round-robin
- SLA: policy deadlines, breach detection and team notifications
"""

__version__ = "1.0.0"
