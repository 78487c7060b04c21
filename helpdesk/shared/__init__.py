"""
Shared Kernel Module
====================

Shared infrastructure and API plumbing used across all bounded contexts
(tickets, routing, SLA).

Architecture Pattern: Modular Monolith
- Each module (tickets, routing, sla) is a bounded context
- Shared kernel contains only generic infrastructure

DO NOT add ticket, routing or SLA business logic to the shared kernel.
"""
