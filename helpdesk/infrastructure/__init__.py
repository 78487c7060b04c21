"""
Infrastructure Layer
=====================

Low-level technical concerns shared by all bounded contexts:
- Database engine and session management
"""
