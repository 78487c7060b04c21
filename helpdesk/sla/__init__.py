"""
SLA Module
==========

SLA policies, deadline calculation, breach detection and the periodic
breach sweep.
"""
