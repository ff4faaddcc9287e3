"""Realtime table-change stream.

Provides:
- WS /ws/tables/{table} - Change events for one table
"""
