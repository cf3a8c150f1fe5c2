"""Scheduler module for the notification pipeline.

Schedule overview:
  - hourly (minute 0)  - Deadline reminder scan, followed by a dispatch pass
  - every 5 minutes    - Email dispatch

Both intervals are configurable through ``Settings``.
"""
