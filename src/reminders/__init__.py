"""Reminder pipeline: scan upcoming appointments, queue jobs, dispatch them.

The scanner and the dispatcher run independently and share nothing but
the `reminder_jobs` table, so any number of replicas can run both.
"""
