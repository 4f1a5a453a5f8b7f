"""
Student Support Client

Async client for the student-support REST backend: ticket triage,
crisis-keyword scoring, counselor assignment, notifications and the help
center, with a stale-while-revalidate cache for ticket lists.
"""

__version__ = "1.0.0"
