"""
Exam session engine: clock reconciliation, violation tracking, scoring,
the session state machine and the read-only result queries.
"""
