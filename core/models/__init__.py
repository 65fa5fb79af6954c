"""
Core models package – all exam portal domain models.
"""
from .mixins import TimestampMixin
from .account import Account
from .classroom import Classroom
from .exam import Exam, Question, Option
from .session import ExamSession, ViolationLog
from .audit import AuditLog

__all__ = [
    # Base
    'TimestampMixin',
    # Users & classes
    'Account', 'Classroom',
    # Exam structure
    'Exam', 'Question', 'Option',
    # Attempts
    'ExamSession', 'ViolationLog',
    # Audit
    'AuditLog',
]
