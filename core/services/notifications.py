"""
Fire-and-forget email notifications.

Delivery runs on a daemon thread so the triggering request never waits on
SMTP; every failure is logged per recipient and swallowed.
"""
import logging
import threading

from django.conf import settings
from django.core.mail import EmailMultiAlternatives
from django.utils.html import escape, strip_tags

logger = logging.getLogger('proctor.mail')


def _deliver(messages, reply_to=None):
    sent = 0
    for recipient, subject, html in messages:
        try:
            email = EmailMultiAlternatives(
                subject,
                strip_tags(html),
                settings.DEFAULT_FROM_EMAIL,
                [recipient],
                reply_to=[reply_to] if reply_to else None,
            )
            email.attach_alternative(html, 'text/html')
            email.send(fail_silently=False)
            sent += 1
        except Exception:
            logger.exception('MAIL_FAILED | to=%s | subject=%s', recipient, subject)
    logger.info('MAIL_BATCH_DONE | sent=%s/%s', sent, len(messages))
    return sent


def dispatch(messages, reply_to=None):
    """Send (recipient, subject, html) triples without blocking the caller."""
    if not messages:
        return
    if getattr(settings, 'PROCTOR_ASYNC_NOTIFICATIONS', True):
        worker = threading.Thread(
            target=_deliver, args=(messages, reply_to),
            name='proctor-mail', daemon=True,
        )
        worker.start()
    else:
        _deliver(messages, reply_to)


def _exam_published_html(exam, student, teacher):
    start = exam.scheduled_start
    return (
        '<h1>New Exam Scheduled</h1>'
        f'<p>Hello {escape(student.display_name)},</p>'
        f'<p>A new exam has been scheduled for your class '
        f'<strong>{escape(exam.classroom.name)}</strong> by '
        f'<strong>{escape(teacher.display_name)}</strong>.</p>'
        f'<h3>{escape(exam.title)}</h3>'
        f'<p><strong>Date:</strong> {start:%A, %B %d, %Y}</p>'
        f'<p><strong>Time:</strong> {start:%H:%M} UTC</p>'
        f'<p><strong>Duration:</strong> {exam.duration_minutes} Minutes</p>'
        f'<p><strong>Questions:</strong> {exam.questions.count()}</p>'
        f'<p><strong>Total Marks:</strong> {exam.total_marks}</p>'
        '<p>Please login to the portal on time to take the exam.</p>'
    )


def notify_exam_published(exam, teacher):
    """
    Email every enrolled student of a class exam that it was published.

    Returns the number of students queued for notification.
    """
    if exam.classroom_id is None:
        return 0

    students = [s for s in exam.classroom.students.all() if s.email]
    subject = f'Exam Scheduled: {exam.title}'
    messages = [
        (s.email, subject, _exam_published_html(exam, s, teacher))
        for s in students
    ]
    logger.info(
        'MAIL_QUEUED | exam=%s | recipients=%s | teacher=%s',
        exam.id, len(messages), teacher.username,
    )
    dispatch(messages, reply_to=teacher.email)
    return len(messages)
