"""
Core tests – models, the session engine services, notifications and audit.
"""
import json
from datetime import timedelta
from io import StringIO
from unittest import mock

from django.core import mail
from django.core.management import call_command
from django.core.management.base import CommandError
from django.core.exceptions import ValidationError as DjangoValidationError
from django.db import DatabaseError
from django.test import RequestFactory, TestCase, override_settings
from django.urls import reverse
from django.utils import timezone

from core.models import (
    Account, AuditLog, Classroom, Exam, ExamSession, Option, Question, ViolationLog,
)
from core.services import clock, notifications, results, scoring, sessions, violations
from core.services.errors import (
    InvalidState, NotFound, ResultNotYetAvailable, SessionStillInProgress,
    Unauthorized, ValidationError,
)
from core.utils.audit import get_client_ip, log_action


def frozen_at(moment):
    """Pin the server clock the services read."""
    return mock.patch('django.utils.timezone.now', return_value=moment)


class CoreTestBase(TestCase):
    """Shared fixtures: one teacher, two students, a 2-question 10-mark exam."""

    @classmethod
    def setUpTestData(cls):
        cls.t0 = timezone.now().replace(microsecond=0)
        cls.teacher = Account.objects.create_user(
            username='teacher1', email='teacher@school.local', password='TeachPass123!',
            full_name='Test Teacher', role=Account.ROLE_TEACHER,
        )
        cls.student = Account.objects.create_user(
            username='student1', email='s1@school.local', password='StudPass123!',
            full_name='Alice Student',
        )
        cls.other = Account.objects.create_user(
            username='student2', email='s2@school.local', password='StudPass123!',
            full_name='Bob Student',
        )
        cls.exam = Exam.objects.create(
            title='Algebra Midterm', duration_minutes=10, total_marks=10,
            scheduled_start=cls.t0 - timedelta(minutes=1),
            scheduled_end=cls.t0 + timedelta(minutes=30),
            created_by=cls.teacher, is_active=True,
        )
        cls.q1 = Question.objects.create(exam=cls.exam, number=1, text='2 + 2?', marks=5)
        cls.q1_a = Option.objects.create(question=cls.q1, number=1, text='4', is_correct=True)
        cls.q1_b = Option.objects.create(question=cls.q1, number=2, text='5')
        cls.q2 = Question.objects.create(exam=cls.exam, number=2, text='3 * 3?', marks=5)
        cls.q2_c = Option.objects.create(question=cls.q2, number=1, text='6')
        cls.q2_d = Option.objects.create(question=cls.q2, number=2, text='9', is_correct=True)

    def start(self, student=None, at=None):
        with frozen_at(at or self.t0):
            session, _, _ = sessions.start_session(student or self.student, self.exam.id)
        return session


# ── Models ─────────────────────────────────────────────────────────

class AccountModelTest(TestCase):

    def test_create_user(self):
        a = Account.objects.create_user(
            username='jane', email='Jane@School.LOCAL', password='Pass123!',
        )
        self.assertEqual(a.email, 'jane@school.local')
        self.assertTrue(a.check_password('Pass123!'))
        self.assertTrue(a.is_student)
        self.assertFalse(a.is_staff)

    def test_create_superuser_is_admin(self):
        a = Account.objects.create_superuser('root', 'root@school.local', 'Pass123!')
        self.assertTrue(a.is_admin)
        self.assertEqual(a.role, Account.ROLE_ADMIN)

    def test_email_required(self):
        with self.assertRaises(ValueError):
            Account.objects.create_user(username='x', email='')

    def test_display_name_falls_back_to_username(self):
        self.assertEqual(Account(username='bob').display_name, 'bob')


class ClassroomModelTest(CoreTestBase):

    def test_subject_code_uppercased(self):
        c = Classroom.objects.create(name='Maths', subject_code=' ma101 ', teacher=self.teacher)
        self.assertEqual(c.subject_code, 'MA101')

    @override_settings(CLASSROOM_MAX_CAPACITY=1)
    def test_enroll_respects_capacity(self):
        c = Classroom.objects.create(name='Maths', teacher=self.teacher)
        c.enroll(self.student)
        c.enroll(self.student)  # already enrolled, no growth
        with self.assertRaises(DjangoValidationError):
            c.enroll(self.other)
        self.assertTrue(c.is_enrolled(self.student))
        self.assertFalse(c.is_enrolled(self.other))


class ExamModelTest(CoreTestBase):

    def test_extend_moves_duration_and_end(self):
        end = self.exam.scheduled_end
        self.exam.extend(20)
        self.exam.refresh_from_db()
        self.assertEqual(self.exam.duration_minutes, 30)
        self.assertEqual(self.exam.scheduled_end, end + timedelta(minutes=20))

    def test_question_marks_total(self):
        self.assertEqual(self.exam.get_question_marks_total(), 10)

    def test_private_exam_access(self):
        c = Classroom.objects.create(name='Maths', teacher=self.teacher)
        c.enroll(self.student)
        self.exam.access_type = Exam.ACCESS_PRIVATE
        self.exam.classroom = c
        self.assertTrue(self.exam.is_accessible_by(self.student))
        self.assertFalse(self.exam.is_accessible_by(self.other))

    def test_answer_key_hidden_unless_revealed(self):
        hidden = self.exam.to_dict(include_questions=True)
        self.assertNotIn('is_correct', hidden['questions'][0]['options'][0])
        shown = self.exam.to_dict(include_questions=True, reveal_answers=True)
        self.assertTrue(shown['questions'][0]['options'][0]['is_correct'])


# ── Clock ──────────────────────────────────────────────────────────

class ClockTest(CoreTestBase):

    def test_remaining_bounded_by_duration(self):
        session = self.start()
        self.assertEqual(
            clock.remaining_seconds(session, self.exam, self.t0 + timedelta(minutes=5)),
            5 * 60,
        )

    def test_extension_seen_on_next_read(self):
        session = self.start()
        self.exam.extend(20)
        exam = Exam.objects.get(pk=self.exam.pk)
        self.assertEqual(
            clock.remaining_seconds(session, exam, self.t0 + timedelta(minutes=12)),
            18 * 60,
        )

    def test_remaining_bounded_by_scheduled_end(self):
        session = self.start()
        self.exam.duration_minutes = 120
        self.assertEqual(clock.allowed_end(session, self.exam), self.exam.scheduled_end)

    def test_never_negative(self):
        session = self.start()
        later = self.t0 + timedelta(hours=2)
        self.assertEqual(clock.remaining_seconds(session, self.exam, later), 0)
        self.assertTrue(clock.snapshot(session, self.exam, later)['expired'])

    def test_window_pulled_back_leaves_no_time(self):
        session = self.start()
        Exam.objects.filter(pk=self.exam.pk).update(
            scheduled_end=self.t0 + timedelta(minutes=2),
        )
        with frozen_at(self.t0 + timedelta(minutes=3)):
            data = sessions.resync(session.id, self.student)
        self.assertEqual(data['remaining_seconds'], 0)
        self.assertTrue(data['expired'])
        self.assertEqual(data['status'], ExamSession.STATUS_IN_PROGRESS)


# ── Scoring ────────────────────────────────────────────────────────

class ScoringTest(CoreTestBase):

    def test_partial_score(self):
        answers = [
            {'question_id': self.q1.id, 'selected_option_id': self.q1_a.id},
            {'question_id': self.q2.id, 'selected_option_id': self.q2_c.id},
        ]
        self.assertEqual(scoring.score(self.exam, answers), 5)

    def test_last_answer_per_question_wins(self):
        answers = [
            {'question_id': self.q1.id, 'selected_option_id': self.q1_a.id},
            {'question_id': self.q1.id, 'selected_option_id': self.q1_a.id},
            {'question_id': self.q2.id, 'selected_option_id': self.q2_d.id},
            {'question_id': self.q2.id, 'selected_option_id': self.q2_c.id},
        ]
        self.assertEqual(scoring.score(self.exam, answers), 5)

    def test_unknown_ids_score_zero(self):
        answers = [
            {'question_id': 99999, 'selected_option_id': self.q1_a.id},
            {'question_id': self.q1.id, 'selected_option_id': 99999},
        ]
        self.assertEqual(scoring.score(self.exam, answers), 0)

    def test_normalize_accepts_camel_case_and_drops_blanks(self):
        normalized = scoring.normalize_answers([
            {'questionId': str(self.q1.id), 'selectedOptionId': self.q1_a.id},
            {'question_id': self.q2.id, 'selected_option_id': None},
        ])
        self.assertEqual(normalized, [
            {'question_id': self.q1.id, 'selected_option_id': self.q1_a.id},
        ])

    def test_normalize_rejects_malformed_payloads(self):
        for payload in ({'q': 1}, ['x'], [{'selected_option_id': 1}]):
            with self.assertRaises(ValidationError):
                scoring.normalize_answers(payload)


# ── Session lifecycle ──────────────────────────────────────────────

class StartSessionTest(CoreTestBase):

    def test_start_is_idempotent(self):
        first = self.start()
        with frozen_at(self.t0 + timedelta(minutes=3)):
            again, _, created = sessions.start_session(self.student, self.exam.id)
        self.assertFalse(created)
        self.assertEqual(again.id, first.id)
        self.assertEqual(again.start_time, self.t0)
        self.assertEqual(ExamSession.objects.filter(student=self.student).count(), 1)

    def test_outside_window_rejected(self):
        with frozen_at(self.t0 + timedelta(hours=1)):
            with self.assertRaises(InvalidState):
                sessions.start_session(self.student, self.exam.id)

    def test_inactive_exam_rejected(self):
        Exam.objects.filter(pk=self.exam.pk).update(is_active=False)
        with self.assertRaises(InvalidState):
            self.start()

    def test_private_exam_requires_enrollment(self):
        c = Classroom.objects.create(name='Maths', teacher=self.teacher)
        Exam.objects.filter(pk=self.exam.pk).update(
            access_type=Exam.ACCESS_PRIVATE, classroom=c,
        )
        with self.assertRaises(Unauthorized):
            self.start()

    def test_unknown_exam(self):
        with self.assertRaises(NotFound):
            sessions.start_session(self.student, '00000000-0000-0000-0000-000000000000')

    def test_terminal_session_cannot_restart(self):
        session = self.start()
        with frozen_at(self.t0 + timedelta(minutes=2)):
            sessions.submit_session(session.id, self.student, [])
        with self.assertRaises(InvalidState):
            self.start(at=self.t0 + timedelta(minutes=3))


class SubmitSessionTest(CoreTestBase):

    def test_submit_scores_and_closes(self):
        session = self.start()
        with frozen_at(self.t0 + timedelta(minutes=4)):
            outcome = sessions.submit_session(session.id, self.student, [
                {'question_id': self.q1.id, 'selected_option_id': self.q1_a.id},
                {'question_id': self.q2.id, 'selected_option_id': self.q2_c.id},
            ])
        self.assertEqual(outcome.score, 5)
        self.assertEqual(outcome.total_marks, 10)
        session.refresh_from_db()
        self.assertEqual(session.status, ExamSession.STATUS_SUBMITTED)
        self.assertEqual(session.end_time, self.t0 + timedelta(minutes=4))
        self.assertEqual(len(session.answers), 2)

    def test_second_submit_rejected_and_score_frozen(self):
        session = self.start()
        with frozen_at(self.t0 + timedelta(minutes=1)):
            sessions.submit_session(session.id, self.student, [])
        with frozen_at(self.t0 + timedelta(minutes=2)):
            with self.assertRaises(InvalidState):
                sessions.submit_session(session.id, self.student, [
                    {'question_id': self.q1.id, 'selected_option_id': self.q1_a.id},
                ])
        session.refresh_from_db()
        self.assertEqual(session.score, 0)

    def test_other_student_cannot_submit(self):
        session = self.start()
        with self.assertRaises(Unauthorized):
            sessions.submit_session(session.id, self.other, [])

    def test_unknown_session(self):
        with self.assertRaises(NotFound):
            sessions.submit_session('not-a-uuid', self.student, [])

    def test_unknown_questions_not_recorded(self):
        session = self.start()
        with frozen_at(self.t0 + timedelta(minutes=1)):
            sessions.submit_session(session.id, self.student, [
                {'question_id': 99999, 'selected_option_id': 1},
            ])
        session.refresh_from_db()
        self.assertEqual(session.answers, [])

    def test_resync_reports_remaining(self):
        session = self.start()
        with frozen_at(self.t0 + timedelta(minutes=5)):
            data = sessions.resync(session.id, self.student)
        self.assertEqual(data['remaining_seconds'], 300)
        self.assertEqual(data['status'], ExamSession.STATUS_IN_PROGRESS)


# ── Violations ─────────────────────────────────────────────────────

class ViolationTest(CoreTestBase):

    def report(self, session, seconds, answers=None, kind='tab_switch'):
        with frozen_at(self.t0 + timedelta(seconds=seconds)):
            return violations.report_violation(session.id, self.student, kind, answers)

    def test_three_violations_terminate(self):
        session = self.start()
        answers = [{'question_id': self.q1.id, 'selected_option_id': self.q1_a.id}]

        first = self.report(session, 10)
        second = self.report(session, 12)
        third = self.report(session, 14, answers)

        self.assertEqual((first.violation_count, first.is_terminated), (1, False))
        self.assertEqual((second.violation_count, second.is_terminated), (2, False))
        self.assertEqual(third.violation_count, 3)
        self.assertTrue(third.is_terminated)
        self.assertEqual(third.score, 5)

        session.refresh_from_db()
        self.assertEqual(session.status, ExamSession.STATUS_TERMINATED)
        self.assertEqual(session.end_time, self.t0 + timedelta(seconds=14))
        self.assertEqual(session.violation_logs.count(), 3)

        with self.assertRaises(InvalidState):
            self.report(session, 16)
        with self.assertRaises(InvalidState):
            sessions.submit_session(session.id, self.student, [])

    def test_termination_without_answers_scores_zero(self):
        session = self.start()
        for seconds in (10, 12, 14):
            outcome = self.report(session, seconds)
        self.assertTrue(outcome.is_terminated)
        self.assertEqual(outcome.score, 0)

    def test_debounce_drops_near_duplicates(self):
        session = self.start()
        self.report(session, 10)
        dup = self.report(session, 10.5, kind='focus_loss')
        self.assertFalse(dup.accepted)
        self.assertEqual(dup.violation_count, 1)
        self.assertEqual(ViolationLog.objects.filter(session=session).count(), 1)

        # Window is measured from the last accepted report
        after = self.report(session, 11.2)
        self.assertTrue(after.accepted)
        self.assertEqual(after.violation_count, 2)

    def test_unknown_type_rejected(self):
        session = self.start()
        with self.assertRaises(ValidationError):
            self.report(session, 10, kind='screenshot')

    def test_after_submit_rejected(self):
        session = self.start()
        with frozen_at(self.t0 + timedelta(seconds=5)):
            sessions.submit_session(session.id, self.student, [])
        with self.assertRaises(InvalidState):
            self.report(session, 10)

    @override_settings(PROCTOR_VIOLATION_WARNINGS=0)
    def test_warning_limit_configurable(self):
        session = self.start()
        self.assertTrue(self.report(session, 10).is_terminated)

    def test_failed_termination_write_rolls_back(self):
        session = self.start()
        self.report(session, 10)
        self.report(session, 12)
        with mock.patch(
            'core.services.scoring.score_answers', side_effect=DatabaseError('disk full'),
        ):
            with self.assertRaises(DatabaseError):
                self.report(session, 14)

        session.refresh_from_db()
        self.assertEqual(session.status, ExamSession.STATUS_IN_PROGRESS)
        self.assertEqual(session.violation_count, 2)
        self.assertIsNone(session.end_time)
        self.assertIsNone(session.score)
        self.assertEqual(session.violation_logs.count(), 2)

        # Retrying the report terminates cleanly
        retry = self.report(session, 16)
        self.assertTrue(retry.is_terminated)
        self.assertEqual(retry.violation_count, 3)


# ── Results ────────────────────────────────────────────────────────

class ResultsTest(CoreTestBase):

    def test_hidden_until_scheduled_end(self):
        session = self.start()
        with frozen_at(self.t0 + timedelta(minutes=2)):
            sessions.submit_session(session.id, self.student, [])
        with self.assertRaises(ResultNotYetAvailable) as ctx:
            results.get_result(self.student, self.exam.id, now=self.t0 + timedelta(minutes=5))
        self.assertIn('scheduled_end', ctx.exception.details)

    def test_available_after_scheduled_end(self):
        session = self.start()
        with frozen_at(self.t0 + timedelta(minutes=2)):
            sessions.submit_session(session.id, self.student, [
                {'question_id': self.q1.id, 'selected_option_id': self.q1_a.id},
            ])
        found = results.get_result(self.student, self.exam.id, now=self.t0 + timedelta(hours=1))
        self.assertEqual(found.score, 5)
        payload = results.serialize_result(found)
        self.assertIn('is_correct', payload['exam']['questions'][0]['options'][0])

    def test_abandoned_session_still_in_progress(self):
        self.start()
        with self.assertRaises(SessionStillInProgress):
            results.get_result(self.student, self.exam.id, now=self.t0 + timedelta(hours=1))

    def test_no_attempt(self):
        with self.assertRaises(NotFound):
            results.get_result(self.student, self.exam.id)

    def test_abandoned_session_practically_closed(self):
        session = self.start()
        self.assertFalse(results.is_practically_closed(session, self.exam, self.t0))
        self.assertTrue(results.is_practically_closed(
            session, self.exam, self.t0 + timedelta(minutes=11),
        ))
        session.refresh_from_db()
        self.assertEqual(session.status, ExamSession.STATUS_IN_PROGRESS)

    def test_available_exams_lists_status(self):
        self.start()
        with frozen_at(self.t0 + timedelta(minutes=1)):
            listing = results.available_exams(self.student)
            other_listing = results.available_exams(self.other)
        self.assertEqual(listing[0]['status'], ExamSession.STATUS_IN_PROGRESS)
        self.assertTrue(listing[0]['can_resume'])
        self.assertEqual(other_listing[0]['status'], results.NOT_STARTED)

    def test_private_exam_hidden_from_non_members(self):
        c = Classroom.objects.create(name='Maths', teacher=self.teacher)
        c.enroll(self.student)
        Exam.objects.filter(pk=self.exam.pk).update(
            access_type=Exam.ACCESS_PRIVATE, classroom=c,
        )
        self.assertEqual(len(results.available_exams(self.student)), 1)
        self.assertEqual(results.available_exams(self.other), [])
        self.assertEqual(results.enrolled_classes(self.student)[0]['exam_count'], 1)

    def test_results_board_placeholders(self):
        c = Classroom.objects.create(name='Maths', teacher=self.teacher)
        c.enroll(self.student, self.other)
        Exam.objects.filter(pk=self.exam.pk).update(
            access_type=Exam.ACCESS_PRIVATE, classroom=c,
        )
        session = self.start()
        with frozen_at(self.t0 + timedelta(minutes=2)):
            sessions.submit_session(session.id, self.student, [])

        rows = results.exam_results(Exam.objects.get(pk=self.exam.pk))
        self.assertEqual(len(rows), 2)
        self.assertEqual(rows[0]['student']['username'], 'student1')
        self.assertEqual(rows[0]['score'], 0)
        self.assertEqual(rows[1]['status'], results.NOT_ATTENDED)


# ── Notifications ──────────────────────────────────────────────────

@override_settings(PROCTOR_ASYNC_NOTIFICATIONS=False)
class NotificationTest(CoreTestBase):

    def setUp(self):
        self.classroom = Classroom.objects.create(name='Maths', teacher=self.teacher)
        self.classroom.enroll(self.student, self.other)
        self.exam.classroom = self.classroom

    def test_publish_emails_students(self):
        count = notifications.notify_exam_published(self.exam, self.teacher)
        self.assertEqual(count, 2)
        self.assertEqual(len(mail.outbox), 2)
        self.assertEqual(mail.outbox[0].subject, 'Exam Scheduled: Algebra Midterm')
        self.assertEqual(mail.outbox[0].reply_to, ['teacher@school.local'])

    def test_public_exam_sends_nothing(self):
        self.exam.classroom = None
        self.assertEqual(notifications.notify_exam_published(self.exam, self.teacher), 0)
        self.assertEqual(len(mail.outbox), 0)

    def test_delivery_failure_swallowed(self):
        with mock.patch(
            'core.services.notifications.EmailMultiAlternatives.send',
            side_effect=OSError('smtp down'),
        ):
            sent = notifications._deliver([('x@school.local', 'Subject', '<p>Hi</p>')])
        self.assertEqual(sent, 0)


# ── Audit ──────────────────────────────────────────────────────────

class AuditTest(CoreTestBase):

    def setUp(self):
        self.factory = RequestFactory()

    def test_log_action_records_user(self):
        request = self.factory.post('/', HTTP_USER_AGENT='pytest-agent', REMOTE_ADDR='10.0.0.5')
        request.user = self.student
        entry = log_action(request, 'START', 'ExamSession', 'abc', 'Started')
        self.assertEqual(entry.username, 'student1')
        self.assertEqual(entry.ip_address, '10.0.0.5')
        self.assertEqual(AuditLog.objects.filter(action='START').count(), 1)

    def test_system_action(self):
        entry = log_action(None, 'EXTEND', 'Exam', self.exam.id)
        self.assertEqual(entry.username, 'system')
        self.assertIsNone(entry.user)

    @override_settings(TRUSTED_PROXIES=['10.0.0.1'])
    def test_forwarded_for_only_from_trusted_proxy(self):
        trusted = self.factory.get('/', REMOTE_ADDR='10.0.0.1', HTTP_X_FORWARDED_FOR='1.2.3.4, 10.0.0.1')
        spoofed = self.factory.get('/', REMOTE_ADDR='8.8.8.8', HTTP_X_FORWARDED_FOR='1.2.3.4')
        self.assertEqual(get_client_ip(trusted), '1.2.3.4')
        self.assertEqual(get_client_ip(spoofed), '8.8.8.8')


# ── Auth API ───────────────────────────────────────────────────────

class AuthViewTest(CoreTestBase):

    def post_json(self, name, payload):
        return self.client.post(
            reverse(name), data=json.dumps(payload), content_type='application/json',
        )

    def test_login_success(self):
        r = self.post_json('auth:login', {'username': 'student1', 'password': 'StudPass123!'})
        self.assertEqual(r.status_code, 200)
        self.assertEqual(r.json()['user']['role'], Account.ROLE_STUDENT)
        self.assertTrue(AuditLog.objects.filter(action='LOGIN', user=self.student).exists())

    def test_login_failure(self):
        r = self.post_json('auth:login', {'username': 'student1', 'password': 'wrong'})
        self.assertEqual(r.status_code, 401)

    def test_login_missing_fields(self):
        r = self.post_json('auth:login', {'username': 'student1'})
        self.assertEqual(r.status_code, 400)

    def test_me_requires_login(self):
        r = self.client.get(reverse('auth:me'))
        self.assertEqual(r.status_code, 302)

    def test_me_and_logout(self):
        self.client.force_login(self.teacher)
        r = self.client.get(reverse('auth:me'))
        self.assertEqual(r.json()['user']['username'], 'teacher1')
        r = self.client.post(reverse('auth:logout'))
        self.assertEqual(r.status_code, 200)
        self.assertTrue(AuditLog.objects.filter(action='LOGOUT', user=self.teacher).exists())

    def test_security_headers(self):
        r = self.client.get(reverse('auth:me'))
        self.assertIn('Content-Security-Policy', r)
        self.assertIn('fullscreen=(self)', r['Permissions-Policy'])


# ── Management commands ────────────────────────────────────────────

class CreateAccountCommandTest(TestCase):

    def test_create_teacher(self):
        out = StringIO()
        call_command(
            'create_account', 'mrsmith', email='smith@school.local',
            role='teacher', password='Pass123!', stdout=out,
        )
        user = Account.objects.get(username='mrsmith')
        self.assertTrue(user.is_teacher)
        self.assertIn('Teacher account created', out.getvalue())

    def test_create_admin_is_superuser(self):
        call_command(
            'create_account', 'root', email='root@school.local',
            role='admin', password='Pass123!', stdout=StringIO(),
        )
        self.assertTrue(Account.objects.get(username='root').is_superuser)

    def test_duplicate_username(self):
        Account.objects.create_user(username='taken', email='t@school.local')
        with self.assertRaises(CommandError):
            call_command('create_account', 'taken', email='t@school.local', password='x')


class MigrationsInSyncTest(TestCase):

    def test_no_pending_model_changes(self):
        out = StringIO()
        try:
            call_command('makemigrations', 'core', '--check', '--dry-run', stdout=out)
        except SystemExit:
            self.fail(f'Models have changes not reflected in migrations:\n{out.getvalue()}')
