"""
Student API tests – start/resume, clock resync, violations, submit and results.
"""
import json
from datetime import timedelta
from unittest import mock

from django.test import TestCase
from django.urls import reverse
from django.utils import timezone

from core.models import Account, AuditLog, Exam, ExamSession, Option, Question


def frozen_at(moment):
    return mock.patch('django.utils.timezone.now', return_value=moment)


class StudentApiTestBase(TestCase):
    """Shared fixtures for student API tests."""

    @classmethod
    def setUpTestData(cls):
        cls.t0 = timezone.now().replace(microsecond=0)
        cls.teacher = Account.objects.create_user(
            username='teacher1', email='teacher@school.local', password='TeachPass123!',
            role=Account.ROLE_TEACHER,
        )
        cls.student = Account.objects.create_user(
            username='student1', email='s1@school.local', password='StudPass123!',
        )
        cls.other = Account.objects.create_user(
            username='student2', email='s2@school.local', password='StudPass123!',
        )
        cls.exam = Exam.objects.create(
            title='Physics Quiz', duration_minutes=10, total_marks=10,
            scheduled_start=cls.t0 - timedelta(minutes=1),
            scheduled_end=cls.t0 + timedelta(minutes=30),
            created_by=cls.teacher, is_active=True,
        )
        cls.q1 = Question.objects.create(exam=cls.exam, number=1, text='Unit of force?', marks=5)
        cls.q1_right = Option.objects.create(question=cls.q1, number=1, text='Newton', is_correct=True)
        cls.q1_wrong = Option.objects.create(question=cls.q1, number=2, text='Joule')
        cls.q2 = Question.objects.create(exam=cls.exam, number=2, text='Unit of energy?', marks=5)
        cls.q2_wrong = Option.objects.create(question=cls.q2, number=1, text='Watt')
        cls.q2_right = Option.objects.create(question=cls.q2, number=2, text='Joule', is_correct=True)

    def setUp(self):
        self.client.force_login(self.student)

    def post_json(self, url, payload=None, at=None):
        with frozen_at(at or self.t0):
            return self.client.post(
                url, data=json.dumps(payload or {}), content_type='application/json',
            )

    def get_at(self, url, at=None):
        with frozen_at(at or self.t0):
            return self.client.get(url)

    def start_url(self):
        return reverse('student_api:start_exam', args=[self.exam.id])

    def start(self):
        r = self.post_json(self.start_url())
        return r.json()['session']['id']


# ── Access ─────────────────────────────────────────────────────────

class StudentAccessTest(StudentApiTestBase):

    def test_requires_login(self):
        self.client.logout()
        r = self.client.get(reverse('student_api:available_exams'))
        self.assertEqual(r.status_code, 302)

    def test_teacher_blocked(self):
        self.client.force_login(self.teacher)
        r = self.client.get(reverse('student_api:available_exams'))
        self.assertEqual(r.status_code, 403)
        self.assertEqual(r.json()['code'], 'unauthorized')

    def test_available_exams(self):
        r = self.client.get(reverse('student_api:available_exams'))
        self.assertEqual(r.status_code, 200)
        self.assertEqual(r.json()[0]['title'], 'Physics Quiz')
        self.assertEqual(r.json()[0]['status'], 'not-started')

    def test_enrolled_classes_empty(self):
        r = self.client.get(reverse('student_api:enrolled_classes'))
        self.assertEqual(r.json(), [])


# ── Start / resume ─────────────────────────────────────────────────

class StartExamTest(StudentApiTestBase):

    def test_start_hides_answer_key(self):
        r = self.post_json(self.start_url())
        self.assertEqual(r.status_code, 201)
        data = r.json()
        self.assertFalse(data['resumed'])
        self.assertEqual(data['clock']['remaining_seconds'], 600)
        option = data['exam']['questions'][0]['options'][0]
        self.assertNotIn('is_correct', option)
        self.assertTrue(AuditLog.objects.filter(action='START').exists())

    def test_resume_keeps_start_time(self):
        first = self.post_json(self.start_url()).json()
        r = self.post_json(self.start_url(), at=self.t0 + timedelta(minutes=4))
        self.assertEqual(r.status_code, 200)
        self.assertTrue(r.json()['resumed'])
        self.assertEqual(r.json()['session']['id'], first['session']['id'])
        self.assertEqual(r.json()['clock']['remaining_seconds'], 360)
        self.assertTrue(r.json()['can_resume'])

    def test_expired_attempt_not_resumable(self):
        first = self.post_json(self.start_url()).json()
        # Duration is 10 min, the window stays open until T+30
        r = self.post_json(self.start_url(), at=self.t0 + timedelta(minutes=15))
        self.assertEqual(r.status_code, 200)
        data = r.json()
        self.assertTrue(data['resumed'])
        self.assertFalse(data['can_resume'])
        self.assertEqual(data['clock']['remaining_seconds'], 0)
        self.assertNotIn('questions', data['exam'])

        session = ExamSession.objects.get(pk=first['session']['id'])
        self.assertEqual(session.status, ExamSession.STATUS_IN_PROGRESS)
        self.assertIsNone(session.end_time)

    def test_start_outside_window(self):
        r = self.post_json(self.start_url(), at=self.t0 - timedelta(hours=1))
        self.assertEqual(r.status_code, 400)
        self.assertEqual(r.json()['code'], 'invalid_state')

    def test_unknown_exam(self):
        r = self.post_json(reverse(
            'student_api:start_exam', args=['00000000-0000-0000-0000-000000000000'],
        ))
        self.assertEqual(r.status_code, 404)

    def test_get_not_allowed(self):
        r = self.client.get(self.start_url())
        self.assertEqual(r.status_code, 405)


# ── Clock resync ───────────────────────────────────────────────────

class SessionClockTest(StudentApiTestBase):

    def test_clock_counts_down(self):
        session_id = self.start()
        url = reverse('student_api:session_clock', args=[session_id])
        r = self.get_at(url, at=self.t0 + timedelta(minutes=5))
        self.assertEqual(r.status_code, 200)
        self.assertEqual(r.json()['remaining_seconds'], 300)

    def test_other_students_session(self):
        session_id = self.start()
        self.client.force_login(self.other)
        r = self.get_at(reverse('student_api:session_clock', args=[session_id]))
        self.assertEqual(r.status_code, 403)


# ── Violations ─────────────────────────────────────────────────────

class ViolationApiTest(StudentApiTestBase):

    def report(self, session_id, seconds, payload):
        url = reverse('student_api:report_violation', args=[session_id])
        return self.post_json(url, payload, at=self.t0 + timedelta(seconds=seconds))

    def test_third_violation_terminates(self):
        session_id = self.start()
        answers = [{'question_id': self.q1.id, 'selected_option_id': self.q1_right.id}]

        r = self.report(session_id, 10, {'type': 'tab_switch'})
        self.assertEqual(r.json()['violation_count'], 1)
        self.assertEqual(r.json()['warnings_left'], 1)
        self.report(session_id, 12, {'type': 'focus_loss'})
        r = self.report(session_id, 14, {'type': 'fullscreen_exit', 'answers': answers})
        self.assertEqual(r.status_code, 200)
        self.assertTrue(r.json()['is_terminated'])
        self.assertEqual(r.json()['score'], 5)
        self.assertTrue(AuditLog.objects.filter(action='TERMINATE').exists())

        r = self.report(session_id, 16, {'type': 'tab_switch'})
        self.assertEqual(r.status_code, 400)
        self.assertEqual(r.json()['code'], 'invalid_state')

    def test_duplicate_event_ignored(self):
        session_id = self.start()
        self.report(session_id, 10, {'type': 'tab_switch'})
        r = self.report(session_id, 10.3, {'type': 'focus_loss'})
        self.assertFalse(r.json()['accepted'])
        self.assertEqual(r.json()['violation_count'], 1)

    def test_invalid_type(self):
        session_id = self.start()
        r = self.report(session_id, 10, {'type': 'nope'})
        self.assertEqual(r.status_code, 400)
        self.assertIn('tab_switch', r.json()['allowed'])

    def test_invalid_json(self):
        session_id = self.start()
        url = reverse('student_api:report_violation', args=[session_id])
        r = self.client.post(url, data='{not json', content_type='application/json')
        self.assertEqual(r.status_code, 400)


# ── Submit ─────────────────────────────────────────────────────────

class SubmitApiTest(StudentApiTestBase):

    def submit(self, session_id, answers, minutes=3):
        url = reverse('student_api:submit_exam', args=[session_id])
        return self.post_json(url, {'answers': answers}, at=self.t0 + timedelta(minutes=minutes))

    def test_submit_scores(self):
        session_id = self.start()
        r = self.submit(session_id, [
            {'question_id': self.q1.id, 'selected_option_id': self.q1_right.id},
            {'question_id': self.q2.id, 'selected_option_id': self.q2_wrong.id},
        ])
        self.assertEqual(r.status_code, 200)
        self.assertEqual(r.json()['score'], 5)
        self.assertEqual(r.json()['total_marks'], 10)
        self.assertEqual(
            ExamSession.objects.get(pk=session_id).status, ExamSession.STATUS_SUBMITTED,
        )

    def test_double_submit(self):
        session_id = self.start()
        self.submit(session_id, [])
        r = self.submit(session_id, [], minutes=4)
        self.assertEqual(r.status_code, 400)
        self.assertEqual(r.json()['error'], 'Session already submitted')

    def test_malformed_answers(self):
        session_id = self.start()
        r = self.submit(session_id, {'q1': 'a'})
        self.assertEqual(r.status_code, 400)
        self.assertEqual(r.json()['code'], 'validation_error')
        self.assertEqual(
            ExamSession.objects.get(pk=session_id).status, ExamSession.STATUS_IN_PROGRESS,
        )


# ── Results ────────────────────────────────────────────────────────

class ResultApiTest(StudentApiTestBase):

    def result_url(self):
        return reverse('student_api:exam_result', args=[self.exam.id])

    def test_result_withheld_until_end(self):
        session_id = self.start()
        self.post_json(reverse('student_api:submit_exam', args=[session_id]), {'answers': []})
        r = self.get_at(self.result_url(), at=self.t0 + timedelta(minutes=5))
        self.assertEqual(r.status_code, 403)
        self.assertEqual(r.json()['code'], 'not_yet_available')
        self.assertIn('scheduled_end', r.json())

    def test_result_after_end(self):
        session_id = self.start()
        self.post_json(reverse('student_api:submit_exam', args=[session_id]), {'answers': [
            {'question_id': self.q2.id, 'selected_option_id': self.q2_right.id},
        ]})
        r = self.get_at(self.result_url(), at=self.t0 + timedelta(hours=1))
        self.assertEqual(r.status_code, 200)
        self.assertEqual(r.json()['score'], 5)

    def test_result_never_submitted(self):
        self.start()
        r = self.get_at(self.result_url(), at=self.t0 + timedelta(hours=1))
        self.assertEqual(r.status_code, 409)

    def test_result_without_attempt(self):
        r = self.client.get(self.result_url())
        self.assertEqual(r.status_code, 404)
