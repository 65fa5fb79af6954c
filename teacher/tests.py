"""
Teacher API tests – publish toggle, time extension and the results board.
"""
import json
from datetime import timedelta

from django.core import mail
from django.test import TestCase, override_settings
from django.urls import reverse
from django.utils import timezone

from core.models import Account, AuditLog, Classroom, Exam, ExamSession, Option, Question


class TeacherApiTestBase(TestCase):
    """Shared fixtures: a draft class exam starting in an hour."""

    @classmethod
    def setUpTestData(cls):
        now = timezone.now()
        cls.teacher = Account.objects.create_user(
            username='teacher1', email='teacher@school.local', password='TeachPass123!',
            full_name='Ms Teacher', role=Account.ROLE_TEACHER,
        )
        cls.colleague = Account.objects.create_user(
            username='teacher2', email='teacher2@school.local', password='TeachPass123!',
            role=Account.ROLE_TEACHER,
        )
        cls.student = Account.objects.create_user(
            username='student1', email='s1@school.local', password='StudPass123!',
            full_name='Alice Student',
        )
        cls.absent = Account.objects.create_user(
            username='student2', email='s2@school.local', password='StudPass123!',
            full_name='Bob Student',
        )
        cls.classroom = Classroom.objects.create(
            name='Chemistry', subject_code='ch101', teacher=cls.teacher,
        )
        cls.classroom.enroll(cls.student, cls.absent)
        cls.exam = Exam.objects.create(
            title='Chemistry Final', duration_minutes=60, total_marks=4,
            scheduled_start=now + timedelta(hours=1),
            scheduled_end=now + timedelta(hours=3),
            created_by=cls.teacher, access_type=Exam.ACCESS_PRIVATE,
            classroom=cls.classroom,
        )
        cls.question = Question.objects.create(exam=cls.exam, number=1, text='H2O is?', marks=4)
        Option.objects.create(question=cls.question, number=1, text='Water', is_correct=True)

    def setUp(self):
        self.client.force_login(self.teacher)

    def publish_url(self, exam=None):
        return reverse('teacher_api:toggle_publish', args=[(exam or self.exam).id])

    def extend(self, payload):
        return self.client.post(
            reverse('teacher_api:extend_exam', args=[self.exam.id]),
            data=json.dumps(payload), content_type='application/json',
        )


# ── Publishing ─────────────────────────────────────────────────────

@override_settings(PROCTOR_ASYNC_NOTIFICATIONS=False)
class PublishTest(TeacherApiTestBase):

    def test_publish_notifies_class(self):
        r = self.client.post(self.publish_url())
        self.assertEqual(r.status_code, 200)
        self.assertTrue(r.json()['is_active'])
        self.assertIn('Notification sent to 2 students', r.json()['message'])
        self.assertEqual(len(mail.outbox), 2)
        self.assertTrue(Exam.objects.get(pk=self.exam.pk).is_active)
        self.assertTrue(AuditLog.objects.filter(action='PUBLISH').exists())

    def test_toggle_back_to_draft(self):
        self.client.post(self.publish_url())
        r = self.client.post(self.publish_url())
        self.assertFalse(r.json()['is_active'])
        self.assertEqual(r.json()['message'], 'Exam unpublished')
        self.assertTrue(AuditLog.objects.filter(action='UNPUBLISH').exists())

    def test_marks_must_match(self):
        Exam.objects.filter(pk=self.exam.pk).update(total_marks=10)
        r = self.client.post(self.publish_url())
        self.assertEqual(r.status_code, 400)
        self.assertEqual(r.json()['question_marks'], 4)
        self.assertFalse(Exam.objects.get(pk=self.exam.pk).is_active)

    def test_needs_questions(self):
        empty = Exam.objects.create(
            title='Empty', duration_minutes=10, total_marks=0,
            scheduled_start=self.exam.scheduled_start,
            scheduled_end=self.exam.scheduled_end, created_by=self.teacher,
        )
        r = self.client.post(self.publish_url(empty))
        self.assertEqual(r.status_code, 400)

    def test_locked_close_to_start(self):
        Exam.objects.filter(pk=self.exam.pk).update(
            scheduled_start=timezone.now() + timedelta(seconds=30),
        )
        r = self.client.post(self.publish_url())
        self.assertEqual(r.status_code, 400)
        self.assertIn('1 minute', r.json()['error'])

    def test_other_teachers_exam(self):
        self.client.force_login(self.colleague)
        r = self.client.post(self.publish_url())
        self.assertEqual(r.status_code, 404)

    def test_student_blocked(self):
        self.client.force_login(self.student)
        r = self.client.post(self.publish_url())
        self.assertEqual(r.status_code, 403)


# ── Time extension ─────────────────────────────────────────────────

class ExtendTest(TeacherApiTestBase):

    def test_extend(self):
        end = self.exam.scheduled_end
        r = self.extend({'extra_minutes': 15})
        self.assertEqual(r.status_code, 200)
        self.assertEqual(r.json()['duration_minutes'], 75)
        exam = Exam.objects.get(pk=self.exam.pk)
        self.assertEqual(exam.scheduled_end, end + timedelta(minutes=15))
        self.assertTrue(AuditLog.objects.filter(action='EXTEND').exists())

    def test_rejects_non_positive(self):
        for value in (0, -5, '10', 2.5, True, None):
            r = self.extend({'extra_minutes': value})
            self.assertEqual(r.status_code, 400, value)
        self.assertEqual(Exam.objects.get(pk=self.exam.pk).duration_minutes, 60)


# ── Results board ──────────────────────────────────────────────────

class ResultsBoardTest(TeacherApiTestBase):

    def test_board_lists_every_enrolled_student(self):
        ExamSession.objects.create(
            student=self.student, exam=self.exam, status=ExamSession.STATUS_SUBMITTED,
            score=4, end_time=timezone.now(),
        )
        r = self.client.get(reverse('teacher_api:exam_results', args=[self.exam.id]))
        self.assertEqual(r.status_code, 200)
        rows = r.json()['results']
        self.assertEqual([row['student']['username'] for row in rows], ['student1', 'student2'])
        self.assertEqual(rows[0]['score'], 4)
        self.assertEqual(rows[1]['status'], 'not-attended')
