"""
Django admin registration for the portal models.

The admin is the create/read/update surface for accounts, classes and exam
authoring. Exam sessions are owned by the session engine, so they are shown
read-only here.
"""
import logging

from django.contrib import admin
from django.contrib.auth.admin import UserAdmin as BaseUserAdmin

from .models import (
    Account, Classroom, Exam, Question, Option,
    ExamSession, ViolationLog, AuditLog,
)

audit_logger = logging.getLogger('proctor.audit')

admin.site.site_header = "Exam Portal Administration"
admin.site.site_title = "Exam Portal Administration"
admin.site.index_title = "Exam Portal Administration"


# ── Accounts & Classes ───────────────────────────────────────────
@admin.register(Account)
class AccountAdmin(BaseUserAdmin):
    list_display = ('username', 'email', 'full_name', 'role', 'batch', 'is_active', 'is_staff')
    list_filter = ('role', 'is_active', 'is_staff')
    search_fields = ('username', 'email', 'full_name')
    ordering = ('username',)

    fieldsets = (
        (None, {'fields': ('username', 'password')}),
        ('Personal Info', {'fields': ('full_name', 'email', 'batch')}),
        ('Role & Permissions', {'fields': ('role', 'is_active', 'is_staff', 'is_superuser', 'groups', 'user_permissions')}),
    )
    add_fieldsets = (
        (None, {
            'classes': ('wide',),
            'fields': ('username', 'email', 'full_name', 'role', 'password1', 'password2'),
        }),
    )


@admin.register(Classroom)
class ClassroomAdmin(admin.ModelAdmin):
    list_display = ('name', 'subject_code', 'batch', 'teacher', 'status', 'student_count')
    list_filter = ('status',)
    search_fields = ('name', 'subject_code')
    filter_horizontal = ('students',)

    @admin.display(description='Students')
    def student_count(self, obj):
        return obj.students.count()


# ── Exam / Question / Option ─────────────────────────────────────
class QuestionInline(admin.TabularInline):
    model = Question
    extra = 0
    fields = ('number', 'text', 'marks')


@admin.action(description='Extend selected exams by 10 minutes')
def extend_ten_minutes(modeladmin, request, queryset):
    for exam in queryset:
        exam.extend(10)
        audit_logger.info(
            'EXAM_EXTEND | admin=%s | exam=%s | minutes=10 | new_end=%s',
            request.user.username, exam.id, exam.scheduled_end.isoformat(),
        )
    modeladmin.message_user(request, f'Extended {queryset.count()} exam(s) by 10 minutes.')


@admin.register(Exam)
class ExamAdmin(admin.ModelAdmin):
    list_display = ('title', 'created_by', 'scheduled_start', 'scheduled_end',
                    'duration_minutes', 'total_marks', 'access_type', 'is_active')
    list_filter = ('is_active', 'access_type')
    search_fields = ('title',)
    inlines = [QuestionInline]
    actions = [extend_ten_minutes]


class OptionInline(admin.TabularInline):
    model = Option
    extra = 0
    fields = ('number', 'text', 'is_correct')


@admin.register(Question)
class QuestionAdmin(admin.ModelAdmin):
    list_display = ('number', 'text', 'exam', 'marks')
    search_fields = ('text',)
    inlines = [OptionInline]


# ── Sessions (engine-owned, read-only) ───────────────────────────
class ViolationLogInline(admin.TabularInline):
    model = ViolationLog
    extra = 0
    can_delete = False
    readonly_fields = ('violation_type', 'timestamp')

    def has_add_permission(self, request, obj=None):
        return False


@admin.register(ExamSession)
class ExamSessionAdmin(admin.ModelAdmin):
    list_display = ('student', 'exam', 'status', 'score', 'violation_count', 'start_time', 'end_time')
    list_filter = ('status',)
    search_fields = ('student__username', 'exam__title')
    readonly_fields = ('id', 'student', 'exam', 'status', 'start_time', 'end_time',
                       'answers', 'score', 'violation_count', 'last_violation_at')
    inlines = [ViolationLogInline]

    def has_add_permission(self, request):
        return False

    def has_delete_permission(self, request, obj=None):
        return False  # retained for audit/results


@admin.register(AuditLog)
class AuditLogAdmin(admin.ModelAdmin):
    list_display = ('timestamp', 'username', 'action', 'resource_type', 'resource_id', 'ip_address')
    list_filter = ('action', 'resource_type')
    search_fields = ('username', 'description', 'resource_id')
    readonly_fields = ('id', 'user', 'username', 'action', 'resource_type', 'resource_id',
                       'description', 'ip_address', 'user_agent', 'extra_data', 'timestamp')

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False
