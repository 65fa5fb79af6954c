"""
Management command: create_account

Creates a portal account (admin, teacher or student) interactively or via flags.
"""
import getpass

from django.core.management.base import BaseCommand, CommandError

from core.models import Account


class Command(BaseCommand):
    help = 'Create an admin, teacher or student account'

    def add_arguments(self, parser):
        parser.add_argument('username', type=str)
        parser.add_argument('--email', type=str, required=True)
        parser.add_argument(
            '--role', type=str, default=Account.ROLE_STUDENT,
            choices=[value for value, _ in Account.ROLE_CHOICES],
        )
        parser.add_argument('--password', type=str, default=None)
        parser.add_argument('--full-name', type=str, default='')
        parser.add_argument('--batch', type=str, default='')

    def handle(self, *args, **options):
        username = options['username']
        role = options['role']

        if Account.objects.filter(username=username).exists():
            raise CommandError(f'User "{username}" already exists.')

        password = options['password']
        if not password:
            password = getpass.getpass('Password: ')
            if password != getpass.getpass('Confirm password: '):
                raise CommandError('Passwords do not match.')

        fields = {
            'full_name': options['full_name'],
            'batch': options['batch'] if role == Account.ROLE_STUDENT else '',
            'role': role,
        }
        if role == Account.ROLE_ADMIN:
            user = Account.objects.create_superuser(
                username, options['email'], password, **fields,
            )
        else:
            user = Account.objects.create_user(
                username, options['email'], password, **fields,
            )

        self.stdout.write(self.style.SUCCESS(
            f'{role.title()} account created: {user.username} ({user.email})'
        ))
