"""
Management command to register a business and its owner.

The owner always has full access to the business, with or without a
membership row.
"""
from collections import defaultdict

from django.contrib.auth import get_user_model
from django.core.management.base import BaseCommand, CommandError

from apps.businesses.models import Business
from apps.rbac.catalog import Role, role_defaults


class Command(BaseCommand):
    help = 'Create a business owned by an existing (or new) user'

    def add_arguments(self, parser):
        """Add command arguments."""
        parser.add_argument(
            '--name',
            type=str,
            required=True,
            help='Business name',
        )
        parser.add_argument(
            '--owner',
            type=str,
            required=True,
            help='Username of the owner',
        )
        parser.add_argument(
            '--create-user',
            action='store_true',
            help='Create the owner if they do not exist (requires --password)',
        )
        parser.add_argument(
            '--password',
            type=str,
            help='Password for the new user (only used with --create-user)',
        )

    def handle(self, *args, **options):
        """Create the business."""
        User = get_user_model()

        name = options['name'].strip()
        username = options['owner']
        create_user = options['create_user']
        password = options.get('password')

        if not name:
            raise CommandError('--name cannot be empty')

        if create_user and not password:
            raise CommandError('--password is required when using --create-user')

        user = User.objects.filter(username=username).first()

        if not user:
            if not create_user:
                raise CommandError(
                    f'User not found: {username}\n'
                    f'Use --create-user --password=<password> to create the user'
                )
            user = User.objects.create_user(username=username, password=password)
            self.stdout.write(self.style.SUCCESS(f'✓ Created user: {username}'))
        else:
            self.stdout.write(f'User: {username}')

        business = Business.objects.create(name=name, owner_id=str(user.pk))

        self.stdout.write(
            self.style.SUCCESS(f'\n✓ Created business {business.name} ({business.id})')
        )

        permissions = role_defaults(Role.OWNER)
        self.stdout.write(f'\nOwner permissions: {len(permissions)}')

        by_category = defaultdict(list)
        for permission in sorted(permissions):
            by_category[permission.split(':', 1)[0]].append(permission)

        for category in sorted(by_category):
            self.stdout.write(f'\n  {category.upper()}:')
            for code in by_category[category]:
                self.stdout.write(f'    • {code}')
