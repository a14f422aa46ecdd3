# Seed the fixed role rows

from django.db import migrations


ROLE_NAMES = ('clinic_admin', 'patient')


def create_roles(apps, schema_editor):
    """
    Create the clinic_admin and patient roles if they don't exist.
    Idempotent - safe to run multiple times.
    """
    Role = apps.get_model('authz', 'Role')
    for name in ROLE_NAMES:
        Role.objects.get_or_create(name=name)


def remove_unused_roles(apps, schema_editor):
    """
    Reverse migration - delete roles that no user holds.
    """
    Role = apps.get_model('authz', 'Role')
    UserRole = apps.get_model('authz', 'UserRole')

    for role in Role.objects.filter(name__in=ROLE_NAMES):
        if not UserRole.objects.filter(role=role).exists():
            role.delete()


class Migration(migrations.Migration):

    dependencies = [
        ('authz', '0001_initial'),
    ]

    operations = [
        migrations.RunPython(create_roles, remove_unused_roles),
    ]
