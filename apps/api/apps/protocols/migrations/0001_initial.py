# Generated migration for protocols app

import uuid
from django.conf import settings
from django.db import migrations, models
import django.db.models.deletion


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ('core', '0001_initial'),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='Protocol',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('name', models.CharField(max_length=255)),
                ('description', models.TextField(blank=True, null=True)),
                ('phases', models.JSONField(default=list)),
                ('version', models.PositiveIntegerField(default=1)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('clinic', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='protocols', to='core.clinic')),
                ('created_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='created_protocols', to=settings.AUTH_USER_MODEL)),
                ('previous_version', models.OneToOneField(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='next_version', to='protocols.protocol')),
            ],
            options={
                'verbose_name': 'Protocol',
                'verbose_name_plural': 'Protocols',
                'db_table': 'protocol',
            },
        ),
        migrations.AddIndex(
            model_name='protocol',
            index=models.Index(fields=['clinic', 'name'], name='idx_protocol_clinic_name'),
        ),
        migrations.CreateModel(
            name='ProtocolAssignment',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('start_date', models.DateField()),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('assigned_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='made_protocol_assignments', to=settings.AUTH_USER_MODEL)),
                ('patient', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='protocol_assignments', to=settings.AUTH_USER_MODEL)),
                ('protocol', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='assignments', to='protocols.protocol')),
            ],
            options={
                'verbose_name': 'Protocol Assignment',
                'verbose_name_plural': 'Protocol Assignments',
                'db_table': 'protocol_assignment',
                'ordering': ['-start_date', '-created_at'],
            },
        ),
        migrations.AddIndex(
            model_name='protocolassignment',
            index=models.Index(fields=['patient', 'start_date'], name='idx_assignment_patient_start'),
        ),
        migrations.CreateModel(
            name='InjectionCompletion',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('injection_date', models.DateField()),
                ('injection_time', models.TimeField()),
                ('mood', models.TextField(blank=True, null=True)),
                ('mood_logged_at', models.DateTimeField(blank=True, null=True)),
                ('mood_analysis', models.TextField(blank=True, null=True)),
                ('mood_analysis_status', models.CharField(choices=[('none', 'None'), ('pending', 'Pending'), ('completed', 'Completed'), ('failed', 'Failed')], default='none', max_length=20)),
                ('mood_analysis_error', models.TextField(blank=True, null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('patient', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='injection_completions', to=settings.AUTH_USER_MODEL)),
                ('protocol', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='completions', to='protocols.protocol')),
            ],
            options={
                'verbose_name': 'Injection Completion',
                'verbose_name_plural': 'Injection Completions',
                'db_table': 'injection_completion',
                'ordering': ['-injection_date', '-injection_time'],
            },
        ),
        migrations.AddConstraint(
            model_name='injectioncompletion',
            constraint=models.UniqueConstraint(fields=('patient', 'protocol', 'injection_date', 'injection_time'), name='uniq_completion_patient_protocol_slot'),
        ),
        migrations.AddIndex(
            model_name='injectioncompletion',
            index=models.Index(fields=['patient', 'protocol'], name='idx_completion_patient_proto'),
        ),
    ]
