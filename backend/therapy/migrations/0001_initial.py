import uuid
import django.db.models.deletion
import django.utils.timezone
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name='Patient',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('first_name', models.CharField(max_length=100)),
                ('last_name', models.CharField(max_length=100)),
                ('created_at', models.DateTimeField(default=django.utils.timezone.now)),
                ('updated_at', models.DateTimeField(blank=True, null=True)),
            ],
            options={
                'db_table': 'patients',
                'ordering': ['last_name', 'first_name'],
                'indexes': [models.Index(fields=['first_name', 'last_name'], name='ix_patients_full_name')],
            },
        ),
        migrations.CreateModel(
            name='ProfessionalEducator',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('first_name', models.CharField(max_length=100)),
                ('last_name', models.CharField(max_length=100)),
                ('email', models.EmailField(max_length=255, unique=True)),
                ('phone_number', models.CharField(max_length=20)),
                ('date_of_birth', models.DateField()),
                ('specialization', models.CharField(max_length=100)),
                ('license_number', models.CharField(max_length=50)),
                ('hire_date', models.DateField()),
                ('status', models.CharField(choices=[('Active', 'Active'), ('Inactive', 'Inactive'), ('OnLeave', 'On Leave')], default='Active', max_length=50)),
                ('role', models.CharField(choices=[('Coordinator', 'Coordinator'), ('Educator', 'Educator')], default='Educator', max_length=50)),
                ('is_current_user', models.BooleanField(default=False)),
                ('created_at', models.DateTimeField(default=django.utils.timezone.now)),
                ('updated_at', models.DateTimeField(blank=True, null=True)),
            ],
            options={
                'db_table': 'professional_educators',
                'ordering': ['last_name', 'first_name'],
                'indexes': [
                    models.Index(fields=['specialization'], name='ix_educators_specialization'),
                    models.Index(fields=['status'], name='ix_educators_status'),
                    models.Index(fields=['role'], name='ix_educators_role'),
                ],
                'constraints': [
                    models.UniqueConstraint(
                        condition=models.Q(('is_current_user', True)),
                        fields=('is_current_user',),
                        name='unique_current_user_profile',
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name='TherapyProject',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('title', models.CharField(max_length=200)),
                ('description', models.TextField(blank=True, max_length=2000, null=True)),
                ('start_date', models.DateField()),
                ('end_date', models.DateField(blank=True, null=True)),
                ('status', models.CharField(choices=[('In Progress', 'In Progress'), ('Completed', 'Completed'), ('On Hold', 'On Hold')], default='In Progress', max_length=50)),
                ('created_at', models.DateTimeField(default=django.utils.timezone.now)),
                ('updated_at', models.DateTimeField(blank=True, null=True)),
                ('patient', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='therapy_projects', to='therapy.patient')),
                ('educators', models.ManyToManyField(blank=True, db_table='therapy_project_educators', related_name='therapy_projects', to='therapy.professionaleducator')),
            ],
            options={
                'db_table': 'therapy_projects',
                'ordering': ['-start_date'],
                'indexes': [models.Index(fields=['status'], name='ix_projects_status')],
            },
        ),
    ]
