import uuid
from django.db import models
from django.db.models import Q
from django.utils import timezone
class ProjectStatus(models.TextChoices):
    IN_PROGRESS = 'In Progress', 'In Progress'
    COMPLETED = 'Completed', 'Completed'
    ON_HOLD = 'On Hold', 'On Hold'
class EducatorStatus(models.TextChoices):
    ACTIVE = 'Active', 'Active'
    INACTIVE = 'Inactive', 'Inactive'
    ON_LEAVE = 'OnLeave', 'On Leave'
class EducatorRole(models.TextChoices):
    COORDINATOR = 'Coordinator', 'Coordinator'
    EDUCATOR = 'Educator', 'Educator'
class Patient(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    first_name = models.CharField(max_length=100)
    last_name = models.CharField(max_length=100)
    created_at = models.DateTimeField(default=timezone.now)
    updated_at = models.DateTimeField(null=True, blank=True)
    class Meta:
        db_table = 'patients'
        ordering = ['last_name', 'first_name']
        indexes = [
            models.Index(fields=['first_name', 'last_name'], name='ix_patients_full_name'),
        ]
    def __str__(self):
        return f"{self.first_name} {self.last_name}"
    @property
    def full_name(self):
        return f"{self.first_name} {self.last_name}"
class ProfessionalEducator(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    first_name = models.CharField(max_length=100)
    last_name = models.CharField(max_length=100)
    email = models.EmailField(max_length=255, unique=True)
    phone_number = models.CharField(max_length=20)
    date_of_birth = models.DateField()
    specialization = models.CharField(max_length=100)
    license_number = models.CharField(max_length=50)
    hire_date = models.DateField()
    status = models.CharField(max_length=50, choices=EducatorStatus.choices, default=EducatorStatus.ACTIVE)
    role = models.CharField(max_length=50, choices=EducatorRole.choices, default=EducatorRole.EDUCATOR)
    # Marks the local user's own profile (first-run detection)
    is_current_user = models.BooleanField(default=False)
    created_at = models.DateTimeField(default=timezone.now)
    updated_at = models.DateTimeField(null=True, blank=True)
    class Meta:
        db_table = 'professional_educators'
        ordering = ['last_name', 'first_name']
        indexes = [
            models.Index(fields=['specialization'], name='ix_educators_specialization'),
            models.Index(fields=['status'], name='ix_educators_status'),
            models.Index(fields=['role'], name='ix_educators_role'),
        ]
        constraints = [
            models.UniqueConstraint(
                fields=['is_current_user'],
                condition=Q(is_current_user=True),
                name='unique_current_user_profile',
            ),
        ]
    def __str__(self):
        return f"{self.first_name} {self.last_name} ({self.specialization})"
    @property
    def full_name(self):
        return f"{self.first_name} {self.last_name}"
class TherapyProject(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    patient = models.ForeignKey(Patient, on_delete=models.CASCADE, related_name='therapy_projects')
    title = models.CharField(max_length=200)
    description = models.TextField(max_length=2000, blank=True, null=True)
    start_date = models.DateField()
    end_date = models.DateField(blank=True, null=True)
    status = models.CharField(max_length=50, choices=ProjectStatus.choices, default=ProjectStatus.IN_PROGRESS)
    educators = models.ManyToManyField(
        ProfessionalEducator,
        related_name='therapy_projects',
        db_table='therapy_project_educators',
        blank=True,
    )
    created_at = models.DateTimeField(default=timezone.now)
    updated_at = models.DateTimeField(null=True, blank=True)
    class Meta:
        db_table = 'therapy_projects'
        ordering = ['-start_date']
        indexes = [
            models.Index(fields=['status'], name='ix_projects_status'),
        ]
    def __str__(self):
        return f"{self.title} ({self.status})"
