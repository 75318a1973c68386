from datetime import date, datetime, timedelta
from typing import List, Optional
from django.core.exceptions import ValidationError as DjangoValidationError
from django.core.validators import validate_email
from django.utils import timezone
from .exceptions import ValidationIssue
from .models import EducatorRole, EducatorStatus, ProjectStatus

NAME_MAX_LENGTH = 100
TITLE_MIN_LENGTH = 3
TITLE_MAX_LENGTH = 200
DESCRIPTION_MAX_LENGTH = 2000
START_DATE_MAX_DAYS_AHEAD = 365
HIRE_DATE_MAX_DAYS_AHEAD = 365
MIN_EDUCATOR_AGE = 18
MAX_EDUCATOR_AGE = 100

def _as_date(value) -> Optional[date]:
    if isinstance(value, datetime):
        return value.date()
    return value

def _is_blank(value) -> bool:
    return value is None or not str(value).strip()

def age_on(date_of_birth: date, today: date) -> int:
    had_birthday = (today.month, today.day) >= (date_of_birth.month, date_of_birth.day)
    return today.year - date_of_birth.year - (0 if had_birthday else 1)

def is_valid_email(email: Optional[str]) -> bool:
    if _is_blank(email):
        return False
    try:
        validate_email(email)
    except DjangoValidationError:
        return False
    return email == email.strip()

class PatientValidator:

    @staticmethod
    def check_name(field: str, label: str, value: Optional[str]) -> Optional[ValidationIssue]:
        if _is_blank(value):
            return ValidationIssue(field, f"{label} is required")
        if len(value) > NAME_MAX_LENGTH:
            return ValidationIssue(field, f"{label} must be at most {NAME_MAX_LENGTH} characters")
        return None

    @staticmethod
    def validate(patient) -> List[ValidationIssue]:
        issues = []
        for field, label in (('first_name', 'First name'), ('last_name', 'Last name')):
            issue = PatientValidator.check_name(field, label, getattr(patient, field))
            if issue:
                issues.append(issue)
        return issues

class TherapyProjectValidator:

    @staticmethod
    def check_title(title: Optional[str]) -> Optional[ValidationIssue]:
        if _is_blank(title):
            return ValidationIssue('title', 'Title is required')
        length = len(title.strip())
        if length < TITLE_MIN_LENGTH or length > TITLE_MAX_LENGTH:
            return ValidationIssue(
                'title',
                f"Title must be between {TITLE_MIN_LENGTH} and {TITLE_MAX_LENGTH} characters"
            )
        return None

    @staticmethod
    def check_dates(start_date, end_date, today: date) -> List[ValidationIssue]:
        issues = []
        start_date = _as_date(start_date)
        end_date = _as_date(end_date)
        if start_date is None:
            issues.append(ValidationIssue('start_date', 'Start date is required'))
        elif start_date > today + timedelta(days=START_DATE_MAX_DAYS_AHEAD):
            issues.append(ValidationIssue('start_date', 'Start date cannot be more than one year in the future'))
        if start_date is not None and end_date is not None and end_date < start_date:
            issues.append(ValidationIssue('end_date', 'End date cannot be before start date'))
        return issues

    @staticmethod
    def validate(project, today: Optional[date] = None) -> List[ValidationIssue]:
        today = today or timezone.localdate()
        issues = []

        if project.patient_id is None:
            issues.append(ValidationIssue('patient_id', 'Patient is required'))

        title_issue = TherapyProjectValidator.check_title(project.title)
        if title_issue:
            issues.append(title_issue)

        if project.description and len(project.description) > DESCRIPTION_MAX_LENGTH:
            issues.append(ValidationIssue(
                'description',
                f"Description must be at most {DESCRIPTION_MAX_LENGTH} characters"
            ))

        issues.extend(TherapyProjectValidator.check_dates(project.start_date, project.end_date, today))

        if project.status not in ProjectStatus.values:
            issues.append(ValidationIssue(
                'status',
                f"Invalid status '{project.status}'. Valid values are: {', '.join(ProjectStatus.values)}"
            ))
        elif project.status == ProjectStatus.COMPLETED and project.end_date is None:
            issues.append(ValidationIssue('end_date', 'A completed project requires an end date'))
        return issues

class EducatorValidator:

    REQUIRED_FIELDS = (
        ('first_name', 'First name'),
        ('last_name', 'Last name'),
        ('email', 'Email'),
        ('phone_number', 'Phone number'),
        ('specialization', 'Specialization'),
        ('license_number', 'License number'),
    )

    @staticmethod
    def check_date_of_birth(date_of_birth, today: date) -> List[ValidationIssue]:
        date_of_birth = _as_date(date_of_birth)
        if date_of_birth is None:
            return [ValidationIssue('date_of_birth', 'Date of birth is required')]
        if date_of_birth >= today:
            return [ValidationIssue('date_of_birth', 'Date of birth must be in the past')]
        age = age_on(date_of_birth, today)
        if age < MIN_EDUCATOR_AGE:
            return [ValidationIssue('date_of_birth', f"Educator must be at least {MIN_EDUCATOR_AGE} years old")]
        if age > MAX_EDUCATOR_AGE:
            return [ValidationIssue('date_of_birth', 'Date of birth is not realistic')]
        return []

    @staticmethod
    def check_hire_date(hire_date, today: date) -> Optional[ValidationIssue]:
        hire_date = _as_date(hire_date)
        if hire_date is None:
            return ValidationIssue('hire_date', 'Hire date is required')
        if hire_date > today + timedelta(days=HIRE_DATE_MAX_DAYS_AHEAD):
            return ValidationIssue('hire_date', 'Hire date cannot be more than one year in the future')
        return None

    @staticmethod
    def validate(educator, today: Optional[date] = None) -> List[ValidationIssue]:
        today = today or timezone.localdate()
        issues = []

        for field, label in EducatorValidator.REQUIRED_FIELDS:
            value = getattr(educator, field)
            if _is_blank(value):
                issues.append(ValidationIssue(field, f"{label} is required"))
            elif field in ('first_name', 'last_name') and len(value) > NAME_MAX_LENGTH:
                issues.append(ValidationIssue(field, f"{label} must be at most {NAME_MAX_LENGTH} characters"))

        if not _is_blank(educator.email) and not is_valid_email(educator.email):
            issues.append(ValidationIssue('email', 'Invalid email format'))

        issues.extend(EducatorValidator.check_date_of_birth(educator.date_of_birth, today))

        hire_issue = EducatorValidator.check_hire_date(educator.hire_date, today)
        if hire_issue:
            issues.append(hire_issue)

        if educator.status not in EducatorStatus.values:
            issues.append(ValidationIssue(
                'status',
                f"Invalid status '{educator.status}'. Valid values are: {', '.join(EducatorStatus.values)}"
            ))
        if educator.role not in EducatorRole.values:
            issues.append(ValidationIssue(
                'role',
                f"Invalid role '{educator.role}'. Valid values are: {', '.join(EducatorRole.values)}"
            ))
        return issues
