import logging
from typing import Any, Dict, List, Optional
from django.core.management import call_command
from django.db import DatabaseError, IntegrityError, connection
from .exceptions import (
    ConfigurationError,
    DomainException,
    DuplicateKey,
    IllegalTransition,
    NotFound,
    ValidationFailed,
    ValidationIssue,
)
from .models import EducatorStatus, Patient, ProfessionalEducator, ProjectStatus, TherapyProject
from .repositories import EducatorRepository, PatientRepository, TherapyProjectRepository
from .validators import EducatorValidator, PatientValidator, TherapyProjectValidator
logger = logging.getLogger('therapy')
# Completed is terminal: nothing leaves it
PROJECT_TRANSITIONS = {
    ProjectStatus.IN_PROGRESS: {ProjectStatus.COMPLETED, ProjectStatus.ON_HOLD},
    ProjectStatus.ON_HOLD: {ProjectStatus.IN_PROGRESS},
    ProjectStatus.COMPLETED: set(),
}
def _raise_if_invalid(entity_name: str, issues: List[ValidationIssue]) -> None:
    if issues:
        logger.warning(f"{entity_name} validation failed: {[issue.to_dict() for issue in issues]}")
        raise ValidationFailed(entity_name, issues)
class PatientService:
    def __init__(self, patient_repository: Optional[PatientRepository] = None):
        self._patient_repository = patient_repository or PatientRepository()
    def get_all(self) -> List[Patient]:
        return self._patient_repository.get_all()
    def get_by_id(self, id) -> Optional[Patient]:
        return self._patient_repository.get_by_id(id)
    def get_by_id_with_projects(self, id) -> Optional[Patient]:
        return self._patient_repository.get_by_id_with_relations(id)
    def search(self, term: Optional[str]) -> List[Patient]:
        return self._patient_repository.search(term)
    def exists(self, id) -> bool:
        return self._patient_repository.exists(id)
    def count(self) -> int:
        return self._patient_repository.count()
    def validate(self, patient: Patient) -> bool:
        _raise_if_invalid('Patient', PatientValidator.validate(patient))
        return True
    def add(self, patient: Patient) -> Patient:
        self.validate(patient)
        return self._patient_repository.add(patient)
    def update(self, patient: Patient) -> Patient:
        self.validate(patient)
        return self._patient_repository.update(patient)
    def delete(self, id) -> None:
        if not self._patient_repository.delete(id):
            raise NotFound('Patient', id)
class TherapyProjectService:
    """Business rules for therapy projects.
    Status changes follow ``PROJECT_TRANSITIONS``. A transition into the
    status the project already has is rejected, while assigning or removing
    an educator that is already in the requested state is a silent no-op.
    """
    def __init__(
        self,
        project_repository: Optional[TherapyProjectRepository] = None,
        patient_repository: Optional[PatientRepository] = None,
    ):
        self._project_repository = project_repository or TherapyProjectRepository()
        self._patient_repository = patient_repository or PatientRepository()
    def get_all(self) -> List[TherapyProject]:
        return self._project_repository.get_all()
    def get_by_id(self, id) -> Optional[TherapyProject]:
        return self._project_repository.get_by_id(id)
    def get_by_id_with_relations(self, id) -> Optional[TherapyProject]:
        return self._project_repository.get_by_id_with_relations(id)
    def get_by_patient_id(self, patient_id) -> List[TherapyProject]:
        if not self._patient_repository.exists(patient_id):
            raise NotFound('Patient', patient_id)
        return self._project_repository.get_by_patient_id(patient_id)
    def get_by_educator_id(self, educator_id) -> List[TherapyProject]:
        return self._project_repository.get_by_educator_id(educator_id)
    def get_by_status(self, status: Optional[str]) -> List[TherapyProject]:
        if status is None or status not in ProjectStatus.values:
            raise ValidationFailed('TherapyProject', [ValidationIssue(
                'status',
                f"Invalid status '{status}'. Valid values are: {', '.join(ProjectStatus.values)}"
            )])
        return self._project_repository.get_by_status(status)
    def search(self, term: Optional[str]) -> List[TherapyProject]:
        return self._project_repository.search(term)
    def exists(self, id) -> bool:
        return self._project_repository.exists(id)
    def validate(self, project: TherapyProject) -> bool:
        _raise_if_invalid('TherapyProject', TherapyProjectValidator.validate(project))
        return True
    def add(self, project: TherapyProject) -> TherapyProject:
        self.validate(project)
        if not self._patient_repository.exists(project.patient_id):
            logger.warning(f"Cannot create project '{project.title}': patient {project.patient_id} not found")
            raise NotFound('Patient', project.patient_id)
        return self._project_repository.add(project)
    def update(self, project: TherapyProject) -> TherapyProject:
        existing = self._project_repository.get_by_id(project.pk)
        if existing is None:
            raise NotFound('TherapyProject', project.pk)
        self.validate(project)
        if existing.patient_id != project.patient_id and not self._patient_repository.exists(project.patient_id):
            logger.warning(f"Cannot move project {project.pk}: patient {project.patient_id} not found")
            raise NotFound('Patient', project.patient_id)
        if existing.status != project.status:
            self._check_transition(project.pk, existing.status, project.status, project.end_date)
        return self._project_repository.update(project)
    def delete(self, id) -> None:
        if not self._project_repository.delete(id):
            raise NotFound('TherapyProject', id)
    def assign_educator(self, project_id, educator_id) -> None:
        if not self._project_repository.exists(project_id):
            raise NotFound('TherapyProject', project_id)
        self._project_repository.assign_educator(project_id, educator_id)
    def remove_educator(self, project_id, educator_id) -> None:
        if not self._project_repository.exists(project_id):
            raise NotFound('TherapyProject', project_id)
        self._project_repository.remove_educator(project_id, educator_id)
    def complete_project(self, project_id) -> TherapyProject:
        return self._transition(project_id, ProjectStatus.COMPLETED)
    def put_on_hold(self, project_id) -> TherapyProject:
        return self._transition(project_id, ProjectStatus.ON_HOLD)
    def resume_project(self, project_id) -> TherapyProject:
        return self._transition(project_id, ProjectStatus.IN_PROGRESS)
    def _transition(self, project_id, target: str) -> TherapyProject:
        project = self._project_repository.get_by_id(project_id)
        if project is None:
            raise NotFound('TherapyProject', project_id)
        self._check_transition(project.pk, project.status, target, project.end_date)
        previous = project.status
        project.status = target
        updated = self._project_repository.update(project)
        logger.info(f"Project {project.pk} moved from '{previous}' to '{target}'")
        return updated
    @staticmethod
    def _check_transition(project_id, current: str, target: str, end_date) -> None:
        if current == target:
            raise IllegalTransition('TherapyProject', project_id, current, target, f"project is already '{current}'")
        if target not in PROJECT_TRANSITIONS.get(current, set()):
            raise IllegalTransition(
                'TherapyProject', project_id, current, target,
                f"'{current}' projects cannot move to '{target}'"
            )
        if target == ProjectStatus.COMPLETED and end_date is None:
            raise IllegalTransition('TherapyProject', project_id, current, target, 'end date must be set')
class EducatorService:
    def __init__(self, educator_repository: Optional[EducatorRepository] = None):
        self._educator_repository = educator_repository or EducatorRepository()
    def get_all(self) -> List[ProfessionalEducator]:
        return self._educator_repository.get_all()
    def get_by_id(self, id) -> Optional[ProfessionalEducator]:
        return self._educator_repository.get_by_id(id)
    def get_by_id_with_projects(self, id) -> Optional[ProfessionalEducator]:
        return self._educator_repository.get_by_id_with_relations(id)
    def get_by_status(self, status: Optional[str]) -> List[ProfessionalEducator]:
        if status not in EducatorStatus.values:
            raise ValidationFailed('ProfessionalEducator', [ValidationIssue(
                'status',
                f"Invalid status '{status}'. Valid values are: {', '.join(EducatorStatus.values)}"
            )])
        return self._educator_repository.get_by_status(status)
    def get_active_educators(self) -> List[ProfessionalEducator]:
        return self._educator_repository.get_by_status(EducatorStatus.ACTIVE)
    def get_by_specialization(self, specialization: Optional[str]) -> List[ProfessionalEducator]:
        if specialization is None or not specialization.strip():
            raise ValidationFailed('ProfessionalEducator', [
                ValidationIssue('specialization', 'Specialization cannot be empty')
            ])
        return self._educator_repository.get_by_specialization(specialization)
    def get_by_project_id(self, project_id) -> List[ProfessionalEducator]:
        return self._educator_repository.get_by_project_id(project_id)
    def get_available_specializations(self) -> List[str]:
        return self._educator_repository.get_unique_specializations()
    def search(self, term: Optional[str]) -> List[ProfessionalEducator]:
        return self._educator_repository.search(term)
    def exists(self, id) -> bool:
        return self._educator_repository.exists(id)
    def validate(self, educator: ProfessionalEducator) -> bool:
        _raise_if_invalid('ProfessionalEducator', EducatorValidator.validate(educator))
        return True
    def add(self, educator: ProfessionalEducator) -> ProfessionalEducator:
        self.validate(educator)
        if self._educator_repository.email_exists(educator.email):
            logger.warning(f"Email already in use: {educator.email}")
            raise DuplicateKey('ProfessionalEducator', 'email', educator.email)
        return self._educator_repository.add(educator)
    def update(self, educator: ProfessionalEducator) -> ProfessionalEducator:
        if not self._educator_repository.exists(educator.pk):
            raise NotFound('ProfessionalEducator', educator.pk)
        self.validate(educator)
        if self._educator_repository.email_exists(educator.email, exclude_id=educator.pk):
            logger.warning(f"Email already in use by another educator: {educator.email}")
            raise DuplicateKey('ProfessionalEducator', 'email', educator.email)
        return self._educator_repository.update(educator)
    def delete(self, id) -> None:
        if not self._educator_repository.delete(id):
            raise NotFound('ProfessionalEducator', id)
    def deactivate(self, id) -> ProfessionalEducator:
        return self._change_status(id, EducatorStatus.INACTIVE)
    def activate(self, id) -> ProfessionalEducator:
        return self._change_status(id, EducatorStatus.ACTIVE)
    def set_on_leave(self, id) -> ProfessionalEducator:
        return self._change_status(id, EducatorStatus.ON_LEAVE)
    def _change_status(self, id, target: str) -> ProfessionalEducator:
        educator = self._educator_repository.get_by_id(id)
        if educator is None:
            raise NotFound('ProfessionalEducator', id)
        if educator.status == target:
            raise IllegalTransition(
                'ProfessionalEducator', id, educator.status, target,
                f"educator is already '{target}'"
            )
        previous = educator.status
        educator.status = target
        updated = self._educator_repository.update(educator)
        logger.info(f"Educator {id} status changed from '{previous}' to '{target}'")
        return updated
class ConfigurationService:
    """First-run detection and the local user's educator profile.
    Importing signed configuration packages is not handled here.
    """
    def __init__(
        self,
        educator_service: Optional[EducatorService] = None,
        educator_repository: Optional[EducatorRepository] = None,
    ):
        self._educator_repository = educator_repository or EducatorRepository()
        self._educator_service = educator_service or EducatorService(self._educator_repository)
    def is_configured(self) -> bool:
        try:
            connection.ensure_connection()
            return self._educator_repository.get_current_user() is not None
        except DatabaseError as e:
            logger.warning(f"Configuration check failed, database not reachable: {e}")
            return False
    def initialize_database(self) -> None:
        logger.info("Applying database migrations")
        call_command('migrate', interactive=False, verbosity=0)
    def setup_user_profile(self, educator: ProfessionalEducator) -> ProfessionalEducator:
        current = self._educator_repository.get_current_user()
        if current is not None:
            raise ConfigurationError(
                f"A user profile is already configured ({current.full_name})",
                {"current_user_id": str(current.pk)}
            )
        self._educator_service.validate(educator)
        educator.is_current_user = True
        try:
            profile = self._educator_service.add(educator)
        except IntegrityError as e:
            educator.is_current_user = False
            current = self._educator_repository.get_current_user()
            if current is None:
                raise
            logger.warning(f"User profile configured concurrently by {current.pk}")
            raise ConfigurationError(
                f"A user profile is already configured ({current.full_name})",
                {"current_user_id": str(current.pk)}
            ) from e
        except DomainException:
            educator.is_current_user = False
            raise
        logger.info(f"User profile configured - ID: {profile.pk}, role: {profile.role}")
        return profile
    def get_current_user(self) -> Optional[ProfessionalEducator]:
        return self._educator_repository.get_current_user()
    def get_current_user_role(self) -> Optional[str]:
        current = self.get_current_user()
        return current.role if current else None
    def get_current_user_full_name(self) -> Optional[str]:
        current = self.get_current_user()
        return current.full_name if current else None
class DashboardService:
    def __init__(
        self,
        patient_repository: Optional[PatientRepository] = None,
        project_repository: Optional[TherapyProjectRepository] = None,
        educator_repository: Optional[EducatorRepository] = None,
    ):
        self._patient_repository = patient_repository or PatientRepository()
        self._project_repository = project_repository or TherapyProjectRepository()
        self._educator_repository = educator_repository or EducatorRepository()
    def get_stats(self) -> Dict[str, Any]:
        projects_by_status = {status: 0 for status in ProjectStatus.values}
        projects_by_status.update(self._project_repository.count_by_status())
        educators_by_status = {status: 0 for status in EducatorStatus.values}
        educators_by_status.update(self._educator_repository.count_by_status())
        stats = {
            "total_patients": self._patient_repository.count(),
            "total_projects": sum(projects_by_status.values()),
            "active_projects": projects_by_status[ProjectStatus.IN_PROGRESS],
            "projects_by_status": projects_by_status,
            "operational_educators": educators_by_status[EducatorStatus.ACTIVE],
            "educators_by_status": educators_by_status,
        }
        logger.debug(f"Dashboard stats computed: {stats}")
        return stats
