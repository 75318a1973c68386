"""
Repositories for patients, therapy projects and professional educators.

Every mutating call runs in its own transaction and commits before
returning; callers never group several repository calls into one unit
of work. Lookups return None (or an empty list) instead of raising.
"""
import logging
import uuid
from abc import ABC, abstractmethod
from typing import Any, Dict, Generic, List, Optional, TypeVar

from django.db import IntegrityError, transaction
from django.db.models import Count, Q
from django.utils import timezone

from .exceptions import DuplicateKey, NotFound
from .models import Patient, ProfessionalEducator, TherapyProject

T = TypeVar('T')
logger = logging.getLogger('therapy')

class BaseRepository(Generic[T], ABC):
    """Shared read operations and the add/update/delete skeleton.

    Subclasses set ``model``, ``entity_name`` and ``ordering`` and supply
    the search filter, the mutable field list and any cleanup needed
    before a row is removed.
    """

    model = None
    entity_name = ''
    ordering = ()
    mutable_fields = ()

    def _queryset(self):
        return self.model.objects.order_by(*self.ordering)

    def get_all(self) -> List[T]:
        return list(self._queryset())

    def get_by_id(self, id) -> Optional[T]:
        return self.model.objects.filter(pk=id).first()

    @abstractmethod
    def get_by_id_with_relations(self, id) -> Optional[T]:
        pass

    @abstractmethod
    def _search_filter(self, term: str) -> Q:
        pass

    def search(self, term: Optional[str]) -> List[T]:
        if term is None or not term.strip():
            return self.get_all()
        normalized = term.strip()
        results = list(self._queryset().filter(self._search_filter(normalized)))
        logger.debug(f"{self.entity_name} search '{normalized}' matched {len(results)} row(s)")
        return results

    def exists(self, id) -> bool:
        return self.model.objects.filter(pk=id).exists()

    def count(self) -> int:
        return self.model.objects.count()

    def _before_add(self, entity: T) -> None:
        pass

    def _before_update(self, existing: T, entity: T) -> None:
        pass

    def _before_delete(self, entity: T) -> None:
        pass

    def add(self, entity: T) -> T:
        if entity.pk is None:
            entity.pk = uuid.uuid4()
        if entity.created_at is None:
            entity.created_at = timezone.now()
        entity.updated_at = None
        try:
            with transaction.atomic():
                self._before_add(entity)
                entity.save(force_insert=True)
        except IntegrityError as e:
            self._translate_integrity_error(entity, e)
            if self.model.objects.filter(pk=entity.pk).exists():
                raise DuplicateKey(self.entity_name, 'id', str(entity.pk)) from e
            logger.error(f"{self.entity_name} insert failed: {e}")
            raise
        logger.info(f"{self.entity_name} created - ID: {entity.pk}")
        return entity

    def update(self, entity: T) -> T:
        try:
            with transaction.atomic():
                existing = self.model.objects.select_for_update().filter(pk=entity.pk).first()
                if existing is None:
                    raise NotFound(self.entity_name, entity.pk)
                self._before_update(existing, entity)
                for field in self.mutable_fields:
                    setattr(existing, field, getattr(entity, field))
                existing.updated_at = timezone.now()
                existing.save(update_fields=[*self.mutable_fields, 'updated_at'])
        except IntegrityError as e:
            self._translate_integrity_error(entity, e)
            logger.error(f"{self.entity_name} update failed: {e}")
            raise
        entity.created_at = existing.created_at
        entity.updated_at = existing.updated_at
        logger.info(f"{self.entity_name} updated - ID: {existing.pk}")
        return existing

    def delete(self, id) -> bool:
        with transaction.atomic():
            entity = self.model.objects.select_for_update().filter(pk=id).first()
            if entity is None:
                logger.debug(f"{self.entity_name} {id} not found, nothing to delete")
                return False
            self._before_delete(entity)
            entity.delete()
        logger.info(f"{self.entity_name} deleted - ID: {id}")
        return True

    def _translate_integrity_error(self, entity: T, error: IntegrityError) -> None:
        pass

class PatientRepository(BaseRepository[Patient]):
    model = Patient
    entity_name = 'Patient'
    ordering = ('last_name', 'first_name')
    mutable_fields = ('first_name', 'last_name')

    def get_by_id_with_relations(self, id) -> Optional[Patient]:
        return (
            Patient.objects
            .prefetch_related('therapy_projects')
            .filter(pk=id)
            .first()
        )

    def _search_filter(self, term: str) -> Q:
        return Q(first_name__icontains=term) | Q(last_name__icontains=term)

    def _before_delete(self, patient: Patient) -> None:
        # Assignment rows go first, then the projects, then the patient
        assignments = TherapyProject.educators.through.objects.filter(therapyproject__patient_id=patient.pk)
        removed_links, _ = assignments.delete()
        removed_projects, _ = TherapyProject.objects.filter(patient_id=patient.pk).delete()
        logger.info(
            f"Cascading delete for patient {patient.pk} - projects: {removed_projects}, "
            f"educator assignments: {removed_links}"
        )

class TherapyProjectRepository(BaseRepository[TherapyProject]):
    model = TherapyProject
    entity_name = 'TherapyProject'
    ordering = ('-start_date', 'title')
    mutable_fields = ('patient_id', 'title', 'description', 'start_date', 'end_date', 'status')

    def get_by_id_with_relations(self, id) -> Optional[TherapyProject]:
        return (
            TherapyProject.objects
            .select_related('patient')
            .prefetch_related('educators')
            .filter(pk=id)
            .first()
        )

    def get_by_patient_id(self, patient_id) -> List[TherapyProject]:
        return list(self._queryset().filter(patient_id=patient_id))

    def get_by_educator_id(self, educator_id) -> List[TherapyProject]:
        return list(self._queryset().filter(educators__id=educator_id))

    def get_by_status(self, status: Optional[str]) -> List[TherapyProject]:
        if status is None or not status.strip():
            return self.get_all()
        return list(self._queryset().filter(status=status.strip()))

    def count_by_status(self) -> Dict[str, int]:
        rows = TherapyProject.objects.order_by().values('status').annotate(total=Count('id'))
        return {row['status']: row['total'] for row in rows}

    def _search_filter(self, term: str) -> Q:
        return Q(title__icontains=term) | Q(description__icontains=term)

    def _require_patient(self, patient_id) -> None:
        if patient_id is None or not Patient.objects.filter(pk=patient_id).exists():
            logger.warning(f"Referenced patient {patient_id} does not exist")
            raise NotFound('Patient', patient_id)

    def _before_add(self, project: TherapyProject) -> None:
        self._require_patient(project.patient_id)

    def _before_update(self, existing: TherapyProject, project: TherapyProject) -> None:
        if existing.patient_id != project.patient_id:
            self._require_patient(project.patient_id)

    def _before_delete(self, project: TherapyProject) -> None:
        project.educators.clear()

    def assign_educator(self, project_id, educator_id) -> bool:
        """Link an educator to a project.

        Returns False when the pair was already linked (nothing written).
        Raises NotFound for a missing project or educator.
        """
        with transaction.atomic():
            project = TherapyProject.objects.select_for_update().filter(pk=project_id).first()
            if project is None:
                raise NotFound('TherapyProject', project_id)
            educator = ProfessionalEducator.objects.filter(pk=educator_id).first()
            if educator is None:
                raise NotFound('ProfessionalEducator', educator_id)
            if project.educators.filter(pk=educator_id).exists():
                logger.debug(f"Educator {educator_id} already assigned to project {project_id}")
                return False
            project.educators.add(educator)
            project.updated_at = timezone.now()
            project.save(update_fields=['updated_at'])
        logger.info(f"Educator {educator_id} assigned to project {project_id}")
        return True

    def remove_educator(self, project_id, educator_id) -> bool:
        """Unlink an educator from a project.

        Returns False when the pair was not linked. Raises NotFound for a
        missing project only.
        """
        with transaction.atomic():
            project = TherapyProject.objects.select_for_update().filter(pk=project_id).first()
            if project is None:
                raise NotFound('TherapyProject', project_id)
            if not project.educators.filter(pk=educator_id).exists():
                logger.debug(f"Educator {educator_id} not assigned to project {project_id}")
                return False
            project.educators.remove(educator_id)
            project.updated_at = timezone.now()
            project.save(update_fields=['updated_at'])
        logger.info(f"Educator {educator_id} removed from project {project_id}")
        return True

class EducatorRepository(BaseRepository[ProfessionalEducator]):
    model = ProfessionalEducator
    entity_name = 'ProfessionalEducator'
    ordering = ('last_name', 'first_name')
    mutable_fields = (
        'first_name',
        'last_name',
        'email',
        'phone_number',
        'date_of_birth',
        'specialization',
        'license_number',
        'hire_date',
        'status',
        'role',
    )

    def get_by_id_with_relations(self, id) -> Optional[ProfessionalEducator]:
        return (
            ProfessionalEducator.objects
            .prefetch_related('therapy_projects__patient')
            .filter(pk=id)
            .first()
        )

    def get_by_status(self, status: str) -> List[ProfessionalEducator]:
        return list(self._queryset().filter(status=status))

    def get_by_specialization(self, specialization: str) -> List[ProfessionalEducator]:
        return list(self._queryset().filter(specialization=specialization))

    def get_by_project_id(self, project_id) -> List[ProfessionalEducator]:
        return list(self._queryset().filter(therapy_projects__id=project_id))

    def get_unique_specializations(self) -> List[str]:
        values = ProfessionalEducator.objects.order_by().values_list('specialization', flat=True).distinct()
        return sorted({value.strip() for value in values if value and value.strip()})

    def get_current_user(self) -> Optional[ProfessionalEducator]:
        return ProfessionalEducator.objects.filter(is_current_user=True).first()

    def count_by_status(self) -> Dict[str, int]:
        rows = ProfessionalEducator.objects.order_by().values('status').annotate(total=Count('id'))
        return {row['status']: row['total'] for row in rows}

    def email_exists(self, email: Optional[str], exclude_id: Any = None) -> bool:
        if email is None or not email.strip():
            return False
        query = ProfessionalEducator.objects.filter(email__iexact=email.strip())
        if exclude_id is not None:
            query = query.exclude(pk=exclude_id)
        return query.exists()

    def _search_filter(self, term: str) -> Q:
        return (
            Q(first_name__icontains=term)
            | Q(last_name__icontains=term)
            | Q(email__icontains=term)
        )

    def _before_add(self, educator: ProfessionalEducator) -> None:
        if self.email_exists(educator.email):
            raise DuplicateKey(self.entity_name, 'email', educator.email)

    def _before_update(self, existing: ProfessionalEducator, educator: ProfessionalEducator) -> None:
        if self.email_exists(educator.email, exclude_id=existing.pk):
            raise DuplicateKey(self.entity_name, 'email', educator.email)

    def _before_delete(self, educator: ProfessionalEducator) -> None:
        educator.therapy_projects.clear()

    def _translate_integrity_error(self, educator: ProfessionalEducator, error: IntegrityError) -> None:
        # The unique index on email catches writers that raced past the pre-check
        if self.email_exists(educator.email, exclude_id=educator.pk):
            raise DuplicateKey(self.entity_name, 'email', educator.email) from error
