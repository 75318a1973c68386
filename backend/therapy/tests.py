from django.db import IntegrityError, transaction
from django.test import TestCase, Client
from django.utils import timezone
from datetime import date, timedelta
from io import BytesIO
from unittest import mock
import json
import uuid
from openpyxl import load_workbook
from .exceptions import ConfigurationError, DuplicateKey, IllegalTransition, NotFound, ValidationFailed
from .export import export_to_csv, export_to_excel, get_projects_for_export, get_export_filename
from .models import EducatorRole, EducatorStatus, Patient, ProfessionalEducator, ProjectStatus, TherapyProject
from .repositories import EducatorRepository, PatientRepository, TherapyProjectRepository
from .services import ConfigurationService, DashboardService, EducatorService, PatientService, TherapyProjectService
from .validators import EducatorValidator, PatientValidator, TherapyProjectValidator, age_on


def build_educator(**overrides):
    fields = {
        "first_name": "Anna",
        "last_name": "Bianchi",
        "email": "anna.bianchi@example.com",
        "phone_number": "+39 333 1234567",
        "date_of_birth": date(1985, 4, 12),
        "specialization": "Speech Therapy",
        "license_number": "LIC-001",
        "hire_date": date(2015, 9, 1),
    }
    fields.update(overrides)
    return ProfessionalEducator(**fields)


class PatientModelTest(TestCase):
    def setUp(self):
        self.patient = Patient.objects.create(first_name="Mario", last_name="Rossi")

    def test_patient_creation(self):
        self.assertIsInstance(self.patient.id, uuid.UUID)
        self.assertIsNotNone(self.patient.created_at)
        self.assertIsNone(self.patient.updated_at)

    def test_patient_str(self):
        self.assertEqual(str(self.patient), "Mario Rossi")
        self.assertEqual(self.patient.full_name, "Mario Rossi")

    def test_project_cascade_delete(self):
        TherapyProject.objects.create(patient=self.patient, title="PTRP 2025", start_date=date(2025, 1, 1))
        self.patient.delete()
        self.assertEqual(TherapyProject.objects.count(), 0)


class ProfessionalEducatorModelTest(TestCase):
    def setUp(self):
        self.educator = build_educator()
        self.educator.save()

    def test_educator_defaults(self):
        self.assertEqual(self.educator.status, EducatorStatus.ACTIVE)
        self.assertEqual(self.educator.role, EducatorRole.EDUCATOR)
        self.assertFalse(self.educator.is_current_user)

    def test_educator_str(self):
        self.assertEqual(str(self.educator), "Anna Bianchi (Speech Therapy)")

    def test_email_unique(self):
        with self.assertRaises(IntegrityError):
            with transaction.atomic():
                build_educator(license_number="LIC-002").save()

    def test_single_current_user(self):
        build_educator(email="first@example.com", is_current_user=True).save()
        with self.assertRaises(IntegrityError):
            with transaction.atomic():
                build_educator(email="second@example.com", is_current_user=True).save()


class TherapyProjectModelTest(TestCase):
    def test_project_defaults(self):
        patient = Patient.objects.create(first_name="Mario", last_name="Rossi")
        project = TherapyProject.objects.create(patient=patient, title="PTRP 2025", start_date=date(2025, 1, 1))
        self.assertEqual(project.status, ProjectStatus.IN_PROGRESS)
        self.assertIsNone(project.end_date)
        self.assertEqual(str(project), "PTRP 2025 (In Progress)")


class PatientRepositoryTest(TestCase):
    def setUp(self):
        self.repository = PatientRepository()
        self.rossi = self.repository.add(Patient(first_name="Mario", last_name="Rossi"))
        self.bianchi = self.repository.add(Patient(first_name="Luca", last_name="Bianchi"))

    def test_get_all_ordered_by_last_name(self):
        patients = self.repository.get_all()
        self.assertEqual([p.last_name for p in patients], ["Bianchi", "Rossi"])

    def test_get_by_id_missing_returns_none(self):
        self.assertIsNone(self.repository.get_by_id(uuid.uuid4()))

    def test_add_then_get_by_id(self):
        loaded = self.repository.get_by_id(self.rossi.id)
        self.assertEqual(loaded.first_name, "Mario")
        self.assertEqual(loaded.last_name, "Rossi")
        self.assertIsNone(loaded.updated_at)

    def test_add_existing_id_raises_duplicate_key(self):
        with self.assertRaises(DuplicateKey) as ctx:
            self.repository.add(Patient(id=self.rossi.id, first_name="Other", last_name="Person"))
        self.assertEqual(ctx.exception.field, 'id')

    def test_update_sets_updated_at(self):
        self.rossi.first_name = "Marco"
        updated = self.repository.update(self.rossi)
        self.assertEqual(updated.first_name, "Marco")
        self.assertIsNotNone(updated.updated_at)

    def test_update_missing_raises_not_found(self):
        with self.assertRaises(NotFound):
            self.repository.update(Patient(id=uuid.uuid4(), first_name="Ghost", last_name="Patient"))

    def test_search_matches_either_name(self):
        self.assertEqual(self.repository.search("ross"), [self.rossi])
        self.assertEqual(self.repository.search("LUCA"), [self.bianchi])

    def test_search_blank_returns_all(self):
        self.assertEqual(len(self.repository.search("")), 2)
        self.assertEqual(len(self.repository.search("   ")), 2)
        self.assertEqual(len(self.repository.search(None)), 2)

    def test_delete_missing_returns_false(self):
        self.assertFalse(self.repository.delete(uuid.uuid4()))

    def test_delete_cascades_projects_and_assignments(self):
        educator = build_educator()
        educator.save()
        first = TherapyProject.objects.create(patient=self.rossi, title="PTRP 2025", start_date=date(2025, 1, 1))
        TherapyProject.objects.create(patient=self.rossi, title="PTRP 2026", start_date=date(2026, 1, 1))
        first.educators.add(educator)

        self.assertTrue(self.repository.delete(self.rossi.id))

        self.assertEqual(TherapyProjectRepository().get_by_patient_id(self.rossi.id), [])
        self.assertEqual(TherapyProject.educators.through.objects.count(), 0)
        self.assertTrue(ProfessionalEducator.objects.filter(pk=educator.pk).exists())


class TherapyProjectRepositoryTest(TestCase):
    def setUp(self):
        self.repository = TherapyProjectRepository()
        self.patient = Patient.objects.create(first_name="Mario", last_name="Rossi")
        self.educator = build_educator()
        self.educator.save()
        self.project = self.repository.add(TherapyProject(
            patient_id=self.patient.id,
            title="PTRP 2025",
            description="Autonomy and social skills",
            start_date=date(2025, 1, 1),
        ))

    def test_add_requires_existing_patient(self):
        with self.assertRaises(NotFound) as ctx:
            self.repository.add(TherapyProject(patient_id=uuid.uuid4(), title="Orphan", start_date=date(2025, 1, 1)))
        self.assertEqual(ctx.exception.entity, 'Patient')

    def test_get_all_newest_first(self):
        older = self.repository.add(TherapyProject(patient_id=self.patient.id, title="PTRP 2024", start_date=date(2024, 1, 1)))
        self.assertEqual(self.repository.get_all(), [self.project, older])

    def test_search_title_and_description(self):
        self.assertEqual(self.repository.search("ptrp"), [self.project])
        self.assertEqual(self.repository.search("social"), [self.project])
        self.assertEqual(self.repository.search("nothing"), [])

    def test_get_by_status_blank_returns_all(self):
        self.assertEqual(self.repository.get_by_status(""), [self.project])
        self.assertEqual(self.repository.get_by_status(ProjectStatus.COMPLETED), [])

    def test_assign_educator_twice_keeps_one_assignment(self):
        self.assertTrue(self.repository.assign_educator(self.project.id, self.educator.id))
        self.assertFalse(self.repository.assign_educator(self.project.id, self.educator.id))
        self.assertEqual(self.project.educators.count(), 1)
        self.assertEqual(self.repository.get_by_educator_id(self.educator.id), [self.project])

    def test_assign_sets_updated_at(self):
        self.repository.assign_educator(self.project.id, self.educator.id)
        self.assertIsNotNone(self.repository.get_by_id(self.project.id).updated_at)

    def test_assign_missing_educator_raises_not_found(self):
        with self.assertRaises(NotFound) as ctx:
            self.repository.assign_educator(self.project.id, uuid.uuid4())
        self.assertEqual(ctx.exception.entity, 'ProfessionalEducator')

    def test_assign_missing_project_raises_not_found(self):
        with self.assertRaises(NotFound) as ctx:
            self.repository.assign_educator(uuid.uuid4(), self.educator.id)
        self.assertEqual(ctx.exception.entity, 'TherapyProject')

    def test_remove_unassigned_educator_is_noop(self):
        self.assertFalse(self.repository.remove_educator(self.project.id, self.educator.id))
        self.assertFalse(self.repository.remove_educator(self.project.id, uuid.uuid4()))

    def test_remove_educator(self):
        self.repository.assign_educator(self.project.id, self.educator.id)
        self.assertTrue(self.repository.remove_educator(self.project.id, self.educator.id))
        self.assertEqual(self.project.educators.count(), 0)

    def test_delete_clears_assignments_only(self):
        self.repository.assign_educator(self.project.id, self.educator.id)
        self.assertTrue(self.repository.delete(self.project.id))
        self.assertEqual(TherapyProject.educators.through.objects.count(), 0)
        self.assertTrue(Patient.objects.filter(pk=self.patient.pk).exists())
        self.assertTrue(ProfessionalEducator.objects.filter(pk=self.educator.pk).exists())

    def test_get_by_id_with_relations(self):
        self.repository.assign_educator(self.project.id, self.educator.id)
        project = self.repository.get_by_id_with_relations(self.project.id)
        self.assertEqual(project.patient, self.patient)
        self.assertEqual(list(project.educators.all()), [self.educator])


class EducatorRepositoryTest(TestCase):
    def setUp(self):
        self.repository = EducatorRepository()
        self.anna = self.repository.add(build_educator())
        self.paolo = self.repository.add(build_educator(
            first_name="Paolo",
            last_name="Verdi",
            email="paolo.verdi@example.com",
            specialization="Psychomotricity",
            status=EducatorStatus.INACTIVE,
        ))

    def test_add_duplicate_email_case_insensitive(self):
        with self.assertRaises(DuplicateKey):
            self.repository.add(build_educator(email="ANNA.BIANCHI@example.com"))

    def test_update_to_foreign_email_raises(self):
        self.paolo.email = self.anna.email
        with self.assertRaises(DuplicateKey):
            self.repository.update(self.paolo)

    def test_update_keeping_own_email(self):
        self.anna.phone_number = "+39 333 7654321"
        updated = self.repository.update(self.anna)
        self.assertEqual(updated.phone_number, "+39 333 7654321")

    def test_get_by_status(self):
        self.assertEqual(self.repository.get_by_status(EducatorStatus.INACTIVE), [self.paolo])

    def test_unique_specializations_sorted(self):
        self.repository.add(build_educator(email="third@example.com", specialization="Speech Therapy"))
        self.assertEqual(self.repository.get_unique_specializations(), ["Psychomotricity", "Speech Therapy"])

    def test_search_blank_returns_all(self):
        self.assertEqual(len(self.repository.search("")), 2)

    def test_search_by_email(self):
        self.assertEqual(self.repository.search("paolo.verdi"), [self.paolo])

    def test_count_by_status(self):
        counts = self.repository.count_by_status()
        self.assertEqual(counts[EducatorStatus.ACTIVE], 1)
        self.assertEqual(counts[EducatorStatus.INACTIVE], 1)

    def test_delete_unlinks_projects(self):
        patient = Patient.objects.create(first_name="Mario", last_name="Rossi")
        project = TherapyProject.objects.create(patient=patient, title="PTRP 2025", start_date=date(2025, 1, 1))
        project.educators.add(self.anna)
        self.assertTrue(self.repository.delete(self.anna.id))
        self.assertEqual(project.educators.count(), 0)
        self.assertTrue(TherapyProject.objects.filter(pk=project.pk).exists())


class ValidatorTest(TestCase):
    def setUp(self):
        self.today = date(2026, 10, 19)

    def test_patient_names_required(self):
        issues = PatientValidator.validate(Patient(first_name=" ", last_name=None))
        self.assertEqual([issue.field for issue in issues], ['first_name', 'last_name'])

    def test_patient_name_too_long(self):
        issues = PatientValidator.validate(Patient(first_name="x" * 101, last_name="Rossi"))
        self.assertEqual(len(issues), 1)

    def test_project_issues_aggregated(self):
        project = TherapyProject(patient_id=None, title="ab", start_date=None, status="Cancelled")
        fields = [issue.field for issue in TherapyProjectValidator.validate(project, self.today)]
        self.assertEqual(fields, ['patient_id', 'title', 'start_date', 'status'])

    def test_project_start_date_window(self):
        self.assertEqual(TherapyProjectValidator.check_dates(self.today + timedelta(days=365), None, self.today), [])
        issues = TherapyProjectValidator.check_dates(self.today + timedelta(days=366), None, self.today)
        self.assertEqual(issues[0].field, 'start_date')

    def test_project_end_before_start(self):
        issues = TherapyProjectValidator.check_dates(date(2025, 6, 1), date(2025, 5, 31), self.today)
        self.assertEqual([issue.field for issue in issues], ['end_date'])

    def test_project_historical_dates_allowed(self):
        self.assertEqual(TherapyProjectValidator.check_dates(date(2020, 1, 1), date(2020, 12, 31), self.today), [])

    def test_age_on(self):
        self.assertEqual(age_on(date(2000, 10, 20), self.today), 25)
        self.assertEqual(age_on(date(2000, 10, 19), self.today), 26)

    def test_educator_valid(self):
        self.assertEqual(EducatorValidator.validate(build_educator(), self.today), [])

    def test_educator_too_young(self):
        educator = build_educator(date_of_birth=date(2010, 1, 1))
        issues = EducatorValidator.validate(educator, self.today)
        self.assertEqual([issue.field for issue in issues], ['date_of_birth'])

    def test_educator_issues_aggregated(self):
        educator = build_educator(
            first_name="",
            email="not-an-email",
            hire_date=self.today + timedelta(days=400),
            role="Director",
        )
        fields = [issue.field for issue in EducatorValidator.validate(educator, self.today)]
        self.assertEqual(fields, ['first_name', 'email', 'hire_date', 'role'])

    def test_educator_date_of_birth_must_be_past(self):
        for date_of_birth in (self.today, self.today + timedelta(days=1)):
            issues = EducatorValidator.check_date_of_birth(date_of_birth, self.today)
            self.assertEqual(issues[0].message, 'Date of birth must be in the past')

    def test_educator_age_eighteen_boundary(self):
        self.assertEqual(EducatorValidator.check_date_of_birth(date(2008, 10, 19), self.today), [])
        issues = EducatorValidator.check_date_of_birth(date(2008, 10, 20), self.today)
        self.assertEqual(issues[0].message, 'Educator must be at least 18 years old')

    def test_educator_age_hundred_boundary(self):
        self.assertEqual(EducatorValidator.check_date_of_birth(date(1925, 10, 20), self.today), [])
        issues = EducatorValidator.check_date_of_birth(date(1925, 10, 19), self.today)
        self.assertEqual(issues[0].message, 'Date of birth is not realistic')
        issues = EducatorValidator.check_date_of_birth(date(1900, 1, 1), self.today)
        self.assertEqual(issues[0].message, 'Date of birth is not realistic')

    def test_educator_hire_date_window(self):
        self.assertIsNone(EducatorValidator.check_hire_date(self.today + timedelta(days=365), self.today))
        issue = EducatorValidator.check_hire_date(self.today + timedelta(days=366), self.today)
        self.assertEqual(issue.field, 'hire_date')
        self.assertEqual(EducatorValidator.check_hire_date(None, self.today).message, 'Hire date is required')

    def test_project_description_length(self):
        project = TherapyProject(patient_id=uuid.uuid4(), title="PTRP 2025", start_date=date(2025, 1, 1))
        project.description = "x" * 2000
        self.assertEqual(TherapyProjectValidator.validate(project, self.today), [])
        project.description = "x" * 2001
        fields = [issue.field for issue in TherapyProjectValidator.validate(project, self.today)]
        self.assertEqual(fields, ['description'])

    def test_completed_project_requires_end_date(self):
        project = TherapyProject(
            patient_id=uuid.uuid4(), title="PTRP 2025", start_date=date(2025, 1, 1),
            status=ProjectStatus.COMPLETED,
        )
        fields = [issue.field for issue in TherapyProjectValidator.validate(project, self.today)]
        self.assertEqual(fields, ['end_date'])
        project.end_date = date(2025, 12, 31)
        self.assertEqual(TherapyProjectValidator.validate(project, self.today), [])


class PatientServiceTest(TestCase):
    def setUp(self):
        self.service = PatientService()

    def test_add_invalid_raises_validation_failed(self):
        with self.assertRaises(ValidationFailed) as ctx:
            self.service.add(Patient(first_name="", last_name=""))
        self.assertEqual(ctx.exception.fields, ['first_name', 'last_name'])
        self.assertEqual(Patient.objects.count(), 0)

    def test_delete_missing_raises_not_found(self):
        with self.assertRaises(NotFound):
            self.service.delete(uuid.uuid4())

    def test_get_by_id_with_projects(self):
        patient = self.service.add(Patient(first_name="Mario", last_name="Rossi"))
        TherapyProject.objects.create(patient=patient, title="PTRP 2025", start_date=date(2025, 1, 1))
        loaded = self.service.get_by_id_with_projects(patient.id)
        self.assertEqual(loaded.therapy_projects.count(), 1)


class TherapyProjectServiceTest(TestCase):
    def setUp(self):
        self.patients = PatientService()
        self.service = TherapyProjectService()
        self.patient = self.patients.add(Patient(first_name="Mario", last_name="Rossi"))
        self.project = self.service.add(TherapyProject(
            patient_id=self.patient.id,
            title="PTRP 2025",
            start_date=date(2025, 1, 1),
        ))

    def test_completion_scenario(self):
        with self.assertRaises(IllegalTransition):
            self.service.complete_project(self.project.id)

        self.project.end_date = date(2025, 12, 31)
        self.service.update(self.project)

        completed = self.service.complete_project(self.project.id)
        self.assertEqual(completed.status, ProjectStatus.COMPLETED)
        self.assertIsNotNone(completed.updated_at)

    def test_completed_project_cannot_go_on_hold_or_resume(self):
        self.project.end_date = date(2025, 12, 31)
        self.service.update(self.project)
        self.service.complete_project(self.project.id)
        with self.assertRaises(IllegalTransition):
            self.service.put_on_hold(self.project.id)
        with self.assertRaises(IllegalTransition):
            self.service.resume_project(self.project.id)

    def test_hold_and_resume(self):
        on_hold = self.service.put_on_hold(self.project.id)
        self.assertEqual(on_hold.status, ProjectStatus.ON_HOLD)
        with self.assertRaises(IllegalTransition):
            self.service.put_on_hold(self.project.id)
        resumed = self.service.resume_project(self.project.id)
        self.assertEqual(resumed.status, ProjectStatus.IN_PROGRESS)

    def test_resume_in_progress_raises(self):
        with self.assertRaises(IllegalTransition):
            self.service.resume_project(self.project.id)

    def test_on_hold_project_cannot_complete(self):
        self.project.end_date = date(2025, 12, 31)
        self.service.update(self.project)
        self.service.put_on_hold(self.project.id)
        with self.assertRaises(IllegalTransition):
            self.service.complete_project(self.project.id)

    def test_transition_missing_project_raises_not_found(self):
        with self.assertRaises(NotFound):
            self.service.complete_project(uuid.uuid4())

    def test_update_status_goes_through_transitions(self):
        self.project.status = ProjectStatus.ON_HOLD
        self.service.update(self.project)
        self.project.end_date = date(2025, 12, 31)
        self.project.status = ProjectStatus.COMPLETED
        with self.assertRaises(IllegalTransition):
            self.service.update(self.project)

    def test_update_reopening_completed_project_raises(self):
        self.project.end_date = date(2025, 12, 31)
        self.service.update(self.project)
        done = self.service.complete_project(self.project.id)
        done.status = ProjectStatus.IN_PROGRESS
        with self.assertRaises(IllegalTransition):
            self.service.update(done)

    def test_update_completed_project_keeps_end_date(self):
        self.project.end_date = date(2025, 12, 31)
        self.service.update(self.project)
        done = self.service.complete_project(self.project.id)
        done.end_date = None
        with self.assertRaises(ValidationFailed) as ctx:
            self.service.update(done)
        self.assertEqual(ctx.exception.fields, ['end_date'])
        self.assertEqual(self.service.get_by_id(self.project.id).end_date, date(2025, 12, 31))

    def test_update_in_progress_to_completed_without_end_date(self):
        self.project.status = ProjectStatus.COMPLETED
        with self.assertRaises(ValidationFailed) as ctx:
            self.service.update(self.project)
        self.assertEqual(ctx.exception.fields, ['end_date'])

    def test_add_completed_without_end_date(self):
        with self.assertRaises(ValidationFailed) as ctx:
            self.service.add(TherapyProject(
                patient_id=self.patient.id,
                title="Closed project",
                start_date=date(2024, 1, 1),
                status=ProjectStatus.COMPLETED,
            ))
        self.assertEqual(ctx.exception.fields, ['end_date'])

    def test_add_missing_patient_raises_not_found(self):
        with self.assertRaises(NotFound):
            self.service.add(TherapyProject(patient_id=uuid.uuid4(), title="Orphan", start_date=date(2025, 1, 1)))

    def test_update_to_missing_patient_raises_not_found(self):
        self.project.patient_id = uuid.uuid4()
        with self.assertRaises(NotFound) as ctx:
            self.service.update(self.project)
        self.assertEqual(ctx.exception.entity, 'Patient')

    def test_update_missing_project_raises_not_found(self):
        with self.assertRaises(NotFound):
            self.service.update(TherapyProject(
                id=uuid.uuid4(), patient_id=self.patient.id, title="Ghost", start_date=date(2025, 1, 1)
            ))

    def test_get_by_patient_id(self):
        self.assertEqual(self.service.get_by_patient_id(self.patient.id), [self.project])
        with self.assertRaises(NotFound):
            self.service.get_by_patient_id(uuid.uuid4())

    def test_get_by_status_invalid(self):
        with self.assertRaises(ValidationFailed):
            self.service.get_by_status("Cancelled")

    def test_assign_missing_project_raises_not_found(self):
        with self.assertRaises(NotFound):
            self.service.assign_educator(uuid.uuid4(), uuid.uuid4())

    def test_assign_and_remove_are_idempotent(self):
        educator = EducatorService().add(build_educator())
        self.service.assign_educator(self.project.id, educator.id)
        self.service.assign_educator(self.project.id, educator.id)
        self.assertEqual(EducatorService().get_by_project_id(self.project.id), [educator])
        self.service.remove_educator(self.project.id, educator.id)
        self.service.remove_educator(self.project.id, educator.id)
        self.assertEqual(EducatorService().get_by_project_id(self.project.id), [])

    def test_delete_patient_removes_projects(self):
        self.service.add(TherapyProject(patient_id=self.patient.id, title="PTRP 2026", start_date=date(2026, 1, 1)))
        self.patients.delete(self.patient.id)
        self.assertEqual(TherapyProjectRepository().get_by_patient_id(self.patient.id), [])
        self.assertEqual(self.service.get_all(), [])


class EducatorServiceTest(TestCase):
    def setUp(self):
        self.service = EducatorService()

    def test_duplicate_email_scenario(self):
        self.service.add(build_educator(email="a@x.com"))
        with self.assertRaises(DuplicateKey):
            self.service.add(build_educator(email="a@x.com", first_name="Paolo"))
        self.assertEqual(ProfessionalEducator.objects.count(), 1)

    def test_update_email_uniqueness(self):
        second = self.service.add(build_educator(email="second@example.com"))
        self.service.add(build_educator(email="third@example.com"))

        second.email = "third@example.com"
        with self.assertRaises(DuplicateKey):
            self.service.update(second)

        second.email = "second@example.com"
        second.specialization = "Music Therapy"
        updated = self.service.update(second)
        self.assertEqual(updated.specialization, "Music Therapy")

    def test_update_missing_raises_not_found(self):
        with self.assertRaises(NotFound):
            self.service.update(build_educator(id=uuid.uuid4()))

    def test_add_invalid_reports_every_field(self):
        with self.assertRaises(ValidationFailed) as ctx:
            self.service.add(build_educator(email="", phone_number="", license_number=""))
        self.assertEqual(ctx.exception.fields, ['email', 'phone_number', 'license_number'])

    def test_status_toggles_are_strict(self):
        educator = self.service.add(build_educator())
        with self.assertRaises(IllegalTransition):
            self.service.activate(educator.id)
        self.assertEqual(self.service.deactivate(educator.id).status, EducatorStatus.INACTIVE)
        self.assertEqual(self.service.set_on_leave(educator.id).status, EducatorStatus.ON_LEAVE)
        with self.assertRaises(IllegalTransition):
            self.service.set_on_leave(educator.id)
        self.assertEqual(self.service.activate(educator.id).status, EducatorStatus.ACTIVE)

    def test_status_toggle_missing_raises_not_found(self):
        with self.assertRaises(NotFound):
            self.service.deactivate(uuid.uuid4())

    def test_get_active_educators(self):
        active = self.service.add(build_educator())
        self.service.add(build_educator(email="inactive@example.com", status=EducatorStatus.INACTIVE))
        self.assertEqual(self.service.get_active_educators(), [active])

    def test_get_by_specialization_blank(self):
        with self.assertRaises(ValidationFailed):
            self.service.get_by_specialization("  ")

    def test_get_by_status_invalid(self):
        with self.assertRaises(ValidationFailed):
            self.service.get_by_status("Retired")

    def test_delete_missing_raises_not_found(self):
        with self.assertRaises(NotFound):
            self.service.delete(uuid.uuid4())


class ConfigurationServiceTest(TestCase):
    def setUp(self):
        self.service = ConfigurationService()

    def test_not_configured_without_profile(self):
        self.assertFalse(self.service.is_configured())
        self.assertIsNone(self.service.get_current_user())
        self.assertIsNone(self.service.get_current_user_role())

    def test_setup_user_profile(self):
        profile = self.service.setup_user_profile(build_educator(role=EducatorRole.COORDINATOR))
        self.assertTrue(profile.is_current_user)
        self.assertTrue(self.service.is_configured())
        self.assertEqual(self.service.get_current_user_role(), EducatorRole.COORDINATOR)
        self.assertEqual(self.service.get_current_user_full_name(), "Anna Bianchi")

    def test_second_setup_rejected(self):
        self.service.setup_user_profile(build_educator())
        with self.assertRaises(ConfigurationError):
            self.service.setup_user_profile(build_educator(email="other@example.com"))

    def test_setup_validates_profile(self):
        educator = build_educator(email="broken")
        with self.assertRaises(ValidationFailed):
            self.service.setup_user_profile(educator)
        self.assertFalse(educator.is_current_user)
        self.assertFalse(self.service.is_configured())

    def test_concurrent_setup_raises_configuration_error(self):
        existing = build_educator(email="first@example.com", is_current_user=True)
        existing.save()
        educator = build_educator(email="second@example.com")
        repository = self.service._educator_repository
        with mock.patch.object(repository, 'get_current_user', side_effect=[None, existing]):
            with self.assertRaises(ConfigurationError) as ctx:
                self.service.setup_user_profile(educator)
        self.assertEqual(ctx.exception.details["current_user_id"], str(existing.pk))
        self.assertFalse(educator.is_current_user)
        self.assertFalse(ProfessionalEducator.objects.filter(email="second@example.com").exists())

    def test_initialize_database_runs_migrations(self):
        with mock.patch('therapy.services.call_command') as call_command:
            self.service.initialize_database()
        call_command.assert_called_once_with('migrate', interactive=False, verbosity=0)


class DashboardServiceTest(TestCase):
    def test_stats(self):
        patient = Patient.objects.create(first_name="Mario", last_name="Rossi")
        TherapyProject.objects.create(patient=patient, title="PTRP 2025", start_date=date(2025, 1, 1))
        TherapyProject.objects.create(
            patient=patient, title="PTRP 2024", start_date=date(2024, 1, 1),
            end_date=date(2024, 12, 31), status=ProjectStatus.COMPLETED
        )
        build_educator().save()
        build_educator(email="leave@example.com", status=EducatorStatus.ON_LEAVE).save()

        stats = DashboardService().get_stats()
        self.assertEqual(stats["total_patients"], 1)
        self.assertEqual(stats["total_projects"], 2)
        self.assertEqual(stats["active_projects"], 1)
        self.assertEqual(stats["projects_by_status"][ProjectStatus.ON_HOLD], 0)
        self.assertEqual(stats["operational_educators"], 1)
        self.assertEqual(stats["educators_by_status"][EducatorStatus.ON_LEAVE], 1)


class ExportTest(TestCase):
    def setUp(self):
        self.patient = Patient.objects.create(first_name="Mario", last_name="Rossi")
        self.educator = build_educator()
        self.educator.save()
        self.project1 = TherapyProject.objects.create(
            patient=self.patient,
            title="PTRP 2025",
            description="Autonomy goals",
            start_date=date(2025, 1, 1),
        )
        self.project1.educators.add(self.educator)
        self.project2 = TherapyProject.objects.create(
            patient=self.patient,
            title="PTRP 2024",
            start_date=date(2024, 1, 1),
            end_date=date(2024, 12, 31),
            status=ProjectStatus.COMPLETED,
        )

    def test_get_projects_for_export_all(self):
        self.assertEqual(get_projects_for_export(), [self.project1, self.project2])

    def test_get_projects_for_export_with_status_filter(self):
        self.assertEqual(get_projects_for_export(status=ProjectStatus.COMPLETED), [self.project2])

    def test_get_projects_for_export_with_date_filter(self):
        projects = get_projects_for_export(start_date=date(2024, 6, 1), end_date=date(2025, 6, 1))
        self.assertEqual(projects, [self.project1])

    def test_get_projects_for_export_with_patient_filter(self):
        self.assertEqual(get_projects_for_export(patient_id=uuid.uuid4()), [])

    def test_export_to_csv(self):
        csv_content = export_to_csv()
        self.assertIn("Project ID", csv_content)
        self.assertIn("PTRP 2025", csv_content)
        self.assertIn("Rossi", csv_content)
        self.assertIn("Anna Bianchi", csv_content)

    def test_export_to_excel(self):
        excel_content = export_to_excel()
        self.assertIsInstance(excel_content, bytes)
        workbook = load_workbook(BytesIO(excel_content))
        sheet = workbook.active
        self.assertEqual(sheet.title, "Therapy Projects")
        self.assertEqual(sheet.cell(row=1, column=1).value, "Project ID")
        self.assertEqual(sheet.cell(row=2, column=2).value, "PTRP 2025")

    def test_get_export_filename_with_dates(self):
        filename = get_export_filename("csv", date(2025, 1, 1), date(2025, 1, 31))
        self.assertIn("20250101_to_20250131", filename)
        self.assertTrue(filename.startswith("therapy_projects_"))
        self.assertTrue(filename.endswith(".csv"))

    def test_get_export_filename_excel(self):
        self.assertTrue(get_export_filename("xlsx").endswith(".xlsx"))


class ViewsTest(TestCase):
    def setUp(self):
        self.client = Client()
        self.patient = Patient.objects.create(first_name="Mario", last_name="Rossi")

    def post_json(self, url, data=None):
        return self.client.post(url, data=json.dumps(data or {}), content_type='application/json')

    def put_json(self, url, data=None):
        return self.client.put(url, data=json.dumps(data or {}), content_type='application/json')

    def educator_payload(self, **overrides):
        data = {
            "first_name": "Anna",
            "last_name": "Bianchi",
            "email": "anna.bianchi@example.com",
            "phone_number": "+39 333 1234567",
            "date_of_birth": "1985-04-12",
            "specialization": "Speech Therapy",
            "license_number": "LIC-001",
            "hire_date": "2015-09-01",
        }
        data.update(overrides)
        return data

    def create_project(self, **overrides):
        data = {"patient_id": str(self.patient.id), "title": "PTRP 2025", "start_date": "2025-01-01"}
        data.update(overrides)
        return self.post_json('/api/projects/', data)

    def test_api_root(self):
        response = self.client.get('/')
        self.assertEqual(response.status_code, 200)

    def test_create_and_list_patients(self):
        response = self.post_json('/api/patients/', {"first_name": "Luca", "last_name": "Bianchi"})
        self.assertEqual(response.status_code, 201)
        response = self.client.get('/api/patients/?search=luca')
        self.assertEqual([p['last_name'] for p in response.json()], ["Bianchi"])

    def test_create_patient_invalid(self):
        response = self.post_json('/api/patients/', {"first_name": ""})
        self.assertEqual(response.status_code, 400)
        fields = [error['field'] for error in response.json()['errors']]
        self.assertEqual(fields, ['first_name', 'last_name'])

    def test_malformed_body(self):
        response = self.client.post('/api/patients/', data='{not json', content_type='application/json')
        self.assertEqual(response.status_code, 400)

    def test_patient_detail_and_update(self):
        url = f'/api/patients/{self.patient.id}'
        response = self.put_json(url, {"first_name": "Marco"})
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()['last_name'], "Rossi")
        response = self.client.get(url)
        self.assertEqual(response.json()['first_name'], "Marco")
        self.assertEqual(response.json()['therapy_projects'], [])

    def test_patient_not_found(self):
        response = self.client.get(f'/api/patients/{uuid.uuid4()}')
        self.assertEqual(response.status_code, 404)
        response = self.client.delete(f'/api/patients/{uuid.uuid4()}')
        self.assertEqual(response.status_code, 404)

    def test_delete_patient_removes_projects(self):
        self.create_project()
        response = self.client.delete(f'/api/patients/{self.patient.id}')
        self.assertEqual(response.status_code, 204)
        self.assertEqual(TherapyProject.objects.count(), 0)

    def test_project_completion_flow(self):
        response = self.create_project()
        self.assertEqual(response.status_code, 201)
        project_id = response.json()['id']

        response = self.post_json(f'/api/projects/{project_id}/complete')
        self.assertEqual(response.status_code, 409)
        self.assertEqual(response.json()['current_status'], ProjectStatus.IN_PROGRESS)

        response = self.put_json(f'/api/projects/{project_id}', {"end_date": "2025-12-31"})
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()['title'], "PTRP 2025")

        response = self.post_json(f'/api/projects/{project_id}/complete')
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()['status'], ProjectStatus.COMPLETED)
        self.assertIsNotNone(response.json()['updated_at'])

        response = self.post_json(f'/api/projects/{project_id}/hold')
        self.assertEqual(response.status_code, 409)

    def test_hold_and_resume_endpoints(self):
        project_id = self.create_project().json()['id']
        self.assertEqual(self.post_json(f'/api/projects/{project_id}/hold').json()['status'], ProjectStatus.ON_HOLD)
        self.assertEqual(self.post_json(f'/api/projects/{project_id}/resume').json()['status'], ProjectStatus.IN_PROGRESS)
        self.assertEqual(self.post_json(f'/api/projects/{project_id}/resume').status_code, 409)

    def test_create_project_missing_patient(self):
        response = self.create_project(patient_id=str(uuid.uuid4()))
        self.assertEqual(response.status_code, 404)

    def test_create_project_invalid(self):
        response = self.create_project(title="ab", start_date=None)
        self.assertEqual(response.status_code, 400)
        fields = [error['field'] for error in response.json()['errors']]
        self.assertIn('title', fields)
        self.assertIn('start_date', fields)

    def test_list_projects_by_status(self):
        self.create_project()
        self.assertEqual(len(self.client.get('/api/projects/', {'status': 'In Progress'}).json()), 1)
        self.assertEqual(self.client.get('/api/projects/', {'status': 'Cancelled'}).status_code, 400)

    def test_patient_projects(self):
        self.create_project()
        response = self.client.get(f'/api/patients/{self.patient.id}/projects')
        self.assertEqual(len(response.json()), 1)
        self.assertEqual(self.client.get(f'/api/patients/{uuid.uuid4()}/projects').status_code, 404)

    def test_assign_and_remove_educator(self):
        project_id = self.create_project().json()['id']
        educator_id = self.post_json('/api/educators/', self.educator_payload()).json()['id']
        url = f'/api/projects/{project_id}/educators/{educator_id}'

        self.assertEqual(self.put_json(url).status_code, 200)
        response = self.put_json(url)
        self.assertEqual(len(response.json()['educators']), 1)

        response = self.client.get(f'/api/educators/{educator_id}')
        self.assertEqual(response.json()['therapy_projects'][0]['patient_name'], "Mario Rossi")

        self.assertEqual(self.client.delete(url).json()['educators'], [])
        self.assertEqual(self.client.delete(url).status_code, 200)

    def test_assign_missing_educator(self):
        project_id = self.create_project().json()['id']
        response = self.put_json(f'/api/projects/{project_id}/educators/{uuid.uuid4()}')
        self.assertEqual(response.status_code, 404)

    def test_educator_duplicate_email(self):
        self.assertEqual(self.post_json('/api/educators/', self.educator_payload(email="a@x.com")).status_code, 201)
        response = self.post_json('/api/educators/', self.educator_payload(email="a@x.com"))
        self.assertEqual(response.status_code, 409)
        self.assertEqual(response.json()['field'], 'email')

    def test_educator_status_endpoints(self):
        educator_id = self.post_json('/api/educators/', self.educator_payload()).json()['id']
        self.assertEqual(self.post_json(f'/api/educators/{educator_id}/activate').status_code, 409)
        response = self.post_json(f'/api/educators/{educator_id}/leave')
        self.assertEqual(response.json()['status'], EducatorStatus.ON_LEAVE)
        response = self.post_json(f'/api/educators/{educator_id}/deactivate')
        self.assertEqual(response.json()['status'], EducatorStatus.INACTIVE)

    def test_educator_filters(self):
        self.post_json('/api/educators/', self.educator_payload())
        self.post_json('/api/educators/', self.educator_payload(email="p@example.com", specialization="Psychomotricity"))
        self.assertEqual(len(self.client.get('/api/educators/?specialization=Psychomotricity').json()), 1)
        self.assertEqual(len(self.client.get('/api/educators/?status=Active').json()), 2)
        response = self.client.get('/api/educators/specializations')
        self.assertEqual(response.json()['specializations'], ["Psychomotricity", "Speech Therapy"])

    def test_dashboard_stats(self):
        self.create_project()
        response = self.client.get('/api/dashboard/stats')
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()['total_patients'], 1)
        self.assertEqual(response.json()['projects_by_status']['In Progress'], 1)

    def test_configuration_flow(self):
        self.assertFalse(self.client.get('/api/configuration/status').json()['configured'])
        response = self.post_json('/api/configuration/profile', self.educator_payload(role="Coordinator"))
        self.assertEqual(response.status_code, 201)
        status_body = self.client.get('/api/configuration/status').json()
        self.assertTrue(status_body['configured'])
        self.assertEqual(status_body['current_user']['role'], "Coordinator")
        response = self.post_json('/api/configuration/profile', self.educator_payload(email="other@example.com"))
        self.assertEqual(response.status_code, 409)

    def test_export_projects_csv(self):
        self.create_project()
        response = self.client.get('/api/projects/export?format=csv')
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response['Content-Type'], 'text/csv')
        self.assertIn('attachment', response['Content-Disposition'])
        self.assertIn('PTRP 2025', response.content.decode())

    def test_export_projects_excel(self):
        self.create_project()
        response = self.client.get('/api/projects/export?format=xlsx')
        self.assertEqual(response.status_code, 200)
        self.assertIn('spreadsheetml.sheet', response['Content-Type'])

    def test_export_projects_invalid_params(self):
        self.assertEqual(self.client.get('/api/projects/export?format=invalid').status_code, 400)
        self.assertEqual(self.client.get('/api/projects/export?start_date=invalid').status_code, 400)
        self.assertEqual(self.client.get('/api/projects/export?status=Cancelled').status_code, 400)
        self.assertEqual(self.client.get('/api/projects/export?patient_id=abc').status_code, 400)

    def test_export_projects_with_date_filter(self):
        self.create_project()
        today = timezone.localdate()
        response = self.client.get(
            f'/api/projects/export?format=csv&start_date={(today - timedelta(days=3650)).isoformat()}'
            f'&end_date={today.isoformat()}'
        )
        self.assertEqual(response.status_code, 200)
        self.assertIn('PTRP 2025', response.content.decode())
