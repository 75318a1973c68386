import functools
import json
import logging
import traceback
import uuid
from datetime import datetime
from django.http import HttpResponse
from rest_framework import status
from rest_framework.decorators import api_view
from rest_framework.exceptions import APIException
from rest_framework.response import Response
from .exceptions import (
    ConfigurationError,
    DomainException,
    DuplicateKey,
    IllegalTransition,
    NotFound,
    ValidationFailed,
)
from .export import export_to_csv, export_to_excel, get_export_filename
from .models import ProjectStatus
from .serializers import (
    DashboardStatsSerializer,
    EducatorDetailSerializer,
    EducatorInputSerializer,
    EducatorSerializer,
    PatientDetailSerializer,
    PatientInputSerializer,
    PatientSerializer,
    TherapyProjectDetailSerializer,
    TherapyProjectInputSerializer,
    TherapyProjectSerializer,
)
from .services import (
    ConfigurationService,
    DashboardService,
    EducatorService,
    PatientService,
    TherapyProjectService,
)
logger = logging.getLogger('therapy')
ERROR_STATUS = {
    NotFound: status.HTTP_404_NOT_FOUND,
    ValidationFailed: status.HTTP_400_BAD_REQUEST,
    DuplicateKey: status.HTTP_409_CONFLICT,
    IllegalTransition: status.HTTP_409_CONFLICT,
    ConfigurationError: status.HTTP_409_CONFLICT,
}
def domain_errors(view):
    @functools.wraps(view)
    def wrapper(request, *args, **kwargs):
        try:
            return view(request, *args, **kwargs)
        except APIException:
            raise
        except DomainException as e:
            http_status = ERROR_STATUS.get(type(e), status.HTTP_400_BAD_REQUEST)
            logger.warning(f"{request.method} {request.path} rejected ({type(e).__name__}): {e.message}")
            body = {"detail": e.message, **e.details}
            return Response(body, status=http_status)
        except Exception as e:
            logger.error(f"Error in {view.__name__}: {str(e)}")
            logger.error(f"Traceback: {traceback.format_exc()}")
            return Response(
                {"detail": f"Internal server error: {str(e)}"},
                status=status.HTTP_500_INTERNAL_SERVER_ERROR
            )
    return wrapper
def _invalid_request(serializer):
    logger.warning(f"Request body rejected: {serializer.errors}")
    return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
@api_view(['GET'])
def api_root(request):
    logger.info(f"API root accessed from {request.META.get('REMOTE_ADDR', 'unknown')}")
    return Response({"message": "PTRP Care Program API"})
@api_view(['GET', 'POST'])
@domain_errors
def patients(request):
    service = PatientService()
    if request.method == 'GET':
        results = service.search(request.query_params.get('search'))
        return Response(PatientSerializer(results, many=True).data)
    serializer = PatientInputSerializer(data=request.data)
    if not serializer.is_valid():
        return _invalid_request(serializer)
    patient = service.add(serializer.to_patient())
    logger.info(f"New patient created - ID: {patient.id}, Name: {patient.full_name}")
    return Response(PatientSerializer(patient).data, status=status.HTTP_201_CREATED)
@api_view(['GET', 'PUT', 'DELETE'])
@domain_errors
def patient_detail(request, patient_id):
    service = PatientService()
    if request.method == 'DELETE':
        service.delete(patient_id)
        return Response(status=status.HTTP_204_NO_CONTENT)
    existing = service.get_by_id_with_projects(patient_id)
    if existing is None:
        raise NotFound('Patient', patient_id)
    if request.method == 'GET':
        return Response(PatientDetailSerializer(existing).data)
    serializer = PatientInputSerializer(data=request.data)
    if not serializer.is_valid():
        return _invalid_request(serializer)
    patient = service.update(serializer.to_patient(id=patient_id, existing=existing))
    return Response(PatientSerializer(patient).data)
@api_view(['GET'])
@domain_errors
def patient_projects(request, patient_id):
    projects = TherapyProjectService().get_by_patient_id(patient_id)
    return Response(TherapyProjectSerializer(projects, many=True).data)
@api_view(['GET', 'POST'])
@domain_errors
def projects(request):
    service = TherapyProjectService()
    if request.method == 'GET':
        status_param = request.query_params.get('status')
        if status_param:
            results = service.get_by_status(status_param)
        else:
            results = service.search(request.query_params.get('search'))
        return Response(TherapyProjectSerializer(results, many=True).data)
    serializer = TherapyProjectInputSerializer(data=request.data)
    if not serializer.is_valid():
        return _invalid_request(serializer)
    project = service.add(serializer.to_project())
    logger.info(f"Project created - ID: {project.id}, Patient: {project.patient_id}, Title: {project.title}")
    return Response(TherapyProjectSerializer(project).data, status=status.HTTP_201_CREATED)
@api_view(['GET', 'PUT', 'DELETE'])
@domain_errors
def project_detail(request, project_id):
    service = TherapyProjectService()
    if request.method == 'DELETE':
        service.delete(project_id)
        return Response(status=status.HTTP_204_NO_CONTENT)
    existing = service.get_by_id_with_relations(project_id)
    if existing is None:
        raise NotFound('TherapyProject', project_id)
    if request.method == 'GET':
        return Response(TherapyProjectDetailSerializer(existing).data)
    serializer = TherapyProjectInputSerializer(data=request.data)
    if not serializer.is_valid():
        return _invalid_request(serializer)
    project = service.update(serializer.to_project(id=project_id, existing=existing))
    return Response(TherapyProjectSerializer(project).data)
@api_view(['POST'])
@domain_errors
def complete_project(request, project_id):
    project = TherapyProjectService().complete_project(project_id)
    return Response(TherapyProjectSerializer(project).data)
@api_view(['POST'])
@domain_errors
def hold_project(request, project_id):
    project = TherapyProjectService().put_on_hold(project_id)
    return Response(TherapyProjectSerializer(project).data)
@api_view(['POST'])
@domain_errors
def resume_project(request, project_id):
    project = TherapyProjectService().resume_project(project_id)
    return Response(TherapyProjectSerializer(project).data)
@api_view(['PUT', 'DELETE'])
@domain_errors
def project_educator(request, project_id, educator_id):
    service = TherapyProjectService()
    if request.method == 'PUT':
        service.assign_educator(project_id, educator_id)
    else:
        service.remove_educator(project_id, educator_id)
    project = service.get_by_id_with_relations(project_id)
    return Response(TherapyProjectDetailSerializer(project).data)
def _json_error(message, status_code):
    return HttpResponse(
        json.dumps({"detail": message}),
        content_type='application/json',
        status=status_code
    )
def export_projects(request):
    try:
        format_param = request.GET.get('format', 'csv').lower()
        if format_param not in ['csv', 'excel', 'xlsx']:
            return _json_error("Invalid format. Must be 'csv' or 'excel'", 400)
        if format_param == 'excel':
            format_param = 'xlsx'
        status_param = request.GET.get('status')
        if status_param and status_param not in ProjectStatus.values:
            return _json_error(f"Invalid status. Must be one of: {', '.join(ProjectStatus.values)}", 400)
        patient_id = request.GET.get('patient_id')
        if patient_id:
            try:
                patient_id = uuid.UUID(patient_id)
            except ValueError:
                return _json_error("Invalid patient_id", 400)
        dates = {}
        for name in ('start_date', 'end_date'):
            value = request.GET.get(name)
            dates[name] = None
            if value:
                try:
                    dates[name] = datetime.strptime(value, '%Y-%m-%d').date()
                except ValueError:
                    return _json_error(f"Invalid {name} format. Use YYYY-MM-DD", 400)
        logger.info(
            f"Export request - format: {format_param}, status: {status_param}, patient_id: {patient_id}, "
            f"start_date: {dates['start_date']}, end_date: {dates['end_date']}"
        )
        filename = get_export_filename(format_param, dates['start_date'], dates['end_date'])
        if format_param == 'csv':
            content = export_to_csv(status_param, patient_id, dates['start_date'], dates['end_date'])
            response = HttpResponse(content, content_type='text/csv')
        else:
            content = export_to_excel(status_param, patient_id, dates['start_date'], dates['end_date'])
            response = HttpResponse(
                content,
                content_type='application/vnd.openxmlformats-officedocument.spreadsheetml.sheet'
            )
        response['Content-Disposition'] = f'attachment; filename="{filename}"'
        logger.info(f"Export completed - filename: {filename}")
        return response
    except Exception as e:
        logger.error(f"Error in export_projects: {str(e)}")
        logger.error(f"Traceback: {traceback.format_exc()}")
        return _json_error(f"Internal server error: {str(e)}", 500)
@api_view(['GET', 'POST'])
@domain_errors
def educators(request):
    service = EducatorService()
    if request.method == 'GET':
        status_param = request.query_params.get('status')
        specialization = request.query_params.get('specialization')
        if status_param:
            results = service.get_by_status(status_param)
        elif specialization is not None:
            results = service.get_by_specialization(specialization)
        else:
            results = service.search(request.query_params.get('search'))
        return Response(EducatorSerializer(results, many=True).data)
    serializer = EducatorInputSerializer(data=request.data)
    if not serializer.is_valid():
        return _invalid_request(serializer)
    educator = service.add(serializer.to_educator())
    logger.info(f"New educator created - ID: {educator.id}, Email: {educator.email}")
    return Response(EducatorSerializer(educator).data, status=status.HTTP_201_CREATED)
@api_view(['GET'])
@domain_errors
def educator_specializations(request):
    return Response({"specializations": EducatorService().get_available_specializations()})
@api_view(['GET', 'PUT', 'DELETE'])
@domain_errors
def educator_detail(request, educator_id):
    service = EducatorService()
    if request.method == 'DELETE':
        service.delete(educator_id)
        return Response(status=status.HTTP_204_NO_CONTENT)
    existing = service.get_by_id_with_projects(educator_id)
    if existing is None:
        raise NotFound('ProfessionalEducator', educator_id)
    if request.method == 'GET':
        return Response(EducatorDetailSerializer(existing).data)
    serializer = EducatorInputSerializer(data=request.data)
    if not serializer.is_valid():
        return _invalid_request(serializer)
    educator = service.update(serializer.to_educator(id=educator_id, existing=existing))
    return Response(EducatorSerializer(educator).data)
@api_view(['POST'])
@domain_errors
def activate_educator(request, educator_id):
    return Response(EducatorSerializer(EducatorService().activate(educator_id)).data)
@api_view(['POST'])
@domain_errors
def deactivate_educator(request, educator_id):
    return Response(EducatorSerializer(EducatorService().deactivate(educator_id)).data)
@api_view(['POST'])
@domain_errors
def educator_on_leave(request, educator_id):
    return Response(EducatorSerializer(EducatorService().set_on_leave(educator_id)).data)
@api_view(['GET'])
@domain_errors
def dashboard_stats(request):
    stats = DashboardService().get_stats()
    logger.info(f"Dashboard stats requested - patients: {stats['total_patients']}, active projects: {stats['active_projects']}")
    return Response(DashboardStatsSerializer(stats).data)
@api_view(['GET'])
@domain_errors
def configuration_status(request):
    service = ConfigurationService()
    configured = service.is_configured()
    current = service.get_current_user() if configured else None
    return Response({
        "configured": configured,
        "current_user": EducatorSerializer(current).data if current else None,
    })
@api_view(['POST'])
@domain_errors
def configuration_profile(request):
    serializer = EducatorInputSerializer(data=request.data)
    if not serializer.is_valid():
        return _invalid_request(serializer)
    profile = ConfigurationService().setup_user_profile(serializer.to_educator())
    return Response(EducatorSerializer(profile).data, status=status.HTTP_201_CREATED)
