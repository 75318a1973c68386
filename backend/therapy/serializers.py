from rest_framework import serializers
from .models import EducatorRole, EducatorStatus, Patient, ProfessionalEducator, ProjectStatus, TherapyProject
def _pick(data, field, existing, default=None):
    if field in data:
        return data[field]
    if existing is not None:
        return getattr(existing, field)
    return default
class PatientInputSerializer(serializers.Serializer):
    first_name = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    last_name = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    def to_patient(self, id=None, existing=None):
        data = self.validated_data
        return Patient(
            id=id,
            first_name=_pick(data, 'first_name', existing),
            last_name=_pick(data, 'last_name', existing),
        )
class TherapyProjectInputSerializer(serializers.Serializer):
    patient_id = serializers.UUIDField(required=False, allow_null=True)
    title = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    description = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    start_date = serializers.DateField(required=False, allow_null=True)
    end_date = serializers.DateField(required=False, allow_null=True)
    status = serializers.CharField(required=False, allow_blank=True)
    def to_project(self, id=None, existing=None):
        data = self.validated_data
        return TherapyProject(
            id=id,
            patient_id=_pick(data, 'patient_id', existing),
            title=_pick(data, 'title', existing),
            description=_pick(data, 'description', existing),
            start_date=_pick(data, 'start_date', existing),
            end_date=_pick(data, 'end_date', existing),
            status=_pick(data, 'status', existing, ProjectStatus.IN_PROGRESS),
        )
class EducatorInputSerializer(serializers.Serializer):
    first_name = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    last_name = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    email = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    phone_number = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    date_of_birth = serializers.DateField(required=False, allow_null=True)
    specialization = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    license_number = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    hire_date = serializers.DateField(required=False, allow_null=True)
    status = serializers.CharField(required=False, allow_blank=True)
    role = serializers.CharField(required=False, allow_blank=True)
    def to_educator(self, id=None, existing=None):
        data = self.validated_data
        return ProfessionalEducator(
            id=id,
            first_name=_pick(data, 'first_name', existing),
            last_name=_pick(data, 'last_name', existing),
            email=_pick(data, 'email', existing),
            phone_number=_pick(data, 'phone_number', existing),
            date_of_birth=_pick(data, 'date_of_birth', existing),
            specialization=_pick(data, 'specialization', existing),
            license_number=_pick(data, 'license_number', existing),
            hire_date=_pick(data, 'hire_date', existing),
            status=_pick(data, 'status', existing, EducatorStatus.ACTIVE),
            role=_pick(data, 'role', existing, EducatorRole.EDUCATOR),
        )
class PatientSerializer(serializers.ModelSerializer):
    class Meta:
        model = Patient
        fields = ['id', 'first_name', 'last_name', 'created_at', 'updated_at']
class EducatorSerializer(serializers.ModelSerializer):
    class Meta:
        model = ProfessionalEducator
        fields = [
            'id', 'first_name', 'last_name', 'email', 'phone_number', 'date_of_birth',
            'specialization', 'license_number', 'hire_date', 'status', 'role',
            'is_current_user', 'created_at', 'updated_at',
        ]
class TherapyProjectSerializer(serializers.ModelSerializer):
    patient_id = serializers.UUIDField(read_only=True)
    class Meta:
        model = TherapyProject
        fields = [
            'id', 'patient_id', 'title', 'description', 'start_date', 'end_date',
            'status', 'created_at', 'updated_at',
        ]
class PatientDetailSerializer(PatientSerializer):
    therapy_projects = TherapyProjectSerializer(many=True, read_only=True)
    class Meta(PatientSerializer.Meta):
        fields = PatientSerializer.Meta.fields + ['therapy_projects']
class TherapyProjectDetailSerializer(TherapyProjectSerializer):
    patient = PatientSerializer(read_only=True)
    educators = EducatorSerializer(many=True, read_only=True)
    class Meta(TherapyProjectSerializer.Meta):
        fields = TherapyProjectSerializer.Meta.fields + ['patient', 'educators']
class AssignedProjectSerializer(TherapyProjectSerializer):
    patient_name = serializers.CharField(source='patient.full_name', read_only=True)
    class Meta(TherapyProjectSerializer.Meta):
        fields = TherapyProjectSerializer.Meta.fields + ['patient_name']
class EducatorDetailSerializer(EducatorSerializer):
    therapy_projects = AssignedProjectSerializer(many=True, read_only=True)
    class Meta(EducatorSerializer.Meta):
        fields = EducatorSerializer.Meta.fields + ['therapy_projects']
class DashboardStatsSerializer(serializers.Serializer):
    total_patients = serializers.IntegerField()
    total_projects = serializers.IntegerField()
    active_projects = serializers.IntegerField()
    projects_by_status = serializers.DictField(child=serializers.IntegerField())
    operational_educators = serializers.IntegerField()
    educators_by_status = serializers.DictField(child=serializers.IntegerField())
