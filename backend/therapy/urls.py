from django.urls import path
from . import views
urlpatterns = [
    path('patients/<uuid:patient_id>/projects', views.patient_projects, name='patient_projects'),
    path('patients/<uuid:patient_id>', views.patient_detail, name='patient_detail'),
    path('patients/', views.patients, name='patients'),
    path('projects/export', views.export_projects, name='export_projects'),
    path('projects/<uuid:project_id>/complete', views.complete_project, name='complete_project'),
    path('projects/<uuid:project_id>/hold', views.hold_project, name='hold_project'),
    path('projects/<uuid:project_id>/resume', views.resume_project, name='resume_project'),
    path(
        'projects/<uuid:project_id>/educators/<uuid:educator_id>',
        views.project_educator,
        name='project_educator'
    ),
    path('projects/<uuid:project_id>', views.project_detail, name='project_detail'),
    path('projects/', views.projects, name='projects'),
    path('educators/specializations', views.educator_specializations, name='educator_specializations'),
    path('educators/<uuid:educator_id>/activate', views.activate_educator, name='activate_educator'),
    path('educators/<uuid:educator_id>/deactivate', views.deactivate_educator, name='deactivate_educator'),
    path('educators/<uuid:educator_id>/leave', views.educator_on_leave, name='educator_on_leave'),
    path('educators/<uuid:educator_id>', views.educator_detail, name='educator_detail'),
    path('educators/', views.educators, name='educators'),
    path('dashboard/stats', views.dashboard_stats, name='dashboard_stats'),
    path('configuration/status', views.configuration_status, name='configuration_status'),
    path('configuration/profile', views.configuration_profile, name='configuration_profile'),
]
