import csv
import io
import logging
from datetime import date, datetime
from typing import List, Optional
from openpyxl import Workbook
from openpyxl.styles import Alignment, Font, PatternFill
from .models import ProjectStatus, TherapyProject

logger = logging.getLogger('therapy')

EXPORT_HEADERS = [
    'Project ID',
    'Title',
    'Patient First Name',
    'Patient Last Name',
    'Status',
    'Start Date',
    'End Date',
    'Assigned Educators',
    'Description',
    'Created At',
    'Updated At',
]

def get_projects_for_export(
    status: Optional[str] = None,
    patient_id=None,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
) -> List[TherapyProject]:
    queryset = TherapyProject.objects.select_related('patient').prefetch_related('educators').all()

    if status:
        queryset = queryset.filter(status=status)

    if patient_id:
        queryset = queryset.filter(patient_id=patient_id)

    if start_date:
        queryset = queryset.filter(start_date__gte=start_date)

    if end_date:
        queryset = queryset.filter(start_date__lte=end_date)

    queryset = queryset.order_by('-start_date', 'title')

    projects = list(queryset)
    logger.info(f"Export query returned {len(projects)} projects")
    if status:
        logger.info(f"Status filter: {status}")
    if start_date or end_date:
        logger.info(f"Start date filter - from: {start_date}, to: {end_date}")

    return projects

def _project_row(project: TherapyProject) -> list:
    educators = ', '.join(educator.full_name for educator in project.educators.all())
    return [
        str(project.id),
        project.title,
        project.patient.first_name,
        project.patient.last_name,
        project.status,
        project.start_date.strftime('%Y-%m-%d'),
        project.end_date.strftime('%Y-%m-%d') if project.end_date else '',
        educators,
        project.description or '',
        project.created_at.strftime('%Y-%m-%d %H:%M:%S'),
        project.updated_at.strftime('%Y-%m-%d %H:%M:%S') if project.updated_at else '',
    ]

def export_to_csv(
    status: Optional[str] = None,
    patient_id=None,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
) -> str:
    projects = get_projects_for_export(status, patient_id, start_date, end_date)

    output = io.StringIO()
    writer = csv.writer(output)
    writer.writerow(EXPORT_HEADERS)
    for project in projects:
        writer.writerow(_project_row(project))

    csv_content = output.getvalue()
    output.close()

    logger.info(f"CSV export generated with {len(projects)} projects")
    return csv_content

def export_to_excel(
    status: Optional[str] = None,
    patient_id=None,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
) -> bytes:
    projects = get_projects_for_export(status, patient_id, start_date, end_date)

    wb = Workbook()
    ws = wb.active
    ws.title = "Therapy Projects"

    header_fill = PatternFill(start_color="366092", end_color="366092", fill_type="solid")
    header_font = Font(bold=True, color="FFFFFF")
    header_alignment = Alignment(horizontal="center", vertical="center")

    for col_idx, header in enumerate(EXPORT_HEADERS, 1):
        cell = ws.cell(row=1, column=col_idx, value=header)
        cell.fill = header_fill
        cell.font = header_font
        cell.alignment = header_alignment

    for row_idx, project in enumerate(projects, 2):
        for col_idx, value in enumerate(_project_row(project), 1):
            ws.cell(row=row_idx, column=col_idx, value=value)

    summary_row = len(projects) + 3
    ws.cell(row=summary_row, column=1, value="Total Projects:").font = Font(bold=True)
    ws.cell(row=summary_row, column=2, value=len(projects))
    for offset, status_value in enumerate(ProjectStatus.values, 1):
        count = sum(1 for project in projects if project.status == status_value)
        ws.cell(row=summary_row + offset, column=1, value=f"{status_value}:").font = Font(bold=True)
        ws.cell(row=summary_row + offset, column=2, value=count)

    for col in range(1, len(EXPORT_HEADERS) + 1):
        column_letter = ws.cell(row=1, column=col).column_letter
        max_length = 0
        for row in ws.iter_rows(min_row=1, max_row=len(projects) + 1, min_col=col, max_col=col):
            cell_value = str(row[0].value) if row[0].value else ''
            max_length = max(max_length, len(cell_value))
        ws.column_dimensions[column_letter].width = min(max_length + 2, 50)

    output = io.BytesIO()
    wb.save(output)
    excel_content = output.getvalue()
    output.close()

    logger.info(f"Excel export generated with {len(projects)} projects")
    return excel_content

def get_export_filename(
    format: str,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None
) -> str:
    timestamp = datetime.now().strftime('%Y%m%d_%H%M%S')

    if start_date and end_date:
        date_range = f"{start_date.strftime('%Y%m%d')}_to_{end_date.strftime('%Y%m%d')}"
        filename = f"therapy_projects_{date_range}_{timestamp}.{format}"
    elif start_date:
        filename = f"therapy_projects_from_{start_date.strftime('%Y%m%d')}_{timestamp}.{format}"
    elif end_date:
        filename = f"therapy_projects_until_{end_date.strftime('%Y%m%d')}_{timestamp}.{format}"
    else:
        filename = f"therapy_projects_{timestamp}.{format}"

    return filename
