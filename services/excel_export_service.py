"""
Excel export service for School Results Management System
Exports compiled class results and rosters to Excel
"""

import openpyxl
from openpyxl.styles import Font, PatternFill, Alignment
from openpyxl.utils import get_column_letter
from io import BytesIO

from utils.app_logger import get_logger

logger = get_logger('excel_export')

class ExcelExportService:
    """Service for exporting reports to Excel"""

    @staticmethod
    def create_workbook():
        """Create a new workbook with default styling"""
        wb = openpyxl.Workbook()
        return wb

    @staticmethod
    def style_header_row(ws, row_num, columns):
        """Apply styling to header row"""
        header_font = Font(bold=True, color="FFFFFF")
        header_fill = PatternFill(start_color="000000", end_color="000000", fill_type="solid")
        header_alignment = Alignment(horizontal="center", vertical="center")

        for col_num, header in enumerate(columns, 1):
            cell = ws.cell(row=row_num, column=col_num, value=header)
            cell.font = header_font
            cell.fill = header_fill
            cell.alignment = header_alignment

    @staticmethod
    def auto_adjust_columns(ws):
        """Auto-adjust column widths"""
        for column in ws.columns:
            max_length = 0
            column_letter = get_column_letter(column[0].column)

            for cell in column:
                if cell.value is not None and len(str(cell.value)) > max_length:
                    max_length = len(str(cell.value))

            adjusted_width = min(max_length + 2, 50)
            ws.column_dimensions[column_letter].width = adjusted_width

    @staticmethod
    def format_number(value):
        """Format number: whole numbers without decimals, fractional numbers with 2 decimal places."""
        try:
            if value is None:
                return None
            num = float(value)
            if num == int(num):
                return int(num)  # 32.0 -> 32
            else:
                return round(num, 2)  # 32.43 -> 32.43
        except (ValueError, TypeError):
            return value

    @staticmethod
    def set_number(cell, value, align_right=False):
        """Set an integer/float number with alignment preferences."""
        cell.value = ExcelExportService.format_number(value)
        cell.alignment = Alignment(horizontal=("right" if align_right else "left"), vertical="center")
        return cell

    @staticmethod
    def export_class_results(report):
        """
        Export a class results report (ReportingService.get_class_results_report)
        or a roster payload to a workbook: one ranked row per student.
        """
        wb = ExcelExportService.create_workbook()
        ws = wb.active
        ws.title = "Class Results"

        title = f"{report.get('class_name') or ''} - {report.get('semester_name') or ''}".strip(' -')
        ws.cell(row=1, column=1, value=title).font = Font(bold=True, size=14)
        if report.get('class_average') is not None:
            ws.cell(row=2, column=1, value="Class average")
            ExcelExportService.set_number(ws.cell(row=2, column=2), report.get('class_average'))

        subjects = report.get('subjects', [])
        headers = ['Rank', 'ID Number', 'Name', 'Sex', 'Age'] + subjects + ['Total', 'Average', 'Remark']
        header_row = 4
        ExcelExportService.style_header_row(ws, header_row, headers)

        row_num = header_row + 1
        for student in report.get('students', []):
            ws.cell(row=row_num, column=1, value=student.get('rank'))
            ws.cell(row=row_num, column=2, value=student.get('student_id_number'))
            ws.cell(row=row_num, column=3, value=student.get('name'))
            ws.cell(row=row_num, column=4, value=student.get('sex'))
            ws.cell(row=row_num, column=5, value=student.get('age'))

            col_num = 6
            scores = student.get('subject_scores', {})
            for subject in subjects:
                ExcelExportService.set_number(ws.cell(row=row_num, column=col_num), scores.get(subject), align_right=True)
                col_num += 1

            ExcelExportService.set_number(ws.cell(row=row_num, column=col_num), student.get('total'), align_right=True)
            ExcelExportService.set_number(ws.cell(row=row_num, column=col_num + 1), student.get('average'), align_right=True)
            ws.cell(row=row_num, column=col_num + 2, value=student.get('remark'))
            row_num += 1

        ExcelExportService.auto_adjust_columns(ws)
        ws.freeze_panes = ws.cell(row=header_row + 1, column=4)
        logger.debug("Exported %d result rows", row_num - header_row - 1)
        return wb

    @staticmethod
    def export_roster(roster):
        """Export a stored Roster row"""
        return ExcelExportService.export_class_results(roster.roster_data or {})

    @staticmethod
    def workbook_to_bytes(workbook):
        """Convert workbook to bytes for download"""
        output = BytesIO()
        workbook.save(output)
        output.seek(0)
        return output.getvalue()
