"""
Reporting service for School Results Management System
Class snapshots, student/parent reports gated by publishing, and rosters
"""

from datetime import datetime

from database import db
from models.academic import AcademicYear, SchoolClass, Semester, Subject
from models.results import PromotionCriteria, Roster, SemesterResult
from models.student import Student
from models.user import Teacher
from services.compilation_service import CompilationService
from services.grade_calculator import GradeCalculator
from utils.app_logger import get_logger
from utils.db_helpers import get_or_none, safe_update_and_commit
from utils.exceptions import NotFoundError
from utils.validators import validate_absent_days

logger = get_logger('reporting')

class ReportingService:
    """Reporting service class"""

    @staticmethod
    def _subject_names(subject_ids):
        if not subject_ids:
            return {}
        subjects = Subject.query.filter(Subject.id.in_(list(subject_ids))).all()
        return {subject.id: subject.name for subject in subjects}

    @staticmethod
    def get_class_snapshot(class_id, semester_id):
        """Preview of ranked class performance computed from current marks (nothing stored)"""
        report = CompilationService.build_report(class_id, semester_id)
        school_class = get_or_none(SchoolClass, class_id)
        students = {
            student.id: student
            for student in Student.query.filter(Student.id.in_([r.student_id for r in report.results])).all()
        }
        subject_ids = set()
        for result in report.results:
            subject_ids.update(result.subject_scores)
        names = ReportingService._subject_names(subject_ids)

        items = []
        for result in report.results:
            student = students.get(result.student_id)
            items.append({
                'student_id': result.student_id,
                'student_name': student.name if student else None,
                'subject_scores': {
                    names.get(subject_id, str(subject_id)): score.subject_score
                    for subject_id, score in sorted(result.subject_scores.items())
                },
                'total': result.total_score,
                'average': result.average_score,
                'rank': result.rank_in_class,
                'remark': result.remark,
                'complete': result.is_complete
            })

        return {
            'class': {'id': class_id, 'name': school_class.name if school_class else None},
            'semester_id': semester_id,
            'subjects': [names[subject_id] for subject_id in sorted(names)],
            'class_average': report.class_average,
            'items': items,
            'warnings': [issue.to_dict() for issue in report.warnings],
            'errors': [issue.to_dict() for issue in report.errors]
        }

    @staticmethod
    def get_class_results_report(class_id, semester_id, published_only=False):
        """Stored (compiled) results of a class in rank order, ready for export"""
        school_class = get_or_none(SchoolClass, class_id)
        semester = get_or_none(Semester, semester_id)
        if school_class is None or semester is None:
            return None

        rows = CompilationService.get_semester_results(class_id, semester_id, published_only=published_only)
        subject_ids = set()
        for row in rows:
            subject_ids.update(row.get_subject_scores())
        names = ReportingService._subject_names(subject_ids)
        ordered_subject_ids = sorted(names, key=lambda subject_id: names[subject_id])

        students = []
        for row in rows:
            scores = row.get_subject_scores()
            students.append({
                'student_id': row.student_id,
                'student_id_number': row.student.student_id_number if row.student else None,
                'name': row.student.name if row.student else None,
                'sex': row.student.sex if row.student else None,
                'age': row.student.get_age() if row.student else None,
                'subject_scores': {names[subject_id]: scores.get(subject_id) for subject_id in ordered_subject_ids},
                'total': row.total_score,
                'average': row.average_score,
                'rank': row.rank_in_class,
                'absent_days': row.absent_days or 0,
                'conduct': row.conduct,
                'remark': row.remark,
                'is_published': row.is_published
            })

        averages = [row.average_score for row in rows if row.average_score is not None]
        return {
            'class_id': class_id,
            'class_name': school_class.name,
            'grade_level': school_class.grade_level,
            'semester_id': semester_id,
            'semester_name': semester.name,
            'subjects': [names[subject_id] for subject_id in ordered_subject_ids],
            'class_average': round(sum(averages) / len(averages), 2) if averages else 0.0,
            'students': students
        }

    @staticmethod
    def get_student_semester_report(student_id, semester_id, published_only=True):
        """A student's semester result; students and parents only see published ones"""
        query = SemesterResult.query.filter_by(student_id=student_id, semester_id=semester_id)
        if published_only:
            query = query.filter_by(is_published=True)
        result = query.first()
        if result is None:
            return None

        class_size = SemesterResult.query.filter_by(
            class_id=result.class_id, semester_id=semester_id
        ).count()
        data = result.to_dict()
        data['class_size'] = class_size
        return data

    @staticmethod
    def get_student_year_report(student_id, academic_year_id, published_only=True):
        """A student's year result built from the semesters visible to them"""
        academic_year = get_or_none(AcademicYear, academic_year_id)
        if academic_year is None:
            return None

        if published_only:
            semesters = academic_year.get_semesters()
            summaries = [
                SemesterResult.query.filter_by(
                    student_id=student_id, semester_id=semester.id, is_published=True
                ).first()
                for semester in semesters
            ]
            if not any(summaries):
                return None
            year_result = GradeCalculator.aggregate_year(
                student_id,
                summaries,
                PromotionCriteria.get_active(),
                academic_year_id=academic_year_id,
                expected_semesters=len(semesters)
            )
        else:
            year_result = CompilationService.compile_year(student_id, academic_year_id)
            if not year_result.semester_ids:
                return None

        data = year_result.to_dict()
        names = ReportingService._subject_names(year_result.subject_averages)
        for entry in data['subject_averages']:
            entry['subject_name'] = names.get(entry['subject_id'])
        data['academic_year'] = academic_year.name
        return data

    @staticmethod
    def record_attendance_and_conduct(student_id, semester_id, absent_days=None, conduct=None):
        """Class head notes on a compiled result; they survive recompiles"""
        result = SemesterResult.query.filter_by(student_id=student_id, semester_id=semester_id).first()
        if result is None:
            return False, "No compiled result for this student and semester"

        if absent_days is not None:
            is_valid, message = validate_absent_days(absent_days)
            if not is_valid:
                return False, message
            result.absent_days = int(absent_days)

        if conduct is not None:
            conduct = conduct.strip()
            if len(conduct) > 50:
                return False, "Conduct must be 50 characters or less"
            result.conduct = conduct or None

        success, message = safe_update_and_commit()
        if success:
            return True, "Result details updated"
        return False, message

    @staticmethod
    def get_cumulative_record(student_id):
        """
        Store house academic history of a student: every compiled semester in
        calendar order (year start date, then semester number) and the mean of
        their averages.
        """
        student = get_or_none(Student, student_id)
        if student is None:
            raise NotFoundError(f"Student {student_id} not found", student_id=student_id)

        rows = SemesterResult.query\
            .join(Semester, SemesterResult.semester_id == Semester.id)\
            .join(AcademicYear, Semester.academic_year_id == AcademicYear.id)\
            .filter(SemesterResult.student_id == student_id)\
            .order_by(AcademicYear.start_date.asc(), Semester.semester_number.asc())\
            .all()

        history = []
        for row in rows:
            history.append({
                'academic_year': row.semester.academic_year.name,
                'semester': row.semester.name,
                'semester_id': row.semester_id,
                'grade_level': row.school_class.grade_level if row.school_class else None,
                'class_name': row.school_class.name if row.school_class else None,
                'total': row.total_score or 0.0,
                'average': row.average_score or 0.0,
                'rank': row.rank_in_class,
                'remark': row.remark,
                'is_published': row.is_published
            })

        averages = [entry['average'] for entry in history]
        current_class = student.school_class
        return {
            'student': {
                'id': student.id,
                'student_id_number': student.student_id_number,
                'name': student.name,
                'sex': student.sex,
                'date_of_birth': student.date_of_birth.isoformat() if student.date_of_birth else None,
                'date_of_admission': student.date_of_admission.isoformat() if student.date_of_admission else None,
                'current_class': current_class.name if current_class else None,
                'current_grade_level': current_class.grade_level if current_class else None
            },
            'academic_history': history,
            'cumulative_average': round(sum(averages) / len(averages), 2) if averages else 0.0
        }

    @staticmethod
    def send_roster(class_id, semester_id, submitted_by):
        """Store the compiled class roster for the store house (one per class+semester)"""
        report = ReportingService.get_class_results_report(class_id, semester_id)
        if report is None:
            raise NotFoundError("Class or semester not found", class_id=class_id, semester_id=semester_id)
        if not report['students']:
            return False, None, "No compiled results to send. Compile the semester first."

        school_class = get_or_none(SchoolClass, class_id)
        class_head = get_or_none(Teacher, submitted_by)
        roster_data = {
            'class_id': class_id,
            'class_name': report['class_name'],
            'grade_level': report['grade_level'],
            'semester_name': report['semester_name'],
            'class_head': {
                'id': class_head.id,
                'name': class_head.name,
                'phone': class_head.phone
            } if class_head else None,
            'subjects': report['subjects'],
            'students': report['students']
        }

        roster = Roster.query.filter_by(class_id=class_id, semester_id=semester_id).first()
        if roster is None:
            roster = Roster(class_id=class_id, semester_id=semester_id)
            db.session.add(roster)
        roster.submitted_by = class_head.id if class_head else (school_class.class_head_id if school_class else None)
        roster.submitted_at = datetime.utcnow()
        roster.roster_data = roster_data

        success, message = safe_update_and_commit()
        if not success:
            return False, None, message

        logger.info("Roster for class %s semester %s sent with %d students",
                    class_id, semester_id, len(report['students']))
        return True, roster, "Roster sent to store house successfully"
