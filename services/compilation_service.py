"""
Compilation service for School Results Management System
Reads marks and configuration, runs the grade calculator and stores the
semester results snapshot; publishes results for students and parents
"""

from datetime import datetime

from flask import current_app

from database import db, handle_db_error
from models.academic import AcademicYear, Semester, SchoolClass
from models.marks import AssessmentType, AssessmentWeight, Mark, GradeSubmission, WeightTemplate
from models.results import PromotionCriteria, SemesterResult, SubjectResult
from models.student import Student
from services.grade_calculator import (
    GradeCalculator, MarkEntry, SubjectOffering, DEFAULT_DECIMALS, SEMESTERS_PER_YEAR
)
from utils.app_logger import get_logger
from utils.db_helpers import get_or_none, safe_update_and_commit
from utils.exceptions import NotFoundError
from utils.locks import compile_locks

logger = get_logger('compilation')

class CompilationService:
    """Grade compilation service class"""

    @staticmethod
    def _setting(name, default=None):
        return current_app.config.get(name, default)

    @staticmethod
    def get_class_and_semester(class_id, semester_id):
        """Load class and semester or raise NotFoundError"""
        school_class = get_or_none(SchoolClass, class_id)
        if school_class is None:
            raise NotFoundError(f"Class {class_id} not found", class_id=class_id)

        semester = get_or_none(Semester, semester_id)
        if semester is None:
            raise NotFoundError(f"Semester {semester_id} not found", semester_id=semester_id)

        if semester.academic_year_id != school_class.academic_year_id:
            logger.warning("Semester %s belongs to academic year %s but class %s is in year %s",
                           semester_id, semester.academic_year_id, class_id, school_class.academic_year_id)
        return school_class, semester

    @staticmethod
    def resolve_default_weights(school_id):
        """
        Weights for assignments without configured rows, as (source, weights).
        The school's preferred weight template wins; otherwise the assessment
        types' own default_weight_percent values are used.
        """
        template = WeightTemplate.get_preferred(school_id)
        if template is not None:
            return 'weight_template', template.get_weight_map()

        types = AssessmentType.query.filter_by(school_id=school_id).all()
        return 'assessment_type_defaults', {
            assessment_type.id: assessment_type.default_weight_percent
            for assessment_type in types
            if assessment_type.default_weight_percent is not None
        }

    @staticmethod
    def get_default_weights(school_id):
        """Default weights of the school as {assessment_type_id: weight_percent}"""
        return CompilationService.resolve_default_weights(school_id)[1]

    @staticmethod
    def load_offerings(school_class, semester):
        """
        One SubjectOffering per subject the class takes in the semester's year.
        Weights come from the assignment's configured rows for the semester;
        an assignment without any configured row uses the school defaults.
        """
        by_subject = {}
        for assignment in school_class.get_active_assignments(semester.academic_year_id):
            if assignment.subject_id in by_subject:
                logger.warning("Subject %s has several assignments in class %s; using assignment %s",
                               assignment.subject_id, school_class.id, by_subject[assignment.subject_id].id)
                continue
            by_subject[assignment.subject_id] = assignment

        default_weights = None
        offerings = []
        for subject_id in sorted(by_subject):
            assignment = by_subject[subject_id]
            weights = AssessmentWeight.get_weight_map(assignment.id, semester.id)
            if not weights:
                if default_weights is None:
                    default_weights = CompilationService.get_default_weights(school_class.school_id)
                weights = default_weights
            offerings.append(SubjectOffering(
                subject_id=subject_id,
                weights=weights,
                teaching_assignment_id=assignment.id,
                subject_name=assignment.subject.name if assignment.subject else None
            ))
        return offerings

    @staticmethod
    def load_marks(offerings, semester_id, student_ids):
        """Mark snapshots of the offered assignments that count for compilation"""
        assignment_ids = [offering.teaching_assignment_id for offering in offerings]
        if not assignment_ids or not student_ids:
            return []

        if CompilationService._setting('COMPILE_REQUIRE_SUBMISSION', True):
            statuses = CompilationService._setting('COUNTED_SUBMISSION_STATUSES', ('submitted', 'approved'))
            counted = {
                submission.teaching_assignment_id
                for submission in GradeSubmission.query.filter(
                    GradeSubmission.teaching_assignment_id.in_(assignment_ids),
                    GradeSubmission.semester_id == semester_id,
                    GradeSubmission.status.in_(statuses)
                ).all()
            }
            skipped = [assignment_id for assignment_id in assignment_ids if assignment_id not in counted]
            if skipped:
                logger.info("Skipping marks of unsubmitted assignments %s", skipped)
            assignment_ids = [assignment_id for assignment_id in assignment_ids if assignment_id in counted]
            if not assignment_ids:
                return []

        subject_by_assignment = {
            offering.teaching_assignment_id: offering.subject_id for offering in offerings
        }
        rows = Mark.query.filter(
            Mark.teaching_assignment_id.in_(assignment_ids),
            Mark.semester_id == semester_id,
            Mark.student_id.in_(student_ids)
        ).all()
        return [MarkEntry.from_model(mark, subject_by_assignment[mark.teaching_assignment_id]) for mark in rows]

    @staticmethod
    def build_report(class_id, semester_id):
        """Read everything for one class+semester, then compile in memory (no writes)"""
        school_class, semester = CompilationService.get_class_and_semester(class_id, semester_id)

        student_ids = [student.id for student in school_class.get_active_students()]
        offerings = CompilationService.load_offerings(school_class, semester)
        marks = CompilationService.load_marks(offerings, semester.id, student_ids)
        criteria = PromotionCriteria.get_active()

        return GradeCalculator.compile_semester(
            student_ids,
            offerings,
            marks,
            criteria,
            class_id=class_id,
            semester_id=semester_id,
            decimals=CompilationService._setting('SCORE_DECIMALS', DEFAULT_DECIMALS)
        )

    @staticmethod
    @handle_db_error
    def _persist_report(report):
        """Upsert SemesterResult and SubjectResult rows for a compiled report"""
        compiled_ids = [result.student_id for result in report.results]
        existing_rows = SemesterResult.query.filter(
            SemesterResult.semester_id == report.semester_id,
            db.or_(
                SemesterResult.class_id == report.class_id,
                SemesterResult.student_id.in_(compiled_ids)
            )
        ).all()
        existing = {row.student_id: row for row in existing_rows}
        compiled_at = datetime.utcnow()

        for result in report.results:
            row = existing.pop(result.student_id, None)
            if row is None:
                row = SemesterResult(student_id=result.student_id, semester_id=report.semester_id)
                db.session.add(row)

            row.class_id = report.class_id
            row.total_score = result.total_score
            row.average_score = result.average_score
            row.rank_in_class = result.rank_in_class
            row.subject_count = result.subject_count
            row.is_complete = result.is_complete
            row.remark = result.remark
            row.compiled_at = compiled_at
            # New numbers have to be published again
            row.unpublish()

            subject_rows = {subject_row.subject_id: subject_row for subject_row in row.subject_results}
            for subject_id, score in result.subject_scores.items():
                subject_row = subject_rows.pop(subject_id, None)
                if subject_row is None:
                    subject_row = SubjectResult(subject_id=subject_id)
                    row.subject_results.append(subject_row)
                subject_row.teaching_assignment_id = score.teaching_assignment_id
                subject_row.subject_score = score.subject_score
                subject_row.weight_sum = score.weight_sum
                subject_row.is_complete = score.complete
                subject_row.set_missing_types(score.missing_types)
            for stale_subject in subject_rows.values():
                row.subject_results.remove(stale_subject)

        # Students who left the class since the last compile
        for stale_row in existing.values():
            if stale_row.class_id == report.class_id:
                db.session.delete(stale_row)

        db.session.commit()

    @staticmethod
    def compile_semester(class_id, semester_id):
        """
        Compile, rank and store semester results for a class.
        Serialized per (class_id, semester_id); returns the CompilationReport.
        """
        timeout = CompilationService._setting('COMPILE_LOCK_TIMEOUT')
        with compile_locks.hold((class_id, semester_id), timeout=timeout):
            report = CompilationService.build_report(class_id, semester_id)
            CompilationService._persist_report(report)

        logger.info("Compiled class %s semester %s: %d students, class average %s, %d errors, %d warnings",
                    class_id, semester_id, len(report.results), report.class_average,
                    len(report.errors), len(report.warnings))
        return report

    @staticmethod
    def get_semester_results(class_id, semester_id, published_only=False):
        """Stored results of a class+semester in rank order"""
        query = SemesterResult.query.filter_by(class_id=class_id, semester_id=semester_id)
        if published_only:
            query = query.filter_by(is_published=True)
        return query.order_by(SemesterResult.rank_in_class.asc(), SemesterResult.student_id.asc()).all()

    @staticmethod
    def compile_year(student_id, academic_year_id):
        """Aggregate a student's compiled semesters of an academic year into a YearResult"""
        student = get_or_none(Student, student_id)
        if student is None:
            raise NotFoundError(f"Student {student_id} not found", student_id=student_id)

        academic_year = get_or_none(AcademicYear, academic_year_id)
        if academic_year is None:
            raise NotFoundError(f"Academic year {academic_year_id} not found", academic_year_id=academic_year_id)

        semesters = academic_year.get_semesters()
        summaries = [
            SemesterResult.query.filter_by(student_id=student_id, semester_id=semester.id).first()
            for semester in semesters
        ]

        return GradeCalculator.aggregate_year(
            student_id,
            summaries,
            PromotionCriteria.get_active(),
            academic_year_id=academic_year_id,
            expected_semesters=len(semesters) or SEMESTERS_PER_YEAR,
            decimals=CompilationService._setting('SCORE_DECIMALS', DEFAULT_DECIMALS)
        )

    @staticmethod
    def publish_semester_results(class_id, semester_id):
        """Publish compiled results of a class+semester"""
        timeout = CompilationService._setting('COMPILE_LOCK_TIMEOUT')
        with compile_locks.hold((class_id, semester_id), timeout=timeout):
            rows = SemesterResult.query.filter_by(class_id=class_id, semester_id=semester_id).all()
            if not rows:
                return False, 0, "No compiled results to publish. Compile the semester first."

            for row in rows:
                row.publish()

            success, message = safe_update_and_commit()
            if not success:
                return False, 0, message

        logger.info("Published %d results for class %s semester %s", len(rows), class_id, semester_id)
        return True, len(rows), f"Published results for {len(rows)} students"

    @staticmethod
    def publish_year_results(class_id, academic_year_id):
        """Publish every still-unpublished compiled result of the year's semesters"""
        academic_year = get_or_none(AcademicYear, academic_year_id)
        if academic_year is None:
            return False, 0, "Academic year not found"

        semester_ids = [semester.id for semester in academic_year.get_semesters()]
        if not semester_ids:
            return False, 0, "Academic year has no semesters"

        compiled = SemesterResult.query.filter(
            SemesterResult.class_id == class_id,
            SemesterResult.semester_id.in_(semester_ids)
        ).count()
        if compiled == 0:
            return False, 0, "No compiled results to publish. Compile the semesters first."

        timeout = CompilationService._setting('COMPILE_LOCK_TIMEOUT')
        published = 0
        for semester_id in semester_ids:
            with compile_locks.hold((class_id, semester_id), timeout=timeout):
                rows = SemesterResult.query.filter_by(
                    class_id=class_id, semester_id=semester_id, is_published=False
                ).all()
                for row in rows:
                    row.publish()

                success, message = safe_update_and_commit()
                if not success:
                    return False, published, message
            published += len(rows)

        logger.info("Published %d year results for class %s year %s", published, class_id, academic_year_id)
        return True, published, f"Published {published} results across {len(semester_ids)} semesters"
