"""
Marks service for School Results Management System
Mark entry, assessment weight configuration and the grade submission workflow
"""

from database import db
from models.academic import SchoolClass, Semester
from models.assignments import TeachingAssignment
from models.marks import AssessmentType, AssessmentWeight, Mark, GradeSubmission
from models.student import Student
from services.compilation_service import CompilationService
from services.grade_calculator import GradeCalculator
from utils.app_logger import get_logger
from utils.db_helpers import get_or_none, safe_update_and_commit
from utils.validators import validate_score, validate_weights, validate_submission_status

logger = get_logger('marks')

class MarksService:
    """Marks service class"""

    @staticmethod
    def get_or_create_submission(teaching_assignment_id, semester_id):
        """Get the submission row of an assignment+semester, creating a draft"""
        submission = GradeSubmission.query.filter_by(
            teaching_assignment_id=teaching_assignment_id,
            semester_id=semester_id
        ).first()
        if submission is None:
            submission = GradeSubmission(
                teaching_assignment_id=teaching_assignment_id,
                semester_id=semester_id,
                status=GradeSubmission.STATUS_DRAFT
            )
            db.session.add(submission)
        return submission

    @staticmethod
    def _locked_message(teaching_assignment_id, semester_id):
        """Reason marks of an assignment+semester cannot change, or None"""
        submission = GradeSubmission.query.filter_by(
            teaching_assignment_id=teaching_assignment_id,
            semester_id=semester_id
        ).first()
        if submission is not None and submission.is_locked():
            return f"Grades are {submission.status} and can no longer be edited"
        return None

    @staticmethod
    def _upsert_mark(teaching_assignment_id, student_id, assessment_type_id, semester_id, score, max_score):
        """Create or update a mark in the session without committing"""
        mark = Mark.query.filter_by(
            student_id=student_id,
            teaching_assignment_id=teaching_assignment_id,
            assessment_type_id=assessment_type_id,
            semester_id=semester_id
        ).first()

        if mark:
            mark.update_score(float(score), float(max_score))
        else:
            mark = Mark(
                student_id=student_id,
                teaching_assignment_id=teaching_assignment_id,
                assessment_type_id=assessment_type_id,
                semester_id=semester_id,
                score=float(score),
                max_score=float(max_score)
            )
            db.session.add(mark)
        return mark

    @staticmethod
    def record_mark(teaching_assignment_id, student_id, assessment_type_id, semester_id, score, max_score):
        """Create or update a student's mark for one assessment"""
        assignment = get_or_none(TeachingAssignment, teaching_assignment_id)
        if assignment is None or not assignment.is_active:
            return False, "Teaching assignment not found"

        student = get_or_none(Student, student_id)
        if student is None or student.class_id != assignment.class_id:
            return False, "Student is not in this class"

        if get_or_none(AssessmentType, assessment_type_id) is None:
            return False, "Assessment type not found"

        if get_or_none(Semester, semester_id) is None:
            return False, "Semester not found"

        is_valid, message = validate_score(score, max_score)
        if not is_valid:
            return False, message

        locked = MarksService._locked_message(teaching_assignment_id, semester_id)
        if locked:
            return False, locked

        MarksService._upsert_mark(teaching_assignment_id, student_id, assessment_type_id,
                                  semester_id, score, max_score)
        return safe_update_and_commit()

    @staticmethod
    def record_marks_bulk(teaching_assignment_id, assessment_type_id, semester_id, max_score, grades):
        """
        Enter one assessment for many students at once.
        grades: [{'student_id': int, 'score': number}, ...]

        Every row is validated; valid rows are saved in a single commit and
        invalid ones are reported per row. Returns (success, summary, message).
        """
        assignment = get_or_none(TeachingAssignment, teaching_assignment_id)
        if assignment is None or not assignment.is_active:
            return False, None, "Teaching assignment not found"

        if get_or_none(AssessmentType, assessment_type_id) is None:
            return False, None, "Assessment type not found"

        if get_or_none(Semester, semester_id) is None:
            return False, None, "Semester not found"

        locked = MarksService._locked_message(teaching_assignment_id, semester_id)
        if locked:
            return False, None, locked

        class_student_ids = {
            student.id for student in Student.query.filter_by(class_id=assignment.class_id).all()
        }
        results = []
        seen = set()
        for row in grades or []:
            student_id = row.get('student_id')
            score = row.get('score')
            if student_id not in class_student_ids:
                results.append({'student_id': student_id, 'status': 'failed', 'error': "Student is not in this class"})
                continue
            if student_id in seen:
                results.append({'student_id': student_id, 'status': 'failed', 'error': "Duplicate row for student"})
                continue
            is_valid, message = validate_score(score, max_score)
            if not is_valid:
                results.append({'student_id': student_id, 'status': 'failed', 'error': message})
                continue

            seen.add(student_id)
            MarksService._upsert_mark(teaching_assignment_id, student_id, assessment_type_id,
                                      semester_id, score, max_score)
            results.append({'student_id': student_id, 'status': 'success'})

        successful = len(seen)
        summary = {
            'total_entered': len(results),
            'successful': successful,
            'failed': len(results) - successful,
            'results': results
        }
        if successful:
            success, message = safe_update_and_commit()
            if not success:
                return False, None, message

        logger.info("Bulk entry for assignment %s semester %s: %d saved, %d failed",
                    teaching_assignment_id, semester_id, successful, summary['failed'])
        return successful > 0, summary, f"{successful} of {len(results)} marks saved"

    @staticmethod
    def delete_mark(mark_id):
        """Delete a mark while its grade sheet is still editable"""
        mark = get_or_none(Mark, mark_id)
        if mark is None:
            return False, "Mark not found"

        locked = MarksService._locked_message(mark.teaching_assignment_id, mark.semester_id)
        if locked:
            return False, locked

        db.session.delete(mark)
        success, message = safe_update_and_commit()
        if success:
            return True, "Mark deleted successfully"
        return False, message

    @staticmethod
    def get_marks(teaching_assignment_id, semester_id):
        """All marks of an assignment+semester"""
        return Mark.query.filter_by(
            teaching_assignment_id=teaching_assignment_id,
            semester_id=semester_id
        ).order_by(Mark.student_id.asc(), Mark.assessment_type_id.asc()).all()

    @staticmethod
    def set_assessment_weights(teaching_assignment_id, semester_id, weights):
        """
        Replace the weights of an assignment+semester.
        weights: {assessment_type_id: weight_percent}
        A sum other than 100 is stored but reported in the message.
        """
        assignment = get_or_none(TeachingAssignment, teaching_assignment_id)
        if assignment is None:
            return False, "Teaching assignment not found"

        if get_or_none(Semester, semester_id) is None:
            return False, "Semester not found"

        is_valid, message = validate_weights(weights)
        if not is_valid:
            return False, message

        known_types = {
            assessment_type.id
            for assessment_type in AssessmentType.query.filter(AssessmentType.id.in_(list(weights))).all()
        }
        unknown = [type_id for type_id in weights if type_id not in known_types]
        if unknown:
            return False, f"Unknown assessment types: {', '.join(str(type_id) for type_id in unknown)}"

        existing = {
            row.assessment_type_id: row
            for row in AssessmentWeight.query.filter_by(
                teaching_assignment_id=teaching_assignment_id,
                semester_id=semester_id
            ).all()
        }
        for type_id, weight_percent in weights.items():
            row = existing.pop(type_id, None)
            if row is None:
                row = AssessmentWeight(
                    teaching_assignment_id=teaching_assignment_id,
                    assessment_type_id=type_id,
                    semester_id=semester_id
                )
                db.session.add(row)
            row.weight_percent = float(weight_percent)
        for row in existing.values():
            db.session.delete(row)

        success, message = safe_update_and_commit()
        if not success:
            return False, message

        issue = GradeCalculator.check_weights(
            {type_id: float(weight) for type_id, weight in weights.items()},
            teaching_assignment_id=teaching_assignment_id,
            semester_id=semester_id
        )
        if issue is not None:
            logger.warning("Weights for assignment %s semester %s sum to %s",
                           teaching_assignment_id, semester_id, issue.weight_sum)
            return True, f"Weights saved. Warning: {issue.message}"
        return True, "Weights saved"

    @staticmethod
    def get_weight_suggestions(teaching_assignment_id, semester_id):
        """
        Weights a teacher starts from for an assignment+semester: its configured
        rows, else the school's preferred weight template, else the assessment
        type defaults. Returns None for an unknown assignment.
        """
        assignment = get_or_none(TeachingAssignment, teaching_assignment_id)
        if assignment is None:
            return None

        weights = AssessmentWeight.get_weight_map(teaching_assignment_id, semester_id)
        source = 'configured'
        if not weights:
            source, weights = CompilationService.resolve_default_weights(assignment.school_class.school_id)

        return {
            'teaching_assignment_id': teaching_assignment_id,
            'semester_id': semester_id,
            'source': source,
            'weights': weights,
            'weight_sum': round(sum(weights.values()), 2)
        }

    @staticmethod
    def submit_grades(teaching_assignment_id, semester_id):
        """Submit a grade sheet for class head review"""
        assignment = get_or_none(TeachingAssignment, teaching_assignment_id)
        if assignment is None:
            return False, "Teaching assignment not found"

        submission = MarksService.get_or_create_submission(teaching_assignment_id, semester_id)
        if submission.is_locked():
            db.session.rollback()
            return False, f"Grades are already {submission.status}"

        has_marks = Mark.query.filter_by(
            teaching_assignment_id=teaching_assignment_id,
            semester_id=semester_id
        ).first() is not None
        if not has_marks:
            db.session.rollback()
            return False, "No marks have been entered for this semester"

        submission.submit()
        success, message = safe_update_and_commit()
        if success:
            logger.info("Grades submitted for assignment %s semester %s", teaching_assignment_id, semester_id)
            return True, "Grades submitted for review"
        return False, message

    @staticmethod
    def review_submission(submission_id, reviewer_id, status, comments=None):
        """Approve or reject a submitted grade sheet (class head only)"""
        is_valid, message = validate_submission_status(status)
        if not is_valid:
            return False, message

        submission = get_or_none(GradeSubmission, submission_id)
        if submission is None:
            return False, "Submission not found"

        school_class = submission.teaching_assignment.school_class
        if school_class is None or school_class.class_head_id != reviewer_id:
            return False, "Only the class head can review this submission"

        if submission.status != GradeSubmission.STATUS_SUBMITTED:
            return False, f"Only submitted grades can be reviewed (current status: {submission.status})"

        submission.review(status, reviewer_id, comments)
        success, message = safe_update_and_commit()
        if success:
            logger.info("Submission %s %s by teacher %s", submission_id, status, reviewer_id)
            return True, f"Submission {status}"
        return False, message

    @staticmethod
    def approve_submission(submission_id, reviewer_id, comments=None):
        return MarksService.review_submission(submission_id, reviewer_id, GradeSubmission.STATUS_APPROVED, comments)

    @staticmethod
    def reject_submission(submission_id, reviewer_id, comments=None):
        return MarksService.review_submission(submission_id, reviewer_id, GradeSubmission.STATUS_REJECTED, comments)

    @staticmethod
    def get_submission_checklist(class_id, semester_id):
        """Submission status of every subject the class takes this semester"""
        school_class = get_or_none(SchoolClass, class_id)
        semester = get_or_none(Semester, semester_id)
        if school_class is None or semester is None:
            return {'subjects': [], 'submitted_count': 0, 'total_subjects': 0, 'all_submitted': False}

        assignments = sorted(
            school_class.get_active_assignments(semester.academic_year_id),
            key=lambda assignment: (assignment.subject_id, assignment.id)
        )

        subjects = []
        submitted_count = 0
        for assignment in assignments:
            submission = assignment.get_submission(semester_id)
            status = submission.status if submission else 'pending'
            if status in (GradeSubmission.STATUS_SUBMITTED, GradeSubmission.STATUS_APPROVED):
                submitted_count += 1
            subjects.append({
                'teaching_assignment_id': assignment.id,
                'subject_id': assignment.subject_id,
                'subject_name': assignment.subject.name if assignment.subject else None,
                'teacher_name': assignment.teacher.name if assignment.teacher else None,
                'status': status,
                'submission_id': submission.id if submission else None,
                'submitted_at': submission.submitted_at.isoformat() if submission and submission.submitted_at else None
            })

        return {
            'subjects': subjects,
            'submitted_count': submitted_count,
            'total_subjects': len(subjects),
            'all_submitted': bool(subjects) and submitted_count == len(subjects)
        }
