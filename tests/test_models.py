"""
Unit tests for database models
"""

import unittest
from datetime import date
from sqlalchemy.exc import IntegrityError
from app import create_app
from config import TestingConfig
from database import db
from models.user import Teacher
from models.academic import School, AcademicYear, Semester, SchoolClass, Subject
from models.assignments import TeachingAssignment
from models.student import Student
from models.marks import AssessmentType, AssessmentWeight, Mark, GradeSubmission, WeightTemplate
from models.results import PromotionCriteria, SemesterResult, SubjectResult

class TestModels(unittest.TestCase):

    def setUp(self):
        """Set up test fixtures"""
        self.app = create_app(TestingConfig)
        self.app_context = self.app.app_context()
        self.app_context.push()
        db.create_all()

        self.school = School(name='Test Secondary School')
        self.year = AcademicYear(name='2024-2025', start_date=date(2024, 9, 1), end_date=date(2025, 6, 30))
        db.session.add_all([self.school, self.year])
        db.session.commit()

    def tearDown(self):
        """Clean up after tests"""
        db.session.remove()
        db.drop_all()
        self.app_context.pop()

    def _create_class(self):
        head = Teacher(school_id=self.school.id, name='Abebe Kebede')
        db.session.add(head)
        db.session.flush()
        school_class = SchoolClass(school_id=self.school.id, academic_year_id=self.year.id,
                                   grade_level=9, name='9A', class_head_id=head.id)
        db.session.add(school_class)
        db.session.commit()
        return head, school_class

    def test_academic_year_semesters_ordered(self):
        """Test semesters come back in semester order"""
        db.session.add(Semester(academic_year_id=self.year.id, name='Semester 2', semester_number=2))
        db.session.add(Semester(academic_year_id=self.year.id, name='Semester 1', semester_number=1))
        db.session.commit()

        self.assertEqual([semester.semester_number for semester in self.year.get_semesters()], [1, 2])
        self.assertEqual(len(self.year.to_dict()['semesters']), 2)

    def test_semester_number_unique_per_year(self):
        """Test a year cannot have two semester 1 rows"""
        db.session.add(Semester(academic_year_id=self.year.id, name='Semester 1', semester_number=1))
        db.session.commit()

        db.session.add(Semester(academic_year_id=self.year.id, name='First', semester_number=1))
        with self.assertRaises(IntegrityError):
            db.session.commit()
        db.session.rollback()

    def test_class_students_and_subjects(self):
        """Test active students and offered subjects of a class"""
        head, school_class = self._create_class()
        math = Subject(school_id=self.school.id, name='Mathematics')
        db.session.add(math)
        db.session.flush()
        db.session.add_all([
            Student(name='Alice', class_id=school_class.id),
            Student(name='Bob', class_id=school_class.id, is_active=False),
            TeachingAssignment(teacher_id=head.id, class_id=school_class.id, subject_id=math.id,
                               academic_year_id=self.year.id)
        ])
        db.session.commit()

        self.assertEqual([student.name for student in school_class.get_active_students()], ['Alice'])
        self.assertEqual([a.subject_id for a in school_class.get_active_assignments()], [math.id])
        self.assertEqual(school_class.get_active_assignments(self.year.id + 1), [])
        self.assertTrue(head.is_class_head_of(school_class.id))
        self.assertEqual([subject.name for subject in head.get_assigned_subjects()], ['Mathematics'])

    def test_student_age(self):
        """Test age calculation"""
        head, school_class = self._create_class()
        student = Student(name='Alice', class_id=school_class.id, date_of_birth=date(2010, 6, 15))

        self.assertEqual(student.get_age(date(2024, 6, 14)), 13)
        self.assertEqual(student.get_age(date(2024, 6, 15)), 14)
        self.assertIsNone(Student(name='Bob', class_id=school_class.id).get_age())

    def test_mark_percentage(self):
        """Test Mark percentage"""
        mark = Mark(score=15, max_score=20)
        self.assertEqual(mark.get_percentage(), 75.0)

        mark.update_score(5, 0)
        self.assertIsNone(mark.get_percentage())

    def test_weight_map(self):
        """Test configured weights lookup"""
        head, school_class = self._create_class()
        semester = Semester(academic_year_id=self.year.id, name='Semester 1', semester_number=1)
        math = Subject(school_id=self.school.id, name='Mathematics')
        quiz = AssessmentType(school_id=self.school.id, name='Quiz', default_weight_percent=30)
        db.session.add_all([semester, math, quiz])
        db.session.flush()
        assignment = TeachingAssignment(teacher_id=head.id, class_id=school_class.id, subject_id=math.id,
                                        academic_year_id=self.year.id)
        db.session.add(assignment)
        db.session.flush()
        db.session.add(AssessmentWeight(teaching_assignment_id=assignment.id, assessment_type_id=quiz.id,
                                        semester_id=semester.id, weight_percent=25))
        db.session.commit()

        self.assertEqual(AssessmentWeight.get_weight_map(assignment.id, semester.id), {quiz.id: 25.0})
        self.assertEqual(AssessmentWeight.get_weight_map(assignment.id, semester.id + 1), {})

    def test_weight_template_preference(self):
        """Test the default template wins, else the newest"""
        self.assertIsNone(WeightTemplate.get_preferred(self.school.id))

        older = WeightTemplate(school_id=self.school.id, name='Older', is_default=True)
        older.set_weight_map({2: 70, 1: '30'})
        newer = WeightTemplate(school_id=self.school.id, name='Newer')
        newer.set_weight_map({1: 50, 2: 50})
        db.session.add_all([older, newer])
        db.session.commit()

        self.assertEqual(older.weights, [{'assessment_type_id': 1, 'weight_percent': 30.0},
                                         {'assessment_type_id': 2, 'weight_percent': 70.0}])
        self.assertEqual(WeightTemplate.get_preferred(self.school.id).name, 'Older')

        older.is_default = False
        db.session.commit()
        self.assertEqual(WeightTemplate.get_preferred(self.school.id).get_weight_map(), {1: 50.0, 2: 50.0})

        db.session.add(WeightTemplate(school_id=self.school.id, name='Newer', weights=[]))
        with self.assertRaises(IntegrityError):
            db.session.commit()
        db.session.rollback()

    def test_grade_submission_states(self):
        """Test submission locking"""
        submission = GradeSubmission(status=GradeSubmission.STATUS_DRAFT)
        self.assertFalse(submission.is_locked())

        submission.submit()
        self.assertTrue(submission.is_locked())
        self.assertIsNotNone(submission.submitted_at)

        submission.review(GradeSubmission.STATUS_REJECTED, reviewer_id=1, comments='Recheck')
        self.assertFalse(submission.is_locked())
        self.assertEqual(submission.comments, 'Recheck')

    def test_active_promotion_criteria(self):
        """Test the newest active criteria is returned"""
        self.assertIsNone(PromotionCriteria.get_active())

        db.session.add(PromotionCriteria(name='Old', passing_average=50, passing_per_subject=40,
                                         max_failing_subjects=2, is_active=False))
        db.session.add(PromotionCriteria(name='Current', passing_average=55, passing_per_subject=45,
                                         max_failing_subjects=1))
        db.session.commit()

        self.assertEqual(PromotionCriteria.get_active().name, 'Current')

    def test_semester_result_publishing(self):
        """Test publish flags and stored subject scores"""
        head, school_class = self._create_class()
        semester = Semester(academic_year_id=self.year.id, name='Semester 1', semester_number=1)
        math = Subject(school_id=self.school.id, name='Mathematics')
        student = Student(name='Alice', class_id=school_class.id)
        db.session.add_all([semester, math, student])
        db.session.flush()

        result = SemesterResult(student_id=student.id, semester_id=semester.id, class_id=school_class.id,
                                total_score=53, average_score=53, rank_in_class=1, subject_count=1)
        subject_result = SubjectResult(subject_id=math.id, subject_score=53, weight_sum=80, is_complete=False)
        subject_result.set_missing_types([4, 2])
        result.subject_results.append(subject_result)
        db.session.add(result)
        db.session.commit()

        self.assertFalse(result.is_published)
        self.assertEqual(result.remark, 'Pending')
        self.assertEqual(result.get_subject_scores(), {math.id: 53.0})
        self.assertEqual(subject_result.get_missing_types(), [2, 4])

        result.publish()
        self.assertTrue(result.is_published)
        self.assertIsNotNone(result.published_at)
        data = result.to_dict()
        self.assertEqual(data['student_name'], 'Alice')
        self.assertEqual(data['subjects'][0]['subject_name'], 'Mathematics')

        result.unpublish()
        self.assertIsNone(result.published_at)

if __name__ == '__main__':
    unittest.main()
