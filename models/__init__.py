"""
Database models package for School Results Management System
"""

from .academic import School, AcademicYear, Semester, SchoolClass, Subject
from .user import Teacher
from .student import Student
from .assignments import TeachingAssignment
from .marks import AssessmentType, AssessmentWeight, Mark, GradeSubmission, WeightTemplate
from .results import PromotionCriteria, SemesterResult, SubjectResult, Roster

__all__ = [
    'School', 'AcademicYear', 'Semester', 'SchoolClass', 'Subject',
    'Teacher', 'Student', 'TeachingAssignment', 'AssessmentType',
    'AssessmentWeight', 'Mark', 'GradeSubmission', 'WeightTemplate', 'PromotionCriteria',
    'SemesterResult', 'SubjectResult', 'Roster'
]
