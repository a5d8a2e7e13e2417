"""
Academic structure models for School Results Management System
School, AcademicYear, Semester, SchoolClass and Subject models
"""

from database import db
from datetime import datetime

class School(db.Model):
    """School model"""
    __tablename__ = 'school'

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    address = db.Column(db.String(500), nullable=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    is_active = db.Column(db.Boolean, default=True)

    # Relationships
    classes = db.relationship('SchoolClass', backref='school', lazy='dynamic')
    subjects = db.relationship('Subject', backref='school', lazy='dynamic')
    assessment_types = db.relationship('AssessmentType', backref='school', lazy='dynamic')

    def to_dict(self):
        """Convert school to dictionary"""
        return {
            'id': self.id,
            'name': self.name,
            'address': self.address,
            'is_active': self.is_active
        }

    def __repr__(self):
        return f'<School {self.name}>'

class AcademicYear(db.Model):
    """Academic year model for managing academic sessions"""
    __tablename__ = 'academic_year'

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(50), nullable=False, unique=True, index=True)
    start_date = db.Column(db.Date, nullable=False)
    end_date = db.Column(db.Date, nullable=False)
    is_current = db.Column(db.Boolean, default=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    # Relationships
    semesters = db.relationship('Semester', backref='academic_year', lazy='dynamic',
                                order_by='Semester.semester_number',
                                cascade='all, delete-orphan')

    def get_semesters(self):
        """Get semesters of this year in order"""
        return self.semesters.all()

    def to_dict(self):
        """Convert academic year to dictionary"""
        return {
            'id': self.id,
            'name': self.name,
            'start_date': self.start_date.isoformat() if self.start_date else None,
            'end_date': self.end_date.isoformat() if self.end_date else None,
            'is_current': self.is_current,
            'semesters': [semester.to_dict() for semester in self.get_semesters()]
        }

    def __repr__(self):
        return f'<AcademicYear {self.name}>'

class Semester(db.Model):
    """Semester within an academic year"""
    __tablename__ = 'semester'

    id = db.Column(db.Integer, primary_key=True)
    academic_year_id = db.Column(db.Integer, db.ForeignKey('academic_year.id', ondelete='CASCADE'), nullable=False)
    name = db.Column(db.String(50), nullable=False)
    semester_number = db.Column(db.Integer, nullable=False)  # 1 or 2
    start_date = db.Column(db.Date, nullable=True)
    end_date = db.Column(db.Date, nullable=True)

    __table_args__ = (db.UniqueConstraint('academic_year_id', 'semester_number', name='unique_semester_per_year'),)

    def to_dict(self):
        """Convert semester to dictionary"""
        return {
            'id': self.id,
            'academic_year_id': self.academic_year_id,
            'name': self.name,
            'semester_number': self.semester_number,
            'start_date': self.start_date.isoformat() if self.start_date else None,
            'end_date': self.end_date.isoformat() if self.end_date else None
        }

    def __repr__(self):
        return f'<Semester {self.name}>'

class SchoolClass(db.Model):
    """Class (section) of students for one academic year"""
    __tablename__ = 'school_class'

    id = db.Column(db.Integer, primary_key=True)
    school_id = db.Column(db.Integer, db.ForeignKey('school.id', ondelete='CASCADE'), nullable=False)
    academic_year_id = db.Column(db.Integer, db.ForeignKey('academic_year.id', ondelete='CASCADE'), nullable=False)
    grade_level = db.Column(db.Integer, nullable=False)
    name = db.Column(db.String(50), nullable=False)
    class_head_id = db.Column(db.Integer, db.ForeignKey('teacher.id', ondelete='SET NULL'), nullable=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    # Relationships
    students = db.relationship('Student', backref='school_class', lazy='dynamic')
    teaching_assignments = db.relationship('TeachingAssignment', backref='school_class', lazy='dynamic')
    academic_year = db.relationship('AcademicYear')
    class_head = db.relationship('Teacher', foreign_keys=[class_head_id])

    def get_active_students(self):
        """Get active students of the class ordered by id"""
        from models.student import Student
        return self.students.filter_by(is_active=True).order_by(Student.id.asc()).all()

    def get_active_assignments(self, academic_year_id=None):
        """Active teaching assignments of the class for a year (the class's own by default), oldest first"""
        from models.assignments import TeachingAssignment
        return self.teaching_assignments.filter_by(
            academic_year_id=academic_year_id or self.academic_year_id,
            is_active=True
        ).order_by(TeachingAssignment.id.asc()).all()

    def to_dict(self):
        """Convert class to dictionary"""
        return {
            'id': self.id,
            'school_id': self.school_id,
            'academic_year_id': self.academic_year_id,
            'grade_level': self.grade_level,
            'name': self.name,
            'class_head_id': self.class_head_id,
            'class_head_name': self.class_head.name if self.class_head else None,
            'student_count': self.students.filter_by(is_active=True).count()
        }

    def __repr__(self):
        return f'<SchoolClass {self.grade_level}{self.name}>'

class Subject(db.Model):
    """Subject model"""
    __tablename__ = 'subject'

    id = db.Column(db.Integer, primary_key=True)
    school_id = db.Column(db.Integer, db.ForeignKey('school.id', ondelete='CASCADE'), nullable=False)
    name = db.Column(db.String(100), nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    is_active = db.Column(db.Boolean, default=True)

    # Relationships
    assignments = db.relationship('TeachingAssignment', backref='subject', lazy='dynamic')

    # Unique constraint for subject name within a school
    __table_args__ = (db.UniqueConstraint('school_id', 'name', name='unique_subject_per_school'),)

    def to_dict(self):
        """Convert subject to dictionary"""
        return {
            'id': self.id,
            'school_id': self.school_id,
            'name': self.name,
            'is_active': self.is_active
        }

    def __repr__(self):
        return f'<Subject {self.name}>'
