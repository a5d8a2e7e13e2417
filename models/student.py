"""
Student model for School Results Management System
"""

from database import db
from datetime import datetime

class Student(db.Model):
    """Student model"""
    __tablename__ = 'student'

    id = db.Column(db.Integer, primary_key=True)
    student_id_number = db.Column(db.String(50), unique=True, nullable=True, index=True)
    name = db.Column(db.String(255), nullable=False)
    class_id = db.Column(db.Integer, db.ForeignKey('school_class.id', ondelete='CASCADE'), nullable=False)
    sex = db.Column(db.String(10), nullable=True)  # 'Male', 'Female'
    date_of_birth = db.Column(db.Date, nullable=True)
    date_of_admission = db.Column(db.Date, nullable=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    is_active = db.Column(db.Boolean, default=True)

    # Relationships
    marks = db.relationship('Mark', backref='student', lazy='dynamic', cascade='all, delete-orphan')
    semester_results = db.relationship('SemesterResult', backref='student', lazy='dynamic',
                                       cascade='all, delete-orphan')

    def get_age(self, on_date=None):
        """Age in whole years on the given date (today by default)"""
        if not self.date_of_birth:
            return None
        on_date = on_date or datetime.utcnow().date()
        born = self.date_of_birth
        return on_date.year - born.year - ((on_date.month, on_date.day) < (born.month, born.day))

    def to_dict(self):
        """Convert student to dictionary"""
        return {
            'id': self.id,
            'student_id_number': self.student_id_number,
            'name': self.name,
            'class_id': self.class_id,
            'sex': self.sex,
            'date_of_birth': self.date_of_birth.isoformat() if self.date_of_birth else None,
            'age': self.get_age(),
            'is_active': self.is_active
        }

    def __repr__(self):
        return f'<Student {self.student_id_number or self.id}: {self.name}>'
