"""
Assignment models for School Results Management System
TeachingAssignment model: the (teacher, class, subject, academic year) unit
that weights and marks attach to
"""

from database import db
from datetime import datetime

class TeachingAssignment(db.Model):
    """Subject taught by a teacher to a class during an academic year"""
    __tablename__ = 'teaching_assignment'

    id = db.Column(db.Integer, primary_key=True)
    teacher_id = db.Column(db.Integer, db.ForeignKey('teacher.id', ondelete='CASCADE'), nullable=False)
    class_id = db.Column(db.Integer, db.ForeignKey('school_class.id', ondelete='CASCADE'), nullable=False)
    subject_id = db.Column(db.Integer, db.ForeignKey('subject.id', ondelete='CASCADE'), nullable=False)
    academic_year_id = db.Column(db.Integer, db.ForeignKey('academic_year.id', ondelete='CASCADE'), nullable=False)
    assigned_at = db.Column(db.DateTime, default=datetime.utcnow)
    is_active = db.Column(db.Boolean, default=True)

    # Relationships
    weights = db.relationship('AssessmentWeight', backref='teaching_assignment', lazy='dynamic',
                              cascade='all, delete-orphan')
    marks = db.relationship('Mark', backref='teaching_assignment', lazy='dynamic',
                            cascade='all, delete-orphan')
    submissions = db.relationship('GradeSubmission', backref='teaching_assignment', lazy='dynamic',
                                  cascade='all, delete-orphan')

    # Unique constraint to prevent duplicate assignments
    __table_args__ = (db.UniqueConstraint('teacher_id', 'class_id', 'subject_id', 'academic_year_id',
                                          name='unique_teaching_assignment'),)

    def get_submission(self, semester_id):
        """Get the grade submission for a semester, if any"""
        return self.submissions.filter_by(semester_id=semester_id).first()

    def to_dict(self):
        """Convert assignment to dictionary"""
        return {
            'id': self.id,
            'teacher_id': self.teacher_id,
            'teacher_name': self.teacher.name if self.teacher else None,
            'class_id': self.class_id,
            'subject_id': self.subject_id,
            'subject_name': self.subject.name if self.subject else None,
            'academic_year_id': self.academic_year_id,
            'assigned_at': self.assigned_at.isoformat() if self.assigned_at else None,
            'is_active': self.is_active
        }

    def __repr__(self):
        teacher_name = self.teacher.name if self.teacher else "Unknown"
        subject_name = self.subject.name if self.subject else "Unknown"
        return f'<TeachingAssignment {teacher_name} -> {subject_name}>'
