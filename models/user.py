"""
User models for School Results Management System
Teacher model (class heads are teachers referenced by their class)
"""

from database import db
from datetime import datetime

class Teacher(db.Model):
    """Teacher model"""
    __tablename__ = 'teacher'

    id = db.Column(db.Integer, primary_key=True)
    school_id = db.Column(db.Integer, db.ForeignKey('school.id', ondelete='SET NULL'), nullable=True)
    name = db.Column(db.String(255), nullable=False)
    email = db.Column(db.String(255), unique=True, nullable=True)
    phone = db.Column(db.String(20), nullable=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    is_active = db.Column(db.Boolean, default=True)

    # Relationships
    teaching_assignments = db.relationship('TeachingAssignment', backref='teacher', lazy='dynamic')

    def get_assigned_subjects(self):
        """Get all subjects assigned to this teacher"""
        return [assignment.subject for assignment in self.teaching_assignments.filter_by(is_active=True)]

    def is_class_head_of(self, class_id):
        """Check if teacher heads the given class"""
        from models.academic import SchoolClass
        school_class = db.session.get(SchoolClass, class_id)
        return school_class is not None and school_class.class_head_id == self.id

    def to_dict(self):
        """Convert teacher to dictionary"""
        return {
            'id': self.id,
            'school_id': self.school_id,
            'name': self.name,
            'email': self.email,
            'phone': self.phone,
            'assigned_subjects': [subject.name for subject in self.get_assigned_subjects()],
            'is_active': self.is_active
        }

    def __repr__(self):
        return f'<Teacher {self.name}>'
