"""
Result models for School Results Management System
PromotionCriteria, SemesterResult, SubjectResult and Roster models
"""

import json

from database import db
from datetime import datetime

REMARK_PROMOTED = 'Promoted'
REMARK_NOT_PROMOTED = 'Not Promoted'
REMARK_PENDING = 'Pending'
REMARKS = (REMARK_PROMOTED, REMARK_NOT_PROMOTED, REMARK_PENDING)

class PromotionCriteria(db.Model):
    """Thresholds deciding Promoted / Not Promoted remarks"""
    __tablename__ = 'promotion_criteria'

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(100), nullable=False)
    passing_average = db.Column(db.Float, nullable=False)
    passing_per_subject = db.Column(db.Float, nullable=False)
    max_failing_subjects = db.Column(db.Integer, nullable=False, default=0)
    is_active = db.Column(db.Boolean, default=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    @staticmethod
    def get_active():
        """Get the active criteria row (most recent if several are flagged)"""
        return PromotionCriteria.query.filter_by(is_active=True)\
            .order_by(PromotionCriteria.id.desc()).first()

    def to_dict(self):
        """Convert criteria to dictionary"""
        return {
            'id': self.id,
            'name': self.name,
            'passing_average': self.passing_average,
            'passing_per_subject': self.passing_per_subject,
            'max_failing_subjects': self.max_failing_subjects,
            'is_active': self.is_active,
            'created_at': self.created_at.isoformat() if self.created_at else None
        }

    def __repr__(self):
        return f'<PromotionCriteria {self.name}: avg>={self.passing_average}>'

class SemesterResult(db.Model):
    """Compiled, rankable summary of a student's performance in one semester"""
    __tablename__ = 'semester_result'

    id = db.Column(db.Integer, primary_key=True)
    student_id = db.Column(db.Integer, db.ForeignKey('student.id', ondelete='CASCADE'), nullable=False)
    semester_id = db.Column(db.Integer, db.ForeignKey('semester.id', ondelete='CASCADE'), nullable=False)
    class_id = db.Column(db.Integer, db.ForeignKey('school_class.id', ondelete='CASCADE'), nullable=False)
    total_score = db.Column(db.Float, nullable=True)
    average_score = db.Column(db.Float, nullable=True)
    rank_in_class = db.Column(db.Integer, nullable=True)
    subject_count = db.Column(db.Integer, nullable=False, default=0)
    is_complete = db.Column(db.Boolean, default=True)
    absent_days = db.Column(db.Integer, default=0)
    conduct = db.Column(db.String(50), nullable=True)
    remark = db.Column(db.String(20), nullable=False, default=REMARK_PENDING)
    is_published = db.Column(db.Boolean, default=False)
    published_at = db.Column(db.DateTime, nullable=True)
    compiled_at = db.Column(db.DateTime, default=datetime.utcnow)

    # Relationships
    semester = db.relationship('Semester')
    school_class = db.relationship('SchoolClass')
    subject_results = db.relationship('SubjectResult', backref='semester_result', lazy='select',
                                      cascade='all, delete-orphan',
                                      order_by='SubjectResult.subject_id')

    __table_args__ = (db.UniqueConstraint('student_id', 'semester_id', name='unique_result'),)

    def publish(self):
        """Make the result visible to students and parents"""
        self.is_published = True
        self.published_at = datetime.utcnow()

    def unpublish(self):
        self.is_published = False
        self.published_at = None

    def get_subject_scores(self):
        """Per-subject scores as {subject_id: subject_score}"""
        return {row.subject_id: row.subject_score for row in self.subject_results}

    def to_dict(self, include_subjects=True):
        """Convert result to dictionary"""
        data = {
            'id': self.id,
            'student_id': self.student_id,
            'student_name': self.student.name if self.student else None,
            'semester_id': self.semester_id,
            'class_id': self.class_id,
            'total_score': self.total_score,
            'average_score': self.average_score,
            'rank_in_class': self.rank_in_class,
            'subject_count': self.subject_count,
            'absent_days': self.absent_days or 0,
            'conduct': self.conduct,
            'is_complete': self.is_complete,
            'remark': self.remark,
            'is_published': self.is_published,
            'published_at': self.published_at.isoformat() if self.published_at else None,
            'compiled_at': self.compiled_at.isoformat() if self.compiled_at else None
        }
        if include_subjects:
            data['subjects'] = [row.to_dict() for row in self.subject_results]
        return data

    def __repr__(self):
        return f'<SemesterResult {self.student_id}/{self.semester_id}: #{self.rank_in_class} {self.remark}>'

class SubjectResult(db.Model):
    """Per-subject score persisted with a compiled semester result"""
    __tablename__ = 'subject_result'

    id = db.Column(db.Integer, primary_key=True)
    semester_result_id = db.Column(db.Integer, db.ForeignKey('semester_result.id', ondelete='CASCADE'), nullable=False)
    subject_id = db.Column(db.Integer, db.ForeignKey('subject.id', ondelete='CASCADE'), nullable=False)
    teaching_assignment_id = db.Column(db.Integer, db.ForeignKey('teaching_assignment.id', ondelete='SET NULL'), nullable=True)
    subject_score = db.Column(db.Float, nullable=False, default=0.0)
    weight_sum = db.Column(db.Float, nullable=False, default=0.0)
    is_complete = db.Column(db.Boolean, default=True)
    missing_assessment_types = db.Column(db.Text, nullable=True)  # JSON list of assessment type ids

    subject = db.relationship('Subject')

    __table_args__ = (db.UniqueConstraint('semester_result_id', 'subject_id', name='unique_subject_result'),)

    def get_missing_types(self):
        if not self.missing_assessment_types:
            return []
        return json.loads(self.missing_assessment_types)

    def set_missing_types(self, type_ids):
        self.missing_assessment_types = json.dumps(sorted(type_ids)) if type_ids else None

    def to_dict(self):
        """Convert subject result to dictionary"""
        return {
            'subject_id': self.subject_id,
            'subject_name': self.subject.name if self.subject else None,
            'subject_score': self.subject_score,
            'weight_sum': self.weight_sum,
            'is_complete': self.is_complete,
            'missing_assessment_types': self.get_missing_types()
        }

    def __repr__(self):
        return f'<SubjectResult {self.subject_id}: {self.subject_score}>'

class Roster(db.Model):
    """Class roster sent to the store house for a semester"""
    __tablename__ = 'roster'

    id = db.Column(db.Integer, primary_key=True)
    class_id = db.Column(db.Integer, db.ForeignKey('school_class.id', ondelete='CASCADE'), nullable=False)
    semester_id = db.Column(db.Integer, db.ForeignKey('semester.id', ondelete='CASCADE'), nullable=False)
    submitted_by = db.Column(db.Integer, db.ForeignKey('teacher.id', ondelete='SET NULL'), nullable=True)
    submitted_at = db.Column(db.DateTime, default=datetime.utcnow)
    roster_data = db.Column(db.JSON, nullable=True)

    __table_args__ = (db.UniqueConstraint('class_id', 'semester_id', name='unique_roster'),)

    def to_dict(self):
        """Convert roster to dictionary"""
        return {
            'id': self.id,
            'class_id': self.class_id,
            'semester_id': self.semester_id,
            'submitted_by': self.submitted_by,
            'submitted_at': self.submitted_at.isoformat() if self.submitted_at else None,
            'roster_data': self.roster_data
        }

    def __repr__(self):
        return f'<Roster {self.class_id}/{self.semester_id}>'
