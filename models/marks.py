"""
Marks models for School Results Management System
AssessmentType, AssessmentWeight, Mark, GradeSubmission and WeightTemplate models
"""

from database import db
from datetime import datetime

class AssessmentType(db.Model):
    """Category of graded work (Quiz, Mid-Exam, Final...) with a default weight"""
    __tablename__ = 'assessment_type'

    id = db.Column(db.Integer, primary_key=True)
    school_id = db.Column(db.Integer, db.ForeignKey('school.id', ondelete='CASCADE'), nullable=False)
    name = db.Column(db.String(100), nullable=False)
    default_weight_percent = db.Column(db.Float, nullable=True)

    __table_args__ = (db.UniqueConstraint('school_id', 'name', name='unique_assessment_type'),)

    def to_dict(self):
        """Convert assessment type to dictionary"""
        return {
            'id': self.id,
            'school_id': self.school_id,
            'name': self.name,
            'default_weight_percent': self.default_weight_percent
        }

    def __repr__(self):
        return f'<AssessmentType {self.name}: {self.default_weight_percent}%>'

class AssessmentWeight(db.Model):
    """Weight of one assessment type for a teaching assignment in a semester"""
    __tablename__ = 'assessment_weight'

    id = db.Column(db.Integer, primary_key=True)
    teaching_assignment_id = db.Column(db.Integer, db.ForeignKey('teaching_assignment.id', ondelete='CASCADE'), nullable=False)
    assessment_type_id = db.Column(db.Integer, db.ForeignKey('assessment_type.id', ondelete='CASCADE'), nullable=False)
    semester_id = db.Column(db.Integer, db.ForeignKey('semester.id', ondelete='CASCADE'), nullable=False)
    weight_percent = db.Column(db.Float, nullable=False)

    assessment_type = db.relationship('AssessmentType')

    __table_args__ = (db.UniqueConstraint('teaching_assignment_id', 'assessment_type_id', 'semester_id',
                                          name='unique_weight'),)

    @staticmethod
    def get_weight_map(teaching_assignment_id, semester_id):
        """Configured weights as {assessment_type_id: weight_percent}"""
        rows = AssessmentWeight.query.filter_by(
            teaching_assignment_id=teaching_assignment_id,
            semester_id=semester_id
        ).all()
        return {row.assessment_type_id: row.weight_percent for row in rows}

    def to_dict(self):
        """Convert weight to dictionary"""
        return {
            'id': self.id,
            'teaching_assignment_id': self.teaching_assignment_id,
            'assessment_type_id': self.assessment_type_id,
            'assessment_type_name': self.assessment_type.name if self.assessment_type else None,
            'semester_id': self.semester_id,
            'weight_percent': self.weight_percent
        }

    def __repr__(self):
        return f'<AssessmentWeight {self.teaching_assignment_id}/{self.assessment_type_id}: {self.weight_percent}%>'

class Mark(db.Model):
    """Score of a student in one assessment of a teaching assignment"""
    __tablename__ = 'mark'

    id = db.Column(db.Integer, primary_key=True)
    student_id = db.Column(db.Integer, db.ForeignKey('student.id', ondelete='CASCADE'), nullable=False)
    teaching_assignment_id = db.Column(db.Integer, db.ForeignKey('teaching_assignment.id', ondelete='CASCADE'), nullable=False)
    assessment_type_id = db.Column(db.Integer, db.ForeignKey('assessment_type.id', ondelete='CASCADE'), nullable=False)
    semester_id = db.Column(db.Integer, db.ForeignKey('semester.id', ondelete='CASCADE'), nullable=False)
    score = db.Column(db.Float, nullable=False)
    max_score = db.Column(db.Float, nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    assessment_type = db.relationship('AssessmentType')

    # Unique constraint to prevent duplicate marks for the same assessment
    __table_args__ = (db.UniqueConstraint('student_id', 'teaching_assignment_id', 'assessment_type_id', 'semester_id',
                                          name='unique_mark'),)

    def update_score(self, score, max_score):
        """Update score and maximum score"""
        self.score = score
        self.max_score = max_score
        self.updated_at = datetime.utcnow()

    def get_percentage(self):
        """Percentage of max_score, None when max_score is not positive"""
        if not self.max_score or self.max_score <= 0:
            return None
        return round((self.score / self.max_score) * 100, 2)

    def to_dict(self):
        """Convert mark to dictionary"""
        return {
            'id': self.id,
            'student_id': self.student_id,
            'student_name': self.student.name if self.student else None,
            'teaching_assignment_id': self.teaching_assignment_id,
            'assessment_type_id': self.assessment_type_id,
            'assessment_type_name': self.assessment_type.name if self.assessment_type else None,
            'semester_id': self.semester_id,
            'score': self.score,
            'max_score': self.max_score,
            'percentage': self.get_percentage(),
            'updated_at': self.updated_at.isoformat() if self.updated_at else None
        }

    def __repr__(self):
        return f'<Mark {self.student_id} - {self.teaching_assignment_id} - {self.assessment_type_id}: {self.score}/{self.max_score}>'

class GradeSubmission(db.Model):
    """Submission state of a teaching assignment's grade sheet for a semester"""
    __tablename__ = 'grade_submission'

    STATUS_DRAFT = 'draft'
    STATUS_SUBMITTED = 'submitted'
    STATUS_APPROVED = 'approved'
    STATUS_REJECTED = 'rejected'
    STATUSES = (STATUS_DRAFT, STATUS_SUBMITTED, STATUS_APPROVED, STATUS_REJECTED)

    id = db.Column(db.Integer, primary_key=True)
    teaching_assignment_id = db.Column(db.Integer, db.ForeignKey('teaching_assignment.id', ondelete='CASCADE'), nullable=False)
    semester_id = db.Column(db.Integer, db.ForeignKey('semester.id', ondelete='CASCADE'), nullable=False)
    status = db.Column(db.String(20), nullable=False, default=STATUS_DRAFT)
    submitted_at = db.Column(db.DateTime, nullable=True)
    reviewed_by = db.Column(db.Integer, db.ForeignKey('teacher.id', ondelete='SET NULL'), nullable=True)
    reviewed_at = db.Column(db.DateTime, nullable=True)
    comments = db.Column(db.Text, nullable=True)

    __table_args__ = (db.UniqueConstraint('teaching_assignment_id', 'semester_id', name='unique_submission'),)

    def is_locked(self):
        """Marks cannot change once submitted or approved"""
        return self.status in (self.STATUS_SUBMITTED, self.STATUS_APPROVED)

    def submit(self):
        self.status = self.STATUS_SUBMITTED
        self.submitted_at = datetime.utcnow()
        self.reviewed_by = None
        self.reviewed_at = None

    def review(self, status, reviewer_id, comments=None):
        self.status = status
        self.reviewed_by = reviewer_id
        self.reviewed_at = datetime.utcnow()
        self.comments = comments

    def to_dict(self):
        """Convert submission to dictionary"""
        return {
            'id': self.id,
            'teaching_assignment_id': self.teaching_assignment_id,
            'semester_id': self.semester_id,
            'status': self.status,
            'submitted_at': self.submitted_at.isoformat() if self.submitted_at else None,
            'reviewed_by': self.reviewed_by,
            'reviewed_at': self.reviewed_at.isoformat() if self.reviewed_at else None,
            'comments': self.comments
        }

    def __repr__(self):
        return f'<GradeSubmission {self.teaching_assignment_id}/{self.semester_id}: {self.status}>'

class WeightTemplate(db.Model):
    """School-wide assessment weights teachers start from"""
    __tablename__ = 'weight_template'

    id = db.Column(db.Integer, primary_key=True)
    school_id = db.Column(db.Integer, db.ForeignKey('school.id', ondelete='CASCADE'), nullable=False)
    name = db.Column(db.String(100), nullable=False)
    # [{'assessment_type_id': 1, 'weight_percent': 30.0}, ...]
    weights = db.Column(db.JSON, nullable=False, default=list)
    is_default = db.Column(db.Boolean, default=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    __table_args__ = (db.UniqueConstraint('school_id', 'name', name='unique_weight_template'),)

    @staticmethod
    def get_preferred(school_id):
        """The school's default template, else its most recently created one"""
        return WeightTemplate.query.filter_by(school_id=school_id)\
            .order_by(WeightTemplate.is_default.desc(), WeightTemplate.created_at.desc(),
                      WeightTemplate.id.desc()).first()

    def get_weight_map(self):
        """Template weights as {assessment_type_id: weight_percent}"""
        return {
            int(entry['assessment_type_id']): float(entry['weight_percent'])
            for entry in (self.weights or [])
        }

    def set_weight_map(self, weights):
        self.weights = [
            {'assessment_type_id': int(type_id), 'weight_percent': float(weight)}
            for type_id, weight in sorted(weights.items())
        ]

    def to_dict(self):
        """Convert template to dictionary"""
        return {
            'id': self.id,
            'school_id': self.school_id,
            'name': self.name,
            'weights': list(self.weights or []),
            'is_default': self.is_default,
            'created_at': self.created_at.isoformat() if self.created_at else None
        }

    def __repr__(self):
        return f'<WeightTemplate {self.name}>'
