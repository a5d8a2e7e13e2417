"""
Management service for School Results Management System
Promotion criteria and school weight template administration
"""

from database import db
from models.marks import AssessmentType, WeightTemplate
from models.results import PromotionCriteria
from services.grade_calculator import GradeCalculator
from utils.app_logger import get_logger
from utils.db_helpers import get_or_none, safe_add_and_commit, safe_update_and_commit
from utils.validators import validate_promotion_criteria, validate_weight_template

logger = get_logger('management')

class ManagementService:
    """Management service class"""

    @staticmethod
    def _deactivate_others(keep_id=None):
        query = PromotionCriteria.query.filter_by(is_active=True)
        if keep_id is not None:
            query = query.filter(PromotionCriteria.id != keep_id)
        for criteria in query.all():
            criteria.is_active = False

    @staticmethod
    def get_active_criteria():
        """Get the single active promotion criteria, or None"""
        return PromotionCriteria.get_active()

    @staticmethod
    def list_promotion_criteria():
        """All criteria, newest first"""
        return PromotionCriteria.query.order_by(PromotionCriteria.created_at.desc(),
                                                PromotionCriteria.id.desc()).all()

    @staticmethod
    def create_promotion_criteria(criteria_data):
        """Create promotion criteria; an active one replaces the current active row"""
        is_valid, message = validate_promotion_criteria(criteria_data)
        if not is_valid:
            return False, None, message

        is_active = criteria_data.get('is_active', True) is not False
        if is_active:
            ManagementService._deactivate_others()

        criteria = PromotionCriteria(
            name=criteria_data['name'].strip(),
            passing_average=float(criteria_data['passing_average']),
            passing_per_subject=float(criteria_data['passing_per_subject']),
            max_failing_subjects=int(criteria_data['max_failing_subjects']),
            is_active=is_active
        )
        success, message = safe_add_and_commit(criteria)
        if not success:
            return False, None, message

        logger.info("Created promotion criteria %s (active=%s)", criteria.id, criteria.is_active)
        return True, criteria, "Promotion criteria created successfully"

    @staticmethod
    def update_promotion_criteria(criteria_id, criteria_data):
        """Update thresholds of existing criteria"""
        criteria = get_or_none(PromotionCriteria, criteria_id)
        if criteria is None:
            return False, "Promotion criteria not found"

        merged = criteria.to_dict()
        merged.update({key: value for key, value in criteria_data.items() if value is not None})
        is_valid, message = validate_promotion_criteria(merged)
        if not is_valid:
            return False, message

        criteria.name = merged['name'].strip()
        criteria.passing_average = float(merged['passing_average'])
        criteria.passing_per_subject = float(merged['passing_per_subject'])
        criteria.max_failing_subjects = int(merged['max_failing_subjects'])
        if merged.get('is_active'):
            ManagementService._deactivate_others(keep_id=criteria.id)
            criteria.is_active = True
        else:
            criteria.is_active = False

        success, message = safe_update_and_commit()
        if success:
            return True, "Promotion criteria updated successfully"
        return False, message

    @staticmethod
    def activate_promotion_criteria(criteria_id):
        """Make criteria the only active row"""
        criteria = get_or_none(PromotionCriteria, criteria_id)
        if criteria is None:
            return False, "Promotion criteria not found"

        ManagementService._deactivate_others(keep_id=criteria.id)
        criteria.is_active = True

        success, message = safe_update_and_commit()
        if success:
            logger.info("Promotion criteria %s activated", criteria.id)
            return True, f"'{criteria.name}' is now the active promotion criteria"
        return False, message

    @staticmethod
    def deactivate_promotion_criteria(criteria_id):
        """Deactivate criteria; remarks compile as Pending until another is active"""
        criteria = get_or_none(PromotionCriteria, criteria_id)
        if criteria is None:
            return False, "Promotion criteria not found"

        criteria.is_active = False
        success, message = safe_update_and_commit()
        if success:
            return True, "Promotion criteria deactivated"
        return False, message

    @staticmethod
    def delete_promotion_criteria(criteria_id):
        """Delete criteria"""
        criteria = get_or_none(PromotionCriteria, criteria_id)
        if criteria is None:
            return False, "Promotion criteria not found"

        db.session.delete(criteria)
        return safe_update_and_commit()

    @staticmethod
    def _parse_template_weights(school_id, weights):
        """Convert template weights to {int: float}; returns (weights, error)"""
        try:
            parsed = {int(type_id): float(weight) for type_id, weight in weights.items()}
        except (ValueError, TypeError):
            return None, "Assessment type ids must be whole numbers"

        known = {
            assessment_type.id
            for assessment_type in AssessmentType.query.filter_by(school_id=school_id).all()
        }
        unknown = sorted(type_id for type_id in parsed if type_id not in known)
        if unknown:
            return None, f"Unknown assessment types: {', '.join(str(type_id) for type_id in unknown)}"
        return parsed, None

    @staticmethod
    def _clear_default_template(school_id, keep_id=None):
        query = WeightTemplate.query.filter_by(school_id=school_id, is_default=True)
        if keep_id is not None:
            query = query.filter(WeightTemplate.id != keep_id)
        for template in query.all():
            template.is_default = False

    @staticmethod
    def list_weight_templates(school_id):
        """Weight templates of a school, default first then newest"""
        return WeightTemplate.query.filter_by(school_id=school_id)\
            .order_by(WeightTemplate.is_default.desc(), WeightTemplate.created_at.desc(),
                      WeightTemplate.id.desc()).all()

    @staticmethod
    def create_weight_template(school_id, template_data):
        """
        Create a school weight template.
        template_data: {'name': str, 'weights': {assessment_type_id: weight_percent}, 'is_default': bool}
        """
        is_valid, message = validate_weight_template(template_data)
        if not is_valid:
            return False, None, message

        weights, error = ManagementService._parse_template_weights(school_id, template_data['weights'])
        if error:
            return False, None, error

        is_default = bool(template_data.get('is_default', False))
        if is_default:
            ManagementService._clear_default_template(school_id)

        template = WeightTemplate(
            school_id=school_id,
            name=template_data['name'].strip(),
            is_default=is_default
        )
        template.set_weight_map(weights)
        success, message = safe_add_and_commit(template)
        if not success:
            return False, None, message

        logger.info("Created weight template %s for school %s (default=%s)", template.id, school_id, is_default)
        issue = GradeCalculator.check_weights(weights)
        if issue is not None:
            return True, template, f"Weight template created. Warning: {issue.message}"
        return True, template, "Weight template created successfully"

    @staticmethod
    def update_weight_template(template_id, template_data):
        """Rename a template or replace its weights"""
        template = get_or_none(WeightTemplate, template_id)
        if template is None:
            return False, "Weight template not found"

        merged = {
            'name': template_data.get('name') or template.name,
            'weights': template_data.get('weights') or template.get_weight_map()
        }
        is_valid, message = validate_weight_template(merged)
        if not is_valid:
            return False, message

        weights, error = ManagementService._parse_template_weights(template.school_id, merged['weights'])
        if error:
            return False, error

        template.name = merged['name'].strip()
        template.set_weight_map(weights)
        if template_data.get('is_default'):
            ManagementService._clear_default_template(template.school_id, keep_id=template.id)
            template.is_default = True

        success, message = safe_update_and_commit()
        if success:
            return True, "Weight template updated successfully"
        return False, message

    @staticmethod
    def set_default_weight_template(template_id):
        """Make a template the school's default"""
        template = get_or_none(WeightTemplate, template_id)
        if template is None:
            return False, "Weight template not found"

        ManagementService._clear_default_template(template.school_id, keep_id=template.id)
        template.is_default = True

        success, message = safe_update_and_commit()
        if success:
            return True, f"'{template.name}' is now the default weight template"
        return False, message

    @staticmethod
    def delete_weight_template(template_id):
        """Delete a template"""
        template = get_or_none(WeightTemplate, template_id)
        if template is None:
            return False, "Weight template not found"

        db.session.delete(template)
        return safe_update_and_commit()
