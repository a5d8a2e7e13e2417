"""
Validation utilities for School Results Management System
"""

import math

def _to_float(value):
    """float() that also rejects NaN and infinity"""
    number = float(value)
    if not math.isfinite(number):
        raise ValueError(f"{value!r} is not a finite number")
    return number

def validate_score(score, max_score):
    """Validate a score against its maximum score"""
    try:
        score_float = _to_float(score)
        max_score_float = _to_float(max_score)
    except (ValueError, TypeError):
        return False, "Score and maximum score must be valid numbers"

    if max_score_float <= 0:
        return False, "Maximum score must be greater than zero"

    if score_float < 0:
        return False, "Score cannot be negative"

    if score_float > max_score_float:
        return False, f"Score cannot exceed maximum score ({max_score_float:g})"

    return True, "Valid score"

def validate_weight_percent(weight_percent):
    """Validate a single assessment weight"""
    try:
        weight = _to_float(weight_percent)
    except (ValueError, TypeError):
        return False, "Weight must be a valid number"

    if weight < 0 or weight > 100:
        return False, "Weight must be between 0 and 100"

    return True, "Valid weight"

def validate_weights(weights):
    """Validate a {assessment_type_id: weight_percent} mapping"""
    if not weights:
        return False, "At least one assessment weight is required"

    for type_id, weight in weights.items():
        is_valid, message = validate_weight_percent(weight)
        if not is_valid:
            return False, f"Assessment type {type_id}: {message}"

    return True, "Valid weights"

def validate_percentage(value, field_name):
    """Validate a 0-100 threshold"""
    try:
        number = _to_float(value)
    except (ValueError, TypeError):
        return False, f"{field_name} must be a number"

    if number < 0 or number > 100:
        return False, f"{field_name} must be between 0 and 100"

    return True, f"Valid {field_name.lower()}"

def validate_promotion_criteria(data):
    """Validate promotion criteria fields"""
    name = (data.get('name') or '').strip()
    if not name:
        return False, "Criteria name is required"

    if len(name) > 100:
        return False, "Criteria name must be 100 characters or less"

    for field, label in (('passing_average', 'Passing average'),
                         ('passing_per_subject', 'Passing score per subject')):
        if data.get(field) is None:
            return False, f"{label} is required"
        is_valid, message = validate_percentage(data.get(field), label)
        if not is_valid:
            return False, message

    try:
        max_failing = int(data.get('max_failing_subjects'))
    except (ValueError, TypeError):
        return False, "Maximum failing subjects must be a whole number"

    if max_failing < 0:
        return False, "Maximum failing subjects cannot be negative"

    return True, "Valid promotion criteria"

def validate_submission_status(status):
    """Validate grade submission review status"""
    valid_statuses = ['approved', 'rejected']
    if status not in valid_statuses:
        return False, f"Review status must be one of: {', '.join(valid_statuses)}"

    return True, "Valid review status"

def validate_weight_template(data):
    """Validate weight template name and weights"""
    name = (data.get('name') or '').strip()
    if not name:
        return False, "Template name is required"

    if len(name) > 100:
        return False, "Template name must be 100 characters or less"

    return validate_weights(data.get('weights') or {})

def validate_absent_days(absent_days):
    """Validate a number of absent days"""
    try:
        days = int(absent_days)
    except (ValueError, TypeError, OverflowError):
        return False, "Absent days must be a whole number"

    if days < 0:
        return False, "Absent days cannot be negative"

    return True, "Valid absent days"
