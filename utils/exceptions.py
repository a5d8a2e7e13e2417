"""
Grading exceptions for School Results Management System

Compilation is best-effort: most of these are collected on the compile
report instead of being raised out of the engine. ``severity`` tells the
caller how to present each one.
"""


class GradingError(Exception):
    """Base class for every grade compilation issue"""

    severity = 'error'
    code = 'GRADING_ERROR'

    def __init__(self, message, **context):
        super(GradingError, self).__init__(message)
        self.message = message
        self.context = context

    def to_dict(self):
        """Convert issue to dictionary"""
        data = {
            'code': self.code,
            'severity': self.severity,
            'message': self.message
        }
        data.update(self.context)
        return data


class InvalidScoreError(GradingError):
    """A single mark with max_score <= 0 or a score outside [0, max_score]"""

    code = 'INVALID_SCORE'

    def __init__(self, message, score=None, max_score=None, **context):
        super(InvalidScoreError, self).__init__(message, score=score, max_score=max_score, **context)
        self.score = score
        self.max_score = max_score


class MisconfiguredWeightsError(GradingError):
    """Weights of an assignment+semester do not add up to 100"""

    severity = 'warning'
    code = 'MISCONFIGURED_WEIGHTS'

    def __init__(self, message, weight_sum=None, **context):
        super(MisconfiguredWeightsError, self).__init__(message, weight_sum=weight_sum, **context)
        self.weight_sum = weight_sum


class IncompleteGradingError(GradingError):
    """A student has configured assessment types without a usable mark"""

    severity = 'warning'
    code = 'INCOMPLETE_GRADING'


class NoActiveCriteriaError(GradingError):
    """No active promotion criteria row; remarks stay Pending"""

    severity = 'warning'
    code = 'NO_ACTIVE_CRITERIA'


class EmptyClassError(GradingError):
    """The class has no students for the semester"""

    severity = 'info'
    code = 'EMPTY_CLASS'


class NotFoundError(GradingError):
    """A class, semester, student or academic year does not exist"""

    code = 'NOT_FOUND'


class CompilationInProgressError(GradingError):
    """Another compile for the same class and semester holds the lock"""

    code = 'COMPILATION_IN_PROGRESS'
