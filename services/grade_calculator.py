"""
Grade calculation engine for School Results Management System

Pure, storage-free arithmetic behind grade compilation:

* weighted subject score of one student in one subject
* semester totals, averages, class rank and promotion remark
* two-semester year aggregation

Everything here works on plain snapshot objects (``MarkEntry``,
``SubjectOffering``) so the ranking and remark rules can be exercised
without a database. ``services.compilation_service`` does the reading
and writing around it.
"""

import math
from collections import defaultdict

from models.results import REMARK_PROMOTED, REMARK_NOT_PROMOTED, REMARK_PENDING
from utils.exceptions import (
    InvalidScoreError, MisconfiguredWeightsError, IncompleteGradingError,
    NoActiveCriteriaError, EmptyClassError
)
from utils.sorting_helpers import SortingHelpers

FULL_WEIGHT = 100.0
WEIGHT_TOLERANCE = 0.01
DEFAULT_DECIMALS = 2
SEMESTERS_PER_YEAR = 2


class MarkEntry:
    """Snapshot of one mark, detached from the database session"""

    def __init__(self, student_id, subject_id, assessment_type_id, score, max_score,
                 teaching_assignment_id=None, mark_id=None):
        self.student_id = student_id
        self.subject_id = subject_id
        self.assessment_type_id = assessment_type_id
        self.score = score
        self.max_score = max_score
        self.teaching_assignment_id = teaching_assignment_id
        self.mark_id = mark_id

    @classmethod
    def from_model(cls, mark, subject_id):
        return cls(
            student_id=mark.student_id,
            subject_id=subject_id,
            assessment_type_id=mark.assessment_type_id,
            score=mark.score,
            max_score=mark.max_score,
            teaching_assignment_id=mark.teaching_assignment_id,
            mark_id=mark.id
        )

    def __repr__(self):
        return f'<MarkEntry {self.student_id}/{self.subject_id}/{self.assessment_type_id}: {self.score}/{self.max_score}>'


class SubjectOffering:
    """A subject the class takes this semester with its effective weights"""

    def __init__(self, subject_id, weights, teaching_assignment_id=None, subject_name=None):
        self.subject_id = subject_id
        self.weights = dict(weights or {})
        self.teaching_assignment_id = teaching_assignment_id
        self.subject_name = subject_name

    def __repr__(self):
        return f'<SubjectOffering {self.subject_id}: {self.weights}>'


class GradingStatus:
    """Tagged grading state of a subject score: Complete or Partial"""

    complete = True
    missing_types = ()

    def to_dict(self):
        return {
            'status': 'complete' if self.complete else 'partial',
            'missing_types': list(self.missing_types)
        }


class Complete(GradingStatus):
    """Every configured assessment type has a valid mark"""

    def __repr__(self):
        return '<Complete>'


class Partial(GradingStatus):
    """Some configured assessment types are not graded yet"""

    complete = False

    def __init__(self, missing_types):
        self.missing_types = tuple(sorted(missing_types))

    def __repr__(self):
        return f'<Partial missing={list(self.missing_types)}>'


class SubjectScore:
    """Weighted score of one student in one subject for a semester"""

    def __init__(self, subject_score, weight_sum, status, student_id=None, subject_id=None,
                 teaching_assignment_id=None, errors=None, unweighted_types=None):
        self.subject_score = subject_score
        self.weight_sum = weight_sum
        self.status = status
        self.student_id = student_id
        self.subject_id = subject_id
        self.teaching_assignment_id = teaching_assignment_id
        self.errors = list(errors or [])
        self.unweighted_types = list(unweighted_types or [])

    @property
    def complete(self):
        return self.status.complete

    @property
    def missing_types(self):
        return list(self.status.missing_types)

    def to_dict(self):
        data = {
            'student_id': self.student_id,
            'subject_id': self.subject_id,
            'teaching_assignment_id': self.teaching_assignment_id,
            'subject_score': self.subject_score,
            'weight_sum': self.weight_sum,
            'complete': self.complete,
            'unweighted_types': self.unweighted_types,
            'errors': [error.to_dict() for error in self.errors]
        }
        data.update(self.status.to_dict())
        return data

    def __repr__(self):
        return f'<SubjectScore {self.student_id}/{self.subject_id}: {self.subject_score} {self.status!r}>'


class CompiledResult:
    """In-memory semester result of one student before it is persisted"""

    def __init__(self, student_id, subject_scores, total_score, average_score, subject_count,
                 semester_id=None, class_id=None):
        self.student_id = student_id
        self.subject_scores = subject_scores  # {subject_id: SubjectScore}
        self.total_score = total_score
        self.average_score = average_score
        self.subject_count = subject_count
        self.semester_id = semester_id
        self.class_id = class_id
        self.rank_in_class = None
        self.remark = REMARK_PENDING

    @property
    def is_complete(self):
        return all(score.complete for score in self.subject_scores.values())

    def get_subject_scores(self):
        """Per-subject scores as {subject_id: subject_score}"""
        return {subject_id: score.subject_score for subject_id, score in self.subject_scores.items()}

    def to_dict(self):
        return {
            'student_id': self.student_id,
            'semester_id': self.semester_id,
            'class_id': self.class_id,
            'total_score': self.total_score,
            'average_score': self.average_score,
            'subject_count': self.subject_count,
            'rank_in_class': self.rank_in_class,
            'remark': self.remark,
            'is_complete': self.is_complete,
            'subjects': [self.subject_scores[key].to_dict() for key in sorted(self.subject_scores)]
        }

    def __repr__(self):
        return f'<CompiledResult {self.student_id}: {self.total_score} #{self.rank_in_class}>'


class CompilationReport:
    """Outcome of a best-effort semester compile: results plus collected issues"""

    def __init__(self, class_id=None, semester_id=None, criteria_id=None):
        self.class_id = class_id
        self.semester_id = semester_id
        self.criteria_id = criteria_id
        self.results = []
        self.class_average = 0.0
        self.issues = []

    @property
    def errors(self):
        return [issue for issue in self.issues if issue.severity == 'error']

    @property
    def warnings(self):
        return [issue for issue in self.issues if issue.severity != 'error']

    def get_result(self, student_id):
        for result in self.results:
            if result.student_id == student_id:
                return result
        return None

    def issues_of(self, issue_class):
        return [issue for issue in self.issues if isinstance(issue, issue_class)]

    def to_dict(self):
        return {
            'class_id': self.class_id,
            'semester_id': self.semester_id,
            'criteria_id': self.criteria_id,
            'students_compiled': len(self.results),
            'class_average': self.class_average,
            'results': [result.to_dict() for result in self.results],
            'errors': [issue.to_dict() for issue in self.errors],
            'warnings': [issue.to_dict() for issue in self.warnings]
        }


class YearResult:
    """Two-semester aggregate of one student"""

    def __init__(self, student_id, academic_year_id=None, semester_ids=None, subject_averages=None,
                 year_total=None, year_average=None, remark=REMARK_PENDING, complete=False):
        self.student_id = student_id
        self.academic_year_id = academic_year_id
        self.semester_ids = list(semester_ids or [])
        self.subject_averages = dict(subject_averages or {})
        self.year_total = year_total
        self.year_average = year_average
        self.remark = remark
        self.complete = complete
        self.issues = []

    def to_dict(self):
        return {
            'student_id': self.student_id,
            'academic_year_id': self.academic_year_id,
            'semesters_included': self.semester_ids,
            'subject_averages': [
                {'subject_id': subject_id, 'year_average': value}
                for subject_id, value in sorted(self.subject_averages.items())
            ],
            'year_total': self.year_total,
            'year_average': self.year_average,
            'remark': self.remark,
            'complete': self.complete,
            'warnings': [issue.to_dict() for issue in self.issues]
        }

    def __repr__(self):
        return f'<YearResult {self.student_id}: {self.year_average} {self.remark}>'


class GradeCalculator:
    """Weighted scores, ranking and promotion remarks"""

    @staticmethod
    def normalize_score(score, max_score):
        """Return score / max_score, rejecting marks that cannot be normalized"""
        for value in (score, max_score):
            if value is not None and not math.isfinite(value):
                raise InvalidScoreError(
                    f"Score and maximum score must be finite, got {score}/{max_score}",
                    score=score, max_score=max_score
                )
        if max_score is None or max_score <= 0:
            raise InvalidScoreError(
                f"Maximum score must be positive, got {max_score}",
                score=score, max_score=max_score
            )
        if score is None or score < 0:
            raise InvalidScoreError(
                f"Score cannot be negative, got {score}",
                score=score, max_score=max_score
            )
        if score > max_score:
            raise InvalidScoreError(
                f"Score {score} exceeds maximum score {max_score}",
                score=score, max_score=max_score
            )
        return score / max_score

    @staticmethod
    def calculate_subject_score(marks, weights, student_id=None, subject_id=None,
                                teaching_assignment_id=None, decimals=DEFAULT_DECIMALS):
        """
        Weighted subject score: sum of (score / max_score) * weight_percent over
        the assessment types that have both a weight and a valid mark.

        Configured types without a usable mark contribute 0 and make the result
        Partial. Weights are used as configured, even when they do not sum to 100;
        weight_sum is returned so callers can detect that.
        """
        marks_by_type = {}
        for mark in marks:
            marks_by_type[mark.assessment_type_id] = mark

        total = 0.0
        missing = []
        errors = []
        for type_id in sorted(weights):
            mark = marks_by_type.get(type_id)
            if mark is None:
                missing.append(type_id)
                continue
            try:
                normalized = GradeCalculator.normalize_score(mark.score, mark.max_score)
            except InvalidScoreError as e:
                e.context.update(
                    student_id=mark.student_id,
                    subject_id=mark.subject_id,
                    assessment_type_id=type_id,
                    mark_id=mark.mark_id
                )
                errors.append(e)
                missing.append(type_id)
                continue
            total += normalized * weights[type_id]

        unweighted = sorted(type_id for type_id in marks_by_type if type_id not in weights)
        status = Partial(missing) if missing else Complete()

        return SubjectScore(
            subject_score=round(total, decimals),
            weight_sum=round(sum(weights.values()), decimals),
            status=status,
            student_id=student_id,
            subject_id=subject_id,
            teaching_assignment_id=teaching_assignment_id,
            errors=errors,
            unweighted_types=unweighted
        )

    @staticmethod
    def check_weights(weights, subject_id=None, teaching_assignment_id=None, semester_id=None):
        """Return a MisconfiguredWeightsError when weights do not sum to 100, else None"""
        weight_sum = round(sum(weights.values()), DEFAULT_DECIMALS)
        if abs(weight_sum - FULL_WEIGHT) <= WEIGHT_TOLERANCE:
            return None
        return MisconfiguredWeightsError(
            f"Assessment weights sum to {weight_sum}, expected {FULL_WEIGHT:g}",
            weight_sum=weight_sum,
            subject_id=subject_id,
            teaching_assignment_id=teaching_assignment_id,
            semester_id=semester_id
        )

    @staticmethod
    def group_marks(marks):
        """Group mark entries as {student_id: {subject_id: [MarkEntry]}}"""
        grouped = defaultdict(lambda: defaultdict(list))
        for mark in marks:
            grouped[mark.student_id][mark.subject_id].append(mark)
        return grouped

    @staticmethod
    def count_failing_subjects(subject_scores, passing_per_subject):
        return sum(1 for score in subject_scores if score < passing_per_subject)

    @staticmethod
    def determine_remark(average_score, subject_scores, criteria):
        """
        Promoted when the average reaches passing_average and no more than
        max_failing_subjects subjects are below passing_per_subject.
        Pending when there is no active criteria.
        """
        if criteria is None or not criteria.is_active or average_score is None:
            return REMARK_PENDING

        failing = GradeCalculator.count_failing_subjects(subject_scores, criteria.passing_per_subject)
        if average_score >= criteria.passing_average and failing <= criteria.max_failing_subjects:
            return REMARK_PROMOTED
        return REMARK_NOT_PROMOTED

    @staticmethod
    def rank_results(results):
        """
        Order results and assign competition ranks in place.
        Results with identical (total_score, average_score) share a rank and
        the next distinct result takes its 1-based position (90, 90, 70 -> 1, 1, 3).
        """
        ordered = SortingHelpers.sort_results(results)
        previous_key = None
        rank = 0
        for position, result in enumerate(ordered, 1):
            key = (result.total_score, result.average_score)
            if key != previous_key:
                rank = position
                previous_key = key
            result.rank_in_class = rank
        return ordered

    @staticmethod
    def compile_semester(student_ids, offerings, marks, criteria, class_id=None, semester_id=None,
                         decimals=DEFAULT_DECIMALS):
        """
        Compile semester results for one class.

        student_ids: students of the class
        offerings: SubjectOffering per subject the class takes this semester
        marks: MarkEntry snapshots (marks of other students or subjects are ignored)
        criteria: active PromotionCriteria or None
        """
        active_criteria = criteria if criteria is not None and criteria.is_active else None
        report = CompilationReport(
            class_id=class_id,
            semester_id=semester_id,
            criteria_id=getattr(active_criteria, 'id', None)
        )

        if active_criteria is None:
            report.issues.append(NoActiveCriteriaError(
                "No active promotion criteria; remarks left as Pending",
                class_id=class_id, semester_id=semester_id
            ))

        for offering in offerings:
            issue = GradeCalculator.check_weights(
                offering.weights,
                subject_id=offering.subject_id,
                teaching_assignment_id=offering.teaching_assignment_id,
                semester_id=semester_id
            )
            if issue is not None:
                report.issues.append(issue)

        if not student_ids:
            report.issues.append(EmptyClassError(
                "Class has no students for this semester",
                class_id=class_id, semester_id=semester_id
            ))
            return report

        grouped = GradeCalculator.group_marks(marks)
        subject_count = len(offerings)
        results = []

        for student_id in sorted(set(student_ids)):
            student_marks = grouped.get(student_id, {})
            scores = {}
            for offering in offerings:
                score = GradeCalculator.calculate_subject_score(
                    student_marks.get(offering.subject_id, []),
                    offering.weights,
                    student_id=student_id,
                    subject_id=offering.subject_id,
                    teaching_assignment_id=offering.teaching_assignment_id,
                    decimals=decimals
                )
                report.issues.extend(score.errors)
                if not score.complete:
                    report.issues.append(IncompleteGradingError(
                        "Subject not fully graded",
                        student_id=student_id,
                        subject_id=offering.subject_id,
                        missing_types=score.missing_types
                    ))
                scores[offering.subject_id] = score

            total = round(sum(score.subject_score for score in scores.values()), decimals)
            average = round(total / subject_count, decimals) if subject_count else 0.0

            result = CompiledResult(
                student_id=student_id,
                subject_scores=scores,
                total_score=total,
                average_score=average,
                subject_count=subject_count,
                semester_id=semester_id,
                class_id=class_id
            )
            result.remark = GradeCalculator.determine_remark(
                average, [score.subject_score for score in scores.values()], active_criteria
            )
            results.append(result)

        report.results = GradeCalculator.rank_results(results)
        report.class_average = round(
            sum(result.average_score for result in results) / len(results), decimals
        )
        return report

    @staticmethod
    def _mean(values, decimals):
        return round(sum(values) / len(values), decimals)

    @staticmethod
    def aggregate_year(student_id, semester_summaries, criteria, academic_year_id=None,
                       expected_semesters=SEMESTERS_PER_YEAR, decimals=DEFAULT_DECIMALS):
        """
        Combine a student's semester summaries into a year result.

        A semester summary is anything with semester_id, total_score,
        average_score, is_complete and get_subject_scores() (a persisted
        SemesterResult or a CompiledResult). Missing semesters are passed as
        None or left out. When a subject (or the whole year) only has one
        semester, that single value counts fully instead of being halved.
        """
        available = [summary for summary in semester_summaries if summary is not None]
        if not available:
            return YearResult(student_id, academic_year_id=academic_year_id)

        per_subject = defaultdict(list)
        for summary in available:
            for subject_id, score in summary.get_subject_scores().items():
                per_subject[subject_id].append(score)

        subject_averages = {
            subject_id: GradeCalculator._mean(scores, decimals)
            for subject_id, scores in per_subject.items()
        }
        year_total = GradeCalculator._mean([summary.total_score or 0.0 for summary in available], decimals)
        year_average = GradeCalculator._mean([summary.average_score or 0.0 for summary in available], decimals)

        active_criteria = criteria if criteria is not None and criteria.is_active else None
        remark = GradeCalculator.determine_remark(year_average, subject_averages.values(), active_criteria)
        complete = len(available) >= expected_semesters and all(summary.is_complete for summary in available)

        result = YearResult(
            student_id,
            academic_year_id=academic_year_id,
            semester_ids=[summary.semester_id for summary in available],
            subject_averages=subject_averages,
            year_total=year_total,
            year_average=year_average,
            remark=remark,
            complete=complete
        )
        if active_criteria is None:
            result.issues.append(NoActiveCriteriaError(
                "No active promotion criteria; year remark left as Pending",
                student_id=student_id, academic_year_id=academic_year_id
            ))
        return result
