"""
Sorting helper utilities for School Results Management System
Provides consistent ordering for ranked results
"""

class SortingHelpers:
    """Helper class for sorting operations"""

    @staticmethod
    def get_result_sort_key(result):
        """
        Get ranking sort key for a compiled result
        Priority: total_score descending, then average_score descending,
        then student_id ascending (lowest id wins)
        """
        total = result.total_score or 0.0
        average = result.average_score or 0.0
        return (-total, -average, result.student_id)

    @staticmethod
    def sort_results(results):
        """Sort compiled results using the ranking order"""
        return sorted(results, key=SortingHelpers.get_result_sort_key)
