"""
Scheduling domain

Day selection and the batch edit protocol that keeps the local schedule
cache consistent with the backend.
"""
from .selection import SelectionMode, SelectionSet
from .service import BatchEditCoordinator, BatchResult

__all__ = ["BatchEditCoordinator", "BatchResult", "SelectionMode", "SelectionSet"]
