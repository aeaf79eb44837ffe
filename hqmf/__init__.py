"""
hqmf-criteria: data criteria extraction for HQMF R2 measure documents.
"""

__version__ = "0.1.0"

from .errors import DataCriteriaError
from .parser import DataCriteria, DataCriteriaSession, normalize

__all__ = [
    "__version__",
    "DataCriteria",
    "DataCriteriaError",
    "DataCriteriaSession",
    "normalize",
]
