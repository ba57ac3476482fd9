"""relscout: foreign key relationship discovery.

Finds the foreign key graph of a customer database from declared
constraints, column features and LLM-validated join candidates.
"""

__version__ = "0.1.0"

from relscout.core.models.base import Result

__all__ = [
    "Result",
    "__version__",
]
