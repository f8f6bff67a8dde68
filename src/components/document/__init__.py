"""
Document component - render, import and validate editor documents.
"""

from .component import (
    run,
    run_deserialize,
    run_serialize,
    run_validate,
)
from .models import (
    DeserializeDocumentInput,
    DeserializeOutput,
    SerializeDocumentInput,
    SerializeOutput,
    ValidateDocumentInput,
    ValidateOutput,
)

__all__ = [
    # Entry points
    "run",
    "run_deserialize",
    "run_serialize",
    "run_validate",
    # Input models
    "DeserializeDocumentInput",
    "SerializeDocumentInput",
    "ValidateDocumentInput",
    # Output models
    "DeserializeOutput",
    "SerializeOutput",
    "ValidateOutput",
]
