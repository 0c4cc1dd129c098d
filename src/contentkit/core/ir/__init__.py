"""
contentkit intermediate representation (IR) types.

Types are organized into submodules and re-exported here.
"""

# Import documents
from .document import (
    ContentEntry,
    EntityKind,
    FieldSpec,
    ImportDocument,
    ModelEntry,
)

# Fields
from .fields import (
    DEFAULT_STRING_LENGTH,
    REFERENCE_KINDS,
    BundleInfo,
    BundleSchema,
    FieldDefinition,
    FieldKind,
    ParsedFieldType,
)

# Plans
from .plan import (
    ContentOperation,
    CreateContentOperation,
    ImportPlan,
    SchemaAction,
    SchemaOperation,
    SetReferencesOperation,
)

# Results
from .result import (
    CreatedEntity,
    ImportResult,
)

# Values
from .values import (
    BoolValue,
    CoercedValue,
    EntityRef,
    ListValue,
    NumberValue,
    ReferenceValue,
    TextValue,
    values_to_python,
)

__all__ = [
    # Documents
    "ContentEntry",
    "EntityKind",
    "FieldSpec",
    "ImportDocument",
    "ModelEntry",
    # Fields
    "DEFAULT_STRING_LENGTH",
    "REFERENCE_KINDS",
    "BundleInfo",
    "BundleSchema",
    "FieldDefinition",
    "FieldKind",
    "ParsedFieldType",
    # Plans
    "ContentOperation",
    "CreateContentOperation",
    "ImportPlan",
    "SchemaAction",
    "SchemaOperation",
    "SetReferencesOperation",
    # Results
    "CreatedEntity",
    "ImportResult",
    # Values
    "BoolValue",
    "CoercedValue",
    "EntityRef",
    "ListValue",
    "NumberValue",
    "ReferenceValue",
    "TextValue",
    "values_to_python",
]
