from catalog_ingest.mapping.catalog import CourseCatalog
from catalog_ingest.mapping.mapper import CourseMapper, calculate_mapping_quality
from catalog_ingest.mapping.models import (
    CourseDetails,
    CourseInfo,
    CreditValidationIssue,
    MappedCategory,
    MappingResult,
    ValidationIssue,
)

__all__ = [
    "CourseCatalog",
    "CourseDetails",
    "CourseInfo",
    "CourseMapper",
    "CreditValidationIssue",
    "MappedCategory",
    "MappingResult",
    "ValidationIssue",
    "calculate_mapping_quality",
]
