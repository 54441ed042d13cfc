"""Value objects for object copy."""

from object_copy.domain.value_objects.identifiers import (
    JobId,
    ObjectLocation,
    create_job_id,
    part_name,
)

__all__ = [
    "JobId",
    "ObjectLocation",
    "create_job_id",
    "part_name",
]
