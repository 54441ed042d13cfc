"""Manifest assembly for multipart destination objects."""

from __future__ import annotations

from typing import Iterable

from object_copy.domain.entities.chunk import ChunkResult, ManifestItem
from object_copy.domain.errors import CopyError, ManifestError
from object_copy.domain.value_objects.identifiers import ObjectLocation
from object_copy.ports.outbound import ObjectStoreClientPort, Session


def build_manifest(results: Iterable[ChunkResult]) -> list[ManifestItem]:
    """Order chunk results into a manifest.

    Items are sorted by path, so the manifest does not depend on the order
    in which chunks completed.

    Args:
        results: Completed chunk results.

    Returns:
        Manifest items sorted by path.
    """
    return sorted((result.to_manifest_item() for result in results), key=lambda item: item.path)


class ManifestAssembler:
    """Submits the final manifest for a copied object."""

    def __init__(self, client: ObjectStoreClientPort, session: Session) -> None:
        self.client = client
        self.session = session

    def submit(self, destination: ObjectLocation, results: Iterable[ChunkResult]) -> list[ManifestItem]:
        """Write the manifest stitching all parts into the destination object.

        Args:
            destination: Logical destination object.
            results: Results of every chunk of the job.

        Returns:
            Submitted manifest items.

        Raises:
            ManifestError: If the destination rejects the manifest.
        """
        items = build_manifest(results)
        try:
            self.client.write_manifest(self.session, destination, items)
        except ManifestError:
            raise
        except CopyError as e:
            raise ManifestError(f"Could not put manifest for {destination}: {e}") from e
        return items
