"""Create, update and delete opportunities together with their image blobs."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from wabnet.errors import NotFoundError, PersistenceError, UploadError, ValidationError
from wabnet.models.opportunity import Opportunity
from wabnet.services.opportunity_repository import OpportunityRepository
from wabnet.services.saga import Saga
from wabnet.services.storage import ObjectStorage, StorageError
from wabnet.utils.image_urls import make_image_path
from wabnet.utils.validation import clean_fields

logger = logging.getLogger(__name__)


@dataclass
class ImageUpload:
    """An image file received with a submission."""

    filename: str
    content: bytes
    content_type: str | None = None


@dataclass
class OpportunitySubmission:
    """Fields of one admin form submission (create or edit)."""

    position: str | None
    description: str | None
    link: str | None = None
    is_edit: bool = False
    id: str | None = None
    image: ImageUpload | None = None


class OpportunityService:
    """
    Keeps opportunity rows and their image blobs consistent.

    Ordering rules:
    - A new image is uploaded before the row is touched.
    - A replaced image is removed only after the row update succeeded.
    - On delete, the image is removed (best-effort) before the row.

    Create and edit run inside a Saga; when a step after the upload fails,
    the freshly uploaded blob is removed again.
    """

    def __init__(self, repository: OpportunityRepository, storage: ObjectStorage) -> None:
        """
        Initialize the service.

        Args:
            repository: Opportunity row access
            storage: Object storage for image blobs
        """
        self.repository = repository
        self.storage = storage

    async def _upload(self, image: ImageUpload) -> str:
        path = make_image_path(image.filename)
        try:
            await self.storage.upload(path, image.content, image.content_type)
        except StorageError as exc:
            logger.error("Error uploading image: %s", exc)
            raise UploadError("Failed to upload image") from exc
        logger.info("Uploaded image %s (%d bytes)", path, len(image.content))
        return path

    async def _discard(self, path: str) -> None:
        await self.storage.remove([path])

    async def _remove_quietly(self, path: str) -> bool:
        try:
            await self.storage.remove([path])
        except StorageError as exc:
            logger.warning("Failed to delete image %s: %s", path, exc)
            return False
        return True

    async def save(self, submission: OpportunitySubmission) -> Opportunity:
        """
        Validate and apply an admin form submission.

        Args:
            submission: Submitted fields, mode flag, id and optional image

        Returns:
            The created or updated row

        Raises:
            ValidationError: Missing position/description, image (create) or id (edit)
            NotFoundError: Editing an opportunity that does not exist
            UploadError: The image could not be stored
            PersistenceError: The row could not be written
        """
        position, description, link = clean_fields(
            submission.position, submission.description, submission.link
        )
        if not submission.is_edit and submission.image is None:
            raise ValidationError("Image is required for new opportunity")
        if submission.is_edit and not submission.id:
            raise ValidationError("id is required for edit")

        if submission.is_edit:
            return await self.update(submission.id, position, description, link, submission.image)  # type: ignore[arg-type]
        return await self.create(position, description, link, submission.image)  # type: ignore[arg-type]

    async def create(
        self,
        position: str,
        description: str,
        link: str | None,
        image: ImageUpload,
    ) -> Opportunity:
        """
        Upload the image, then insert the row.

        Raises:
            UploadError: The image could not be stored
            PersistenceError: The row could not be inserted
        """
        async with Saga("create-opportunity") as saga:
            image_path = await saga.run("upload-image", lambda: self._upload(image), self._discard)
            try:
                created = self.repository.insert(
                    position=position, description=description, image=image_path, link=link
                )
            except PersistenceError as exc:
                logger.error("DB insert error: %s", exc)
                raise PersistenceError("Failed to create opportunity") from exc

        logger.info("Created opportunity %s (%s)", created.id, created.position)
        return created

    async def update(
        self,
        opportunity_id: str,
        position: str,
        description: str,
        link: str | None,
        image: ImageUpload | None = None,
    ) -> Opportunity:
        """
        Upload a replacement image if given, update the row, then drop the old image.

        Without a new image the stored image path is left untouched.

        Raises:
            NotFoundError: The opportunity does not exist
            UploadError: The image could not be stored
            PersistenceError: The row could not be updated
        """
        async with Saga("update-opportunity") as saga:
            new_path: str | None = None
            if image is not None:
                new_path = await saga.run("upload-image", lambda: self._upload(image), self._discard)

            existing = self.repository.get(opportunity_id)
            if existing is None:
                raise NotFoundError("Opportunity not found")
            old_path = existing.image

            fields: dict[str, str | None] = {
                "position": position,
                "description": description,
                "link": link,
            }
            if new_path:
                fields["image"] = new_path

            try:
                updated = self.repository.update(opportunity_id, fields)
            except PersistenceError as exc:
                logger.error("DB update error: %s", exc)
                raise PersistenceError("Failed to update opportunity") from exc
            if updated is None:
                raise NotFoundError("Opportunity not found")

        if new_path and old_path and old_path != new_path:
            await self._remove_quietly(old_path)

        logger.info("Updated opportunity %s", updated.id)
        return updated

    async def delete(self, opportunity_id: str | None) -> None:
        """
        Remove an opportunity's image (best-effort), then its row.

        Raises:
            ValidationError: No id given
            NotFoundError: The opportunity does not exist; nothing is changed
            PersistenceError: The row could not be deleted
        """
        if not opportunity_id:
            raise ValidationError("id required")

        try:
            existing = self.repository.get(opportunity_id)
        except PersistenceError as exc:
            logger.error("Error fetching opportunity: %s", exc)
            raise NotFoundError("Not found") from exc
        if existing is None:
            raise NotFoundError("Not found")

        if existing.image:
            await self._remove_quietly(existing.image)

        try:
            self.repository.delete(opportunity_id)
        except PersistenceError as exc:
            logger.error("DB delete error: %s", exc)
            raise PersistenceError("Failed to delete DB row") from exc

        logger.info("Deleted opportunity %s", opportunity_id)
