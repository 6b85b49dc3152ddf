"""Admin workflow: list, search, create, edit and delete opportunities."""

from __future__ import annotations

import base64
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable

from wabnet.admin.api_client import AdminApiClient
from wabnet.admin.upload import ImageFile
from wabnet.config import settings
from wabnet.errors import TransportError, ValidationError
from wabnet.schemas.opportunity import Opportunity
from wabnet.utils.image_urls import resolve_image_url
from wabnet.utils.validation import clean_fields, filter_opportunities

logger = logging.getLogger(__name__)

# Shown by the form before any request; the server uses its own wording.
MISSING_FIELDS_MESSAGE = "Position & description required"


class FormMode(str, Enum):
    """Whether the form creates a new opportunity or edits an existing one."""

    CREATE = "create"
    EDIT = "edit"


class FormState(str, Enum):
    """Form lifecycle: CLOSED -> OPEN -> SUBMITTING -> CLOSED | OPEN."""

    CLOSED = "closed"
    OPEN = "open"
    SUBMITTING = "submitting"


@dataclass
class OpportunityForm:
    """Editable fields of the admin form."""

    mode: FormMode = FormMode.CREATE
    editing_id: str | None = None
    position: str = ""
    description: str = ""
    link: str = ""
    image: ImageFile | None = None
    image_preview: str | None = None

    @property
    def image_required(self) -> bool:
        return self.mode is FormMode.CREATE


@dataclass
class OperationResult:
    """Outcome of a submit or delete, with the message shown to the operator."""

    ok: bool
    message: str
    opportunity: Opportunity | None = None


@dataclass
class AdminWorkflow:
    """
    State and operations behind the admin opportunities page.

    Operations never raise for backend failures; they return an
    OperationResult whose message is meant for the operator.  A failed submit
    leaves the form open with every field intact so it can be retried.
    """

    api: AdminApiClient
    storage_base_url: str = field(default_factory=lambda: settings.supabase_url)
    bucket: str = field(default_factory=lambda: settings.storage_bucket)

    opportunities: list[Opportunity] = field(default_factory=list)
    search: str = ""
    form: OpportunityForm = field(default_factory=OpportunityForm)
    state: FormState = FormState.CLOSED
    progress: int = 0
    message: str | None = None
    listeners: list[Callable[["AdminWorkflow"], None]] = field(default_factory=list)

    def _notify(self) -> None:
        for listener in list(self.listeners):
            listener(self)

    def _set_progress(self, percent: int) -> None:
        if self.state is not FormState.SUBMITTING:
            return
        self.progress = percent
        self._notify()

    def image_url(self, opportunity: Opportunity) -> str | None:
        """Displayable URL of an opportunity's image, or None if it has none."""
        return resolve_image_url(opportunity.image, base_url=self.storage_base_url, bucket=self.bucket)

    async def refresh(self) -> list[Opportunity]:
        """
        Reload all opportunities, newest first.

        On failure the error is logged and the current list is kept.
        """
        try:
            self.opportunities = await self.api.list_opportunities()
        except TransportError as exc:
            logger.error("Fetch opportunities error: %s", exc)
        self._notify()
        return self.opportunities

    def visible(self) -> list[Opportunity]:
        """Opportunities matching the search box (position and description only)."""
        return filter_opportunities(self.opportunities, self.search)

    def open_create(self) -> None:
        """Open an empty form in create mode; an image will be required."""
        self.form = OpportunityForm(mode=FormMode.CREATE)
        self.state = FormState.OPEN
        self._notify()

    def open_edit(self, opportunity: Opportunity) -> None:
        """Open the form pre-filled from an existing opportunity."""
        self.form = OpportunityForm(
            mode=FormMode.EDIT,
            editing_id=opportunity.id,
            position=opportunity.position,
            description=opportunity.description,
            link=opportunity.link or "",
            image_preview=self.image_url(opportunity),
        )
        self.state = FormState.OPEN
        self._notify()

    def close(self) -> None:
        self.state = FormState.CLOSED
        self._notify()

    def choose_image(self, image: ImageFile) -> None:
        """Attach an image to the form and preview it inline."""
        encoded = base64.b64encode(image.content).decode("ascii")
        self.form.image = image
        self.form.image_preview = f"data:{image.content_type};base64,{encoded}"
        self._notify()

    def _fail(self, message: str) -> OperationResult:
        self.message = message
        self._notify()
        return OperationResult(ok=False, message=message)

    async def submit(self) -> OperationResult:
        """
        Validate the form and send it as one multipart request.

        Returns:
            Success closes the form and refreshes the list; any failure keeps
            the form open with its fields.
        """
        if self.state is not FormState.OPEN:
            return self._fail("Form is not open")

        form = self.form
        try:
            clean_fields(form.position, form.description, form.link)
        except ValidationError:
            return self._fail(MISSING_FIELDS_MESSAGE)
        if form.image_required and form.image is None:
            return self._fail("Image is required for new opportunity")

        fields = {
            "position": form.position,
            "description": form.description,
            "link": form.link,
            "isEdit": "true" if form.mode is FormMode.EDIT else "false",
        }
        if form.mode is FormMode.EDIT and form.editing_id:
            fields["id"] = form.editing_id

        self.state = FormState.SUBMITTING
        self.progress = 0
        self._notify()
        try:
            response = await self.api.save_opportunity(fields, form.image, self._set_progress)
        except TransportError as exc:
            logger.error("Upload request failed: %s", exc)
            self.state = FormState.OPEN
            return self._fail("Upload request failed")
        finally:
            self.progress = 0

        if not response.success:
            self.state = FormState.OPEN
            logger.error("Save rejected (%s): %s", response.status_code, response.payload)
            if response.error:
                return self._fail(f"Server error: {response.error}")
            if response.ok:
                return self._fail("Server error: Unknown")
            return self._fail(f"Upload failed: {response.reason}")

        saved = Opportunity.model_validate(response.payload["opportunity"])  # type: ignore[index]
        self.state = FormState.CLOSED
        self.message = "Saved successfully"
        await self.refresh()
        return OperationResult(ok=True, message=self.message, opportunity=saved)

    async def delete(self, opportunity_id: str) -> OperationResult:
        """
        Delete an opportunity; the list is refreshed on success.
        """
        try:
            response = await self.api.delete_opportunity(opportunity_id)
        except TransportError as exc:
            logger.error("Delete request failed: %s", exc)
            return self._fail("Delete failed: request failed")

        if not response.success:
            return self._fail(f"Delete failed: {response.error or ''}".rstrip())

        self.message = "Deleted successfully"
        await self.refresh()
        return OperationResult(ok=True, message=self.message)
