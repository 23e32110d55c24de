"""Form builder schemas.

Field definitions and settings are stored as JSON; these models are the only
way they get in, so everything read back from the table has this shape.
"""

from datetime import datetime
from typing import Annotated, Any
from uuid import UUID

from pydantic import AfterValidator, BaseModel, Field, model_validator

from crm.db.enums import FormFieldType, FormStatus
from crm.schemas.common import PaginationMeta

CHOICE_FIELD_TYPES = {FormFieldType.SELECT, FormFieldType.RADIO}


class FormField(BaseModel):
    """One input of a form. ``name`` is the key used in submission data."""
    model_config = {"extra": "forbid"}

    name: str = Field(..., min_length=1, max_length=100, pattern=r"^[A-Za-z_][A-Za-z0-9_]*$")
    label: str = Field(..., min_length=1, max_length=255)
    type: FormFieldType = FormFieldType.TEXT
    required: bool = False
    placeholder: str | None = Field(None, max_length=255)
    options: list[str] | None = None

    @model_validator(mode="after")
    def check_options(self):
        if self.type in CHOICE_FIELD_TYPES and not self.options:
            raise ValueError(f"Field '{self.name}' of type {self.type.value} needs options")
        return self


class FormSettings(BaseModel):
    model_config = {"extra": "forbid"}

    submit_button_text: str = Field("Submit", max_length=100)
    success_message: str = Field("Thank you for your submission", max_length=1000)
    redirect_url: str | None = Field(None, max_length=500)
    notify_email: str | None = Field(None, max_length=255)


def _unique_names(fields: list[FormField]) -> list[FormField]:
    names = [f.name for f in fields]
    if len(names) != len(set(names)):
        raise ValueError("Field names must be unique")
    return fields


FieldList = Annotated[list[FormField], AfterValidator(_unique_names)]


class FormCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    description: str | None = None
    fields: FieldList = Field(..., min_length=1)
    settings: FormSettings = Field(default_factory=FormSettings)
    status: FormStatus = FormStatus.ACTIVE
    form_type: str = Field("contact", max_length=50)
    is_public: bool = False


class FormUpdate(BaseModel):
    name: str | None = Field(None, min_length=1, max_length=255)
    description: str | None = None
    fields: FieldList | None = Field(None, min_length=1)
    settings: FormSettings | None = None
    status: FormStatus | None = None
    form_type: str | None = Field(None, max_length=50)
    is_public: bool | None = None


class FormRead(BaseModel):
    model_config = {"from_attributes": True}

    id: UUID
    name: str
    description: str | None
    fields: list[FormField]
    settings: FormSettings
    status: str
    form_type: str
    is_public: bool
    created_at: datetime
    updated_at: datetime


class PublicFormRead(BaseModel):
    """What anonymous visitors see of a published form."""
    model_config = {"from_attributes": True}

    id: UUID
    name: str
    description: str | None
    fields: list[FormField]
    settings: FormSettings


class FormListResponse(BaseModel):
    data: list[FormRead]
    pagination: PaginationMeta


# =============================================================================
# Submissions
# =============================================================================

class FormSubmissionCreate(BaseModel):
    data: dict[str, Any]


class FormSubmissionRead(BaseModel):
    model_config = {"from_attributes": True}

    id: UUID
    form_id: UUID
    data: dict[str, Any]
    ip_address: str | None
    status: str
    created_at: datetime


class FormSubmissionListResponse(BaseModel):
    data: list[FormSubmissionRead]
    pagination: PaginationMeta


class FormSubmitResponse(BaseModel):
    message: str
    submission_id: UUID
