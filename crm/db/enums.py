"""Enum definitions for application constants."""

from enum import Enum


class Role(str, Enum):
    """User roles. ADMIN unlocks /api/admin/* and /api/setup/*."""
    ADMIN = "admin"
    USER = "user"

    @classmethod
    def has_value(cls, value: str) -> bool:
        """Check if value is a valid role."""
        return value in cls._value2member_map_


# =============================================================================
# Contacts
# =============================================================================

class ContactStatus(str, Enum):
    LEAD = "lead"
    ACTIVE = "active"
    INACTIVE = "inactive"
    CUSTOMER = "customer"


class LeadStatus(str, Enum):
    """Marketing qualification, feeds the MQL/SQL stages of the marketing funnel."""
    MARKETING_QUALIFIED = "marketing_qualified"
    SALES_QUALIFIED = "sales_qualified"


# =============================================================================
# Deals
# =============================================================================

class DealStatus(str, Enum):
    """
    Deal lifecycle.

    Flow: open → won
             ↘ lost
    """
    OPEN = "open"
    WON = "won"
    LOST = "lost"


# =============================================================================
# Email Campaigns
# =============================================================================

class CampaignStatus(str, Enum):
    """
    Email campaign lifecycle.

    Flow: draft → scheduled → sent
                 ↘ draft (cancel scheduled)
    """
    DRAFT = "draft"
    SCHEDULED = "scheduled"
    SENT = "sent"
    CANCELLED = "cancelled"


class RecipientStatus(str, Enum):
    PENDING = "pending"
    SENT = "sent"
    OPENED = "opened"
    CLICKED = "clicked"
    BOUNCED = "bounced"
    UNSUBSCRIBED = "unsubscribed"


class CampaignAction(str, Enum):
    """Actions accepted by POST /email-campaigns/{id}/actions."""
    SCHEDULE = "schedule"
    CANCEL = "cancel"
    SEND = "send"


# =============================================================================
# Forms
# =============================================================================

class FormStatus(str, Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"
    DRAFT = "draft"


class FormFieldType(str, Enum):
    TEXT = "text"
    EMAIL = "email"
    PHONE = "phone"
    NUMBER = "number"
    TEXTAREA = "textarea"
    SELECT = "select"
    CHECKBOX = "checkbox"
    RADIO = "radio"
    DATE = "date"
    HIDDEN = "hidden"


class SubmissionStatus(str, Enum):
    NEW = "new"
    REVIEWED = "reviewed"
    ARCHIVED = "archived"


# =============================================================================
# Workflows
# =============================================================================

class WorkflowTriggerType(str, Enum):
    """Events that can start a workflow."""
    CONTACT_CREATED = "contact_created"
    CONTACT_UPDATED = "contact_updated"
    TAG_ADDED = "tag_added"
    FORM_SUBMITTED = "form_submitted"
    DEAL_STAGE_CHANGED = "deal_stage_changed"
    APPOINTMENT_SCHEDULED = "appointment_scheduled"
    EMAIL_OPENED = "email_opened"
    MANUAL = "manual"


class WorkflowStepType(str, Enum):
    SEND_EMAIL = "send_email"
    WAIT = "wait"
    ADD_TAG = "add_tag"
    REMOVE_TAG = "remove_tag"
    UPDATE_CONTACT = "update_contact"
    CREATE_TASK = "create_task"
    WEBHOOK = "webhook"
    CONDITION = "condition"


# =============================================================================
# Appointments
# =============================================================================

class AppointmentStatus(str, Enum):
    """
    Appointment lifecycle status.

    Flow: scheduled → confirmed → completed
              ↘ cancelled
    """
    SCHEDULED = "scheduled"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"
    COMPLETED = "completed"


# =============================================================================
# Analytics grouping strategies
# =============================================================================

class Period(str, Enum):
    """Time bucket for trend series. Labels use the PostgreSQL to_char patterns."""
    DAY = "day"
    WEEK = "week"
    MONTH = "month"
    YEAR = "year"

    @classmethod
    def parse(cls, value: str | None) -> "Period":
        """Unknown or missing values fall back to MONTH."""
        if value in cls._value2member_map_:
            return cls(value)
        return cls.MONTH


class EventGrouping(str, Enum):
    """Grouping for organization event and user activity stats."""
    TIME = "time"
    SOURCE = "source"
    CAMPAIGN = "campaign"
    EVENT_TYPE = "event_type"

    @classmethod
    def parse(cls, value: str | None) -> "EventGrouping":
        """Unknown or missing values fall back to EVENT_TYPE."""
        if value in cls._value2member_map_:
            return cls(value)
        return cls.EVENT_TYPE


class FunnelName(str, Enum):
    MARKETING = "marketing"
    DEFAULT = "default"


# Defaults
DEFAULT_CONTACT_STATUS = ContactStatus.LEAD
DEFAULT_DEAL_STATUS = DealStatus.OPEN
DEFAULT_CAMPAIGN_STATUS = CampaignStatus.DRAFT
DEFAULT_APPOINTMENT_STATUS = AppointmentStatus.SCHEDULED
DEFAULT_TAG_COLOR = "#6366F1"
DEFAULT_CURRENCY = "USD"
