"""SQLAlchemy ORM models."""

from crm.db.models.auth import Organization, User
from crm.db.models.contacts import Contact, ContactTag, SmartList, Tag
from crm.db.models.pipelines import Deal, Pipeline, Stage
from crm.db.models.campaigns import (
    CampaignRecipient,
    EmailCampaign,
    EmailCampaignEvent,
    MarketingCampaign,
)
from crm.db.models.analytics import AnalyticsEvent
from crm.db.models.forms import Form, FormSubmission
from crm.db.models.workflows import Workflow, WorkflowStep
from crm.db.models.appointments import Appointment
from crm.db.models.courses import Course, CourseLesson, CourseModule
from crm.db.models.websites import Page, Website

__all__ = [
    "AnalyticsEvent",
    "Appointment",
    "CampaignRecipient",
    "Contact",
    "ContactTag",
    "Course",
    "CourseLesson",
    "CourseModule",
    "Deal",
    "EmailCampaign",
    "EmailCampaignEvent",
    "Form",
    "FormSubmission",
    "MarketingCampaign",
    "Organization",
    "Page",
    "Pipeline",
    "SmartList",
    "Stage",
    "Tag",
    "User",
    "Website",
    "Workflow",
    "WorkflowStep",
]
