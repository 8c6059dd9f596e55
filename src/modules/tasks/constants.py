"""Task and claim vocabularies."""

from django.db import models


class TaskStatus(models.TextChoices):
    PENDING = "Pending", "Pending"
    IN_PROGRESS = "In Progress", "In Progress"
    COMPLETED = "Completed", "Completed"
    CANCELLED = "Cancelled", "Cancelled"


class TaskPriority(models.TextChoices):
    LOW = "low", "Low"
    NORMAL = "normal", "Normal"
    HIGH = "high", "High"
    URGENT = "urgent", "Urgent"


class ClaimStatus(models.TextChoices):
    SUBMITTED = "Submitted", "Submitted"
    UNDER_REVIEW = "Under Review", "Under Review"
    RESOLVED = "Resolved", "Resolved"
    REJECTED = "Rejected", "Rejected"


class ClaimType(models.TextChoices):
    QUALITY = "Quality Issue", "Quality Issue"
    DELIVERY = "Delivery Issue", "Delivery Issue"
    BILLING = "Billing Issue", "Billing Issue"
    OTHER = "Other", "Other"


TASK_TRANSITIONS: dict[str, set[str]] = {
    TaskStatus.PENDING: {TaskStatus.IN_PROGRESS, TaskStatus.COMPLETED, TaskStatus.CANCELLED},
    TaskStatus.IN_PROGRESS: {TaskStatus.COMPLETED, TaskStatus.CANCELLED},
    TaskStatus.COMPLETED: set(),
    TaskStatus.CANCELLED: set(),
}

# Assigning a claim that is still Submitted puts it Under Review.
CLAIM_TRANSITIONS: dict[str, set[str]] = {
    ClaimStatus.SUBMITTED: {
        ClaimStatus.UNDER_REVIEW,
        ClaimStatus.RESOLVED,
        ClaimStatus.REJECTED,
    },
    ClaimStatus.UNDER_REVIEW: {ClaimStatus.RESOLVED, ClaimStatus.REJECTED},
    ClaimStatus.RESOLVED: set(),
    ClaimStatus.REJECTED: set(),
}
