"""
Database models for the dispatch backend.

A single entity carries the workflow: :class:`IncidentReport`, filed by
a driver against one hospital and triaged by that hospital.  Users carry
their role directly so that routing and permissions never depend on
what a client claims at login time.
"""
from __future__ import annotations

import uuid

from django.contrib.auth.models import AbstractUser
from django.db import models


class User(AbstractUser):
    """Custom user model with a dispatch role.

    ``driver`` accounts file reports, ``hospital`` accounts triage them.
    Email is unique because it is the sign-in identifier.
    """
    ROLE_DRIVER = 'driver'
    ROLE_HOSPITAL = 'hospital'
    ROLE_CHOICES = [
        (ROLE_DRIVER, 'Driver'),
        (ROLE_HOSPITAL, 'Hospital'),
    ]
    email = models.EmailField(unique=True)
    role = models.CharField(max_length=10, choices=ROLE_CHOICES, default=ROLE_DRIVER)

    def __str__(self) -> str:
        return f"{self.username} ({self.role})"


class IncidentReport(models.Model):
    """One emergency request from a driver to a hospital.

    Descriptive fields and the destination hospital are fixed at
    creation.  ``status`` starts as ``Pending`` and moves once, to
    ``Accepted`` or ``Rejected``; both are terminal.
    """
    STATUS_PENDING = 'Pending'
    STATUS_ACCEPTED = 'Accepted'
    STATUS_REJECTED = 'Rejected'
    STATUS_CHOICES = [
        (STATUS_PENDING, 'Pending'),
        (STATUS_ACCEPTED, 'Accepted'),
        (STATUS_REJECTED, 'Rejected'),
    ]
    TERMINAL_STATUSES = (STATUS_ACCEPTED, STATUS_REJECTED)

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    created_at = models.DateTimeField(auto_now_add=True, db_index=True)
    submitter = models.ForeignKey(User, on_delete=models.CASCADE, related_name='incident_reports')
    location = models.CharField(max_length=255)
    incident_type = models.CharField(max_length=32)
    persons_injured = models.PositiveIntegerField(null=True, blank=True)
    consciousness_state = models.CharField(max_length=32)
    hospital_id = models.CharField(max_length=64)
    hospital_name = models.CharField(max_length=255)
    status = models.CharField(max_length=16, choices=STATUS_CHOICES, default=STATUS_PENDING, db_index=True)

    class Meta:
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['submitter', 'created_at'], name='report_submitter_created_idx'),
        ]

    def __str__(self) -> str:
        return f"{self.incident_type} @ {self.location} -> {self.hospital_name} [{self.status}]"


class AuditEvent(models.Model):
    user = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True)
    action = models.CharField(max_length=64)
    object_type = models.CharField(max_length=64, blank=True, null=True)
    object_id = models.CharField(max_length=64, blank=True, null=True)
    detail = models.JSONField(default=dict, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        indexes = [
            models.Index(fields=['action', 'created_at'], name='audit_action_created_idx'),
            models.Index(fields=['object_type', 'object_id', 'created_at'], name='audit_object_created_idx'),
        ]

    def __str__(self):
        return f"{self.action}:{self.user_id}@{self.created_at:%F %T}"
