# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Models package - Pydantic schemas and data models for the field CRM platform.
"""

# Base models
from .base import BaseEntity, DocumentModel

# Enumerations
from .enums import (
    ClientCategory,
    ClientStatus,
    MeetingType,
    MeetingStatus,
    ProjectStatus,
    ProjectPriority,
    ExpenseCategory,
    ExpenseStatus,
    LocationEventType,
    PresenceStatus,
    MarkerType,
    Department
)

# Core entities
from .entities import (
    Client,
    BranchLocation,
    ContactPerson,
    Meeting,
    Project,
    Expense,
    LocationSample,
    User,
    AuditLog,
    UserContext
)

# Response models
from .responses import (
    HalLink,
    DeletedCounts,
    DeletionSummary,
    TrackPoint,
    TrackReport,
    LocationMarker,
    PresenceResult,
    ClassifiedHistory,
    DashboardMetrics,
    ExpenseStats
)
