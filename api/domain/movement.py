# SPDX-License-Identifier: Apache-2.0

"""
Movement and presence analysis for employee location samples.

This module contains pure functions: great-circle distances between
consecutive GPS fixes, trip totals, presence status from the age of the
latest fix, and login/logout marker classification. Coordinates are
validated when samples are written, so inputs here are assumed numeric
and in range.
"""

import math
from datetime import datetime
from typing import Iterable, List, Optional

from models.entities import LocationSample
from models.enums import LocationEventType, MarkerType, PresenceStatus
from models.responses import (
    ClassifiedHistory,
    LocationMarker,
    PresenceResult,
    TrackPoint,
    TrackReport,
)
from utils.clock import ensure_utc

EARTH_RADIUS_KM = 6371.0
ONLINE_THRESHOLD_MINUTES = 5
IDLE_THRESHOLD_MINUTES = 15


def haversine_km(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """
    Great-circle distance between two points on a sphere of radius 6371 km.

    Args:
        lat1, lon1: First point in degrees
        lat2, lon2: Second point in degrees

    Returns:
        Distance in kilometers
    """
    phi1 = math.radians(lat1)
    phi2 = math.radians(lat2)
    delta_phi = math.radians(lat2 - lat1)
    delta_lambda = math.radians(lon2 - lon1)

    a = (
        math.sin(delta_phi / 2) ** 2
        + math.cos(phi1) * math.cos(phi2) * math.sin(delta_lambda / 2) ** 2
    )
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return EARTH_RADIUS_KM * c


def minutes_between(start: datetime, end: datetime) -> float:
    """Elapsed minutes from ``start`` to ``end`` (negative if end is earlier)."""
    return (ensure_utc(end) - ensure_utc(start)).total_seconds() / 60.0


def _marker(sample: LocationSample, marker_type: MarkerType) -> LocationMarker:
    return LocationMarker(
        latitude=sample.latitude,
        longitude=sample.longitude,
        accuracy=sample.accuracy,
        timestamp=sample.timestamp,
        type=marker_type
    )


def compute_track(samples: Iterable[LocationSample]) -> TrackReport:
    """
    Annotate samples with per-segment distance and elapsed time.

    Samples are sorted ascending by timestamp first. The first point has
    zero distance and zero elapsed time. Total time is the span between
    the first and last sample.

    Args:
        samples: Location samples for one employee

    Returns:
        TrackReport with points and totals; empty input gives zero totals
    """
    ordered = sorted(samples, key=lambda s: ensure_utc(s.timestamp))
    if not ordered:
        return TrackReport(points=[], total_distance_km=0.0, total_time_minutes=0.0)

    points: List[TrackPoint] = []
    total_distance = 0.0
    previous: Optional[LocationSample] = None

    for sample in ordered:
        distance = 0.0
        elapsed = 0.0
        if previous is not None:
            distance = haversine_km(
                previous.latitude, previous.longitude,
                sample.latitude, sample.longitude
            )
            elapsed = minutes_between(previous.timestamp, sample.timestamp)
        total_distance += distance

        points.append(TrackPoint(
            id=sample.id,
            latitude=sample.latitude,
            longitude=sample.longitude,
            accuracy=sample.accuracy,
            timestamp=sample.timestamp,
            event_type=sample.event_type,
            distance_from_previous_km=distance,
            minutes_from_previous=elapsed
        ))
        previous = sample

    return TrackReport(
        points=points,
        total_distance_km=total_distance,
        total_time_minutes=minutes_between(ordered[0].timestamp, ordered[-1].timestamp)
    )


def presence_status(
    last_sample: Optional[LocationSample],
    now: datetime,
    online_minutes: float = ONLINE_THRESHOLD_MINUTES,
    idle_minutes: float = IDLE_THRESHOLD_MINUTES
) -> PresenceResult:
    """
    Derive presence from the age of the latest sample.

    online if age <= online_minutes, idle if age <= idle_minutes, offline
    beyond that. A sample dated in the future (clock skew) counts as age 0
    for the decision, but the reported minutes keep the real difference.

    Args:
        last_sample: Most recent sample, or None
        now: Current time from the injected clock
        online_minutes: Upper bound for "online"
        idle_minutes: Upper bound for "idle"

    Returns:
        PresenceResult; status is no_data when there is no sample
    """
    if last_sample is None:
        return PresenceResult(status=PresenceStatus.NO_DATA)

    minutes = minutes_between(last_sample.timestamp, now)
    age = max(minutes, 0.0)

    if age <= online_minutes:
        status = PresenceStatus.ONLINE
    elif age <= idle_minutes:
        status = PresenceStatus.IDLE
    else:
        status = PresenceStatus.OFFLINE

    return PresenceResult(
        status=status,
        minutes_since_update=minutes,
        location=_marker(last_sample, MarkerType.ONLINE if status != PresenceStatus.OFFLINE else MarkerType.OFFLINE)
    )


def classify_history(samples: Iterable[LocationSample]) -> ClassifiedHistory:
    """
    Split a sample window into the current marker and past sign-off points.

    The most recent sample decides the online marker: none if it is a
    logout, otherwise its coordinates typed "online". Every logout in the
    window yields an "offline" marker, newest first. The window itself is
    returned as a track, oldest first.

    Args:
        samples: Location samples for one employee, any order

    Returns:
        ClassifiedHistory; empty input gives no markers, no trail and status no_data
    """
    ordered = sorted(samples, key=lambda s: ensure_utc(s.timestamp), reverse=True)
    if not ordered:
        return ClassifiedHistory(status=PresenceStatus.NO_DATA)

    latest = ordered[0]
    online_marker = None
    status = PresenceStatus.OFFLINE
    if latest.event_type != LocationEventType.LOGOUT:
        online_marker = _marker(latest, MarkerType.ONLINE)
        status = PresenceStatus.ONLINE

    offline_markers = [
        _marker(sample, MarkerType.OFFLINE)
        for sample in ordered
        if sample.event_type == LocationEventType.LOGOUT
    ]

    return ClassifiedHistory(
        status=status,
        locations=compute_track(ordered).points,
        online_marker=online_marker,
        offline_markers=offline_markers
    )
