# src/nav_core/geometry.py
"""Plane geometry helpers for pursuit and candidate generation."""

from __future__ import annotations

import math
from typing import Optional, Tuple

from contracts.types import Point2D

EPSILON = 1e-9


def distance(a: Point2D, b: Point2D) -> float:
    return math.hypot(a.x - b.x, a.y - b.y)


def wrap_angle(angle: float) -> float:
    """Wrap an angle to [-pi, pi]."""
    return math.atan2(math.sin(angle), math.cos(angle))


def bearing(origin: Point2D, target: Point2D) -> Optional[float]:
    """Angle of the vector origin -> target, or None if they coincide."""
    dx = target.x - origin.x
    dy = target.y - origin.y
    if abs(dx) < EPSILON and abs(dy) < EPSILON:
        return None
    return math.atan2(dy, dx)


def offset(origin: Point2D, angle: float, radius: float) -> Point2D:
    return Point2D(origin.x + math.cos(angle) * radius, origin.y + math.sin(angle) * radius)


def segment_circle_intersection(
    center: Point2D,
    radius: float,
    start: Point2D,
    end: Point2D,
) -> Optional[Tuple[Point2D, float]]:
    """
    Intersect a circle with the segment start -> end.

    Returns (point, t) where t is the distance along the segment, preferring
    the intersection furthest along it. Returns None for a zero-length
    segment or when the circle does not reach the segment.
    """
    dx = end.x - start.x
    dy = end.y - start.y
    seg_len = math.hypot(dx, dy)
    if seg_len < EPSILON:
        return None

    ux = dx / seg_len
    uy = dy / seg_len
    t_closest = (center.x - start.x) * ux + (center.y - start.y) * uy
    closest_x = start.x + ux * t_closest
    closest_y = start.y + uy * t_closest
    perp = math.hypot(center.x - closest_x, center.y - closest_y)
    if perp > radius:
        return None

    half_chord = math.sqrt(max(0.0, radius * radius - perp * perp))
    for t in (t_closest + half_chord, t_closest - half_chord):
        if -EPSILON <= t <= seg_len + EPSILON:
            t = min(max(t, 0.0), seg_len)
            return Point2D(start.x + ux * t, start.y + uy * t), t
    return None


def passed_midpoint(agent: Point2D, start: Point2D, end: Point2D) -> bool:
    """
    True if the agent's projection onto start -> end lies beyond the
    segment midpoint. Zero-length segments count as passed.
    """
    dx = end.x - start.x
    dy = end.y - start.y
    length_sq = dx * dx + dy * dy
    if length_sq < EPSILON:
        return True
    proj = ((agent.x - start.x) * dx + (agent.y - start.y) * dy) / length_sq
    return proj > 0.5


def clamp_to_rect(point: Point2D, left: float, top: float, right: float, bottom: float) -> Point2D:
    return Point2D(min(max(point.x, left), right), min(max(point.y, top), bottom))
