"""Decision functions for the content graph."""

from __future__ import annotations

from enum import Enum

from .state import ContentState

__all__ = ["ContentRoute", "RETRY_THRESHOLD", "route_after_data_parser", "route_after_answers"]

RETRY_THRESHOLD = 3


class ContentRoute(str, Enum):
    CONTINUE = "continue"
    STOP = "stop"


def _tripped(state: ContentState, retry_threshold: int) -> bool:
    return bool(state.errors) and state.retry_count >= retry_threshold


def route_after_data_parser(state: ContentState, *, retry_threshold: int = RETRY_THRESHOLD) -> ContentRoute:
    if _tripped(state, retry_threshold):
        return ContentRoute.STOP
    if state.parsed_product is None:
        return ContentRoute.STOP
    return ContentRoute.CONTINUE


def route_after_answers(state: ContentState, *, retry_threshold: int = RETRY_THRESHOLD) -> ContentRoute:
    if _tripped(state, retry_threshold):
        return ContentRoute.STOP
    if not state.answers:
        return ContentRoute.STOP
    return ContentRoute.CONTINUE
