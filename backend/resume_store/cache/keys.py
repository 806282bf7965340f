"""Cache key derivation.

Every key the store reads or invalidates is built here so that writers and
readers can never drift apart.
"""

from __future__ import annotations

from datetime import datetime

from ..pagination import PageRequest

USER_PREFIX = "user:"
CURRICULUM_PREFIX = "curriculum:"
CURRICULUM_BODY_PREFIX = "curriculum_body:"
CONFIGURATION_PREFIX = "configuration:"
CURRICULUM_PAGES_PREFIX = "curriculums:"
USAGE_PREFIX = "usage:"


def user_key(user_id: str) -> str:
    return f"{USER_PREFIX}{user_id}"


def curriculum_key(curriculum_id: str) -> str:
    return f"{CURRICULUM_PREFIX}{curriculum_id}"


def curriculum_body_key(curriculum_id: str) -> str:
    return f"{CURRICULUM_BODY_PREFIX}{curriculum_id}"


def configuration_key(user_id: str) -> str:
    return f"{CONFIGURATION_PREFIX}{user_id}"


def curriculum_page_key(user_id: str, request: PageRequest) -> str:
    return (
        f"{CURRICULUM_PAGES_PREFIX}{user_id}:{request.page}:{request.page_size}:"
        f"{request.sort_by}:{request.sort_order.value}"
    )


def curriculum_pages_pattern(user_id: str) -> str:
    """Glob matching every cached curriculum listing page of ``user_id``."""
    return f"{CURRICULUM_PAGES_PREFIX}{user_id}:*"


def usage_key(user_id: str, feature: str, now: datetime) -> str:
    return f"{USAGE_PREFIX}{user_id}:{now:%Y-%m}:{feature}"


__all__ = [
    "configuration_key",
    "curriculum_body_key",
    "curriculum_key",
    "curriculum_page_key",
    "curriculum_pages_pattern",
    "usage_key",
    "user_key",
]
