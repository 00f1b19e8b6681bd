"""Helpers for topic strings carrying an embedded course-domain marker."""

import logging
from typing import List, Tuple

from content.identifiers import MAX_PARTITION_INDEX

logger = logging.getLogger(__name__)

COURSE_MARKER = "(course-name-is)"
DEFAULT_DOMAIN = "General"
TOPICS_PER_PARTITION = 5


def split_topic(topic: str) -> Tuple[str, str]:
    """Return (display label, course domain) for a marked topic string."""
    if COURSE_MARKER not in topic:
        return topic.strip(), DEFAULT_DOMAIN
    label, _, domain = topic.partition(COURSE_MARKER)
    return label.strip(), domain.strip() or DEFAULT_DOMAIN


def topic_label(topic: str) -> str:
    return split_topic(topic)[0]


def course_domain(topic: str) -> str:
    return split_topic(topic)[1]


def chunk_into_partitions(topics: List[str]) -> List[List[str]]:
    """
    Group topics into partitions of five.

    An incomplete trailing group is dropped, and at most nine partitions are
    kept so every partition index fits the composite quiz identifier.
    """
    groups = [
        topics[i:i + TOPICS_PER_PARTITION]
        for i in range(0, len(topics) - TOPICS_PER_PARTITION + 1, TOPICS_PER_PARTITION)
    ]

    leftover = len(topics) % TOPICS_PER_PARTITION
    if leftover:
        logger.info(f"Dropping {leftover} trailing topic(s) that do not fill a partition")

    if len(groups) > MAX_PARTITION_INDEX:
        discarded = len(groups) - MAX_PARTITION_INDEX
        logger.warning(
            f"Extracted {len(groups)} partitions; keeping the first {MAX_PARTITION_INDEX} "
            f"and discarding {discarded}"
        )
        groups = groups[:MAX_PARTITION_INDEX]

    return groups
