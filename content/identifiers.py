"""Composite quiz identifiers: one integer addressing (collection_id, partition_index)."""

from typing import Tuple, Union

from content.exceptions import EncodingRangeError

# partition_index occupies exactly one decimal digit
PARTITION_BASE = 10
MAX_PARTITION_INDEX = PARTITION_BASE - 1


def encode_quiz_id(collection_id: int, partition_index: int) -> int:
    """Pack a collection id and a single-digit partition index into one integer."""
    if collection_id < 0:
        raise EncodingRangeError(
            f"collection_id must be non-negative, got {collection_id}",
            context={"collection_id": collection_id},
        )
    if not 0 <= partition_index <= MAX_PARTITION_INDEX:
        raise EncodingRangeError(
            f"partition_index must be within 0..{MAX_PARTITION_INDEX}, got {partition_index}",
            context={"collection_id": collection_id, "partition_index": partition_index},
        )
    return collection_id * PARTITION_BASE + partition_index


def decode_quiz_id(value: Union[int, str]) -> Tuple[int, int]:
    """
    Unpack a composite identifier into (collection_id, partition_index).

    Accepts the integer or its route-parameter string form.
    """
    if isinstance(value, str):
        text = value.strip()
        if not text.isdigit():
            raise EncodingRangeError(
                f"Composite identifier must be a non-negative integer, got {value!r}",
                context={"value": value},
            )
        value = int(text)
    if value < 0:
        raise EncodingRangeError(
            f"Composite identifier must be non-negative, got {value}",
            context={"value": value},
        )
    return divmod(value, PARTITION_BASE)
