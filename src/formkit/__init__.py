"""Form kit kernel utilities."""

from .json_tree import (
    JsonSpliceError,
    extract,
    find_array_span,
    find_key,
    find_matching_bracket,
    splice_into_array,
    walk,
)
from .tagged_tree import TaggedTreeError, TaggedTreeParser, parse_tagged_tree

__all__ = [
    "JsonSpliceError",
    "TaggedTreeError",
    "TaggedTreeParser",
    "extract",
    "find_array_span",
    "find_key",
    "find_matching_bracket",
    "parse_tagged_tree",
    "splice_into_array",
    "walk",
]
