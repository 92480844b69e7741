"""
Classification of service method names into HTTP verbs.
"""

import re
from typing import Pattern, Union

from .exceptions import DuplicateVerbPatternError
from .models import HTTPMethod

VerbPattern = Union[str, Pattern[str]]

DEFAULT_GET_PATTERN = r"get_.*|get[A-Z].*"
DEFAULT_PUT_PATTERN = r"put_.*|put[A-Z].*"
DEFAULT_DELETE_PATTERN = r"delete_.*|delete[A-Z].*"


def _compile(pattern: VerbPattern) -> Pattern[str]:
    if isinstance(pattern, str):
        return re.compile(pattern)
    return pattern


class VerbClassifier:
    """Maps a method name onto GET, PUT or DELETE, falling back to POST.

    Each pattern must match the whole method name. A name matched by more
    than one pattern cannot be classified and raises
    :class:`DuplicateVerbPatternError`.
    """

    def __init__(
        self,
        get: VerbPattern = DEFAULT_GET_PATTERN,
        put: VerbPattern = DEFAULT_PUT_PATTERN,
        delete: VerbPattern = DEFAULT_DELETE_PATTERN,
    ):
        self.patterns = (
            (HTTPMethod.GET, _compile(get)),
            (HTTPMethod.PUT, _compile(put)),
            (HTTPMethod.DELETE, _compile(delete)),
        )

    def classify(self, method_name: str) -> HTTPMethod:
        """Return the verb a method with this name is exposed under."""
        matches = [verb for verb, pattern in self.patterns if pattern.fullmatch(method_name)]
        if len(matches) > 1:
            raise DuplicateVerbPatternError(method_name, [verb.value for verb in matches])
        if matches:
            return matches[0]
        return HTTPMethod.POST

    def __repr__(self) -> str:
        patterns = ", ".join(f"{verb.value}={pattern.pattern!r}" for verb, pattern in self.patterns)
        return f"VerbClassifier({patterns})"
