"""
Decorators service authors can use to adjust how a method is exposed.
"""

from typing import Callable, Optional

PATH_ATTRIBUTE = "__servicemachine_path__"
EXCLUDE_ATTRIBUTE = "__servicemachine_exclude__"


def path(template: str):
    """Use an explicit path template instead of the naming convention.

    The template is appended to the service prefix and may contain
    ``{name}`` placeholders naming parameters of the method::

        class Orders:
            @path("{order_id}/lines/{line}")
            def get_order_line(self, order_id: int, line: int) -> OrderLine:
                ...
    """

    def decorator(func: Callable):
        setattr(func, PATH_ATTRIBUTE, template)
        return func

    return decorator


def exclude(func: Callable):
    """Keep a public method out of the exposed operations."""
    setattr(func, EXCLUDE_ATTRIBUTE, True)
    return func


def declared_path(func: Callable) -> Optional[str]:
    return getattr(func, PATH_ATTRIBUTE, None)


def is_excluded(func: Callable) -> bool:
    return bool(getattr(func, EXCLUDE_ATTRIBUTE, False))
