"""
Progress bar decorator for batch operations.
"""
from functools import wraps
import sys
import os
from typing import Any, Callable, Optional
from rich.progress import track


def with_progress(description: Optional[str] = None) -> Callable:
    """
    Show a progress bar while a function iterates over its first sized argument.

    Progress is skipped when stdout is not a TTY, when LINKSHELF_NO_PROGRESS
    is set, or when the call passes ``no_progress=True``.

    Args:
        description: Optional description to show (defaults to function name)

    Example:
        @with_progress("Merging bookmarks")
        def merge(bookmarks):
            for bookmark in bookmarks:
                ...
    """
    def decorator(func: Callable) -> Callable:
        @wraps(func)
        def wrapper(*args, **kwargs) -> Any:
            no_progress = kwargs.pop('no_progress', False)
            if (not sys.stdout.isatty() or
                    os.environ.get('LINKSHELF_NO_PROGRESS') or
                    no_progress):
                return func(*args, **kwargs)

            for i, arg in enumerate(args):
                if (hasattr(arg, '__iter__') and
                        not isinstance(arg, (str, bytes, dict)) and
                        hasattr(arg, '__len__')):
                    desc = description or func.__name__.replace('_', ' ').title()
                    new_args = list(args)
                    new_args[i] = track(arg, description=desc, transient=True)
                    return func(*new_args, **kwargs)

            return func(*args, **kwargs)

        wrapper.without_progress = func
        return wrapper
    return decorator
