"""
Async support for vmctl.

Every backend call and every SSH operation may block on network I/O, and
``start`` / ``stop`` block for as long as the instance takes to converge.
``async_wrap`` turns such a synchronous callable into a coroutine running
in a worker thread via :func:`asyncio.to_thread`, so async callers never
stall their event loop while the canonical implementations stay
synchronous.

Usage::

    instance = await Instance.aretrieve("i-0abc", config)
    await instance.astart()
"""

from __future__ import annotations

import asyncio
import functools
import inspect
from typing import Any, Callable, Coroutine, TypeVar

T = TypeVar("T")


def async_wrap(
    fn: Callable[..., T],
) -> Callable[..., Coroutine[Any, Any, T]]:
    """Return an async version of *fn* that runs it in a thread.

    Args:
        fn: A synchronous callable to wrap.

    Returns:
        An async callable with the same parameters and return type.
    """

    @functools.wraps(fn)
    async def _wrapper(*args: Any, **kwargs: Any) -> T:
        return await asyncio.to_thread(fn, *args, **kwargs)

    return _wrapper


class AsyncMixin:
    """Mixin that auto-generates ``a<method>`` async variants.

    Plain methods, classmethods and staticmethods defined on the subclass
    all get an awaitable twin of the same kind. Names starting with an
    underscore, properties and existing coroutines are skipped.

    Example::

        class Instance(VMCore, AsyncMixin):
            def start(self) -> str: ...
            # => await self.astart() is now available
    """

    def __init_subclass__(cls, **kwargs: Any) -> None:
        super().__init_subclass__(**kwargs)
        for name, attr in list(vars(cls).items()):
            if name.startswith("_"):
                continue
            async_name = f"a{name}"
            if async_name in vars(cls):
                continue
            if isinstance(attr, classmethod):
                setattr(cls, async_name, classmethod(async_wrap(attr.__func__)))
            elif isinstance(attr, staticmethod):
                setattr(cls, async_name, staticmethod(async_wrap(attr.__func__)))
            elif inspect.isfunction(attr) and not inspect.iscoroutinefunction(attr):
                setattr(cls, async_name, async_wrap(attr))
