"""Await GIO-style asynchronous calls from asyncio code.

GIO reports completion of ``*_async`` operations through a callback that has
to call the matching ``*_finish`` method. :func:`call_async` turns such a
pair into an awaitable. The asyncio loop must be driven by the GLib main
context (see ``gi.events.GLibEventLoopPolicy``) for the callback to run.
"""

import asyncio
import logging

logger = logging.getLogger(__name__)


async def call_async(begin, finish, *args):
    """Start ``begin(*args, callback)`` and return ``finish(result)``.

    Exceptions raised by ``finish`` (typically ``GLib.Error``) propagate to
    the awaiting coroutine.
    """
    loop = asyncio.get_running_loop()
    future = loop.create_future()

    def _on_done(_source, result, *_user_data):
        if future.cancelled():
            logger.debug("Result of %s arrived after cancellation", getattr(begin, "__name__", begin))
            return
        try:
            value = finish(result)
        except Exception as e:
            future.set_exception(e)
        else:
            future.set_result(value)

    begin(*args, _on_done)
    return await future
