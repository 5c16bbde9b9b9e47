'''
Async/Coroutine related utilities.
'''
import asyncio
import inspect
import logging

logger = logging.getLogger(__name__)

def iscoro(item):
    return inspect.iscoroutine(item)

async def ornot(func, *args, **kwargs):
    '''
    Call func and await the result if it is a coroutine.

    Usage:
        changed = await s_coro.ornot(func, tagres, before, after)
    '''
    retn = func(*args, **kwargs)
    if iscoro(retn):
        return await retn
    return retn

bgtasks = set()
def create_task(coro):
    '''
    Schedule a background task and hold a reference to it until it completes.
    '''
    task = asyncio.get_running_loop().create_task(coro)
    bgtasks.add(task)
    task.add_done_callback(bgtasks.discard)
    return task
