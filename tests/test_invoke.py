"""Tests for nestling._internal.invoke — uniform sync/async calls."""

import functools
import threading

from nestling._internal.invoke import invoke, is_async_callable


async def _async_fn(x):
    return x * 2


def _sync_fn(x):
    return x + 1


class _AsyncCallable:
    async def __call__(self, x):
        return -x


class TestIsAsyncCallable:
    def test_coroutine_function(self) -> None:
        assert is_async_callable(_async_fn)

    def test_sync_function(self) -> None:
        assert not is_async_callable(_sync_fn)

    def test_async_call_object(self) -> None:
        assert is_async_callable(_AsyncCallable())

    def test_partial_of_async(self) -> None:
        assert is_async_callable(functools.partial(_async_fn, 1))


class TestInvoke:
    async def test_sync(self) -> None:
        assert await invoke(_sync_fn, 1) == 2

    async def test_async(self) -> None:
        assert await invoke(_async_fn, 2) == 4

    async def test_sync_returning_awaitable(self) -> None:
        assert await invoke(lambda: _async_fn(5)) == 10

    async def test_offload_runs_sync_in_worker_thread(self) -> None:
        main = threading.get_ident()
        assert await invoke(threading.get_ident, offload=True) != main

    async def test_offload_leaves_async_on_loop(self) -> None:
        main = threading.get_ident()

        async def ident():
            return threading.get_ident()

        assert await invoke(ident, offload=True) == main
