"""Scripted token streams standing in for the streaming chat model."""

from typing import Any, Iterable, List


class FakeTokenStream:
    """Async iterator wrapper for mocking ``async for`` loops."""

    def __init__(self, items: Iterable[str], fail_after: int | None = None, error: Exception | None = None):
        self._items = list(items)
        self._idx = 0
        self._fail_after = fail_after
        self._error = error or RuntimeError("model connection reset")

    def __aiter__(self):
        return self

    async def __anext__(self):
        if self._fail_after is not None and self._idx >= self._fail_after:
            raise self._error
        if self._idx >= len(self._items):
            raise StopAsyncIteration
        item = self._items[self._idx]
        self._idx += 1
        return item


def scripted_responses(*responses: List[str]):
    """``side_effect`` for ``stream_chat``: one token list per model call, in order."""
    streams = iter(responses)

    def _next_stream(*args: Any, **kwargs: Any) -> FakeTokenStream:
        return FakeTokenStream(next(streams))

    return _next_stream


async def collect_events(stream) -> List[dict]:
    """Start a generation stream and drain its events."""
    await stream.start()
    return [event async for event in stream.events()]
