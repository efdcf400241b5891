import asyncio
import time
from datetime import datetime

from services.resumable_stream import ResumableStreamContext
from services.streaming import ChatLocks, StreamBuffer, WordSmoother, encode_event, sse_frames


def test_word_smoother_emits_whole_words():
    smoother = WordSmoother()

    assert smoother.push("Hel") == []
    assert smoother.push("lo wor") == ["Hello "]
    assert smoother.push("ld, how  are") == ["world, ", "how  "]
    assert smoother.flush() == "are"
    assert smoother.flush() == ""


async def test_late_subscriber_gets_backlog_then_live_events():
    buffer = StreamBuffer("s1")
    buffer.write({"type": "start"})
    received = []

    async def consume():
        async for event in buffer.subscribe():
            received.append(event["type"])

    task = asyncio.create_task(consume())
    await asyncio.sleep(0)
    buffer.write({"type": "text-delta"})
    buffer.close()
    await asyncio.wait_for(task, 1)

    assert received == ["start", "text-delta"]


async def test_subscribing_to_closed_buffer_replays_everything():
    buffer = StreamBuffer()
    buffer.write({"type": "start"})
    buffer.write({"type": "finish"})
    buffer.close()
    buffer.write({"type": "ignored"})

    events = [e async for e in buffer.subscribe()]

    assert [e["type"] for e in events] == ["start", "finish"]


async def test_sse_frames_end_with_done_marker():
    buffer = StreamBuffer()
    buffer.write({"type": "start", "at": datetime(2024, 1, 1)})
    buffer.close()

    frames = [f async for f in sse_frames(buffer.subscribe())]

    assert frames[-1] == {"data": "[DONE]"}
    assert frames[0]["data"] == encode_event({"type": "start", "at": "2024-01-01T00:00:00"})


async def test_chat_locks_serialize_same_chat():
    locks = ChatLocks()
    order = []

    async def worker(name):
        async with locks.hold("chat-1"):
            order.append(f"{name}-in")
            await asyncio.sleep(0.01)
            order.append(f"{name}-out")

    await asyncio.gather(worker("a"), worker("b"))

    assert order in (["a-in", "a-out", "b-in", "b-out"], ["b-in", "b-out", "a-in", "a-out"])
    assert locks._locks == {}


def test_disabled_context_never_resumes():
    context = ResumableStreamContext(None)
    buffer = context.create_stream("s1")

    assert not context.enabled
    assert isinstance(buffer, StreamBuffer)
    assert context.resume_stream("s1") is None


async def test_enabled_context_resumes_live_stream():
    context = ResumableStreamContext(60)
    buffer = context.create_stream("s1")
    buffer.write({"type": "start"})
    buffer.close()

    events = context.resume_stream("s1")

    assert [e async for e in events] == [{"type": "start"}]
    assert context.resume_stream("unknown") is None


def test_finished_streams_expire_after_ttl():
    context = ResumableStreamContext(5)
    buffer = context.create_stream("old")
    buffer.close()
    buffer.closed_at = time.monotonic() - 10

    assert context.resume_stream("old") is None
