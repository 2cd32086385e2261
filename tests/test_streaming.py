import pytest

from zone_monitor.engine.streaming import StateFrame, _Broadcast, get_state_broadcast


def frame(sequence: int, status: str = "ready") -> StateFrame:
    return StateFrame(
        ts="2025-01-01T00:00:00Z",
        status=status,
        error=status == "error",
        sequence=sequence,
        records=sequence * 10,
    )


@pytest.mark.asyncio
async def test_broadcast_delivers_last_frame():
    broadcast = get_state_broadcast()
    broadcast.publish(frame(7))
    agen = broadcast.subscribe()
    event = await agen.__anext__()
    assert event.sequence == 7
    assert broadcast.last_frame.sequence == 7
    await agen.aclose()


@pytest.mark.asyncio
async def test_slow_subscriber_keeps_only_fresh_frames():
    broadcast = _Broadcast()
    agen = broadcast.subscribe()
    broadcast.publish(frame(1))
    first = await agen.__anext__()
    assert first.sequence == 1

    # Queue holds two frames; overflow drains it before re-adding
    for sequence in range(2, 6):
        broadcast.publish(frame(sequence))
    received = [await agen.__anext__() for _ in range(2)]
    assert [f.sequence for f in received] == [4, 5]
    await agen.aclose()
