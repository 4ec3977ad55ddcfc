import threading
import time

import pytest

from callscribe import Cancelled, RequestContext


def test_unbounded_context():
    ctx = RequestContext()
    assert ctx.remaining() is None
    assert ctx.timeout() is None
    assert ctx.timeout(5) == 5
    ctx.check()


def test_deadline_caps_timeouts():
    ctx = RequestContext(timeout=10)
    assert ctx.timeout(60) <= 10
    assert ctx.timeout(1) == 1


def test_expired_deadline():
    ctx = RequestContext(timeout=0)
    with pytest.raises(Cancelled, match="deadline exceeded"):
        ctx.check()


def test_cancel_wakes_sleep():
    ctx = RequestContext()
    threading.Timer(0.05, ctx.cancel).start()
    started = time.monotonic()
    with pytest.raises(Cancelled, match="cancelled"):
        ctx.sleep(10)
    assert time.monotonic() - started < 5


def test_cancellation_is_annotated_once():
    bare = Cancelled("deadline exceeded")
    assert bare.stage == "cancelled"
    assert str(bare) == "cancelled: deadline exceeded"

    annotated = bare.at("splitting")
    assert annotated.stage == "splitting"
    assert annotated.reason == "deadline exceeded"
    assert str(annotated) == "splitting: deadline exceeded"
    assert annotated.at("recognizing") is annotated
