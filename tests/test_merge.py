import threading

import pytest

from anymon.actions import Action, Event
from anymon.merge import EventMerger

NEW = Action.NEW_FILE
DEL = Action.DEL_FILE
FROM = Action.RENAME_FROM_FILE
TO = Action.RENAME_TO_FILE


def make_merger(**options):
    sent = []
    merger = EventMerger(sent.append, timeout=None, **options)
    return merger, sent


def ev(action, path, cookie=0, dev=1):
    return Event(action, path, cookie, dev)


def summary(events):
    return [(e.action, e.path) for e in events]


def flush(merger, sent):
    merger.on_timeout()
    return summary(sent)


def test_delete_then_create_cancels():
    merger, sent = make_merger()
    merger.submit(ev(DEL, "/x"))
    merger.submit(ev(NEW, "/x"))
    assert len(merger) == 0
    assert flush(merger, sent) == []


def test_create_then_delete_cancels():
    merger, sent = make_merger()
    merger.submit(ev(NEW, "/x"))
    merger.submit(ev(DEL, "/x"))
    assert len(merger) == 0
    assert flush(merger, sent) == []


def test_rename_then_create_source_becomes_new_target():
    merger, sent = make_merger()
    merger.submit(ev(FROM, "/x", cookie=1))
    merger.submit(ev(TO, "/y", cookie=1))
    merger.submit(ev(NEW, "/x"))
    assert flush(merger, sent) == [(NEW, "/y")]
    assert sent[0].cookie == 0


def test_rename_then_delete_target_becomes_delete_source():
    merger, sent = make_merger()
    merger.submit(ev(FROM, "/x", cookie=1))
    merger.submit(ev(TO, "/y", cookie=1))
    merger.submit(ev(DEL, "/y"))
    assert flush(merger, sent) == [(DEL, "/x")]


def test_create_then_rename_becomes_create_target():
    merger, sent = make_merger()
    merger.submit(ev(NEW, "/x"))
    merger.submit(ev(FROM, "/x", cookie=1))
    merger.submit(ev(TO, "/y", cookie=1))
    assert flush(merger, sent) == [(NEW, "/y")]


def test_chained_renames():
    merger, sent = make_merger()
    merger.submit(ev(FROM, "/x", cookie=1))
    merger.submit(ev(TO, "/y", cookie=1))
    merger.submit(ev(FROM, "/y", cookie=2))
    merger.submit(ev(TO, "/z", cookie=2))
    assert flush(merger, sent) == [(DEL, "/x"), (NEW, "/z")]


def test_delete_then_rename_onto_it():
    merger, sent = make_merger()
    merger.submit(ev(DEL, "/x"))
    merger.submit(ev(FROM, "/y", cookie=1))
    merger.submit(ev(TO, "/x", cookie=1))
    assert flush(merger, sent) == [(DEL, "/y")]


def test_different_device_does_not_merge():
    merger, sent = make_merger()
    merger.submit(ev(DEL, "/x", dev=1))
    merger.submit(ev(NEW, "/x", dev=2))
    assert len(merger) == 2
    assert flush(merger, sent) == [(DEL, "/x"), (NEW, "/x")]


def test_unpaired_rename_to_becomes_create():
    merger, sent = make_merger()
    merger.submit(ev(TO, "/y", cookie=5))
    assert flush(merger, sent) == [(NEW, "/y")]


def test_paired_rename_is_sent_in_order():
    merger, sent = make_merger()
    merger.submit(ev(FROM, "/x", cookie=3))
    merger.submit(ev(TO, "/y", cookie=3))
    assert flush(merger, sent) == [(FROM, "/x"), (TO, "/y")]
    assert [e.cookie for e in sent] == [3, 3]


def test_unpaired_rename_from_is_held():
    merger, sent = make_merger()
    merger.submit(ev(FROM, "/x", cookie=4))
    merger.submit(ev(NEW, "/a"))
    assert flush(merger, sent) == [(NEW, "/a")]
    assert len(merger) == 1


def test_full_buffer_sends_a_batch():
    merger, sent = make_merger(buffer_size=3, dump_size=2)
    for path in ("/a", "/b", "/c"):
        merger.submit(ev(NEW, path))
    assert summary(sent) == [(NEW, "/a"), (NEW, "/b")]
    assert len(merger) == 1


def test_close_flushes_everything():
    merger, sent = make_merger()
    merger.submit(ev(FROM, "/x", cookie=4))
    merger.submit(ev(NEW, "/a"))
    merger.close()
    assert summary(sent) == [(FROM, "/x"), (NEW, "/a")]
    assert len(merger) == 0
    with pytest.raises(RuntimeError):
        merger.submit(ev(NEW, "/b"))


def test_invalid_sizes():
    with pytest.raises(ValueError):
        EventMerger(print, buffer_size=0)
    with pytest.raises(ValueError):
        EventMerger(print, dump_size=0)


def test_timer_sends_events():
    done = threading.Event()
    sent = []

    def notify(event):
        sent.append(event)
        done.set()

    merger = EventMerger(notify, timeout=0.01)
    merger.submit(ev(NEW, "/a"))
    assert len(merger) <= 1
    assert done.wait(2)
    assert len(merger) == 0
    assert summary(sent) == [(NEW, "/a")]
    merger.close()
    assert len(merger) == 0
    assert summary(sent) == [(NEW, "/a")]