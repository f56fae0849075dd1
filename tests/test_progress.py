from orchestration.progress import ProgressChannel, describe_action
from schemas.progress import ProgressEvent, ProgressEventType


def _event(message):
    return ProgressEvent(type=ProgressEventType.EXECUTING, message=message)


def test_subscribers_see_events_in_order():
    channel = ProgressChannel()
    first, second = [], []
    channel.subscribe(first.append)
    channel.subscribe(second.append)

    channel.publish(_event("one"))
    channel.publish(_event("two"))

    assert [event.message for event in first] == ["one", "two"]
    assert second == first
    assert len(channel) == 2


def test_failing_subscriber_does_not_break_publishing():
    channel = ProgressChannel()
    received = []

    def broken(event):
        raise ValueError("client went away")

    channel.subscribe(broken)
    channel.subscribe(received.append)
    channel.publish(_event("still delivered"))

    assert [event.message for event in received] == ["still delivered"]
    assert len(channel) == 1


def test_unsubscribe_and_snapshot():
    channel = ProgressChannel()
    received = []
    unsubscribe = channel.subscribe(received.append)

    channel.publish(_event("a"))
    unsubscribe()
    channel.publish(_event("b"))

    snapshot = channel.events
    snapshot.clear()
    assert len(received) == 1
    assert len(channel) == 2


def test_describe_action():
    assert describe_action("remove_background") == "Removing backgrounds"
    assert describe_action("write_product_copy") == "write product copy"
