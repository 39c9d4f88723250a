import pytest

from twilio_stream import MARK_NAME


def test_start_stores_sid_and_resets_state(twilio_adapter, state):
    state.latest_media_timestamp = 5000
    state.push_mark(MARK_NAME)
    state.last_assistant_item = "item_9"
    state.begin_response(4000)

    twilio_adapter.handle({"event": "start", "start": {"streamSid": "MZabc"}})

    assert state.stream_sid == "MZabc"
    assert state.latest_media_timestamp == 0
    assert len(state.mark_queue) == 0
    assert state.last_assistant_item is None
    assert state.response_start_timestamp is None


def test_start_forwards_nothing(twilio_adapter, twilio_channel, openai_channel):
    twilio_adapter.handle({"event": "start", "start": {"streamSid": "MZabc"}})
    assert twilio_channel.sent == []
    assert openai_channel.sent == []


def test_media_forwards_audio_append(twilio_adapter, state, openai_channel):
    twilio_adapter.handle({"event": "media", "media": {"timestamp": "140", "payload": "/v7+"}})

    assert state.latest_media_timestamp == 140
    assert openai_channel.sent == [{"type": "input_audio_buffer.append", "audio": "/v7+"}]


def test_media_timestamp_tracks_last_frame(twilio_adapter, state):
    for ts in (0, 20, 20, 40, 1060):
        twilio_adapter.handle({"event": "media", "media": {"timestamp": ts, "payload": "AA"}})
    assert state.latest_media_timestamp == 1060


def test_media_dropped_while_model_channel_not_open(twilio_adapter, state, openai_channel):
    openai_channel.is_open = False
    twilio_adapter.handle({"event": "media", "media": {"timestamp": "60", "payload": "AA"}})

    assert state.latest_media_timestamp == 60
    assert openai_channel.sent == []


def test_mark_ack_pops_oldest(twilio_adapter, state):
    state.push_mark("first")
    state.push_mark("second")
    twilio_adapter.handle({"event": "mark", "mark": {"name": "first"}})
    assert list(state.mark_queue) == ["second"]


def test_extra_mark_acks_are_tolerated(twilio_adapter, state):
    twilio_adapter.handle({"event": "mark", "mark": {"name": MARK_NAME}})
    twilio_adapter.handle({"event": "mark"})
    assert len(state.mark_queue) == 0


@pytest.mark.parametrize("event", ["connected", "stop", "dtmf", None])
def test_other_events_are_ignored(twilio_adapter, state, twilio_channel, openai_channel, event):
    twilio_adapter.handle({"event": event, "sequenceNumber": "1"})
    assert state.stream_sid is None
    assert twilio_channel.sent == []
    assert openai_channel.sent == []


def test_media_without_timestamp_raises_key_error(twilio_adapter):
    with pytest.raises(KeyError):
        twilio_adapter.handle({"event": "media", "media": {"payload": "AA"}})


def test_media_without_payload_leaves_clock_alone(twilio_adapter, state, openai_channel):
    state.latest_media_timestamp = 80
    with pytest.raises(KeyError):
        twilio_adapter.handle({"event": "media", "media": {"timestamp": "500"}})
    assert state.latest_media_timestamp == 80
    assert openai_channel.sent == []


def test_send_mark_requires_stream_sid(twilio_adapter, state, twilio_channel):
    assert twilio_adapter.send_mark() is False
    assert twilio_channel.sent == []
    assert len(state.mark_queue) == 0


def test_send_mark_not_tracked_when_channel_drops_it(twilio_adapter, state, twilio_channel):
    state.stream_sid = "MZ1"
    twilio_channel.is_open = False
    assert twilio_adapter.send_mark() is False
    assert len(state.mark_queue) == 0


def test_outbound_commands_are_addressed_to_stream(twilio_adapter, state, twilio_channel):
    state.stream_sid = "MZ1"
    twilio_adapter.send_media("UklGRg==")
    twilio_adapter.send_mark()
    twilio_adapter.send_clear()

    assert twilio_channel.sent == [
        {"event": "media", "streamSid": "MZ1", "media": {"payload": "UklGRg=="}},
        {"event": "mark", "streamSid": "MZ1", "mark": {"name": MARK_NAME}},
        {"event": "clear", "streamSid": "MZ1"},
    ]
    assert list(state.mark_queue) == [MARK_NAME]
